import os

from linkinpurry import create_app, socketio

# Create Flask app instance
app = create_app()

app.logger.info("Running in %s mode", 'production' if os.getenv('FLASK_ENV') == 'production' else 'development')
app.logger.info("Allowed CORS Origins: %s", app.config['CORS_ORIGINS'])

if __name__ == '__main__':
    debug_mode = app.config['DEBUG']
    port = int(os.getenv('PORT', '5000'))
    socketio.run(app, debug=debug_mode, host="0.0.0.0", port=port, allow_unsafe_werkzeug=debug_mode)
