from flask import Blueprint, jsonify

from linkinpurry.utils import success_response

bp = Blueprint('routes', __name__)


@bp.route('/health', methods=['GET'])
def health():
    return jsonify(success_response('Health check success')), 200
