import os
from datetime import timedelta

from dotenv import load_dotenv

# Load environment variables from .env (only for local development)
if os.getenv("FLASK_ENV") != "production":
    load_dotenv()


def _csv(value):
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Config:
    """Base configuration."""

    # General settings
    SECRET_KEY = os.getenv("SECRET_KEY", "default-secret-key")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///linkinpurry.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Tokens live in the "token" cookie; bearer headers are accepted too
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    JWT_TOKEN_LOCATION = ["cookies", "headers"]
    JWT_ACCESS_COOKIE_NAME = "token"
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)
    JWT_COOKIE_CSRF_PROTECT = False
    JWT_SESSION_COOKIE = False
    JWT_COOKIE_SECURE = os.getenv("FLASK_ENV") == "production"

    # Profile photo storage: "s3" or "local"
    STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local")
    AWS_ACCESS_KEY = os.getenv("AWS_ACCESS_KEY")
    AWS_SECRET_KEY = os.getenv("AWS_SECRET_KEY")
    AWS_BUCKET_NAME = os.getenv("BUCKET_NAME")
    AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
    UPLOAD_FOLDER = os.getenv(
        "UPLOAD_FOLDER",
        os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "uploads")),
    )
    MAX_PHOTO_SIZE = 5 * 1024 * 1024
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024
    DEFAULT_PROFILE = os.getenv(
        "DEFAULT_PROFILE",
        "https://1azo7nn58l8rzc41.public.blob.vercel-storage.com/user_profile-OvdRgF7XYY80qFtbyvQ1tTOYFOmOkv.png",
    )

    # Base URL for API calls
    BASE_URL = os.getenv("BASE_URL", "http://localhost:5000")

    # Response cache; an empty REDIS_URL turns caching off
    REDIS_URL = os.getenv("REDIS_URL", "")
    CACHE_TTL = int(os.getenv("CACHE_TTL", "3600"))

    # Web push (VAPID)
    VAPID_PUBLIC_KEY = os.getenv("VAPID_PUBLIC_KEY", "")
    VAPID_PRIVATE_KEY = os.getenv("VAPID_PRIVATE_KEY", "")
    VAPID_MAILTO = os.getenv("VAPID_MAILTO", "")

    # CORS configuration
    CORS_ORIGINS = _csv(os.getenv("CORS_ORIGINS", "http://localhost:5173"))

    # Debug mode
    DEBUG = os.getenv("FLASK_ENV") != "production"
