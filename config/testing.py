import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "virtual_classroom_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"
EXPOSE_ERROR_DETAILS = bool(int(os.getenv("EXPOSE_ERROR_DETAILS", "0")))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

JWT_SECRET = "test-jwt-secret"
JWT_EXPIRES_DAYS = 7

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/15")
OTP_TTL_SECONDS = 600

UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "uploads-test")
MAX_CONTENT_LENGTH = 10 * 1024 * 1024

JITSI_DOMAIN = "meet.jit.si"
JITSI_APP_ID = ""
JITSI_API_KEY = ""

MAIL_SERVER = ""
MAIL_DEFAULT_SENDER = "no-reply@classroom.local"
