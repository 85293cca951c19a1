import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "club_attendance_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

TIMEZONE = "Asia/Tokyo"
REGISTRATION_TOKEN_TTL_MINUTES = 30
PUBLIC_BASE_URL = "http://kiosk.test"
ADMIN_API_KEY = "test-admin-key"

LOGOUT_WINDOW_START = "22:50"
LOGOUT_WINDOW_END = "23:50"

AUTO_INIT_DB = False
