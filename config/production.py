import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "club_attendance"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "club_attendance"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

TIMEZONE = os.getenv("TIMEZONE", "Asia/Tokyo")

REGISTRATION_TOKEN_TTL_MINUTES = int(os.getenv("REGISTRATION_TOKEN_TTL_MINUTES", "30"))
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "")

# Empty key means every admin endpoint answers 403.
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "")

LOGOUT_WINDOW_START = os.getenv("LOGOUT_WINDOW_START", "22:50")
LOGOUT_WINDOW_END = os.getenv("LOGOUT_WINDOW_END", "23:50")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
