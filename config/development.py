import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "club_attendance"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Organizational calendar: every attendance day boundary is computed in this zone.
TIMEZONE = os.getenv("TIMEZONE", "Asia/Tokyo")

REGISTRATION_TOKEN_TTL_MINUTES = int(os.getenv("REGISTRATION_TOKEN_TTL_MINUTES", "30"))
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:5000")

# Admin UI and the bulk logout scheduler send this in X-API-KEY.
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "dev-admin-key")

# Local HH:MM window in which the scheduler may force everybody out.
LOGOUT_WINDOW_START = os.getenv("LOGOUT_WINDOW_START", "22:50")
LOGOUT_WINDOW_END = os.getenv("LOGOUT_WINDOW_END", "23:50")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
