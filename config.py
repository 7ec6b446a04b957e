import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as rental.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "rental.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # create tables on startup instead of running migrations (tests, local demos)
    AUTO_CREATE_TABLES = _env_bool("AUTO_CREATE_TABLES", "false")

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "rental_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = 20 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", "false")  # set True when using HTTPS

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Reservations: any authenticated user may read a reservation by id unless this is on
    RESERVATION_READ_REQUIRES_OWNERSHIP = _env_bool("RESERVATION_READ_REQUIRES_OWNERSHIP", "false")

    # Admin dashboard
    POPULAR_VEHICLES_LIMIT = int(os.getenv("POPULAR_VEHICLES_LIMIT", "5"))
    MONTHLY_REVENUE_BUCKETS = int(os.getenv("MONTHLY_REVENUE_BUCKETS", "12"))
    ADMIN_LIST_LIMIT = 200

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False
    TESTING = False

class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    AUTO_CREATE_TABLES = True
    BCRYPT_ROUNDS = 4
    RESERVATION_READ_REQUIRES_OWNERSHIP = False
