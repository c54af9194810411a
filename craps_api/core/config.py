import os
from dotenv import load_dotenv
load_dotenv()

class Settings:
    APP_NAME = os.getenv("APP_NAME", "craps-api")
    APP_ENV = os.getenv("APP_ENV", "dev")
    APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT = int(os.getenv("APP_PORT", "8000"))
    TZ = os.getenv("TZ", "UTC")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./craps.db")

    JWT_SECRET = os.getenv("JWT_SECRET", "change_me")
    JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "43200"))
    PASSWORD_SALT = os.getenv("PASSWORD_SALT", "change_me")

    STARTING_BALANCE = os.getenv("STARTING_BALANCE", "10000")
    OPERATOR_USERNAMES = [u.strip() for u in os.getenv("OPERATOR_USERNAMES", "").split(",") if u.strip()]
    PAYOUT_MULTIPLIER = os.getenv("PAYOUT_MULTIPLIER", "2")

    ROLL_INTERVAL_SECONDS = float(os.getenv("ROLL_INTERVAL_SECONDS", "15"))
    ROLL_POLL_MAX_ATTEMPTS = int(os.getenv("ROLL_POLL_MAX_ATTEMPTS", "10"))
    ROLL_POLL_INTERVAL_SECONDS = float(os.getenv("ROLL_POLL_INTERVAL_SECONDS", "3"))
    SERIES_COOLDOWN_SECONDS = float(os.getenv("SERIES_COOLDOWN_SECONDS", "3"))
    # 0 = the window is closed by an operator (POST /api/table/start)
    BETTING_WINDOW_SECONDS = float(os.getenv("BETTING_WINDOW_SECONDS", "0"))
    PENDING_POLICY = os.getenv("PENDING_POLICY", "wait")

    ORACLE_URL = os.getenv("ORACLE_URL", "")
    ORACLE_SEED = os.getenv("ORACLE_SEED")
    ORACLE_FULFILL_AFTER = int(os.getenv("ORACLE_FULFILL_AFTER", "1"))

    AUTO_START_SCHEDULER = os.getenv("AUTO_START_SCHEDULER", "true").lower() in ("1", "true", "yes")

settings = Settings()
