import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timeleave_db"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo data on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

# Daily auto clock-out
AUTO_CLOCK_OUT_ENABLED = bool(int(os.getenv("AUTO_CLOCK_OUT_ENABLED", "1")))
AUTO_CLOCK_OUT_CUTOFF = os.getenv("AUTO_CLOCK_OUT_CUTOFF", "23:11")
AUTO_CLOCK_OUT_ARM_WINDOW_MINUTES = int(os.getenv("AUTO_CLOCK_OUT_ARM_WINDOW_MINUTES", "15"))
AUTO_CLOCK_OUT_CHECK_SECONDS = int(os.getenv("AUTO_CLOCK_OUT_CHECK_SECONDS", "60"))

# Leave policy
BLOCK_SUBMIT_ON_INSUFFICIENT_BALANCE = bool(int(os.getenv("BLOCK_SUBMIT_ON_INSUFFICIENT_BALANCE", "1")))
PENALTY_LEAVE_DAYS = os.getenv("PENALTY_LEAVE_DAYS", "0.5")
PENALTY_LEAVE_TYPE = os.getenv("PENALTY_LEAVE_TYPE", "casual")
