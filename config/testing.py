import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timeleave_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

AUTO_CLOCK_OUT_ENABLED = False
AUTO_CLOCK_OUT_CUTOFF = "23:11"
AUTO_CLOCK_OUT_ARM_WINDOW_MINUTES = 15
AUTO_CLOCK_OUT_CHECK_SECONDS = 60

BLOCK_SUBMIT_ON_INSUFFICIENT_BALANCE = True
PENALTY_LEAVE_DAYS = "0.5"
PENALTY_LEAVE_TYPE = "casual"
