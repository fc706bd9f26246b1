import os

# Database configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tigertix.sqlite")

# Redis configuration
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# "local" serializes purchases inside one process, "redis" across processes
LOCK_BACKEND = os.getenv("LOCK_BACKEND", "local")

# Seconds to wait for the per-event lock before giving up
LOCK_TIMEOUT = float(os.getenv("LOCK_TIMEOUT", "5"))

# Seconds after which a redis event lock expires on its own
LOCK_EXPIRY = float(os.getenv("LOCK_EXPIRY", "10"))

# Seconds a single transaction may take, including waits on the database lock
TRANSACTION_TIMEOUT = float(os.getenv("TRANSACTION_TIMEOUT", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]


def get_redis_url():
    return REDIS_URL
