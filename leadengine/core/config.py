import os

# ✅ Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./leadengine.db")

# ✅ Security
SECRET_KEY = os.getenv("SECRET_KEY")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# ✅ Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_FILE_MAX_BYTES = int(os.getenv("LOG_FILE_MAX_BYTES", str(10 * 1024 * 1024)))
LOG_FILE_BACKUPS = int(os.getenv("LOG_FILE_BACKUPS", "5"))

# ✅ Engine tuning
PLAN_CACHE_TTL_SECONDS = int(os.getenv("PLAN_CACHE_TTL_SECONDS", "300"))
BID_FAN_OUT_WORKERS = int(os.getenv("BID_FAN_OUT_WORKERS", "3"))
