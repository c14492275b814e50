import os

# ✅ Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./entitlements.db")
RUN_MIGRATIONS = os.getenv("RUN_MIGRATIONS", "0")

# ✅ Security
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# ✅ Payment providers (shared webhook secrets)
CAKTO_WEBHOOK_KEY = os.getenv("CAKTO_WEBHOOK_KEY", "")
KIWIFY_WEBHOOK_KEY = os.getenv("KIWIFY_WEBHOOK_KEY", "")

# ✅ Webhook gateway
WEBHOOK_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "WEBHOOK_ALLOWED_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    ).split(",")
    if origin.strip()
]
WEBHOOK_RATE_LIMIT_MAX = int(os.getenv("WEBHOOK_RATE_LIMIT_MAX", "10"))
WEBHOOK_RATE_LIMIT_WINDOW = int(os.getenv("WEBHOOK_RATE_LIMIT_WINDOW", "60"))

# ✅ Subscriptions
DEFAULT_TRIAL_DAYS = int(os.getenv("DEFAULT_TRIAL_DAYS", "7"))
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "BRL")

# ✅ Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
