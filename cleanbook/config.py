import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL")

# Security - tokens are issued by the identity provider and signed with this key
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Scheduling - two active bookings of the same service/requester pair may not
# be closer than this many minutes (boundary inclusive)
BOOKING_CONFLICT_WINDOW_MINUTES = int(os.getenv("BOOKING_CONFLICT_WINDOW_MINUTES", "120"))

# Notifications paging
NOTIFICATIONS_DEFAULT_PAGE_SIZE = int(os.getenv("NOTIFICATIONS_DEFAULT_PAGE_SIZE", "10"))
NOTIFICATIONS_MAX_PAGE_SIZE = int(os.getenv("NOTIFICATIONS_MAX_PAGE_SIZE", "100"))

# Comma separated list of allowed origins
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
