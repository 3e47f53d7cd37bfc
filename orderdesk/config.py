import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./orderdesk.db")

# Redis (slot cache + order change notifications)
REDIS_URL = os.getenv("REDIS_URL")
CACHE_ENABLED = os.getenv("CACHE_ENABLED", "true").lower() == "true"
ORDER_CHANGES_CHANNEL = os.getenv("ORDER_CHANGES_CHANNEL", "orders:changes")

# Slot grid - last slot is exactly SLOT_GRID_END
SLOT_GRID_START = os.getenv("SLOT_GRID_START", "08:00")
SLOT_GRID_END = os.getenv("SLOT_GRID_END", "20:00")
SLOT_GRID_STEP_MINUTES = int(os.getenv("SLOT_GRID_STEP_MINUTES", "30"))
SLOT_CACHE_TTL_SECONDS = int(os.getenv("SLOT_CACHE_TTL_SECONDS", "60"))

# Pricing (integer currency units)
WATER_PRICE_PER_CUBIC_METER = int(os.getenv("WATER_PRICE_PER_CUBIC_METER", "1300"))
SEPTIC_PRICE_PER_TRIP = int(os.getenv("SEPTIC_PRICE_PER_TRIP", "4000"))
MAX_WATER_QUANTITY = int(os.getenv("MAX_WATER_QUANTITY", "20"))

# Platform commission, applied to completed orders only
COMMISSION_RATE = float(os.getenv("COMMISSION_RATE", "0.10"))

# Customers cannot cancel closer than this to the delivery slot
CUSTOMER_CANCEL_WINDOW_HOURS = float(os.getenv("CUSTOMER_CANCEL_WINDOW_HOURS", "3"))

# Remote store calls
STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "10"))
STORE_RETRY_ATTEMPTS = int(os.getenv("STORE_RETRY_ATTEMPTS", "3"))
STORE_RETRY_BACKOFF_SECONDS = float(os.getenv("STORE_RETRY_BACKOFF_SECONDS", "0.2"))

# Background tasks
POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "30"))
# Polls between attempts to restore the change subscription
RESUBSCRIBE_EVERY_POLLS = int(os.getenv("RESUBSCRIBE_EVERY_POLLS", "10"))
REMINDER_CHECK_INTERVAL_SECONDS = float(os.getenv("REMINDER_CHECK_INTERVAL_SECONDS", "60"))

# Business timezone offset for "today" / delivery datetimes (hours from UTC)
BUSINESS_UTC_OFFSET_HOURS = int(os.getenv("BUSINESS_UTC_OFFSET_HOURS", "9"))
