import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 4000))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

ROOM_LIFETIME_SECONDS = int(os.getenv("ROOM_LIFETIME_SECONDS", 24 * 60 * 60))
SWEEP_INTERVAL_SECONDS = float(os.getenv("SWEEP_INTERVAL_SECONDS", 60 * 60))
SEND_TIMEOUT_SECONDS = float(os.getenv("SEND_TIMEOUT_SECONDS", 5))

# When disabled, send_message trusts the username in the payload
ENFORCE_MEMBERSHIP = os.getenv("ENFORCE_MEMBERSHIP", "true").lower() == "true"

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

SYSTEM_USERNAME = "System"
