import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/chairbook.db")
DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Comma separated list of frontend origins allowed to call the API with credentials
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

# The single business owner the API acts for (see auth.get_current_user)
OWNER_EMAIL = os.getenv("OWNER_EMAIL", "owner@salon.com")
OWNER_NAME = os.getenv("OWNER_NAME", "Owner")

# Scheduling rules
MIN_APPOINTMENT_MINUTES = int(os.getenv("MIN_APPOINTMENT_MINUTES", "15"))
RECURRENCE_MIN_COUNT = int(os.getenv("RECURRENCE_MIN_COUNT", "2"))
RECURRENCE_MAX_COUNT = int(os.getenv("RECURRENCE_MAX_COUNT", "52"))
