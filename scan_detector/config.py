"""
scan_detector/config.py

Configuration for the full-table-scan detector.
"""
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Profile gate
APP_PROFILE = os.getenv("APP_PROFILE", "default")
SCAN_PROFILES = frozenset(
    p.strip() for p in os.getenv("SCAN_PROFILES", "dev,test").split(",") if p.strip()
)
SCAN_WORKERS = int(os.getenv("SCAN_WORKERS", "2"))

# Database config (MySQL: EXPLAIN column 5 is the access type)
DB_USER = os.getenv("DB_USER", "root")
DB_PASS = os.getenv("DB_PASS", "root")
DB_HOST = os.getenv("DB_HOST", "127.0.0.1")
DB_PORT = os.getenv("DB_PORT", "3306")
DB_NAME = os.getenv("DB_NAME", "app")
DB_URL = os.getenv(
    "DB_URL", f"mysql+pymysql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
)

# Explain plan contract
SCAN_ERROR_CODE = 10000
FULL_SCAN_MARKER = "ALL"
ACCESS_TYPE_COLUMN = 4
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
TIME_FORMAT = "%H:%M:%S"


def is_profile_active(profile: Optional[str] = None) -> bool:
    """True when the given (or configured) profile enables scan detection."""
    return (profile or APP_PROFILE) in SCAN_PROFILES
