"""
config.py
Deployment settings (database file, scan period, log level) read from the environment.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration."""

    DB_PATH = Path(os.getenv("EDUSYS_DB_PATH", str(Path(__file__).with_name("edusys.db"))))

    # Notification scan period in seconds
    SCAN_INTERVAL_SECONDS = int(os.getenv("EDUSYS_SCAN_INTERVAL", "60"))

    # Prefixed to WhatsApp numbers that don't carry it yet
    COUNTRY_CODE = os.getenv("EDUSYS_COUNTRY_CODE", "55")

    # Minimum weighted average to pass (fixed)
    PASS_MARK = 6.0

    LOG_LEVEL = os.getenv("EDUSYS_LOG_LEVEL", "INFO").upper()
