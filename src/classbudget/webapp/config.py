"""Configuration constants for the class budget web service."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

SQLITE_FILE_NAME = os.environ.get("CLASSBUDGET_SQLITE", "classbudget.db")
LOG_FILE: Optional[Path] = (
    Path(os.environ["CLASSBUDGET_LOG_FILE"]) if os.environ.get("CLASSBUDGET_LOG_FILE") else None
)
DEFAULT_LOCALE = os.environ.get("CLASSBUDGET_DEFAULT_LOCALE", "he")
DEFAULT_AMOUNT_PER_CHILD = os.environ.get("DEFAULT_AMOUNT_PER_CHILD", "200")
SETUP_PROGRESS_KEY_PREFIX = "setup_progress:"
DEFAULT_ACTOR = "committee"

__all__ = [
    "SQLITE_FILE_NAME",
    "LOG_FILE",
    "DEFAULT_LOCALE",
    "DEFAULT_AMOUNT_PER_CHILD",
    "SETUP_PROGRESS_KEY_PREFIX",
    "DEFAULT_ACTOR",
]
