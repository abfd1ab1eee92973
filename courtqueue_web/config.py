"""Configuration constants for the check-in web API."""

import os

APP_TITLE = "Court Queue"
APP_VERSION = "0.1.0"

LOG_LEVEL = os.getenv("COURTQUEUE_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
