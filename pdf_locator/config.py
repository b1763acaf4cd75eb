# pdf_locator/config.py
#
# Runtime settings. Each value can be overridden with the environment
# variable named next to it.

import os
from pathlib import Path


PACKAGE_DIRECTORY = Path(__file__).resolve().parent

# ── Paths ────────────────────────────────────────────────────────────────────
DATA_DIRECTORY = os.getenv("PDF_LOCATOR_DATA_DIR", "data")
SUBJECT_TABLE_PATH = os.getenv(
    "PDF_LOCATOR_SUBJECT_TABLE",
    str(PACKAGE_DIRECTORY / "data" / "subject_tokens.json"),
)

# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("PDF_LOCATOR_LOG_LEVEL", "INFO")

# ── Text layer retries ───────────────────────────────────────────────────────
# Attempt n waits RETRY_DELAY_SECONDS * n before reading the text layer again
MAX_SEARCH_ATTEMPTS = int(os.getenv("PDF_LOCATOR_MAX_ATTEMPTS", "5"))
RETRY_DELAY_SECONDS = float(os.getenv("PDF_LOCATOR_RETRY_DELAY", "0.2"))

# ── HTTP API ─────────────────────────────────────────────────────────────────
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "PDF_LOCATOR_CORS_ORIGINS",
        "http://localhost:5173,http://localhost:8080,http://127.0.0.1:8080",
    ).split(",")
    if origin.strip()
]
