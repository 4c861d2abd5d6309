import os

from dotenv import load_dotenv

# Load from .env if it exists (useful for local development)
load_dotenv()

LOGGING_LEVEL = os.getenv("LOGGING_LEVEL", "INFO").upper()

# Credentials: JSON text in the env var wins, otherwise the key file is used.
GOOGLE_CREDENTIALS_JSON_ENV = "GOOGLE_CREDENTIALS_JSON"
GOOGLE_CREDENTIALS_FILE = os.getenv("GOOGLE_CREDENTIALS_FILE", "credentials.json")

# Right-most column read by whole-sheet and whole-row fetches.
SHEET_LAST_COLUMN = os.getenv("SHEET_LAST_COLUMN", "Z").upper()

# Upper bound on concurrent API calls during fan-out writes.
SHEET_MAX_WORKERS = int(os.getenv("SHEET_MAX_WORKERS", "8"))

SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"
