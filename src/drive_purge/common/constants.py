"""Constants used throughout the application."""

# OAuth2 scopes (full scope is required to trash files the app did not create)
SCOPES = ["https://www.googleapis.com/auth/drive"]

# Fields requested for every listed file
FILE_FIELDS = (
    "id, name, size, mimeType, modifiedTime, md5Checksum, webViewLink, thumbnailLink"
)

# API limits
PAGE_SIZE = 200
MAX_FILES = 1000
DEFAULT_RATE_LIMIT = 10  # requests per second

# Auto-selection
DEFAULT_CONFIDENCE_THRESHOLD = 0.8

# Classifier
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

# Seconds to wait for the Drive client to become ready
SERVICE_READY_TIMEOUT = 10.0

# Local storage
TOKEN_FILE = "token.json"
CREDENTIALS_FILE = "credentials.json"
STORE_FILE = "config.json"
