"""Application-wide constants."""

# API Configuration
API_VERSION = "v1"
API_PREFIX = f"/api/{API_VERSION}"

# Consumer Google Groups live on this domain and cannot be managed through
# the Admin SDK; members must join them manually.
CONSUMER_GROUP_SUFFIX = "@googlegroups.com"

PLAY_STORE_HOST = "play.google.com"
# Reverse-domain Android application id, e.g. com.example.app
ANDROID_APP_ID_PATTERN = r"^[a-zA-Z][a-zA-Z0-9_]*(\.[a-zA-Z][a-zA-Z0-9_]*)+$"

# Promotional codes
MAX_PROMOTIONAL_CODES_PER_REQUEST = 1000
ALLOCATION_MAX_ATTEMPTS = 3

# Group API
GROUP_API_TIMEOUT_SECONDS = 10.0
GOOGLE_DIRECTORY_API_BASE = "https://admin.googleapis.com/admin/directory/v1"
GOOGLE_GROUPS_SETTINGS_API_BASE = "https://www.googleapis.com/groups/v1"
GOOGLE_OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"

# Secret token embedded in the consumer-group welcome message link
APP_SECRET_TOKEN_BYTES = 24

# Headers carrying the owner's delegated Google credential
GOOGLE_ACCESS_TOKEN_HEADER = "X-Google-Access-Token"
GOOGLE_REFRESH_TOKEN_HEADER = "X-Google-Refresh-Token"
