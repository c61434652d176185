"""
Configuration constants for the vaultsync client.
"""

import os

# Application Metadata
APP_VERSION = "0.4.0"  # Use: Current version of the client. Type: str. Range: Semantic versioning string.
APP_NAME = "vaultsync"  # Use: Name of the client, used for the CLI program name and the data directory. Type: str.

# Remote API Settings
DEFAULT_API_BASE_URL = os.environ.get("VAULTSYNC_API_URL", "http://localhost:8080/v1")  # Use: Base URL of the account service. Type: str. Range: Any http(s) URL without trailing slash.
REQUEST_TIMEOUT_SECONDS = float(os.environ.get("VAULTSYNC_TIMEOUT", "30"))  # Use: Total timeout for one HTTP request. Type: float. Range: Positive number of seconds.
CONNECT_TIMEOUT_SECONDS = 10.0  # Use: Timeout for establishing the TCP/TLS connection. Type: float. Range: Positive, at most REQUEST_TIMEOUT_SECONDS.
ACCOUNT_PATH = "/account"  # Use: Path of the account collection endpoint. Type: str.
VERIFY_PATH = "/auth/verify"  # Use: Path of the token verification endpoint. Type: str.
PULL_ALL = "PULL_ALL"  # Use: Pull mode meaning "here is the full current record set". Type: str.
PULL_NOTHING = "PULL_NOTHING"  # Use: Pull mode meaning "nothing newer than your watermark". Type: str.
SUCCESS_CODE = 0  # Use: Response code the service uses for success. Type: int. Any other value is a failure code.

# Security Settings
KEY_SIZE = 32  # Use: Size of the encryption key in bytes. Corresponds to AES-256. Type: int. Range: 16, 24 or 32.
NONCE_SIZE = 12  # Use: Size of the AES-GCM nonce in bytes. Type: int. Range: 12 bytes is the recommended size for GCM.
TAG_SIZE = 16  # Use: Size of the AES-GCM authentication tag in bytes. Type: int. Range: 16 bytes.
CIPHERTEXT_VERSION = 1  # Use: Leading byte of every ciphertext string, so the format can evolve. Type: int. Range: 0-255.
ARGON2_TIME_COST = 2  # Use: Argon2id time cost parameter. Type: int. Range: Typically 1 to 10.
ARGON2_MEMORY_COST = 65536  # Use: Argon2id memory cost in KiB. Type: int. Range: At least 65536 (64 MB) recommended.
ARGON2_PARALLELISM = 4  # Use: Argon2id parallelism parameter. Type: int. Range: Typically 1 to 8.
KEY_SALT_PREFIX = b"vaultsync.core.password"  # Use: Domain separator hashed with the owner name to build the key derivation salt. Type: bytes.

# Cache Settings
DATA_DIR_NAME = ".vaultsync"  # Use: Name of the hidden directory in the user's home holding the cache. Type: str. Range: Any valid directory name.
CACHE_DB_FILE = "cache.db"  # Use: Filename of the SQLite cache database. Type: str. Range: Any valid filename.

# Search Settings
SEARCH_DEBOUNCE_SECONDS = 0.3  # Use: Quiet period after the last keystroke before the search filter runs. Type: float. Range: 0.1 to 1.0 seconds.

# Display Settings
EXPORT_SEPARATOR = "---"  # Use: Line separating records in the plain-text export. Type: str.

# Status Messages
MSG_LOADED_FROM_CACHE = "Loaded {count} records from cache"
MSG_QUERY_OK = "Query succeeded, {count} records"
MSG_QUERY_UNCHANGED = "Already up to date, {count} records"
MSG_QUERY_FAILED = "Query failed: {reason}"
MSG_INSERT_OK = "Entry added"
MSG_INSERT_FAILED = "Failed to add entry: {reason}"
MSG_UPDATE_OK = "Entry updated"
MSG_UPDATE_FAILED = "Failed to update entry: {reason}"
MSG_DELETE_OK = "Entry deleted"
MSG_DELETE_FAILED = "Failed to delete entry: {reason}"
MSG_REFRESH_FAILED = "Could not refresh entries: {reason}"
MSG_NETWORK_ERROR = "Network error, please check your connection"
MSG_SERVER_REJECTED = "Server rejected the request (HTTP {status})"
MSG_MALFORMED_RESPONSE = "The server sent an invalid response"
MSG_CRYPTO_ERROR = "Encryption error, check your core password"
MSG_CACHE_ERROR = "Local cache error"
MSG_VALIDATION_ERROR = "Invalid input: {reason}"


def get_data_dir() -> str:
    """Return the directory holding the local cache, creating it if needed."""
    data_dir = os.environ.get("VAULTSYNC_DATA_DIR") or os.path.join(os.path.expanduser("~"), DATA_DIR_NAME)
    os.makedirs(data_dir, exist_ok=True)
    return data_dir


def get_cache_db_path() -> str:
    """Return the path of the SQLite cache database."""
    return os.path.join(get_data_dir(), CACHE_DB_FILE)
