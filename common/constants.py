"""Project-wide constants (inode numbers, size limits, default paths)."""

ROOT_INODE: int = 1

FILE_MAX_SIZE_BYTES: int = 2 * 1000 * 1000 * 1000  # Bot API document ceiling
MAX_NAME_LENGTH: int = 255

TAG_SEPARATOR: str = "_"
TAG_GROUP_PREFIX: str = "#"

DIR_MODE: int = 0o755
DT_REG: int = 8  # directory entry type for regular files
DEFAULT_FILE_MODE: int = 0o644

DEFAULT_DATABASE_PATH: str = "/var/lib/tgfs/catalog.db"
DEFAULT_MAPPING_FILE: str = "/var/lib/tgfs/mapping.log"
DEFAULT_LOCAL_STORE_PATH: str = "/var/lib/tgfs/blobs"

TELEGRAM_API_BASE_URL: str = "https://api.telegram.org"
TELEGRAM_TIMEOUT_SECONDS: float = 60.0
TELEGRAM_MAX_RETRIES: int = 3
TELEGRAM_RETRY_BACKOFF_MULTIPLIER: int = 2
