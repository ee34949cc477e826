STATE_DIR_NAME = ".rankboard"
CONFIG_FILE = "config.yaml"
STORE_FILE = "tasks.yaml"
LOCK_FILE = "tasks.lock"
EVENTS_FILE = "events.jsonl"
STORE_VERSION = 1

DEFAULT_RANK_STEP = 1024
# Largest integer a JSON/JavaScript client round-trips exactly.
RANK_LIMIT = 2**53 - 1

DEFAULT_COMMIT_TIMEOUT_SECONDS = 5.0
COMMIT_TIMEOUT_ENV_VAR = "RANKBOARD_COMMIT_TIMEOUT"

DEFAULT_LOG_LEVEL = "INFO"
VALID_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
