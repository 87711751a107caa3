"""Constants for vault-state."""

# Vault marker directory
VAULT_STATE_DIR = ".vault-state"

# Files inside VAULT_STATE_DIR
CONFIG_FILE = "config.yaml"
LOCK_FILE = "run.lock"

# Snapshot artifacts (inside the configured snapshot folder)
BASE_FILE = "base.json"
DELTA_PREFIX = "delta-"
DELTA_SUFFIX = ".json"

# Extensions whose content is read and hashed
HASHABLE_EXTENSIONS = frozenset({
    "md", "txt", "csv", "json", "js", "ts",
    "css", "html", "yaml", "yml",
})

# Number of accumulated deltas that triggers consolidation
CONSOLIDATION_THRESHOLD = 30

# Version
VAULT_STATE_VERSION = "0.1.0"
