"""
Configuration-related constants and defaults.
"""

# Helper configs are a handful of keys; anything larger is a mistake
MAX_CONFIG_SIZE_BYTES = 1024 * 1024

DEFAULT_CONFIG_FILENAME = "helper.yaml"
ENV_PREFIX = "SVIDHELPER_"

# Client timeout used when the config does not set one
DEFAULT_TIMEOUT_SECS = 5.0
