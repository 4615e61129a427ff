"""Constants for the dirlock CLI."""

# Exit codes
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_TARGET_MISSING = 3
EXIT_MALFORMED = 4
EXIT_FAILURE = 5  # I/O or liveness query failure
EXIT_LOCKED = 10
EXIT_STALE = 11
