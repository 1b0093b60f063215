"""Package version."""

VERSION = "2.2.0"

# Filled in by release builds
COMMIT_SHA = "unknown"
COMMIT_DATE = "unknown"
