"""Build version information."""

TAG = "development"
COMMIT = "latest"


def pretty() -> str:
    """Return the version as ``tag (commit)``."""
    return f"{TAG} ({COMMIT})"