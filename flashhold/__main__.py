"""
Run the API with uvicorn.

Usage:
    python -m flashhold            # PORT and HOST from the environment
"""
import os
import sys

import uvicorn

from flashhold.core.config import settings


def _read_port() -> int:
    """Fetch and validate the PORT environment variable."""
    value = os.environ.get("PORT", "8000")
    try:
        return int(value)
    except ValueError as exc:
        raise SystemExit(f"Invalid PORT '{value}': {exc}") from exc


def main() -> None:
    uvicorn.run(
        "flashhold.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=_read_port(),
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:
        print(f"Failed to start API: {exc}", file=sys.stderr)
        raise
