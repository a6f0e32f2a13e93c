#!/usr/bin/env python3
"""
Flash Hold - Standalone Cron Runner

Runs the hold expiry scheduler as a standalone service, for deployments
that keep HOLD_EXPIRY_ENABLED=false on the API instances and run exactly
one reaper process instead. Overlapping reapers are safe either way.

Requires DATABASE_URL and SECRET_KEY env vars (same config as the API).
"""
import asyncio
import logging
import os
import signal
import sys

# Setup logging first
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

# Validate required environment variables
REQUIRED_VARS = ["DATABASE_URL", "SECRET_KEY"]
missing = [var for var in REQUIRED_VARS if not os.getenv(var)]
if missing:
    logger.error(f"Missing required environment variables: {missing}")
    sys.exit(1)

# Import after env validation
from flashhold.core.utils import utcnow  # noqa: E402
from flashhold.jobs.hold_expiry_scheduler import hold_expiry_scheduler  # noqa: E402

# Graceful shutdown flag
_shutdown = False


def handle_shutdown(signum, frame):
    """Handle shutdown signals gracefully."""
    global _shutdown
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    _shutdown = True


async def main():
    """Main entry point for cron service."""
    logger.info("=" * 60)
    logger.info("Flash Hold Cron Service")
    logger.info("=" * 60)
    logger.info(f"Started at: {utcnow().isoformat()}")
    logger.info(f"Hold expiry interval: {hold_expiry_scheduler.interval_seconds}s")

    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)

    try:
        await hold_expiry_scheduler.start()

        logger.info("Cron service running. Press Ctrl+C to stop.")
        while not _shutdown:
            await asyncio.sleep(1)

    except Exception as e:
        logger.error(f"Cron service error: {e}")
        raise
    finally:
        logger.info("Stopping hold expiry scheduler...")
        await hold_expiry_scheduler.stop()
        logger.info(f"Final heartbeat: {hold_expiry_scheduler.get_status()}")
        logger.info("Cron service stopped.")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)
