"""
Driver Reminder Worker Runner
Run this as a separate process: python run_reminder_worker.py <driver_id>
"""

import asyncio
import logging
import sys

from orderdesk.workers.reminder_worker import run_reminder_worker

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    if len(sys.argv) != 2 or not sys.argv[1].isdigit():
        logger.error("Usage: python run_reminder_worker.py <driver_id>")
        sys.exit(2)

    logger.info("🚀 Starting Driver Reminder Worker...")
    try:
        asyncio.run(run_reminder_worker(int(sys.argv[1])))
    except KeyboardInterrupt:
        logger.info("👋 Reminder worker stopped by user")
    except Exception as e:
        logger.error(f"❌ Reminder worker crashed: {e}")
        sys.exit(1)
