#!/usr/bin/env python3
"""
RQ Worker for the notification dispatch queue

Processes change events enqueued by the web layer when async dispatch is enabled.

Usage:
    python -m notification.worker
    python -m notification.worker --burst
    python -m notification.worker --verbose
"""

import sys
import argparse
import logging
from typing import List, Optional

from redis import Redis
from rq import Worker

from core.config_loader import get_config

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def start_worker(burst: bool = False, queues: Optional[List[str]] = None):
    """Start the RQ worker."""
    notifications = get_config().notifications
    redis_url = notifications.redis_url or 'redis://localhost:6379/0'

    if queues is None:
        queues = [notifications.queue_name]

    logger.info(f"Starting dispatch worker on {redis_url}, queues: {', '.join(queues)}, burst: {burst}")

    try:
        redis_conn = Redis.from_url(redis_url)
        redis_conn.ping()
        logger.info("Connected to Redis")

        worker = Worker(queues, connection=redis_conn)
        worker.work(burst=burst)
    except KeyboardInterrupt:
        logger.info("Worker stopped")
    except Exception as e:
        logger.error(f"Worker failed: {e}")
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description='Notification dispatch worker')
    parser.add_argument('--burst', action='store_true', help='Process all queued events and exit')
    parser.add_argument('--queues', nargs='+', default=None)
    parser.add_argument('--verbose', action='store_true')

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    start_worker(burst=args.burst, queues=args.queues)


if __name__ == '__main__':
    main()
