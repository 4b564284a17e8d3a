#!/usr/bin/env python3
"""
Inspect persisted work queues.

Run this script against a data directory to see what is waiting in each
queue, dump the stored payloads of one queue, or clear it. Do not clear a
queue while the service that owns it is running.

Usage:
    python process_queue.py --data-dir /path/to/data [--stats-only]
    python process_queue.py --data-dir /path/to/data --show uploads
    python process_queue.py --data-dir /path/to/data --clear uploads
"""

import os
import sys
import json
import argparse
import logging

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger('workqueue.manual')


def find_data_dir():
    """Find the queue data directory from the environment or common locations."""
    env_dir = os.environ.get('WORKQUEUE_DATA_DIR')
    if env_dir and os.path.exists(env_dir):
        return env_dir

    candidates = [
        os.path.expanduser('~/.local/share/workqueue'),
        './data',
    ]

    for path in candidates:
        if os.path.exists(path):
            return path

    return None


def show_queue(db_path, queue_name):
    """Print the persisted rows of one queue, oldest first."""
    from durable_queue.operations import get_payloads

    rows = get_payloads(db_path, queue_name)
    if not rows:
        logger.info(f"Queue {queue_name} is empty.")
        return 0

    for row in rows:
        print(json.dumps(row))
    logger.info(f"{len(rows)} item(s) in {queue_name}")
    return 0


def clear(db_path, queue_name):
    """Delete every persisted item of one queue."""
    from durable_queue.operations import clear_queue

    deleted = clear_queue(db_path, queue_name)
    logger.info(f"Cleared {deleted} item(s) from {queue_name}")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description='Inspect persisted work queues')
    parser.add_argument('--data-dir', '-d', help='Path to the queue data directory')
    parser.add_argument('--db-filename', default='queues.db', help='Database file name inside the data directory')
    parser.add_argument('--stats-only', '-s', action='store_true', help='Only show item counts per queue')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--show', metavar='NAME', help='Print the persisted payloads of one queue')
    group.add_argument('--clear', metavar='NAME', help='Delete every persisted item of one queue')

    args = parser.parse_args(argv)

    # Find data directory
    data_dir = args.data_dir or find_data_dir()
    if not data_dir:
        logger.error("Could not find a queue data directory. Use --data-dir to specify.")
        return 1

    logger.info(f"Using data directory: {data_dir}")
    db_path = os.path.join(data_dir, args.db_filename)

    if args.show:
        return show_queue(db_path, args.show)
    if args.clear:
        return clear(db_path, args.clear)

    from durable_queue.operations import get_stats
    stats = get_stats(db_path)

    # Stats only mode
    if args.stats_only:
        print(json.dumps(stats, indent=2))
        return 0

    if not stats:
        logger.info("No persisted queues found.")
        return 0
    for name, count in sorted(stats.items()):
        print(f"{name}: {count}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
