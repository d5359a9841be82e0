import json
import logging
import os
import sys
import argparse

from core.config_loader import get_config, load_config
from database.database import build_session_factory
from database.init_db import init_db
from notification.events import DispatchError
from notification.service import NotificationDispatchService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def load_event_file(path: str):
    """Read a change event from a JSON file ('-' for stdin)."""
    if path == '-':
        return json.load(sys.stdin)
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def run_serve(args):
    # The web app reads its config through get_config()
    os.environ["CONFIG_PATH"] = args.config
    get_config.cache_clear()

    from web.backend.app import main as serve
    serve()
    return 0


def run_init_db(args):
    config = load_config(args.config)
    init_db(build_session_factory(config.database.url))
    return 0


def run_dispatch(args):
    config = load_config(args.config)
    session_factory = build_session_factory(config.database.url)

    try:
        body = load_event_file(args.event_file)
    except (OSError, ValueError) as e:
        logger.error(f"Could not read change event from {args.event_file}: {e}")
        return 1

    service = NotificationDispatchService.from_config(config, session_factory)
    try:
        result = service.handle(body)
    except DispatchError as e:
        logger.error(f"Dispatch failed: {e}")
        print(json.dumps({"error": str(e)}))
        return 1

    print(json.dumps(result.to_dict()))
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Practice notification dispatch")
    parser.add_argument('--config', type=str, default='config.yaml',
                        help='Path to config.yaml (default: config.yaml)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('serve', help='Run the HTTP endpoint').set_defaults(func=run_serve)
    subparsers.add_parser('init-db', help='Create the database tables').set_defaults(func=run_init_db)

    dispatch_parser = subparsers.add_parser('dispatch', help='Dispatch one change event from a JSON file')
    dispatch_parser.add_argument('event_file', help="Path to the event JSON, or '-' for stdin")
    dispatch_parser.set_defaults(func=run_dispatch)

    args = parser.parse_args(argv)
    logger.info(f"Running {args.command}")
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
