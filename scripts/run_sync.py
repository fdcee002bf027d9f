"""
Run a supplier sync from the command line (scheduled batch runs).

Usage:
    python scripts/run_sync.py
    python scripts/run_sync.py --providers elit newbytes
    python scripts/run_sync.py --last
    python scripts/run_sync.py --invid-images

Exit codes: 0 success, 1 run failed, 2 merge lease held elsewhere.
"""

import argparse
import json
import os
import sys

# Allow project imports when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

import structlog

from config import settings, configure_logging
from exceptions import AppError, MergeInProgressError
from models.product import Provider

logger = structlog.get_logger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fetch supplier feeds and merge them into the catalog.",
    )
    parser.add_argument(
        "--providers",
        nargs="+",
        choices=Provider.ORDER,
        help="Only sync these providers (default: all configured)",
    )
    parser.add_argument(
        "--last",
        action="store_true",
        help="Print the last persisted sync report and exit",
    )
    parser.add_argument(
        "--invid-images",
        action="store_true",
        help="Backfill images for one batch of image-less Invid products and exit",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Log level (default from LOG_LEVEL)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level, json_output=args.json_logs or settings.is_production)

    from services.sync_service import SyncService
    service = SyncService()

    if args.last:
        print(json.dumps(service.get_last_result(), indent=2, ensure_ascii=False))
        return 0

    if args.invid_images:
        from services.invid_image_service import InvidImageService
        try:
            backfill = InvidImageService().backfill()
        except AppError as e:
            logger.error("invid_images_failed", code=e.code, error=e.message)
            return 1
        print(backfill.model_dump_json(indent=2))
        return 0

    try:
        result = service.run(args.providers)
    except MergeInProgressError as e:
        logger.warning("sync_aborted", code=e.code, error=e.message)
        return 2
    except AppError as e:
        logger.error("sync_failed", code=e.code, error=e.message, details=e.details)
        return 1

    print(result.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
