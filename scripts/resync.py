#!/usr/bin/env python3
"""
Resync purchases to Mailchimp from the command line

Uses the saved module settings (API key, audience, create policy) and the
filters given as arguments. The saved resync flags are not modified.

Examples:
    python scripts/resync.py --dry-run --from 2024-01-01 --to 2024-01-31
    python scripts/resync.py --email buyer@example.com --unsynced-only
"""
import sys
import asyncio
import argparse
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from clients.mailchimp_client import MailchimpClient
from config import sanitize_email
from db.database import get_db
from hooks import load_sync_config
from sync.resync import run_resync
from utils.log import setup_logging
from utils.transforms import parse_date_to_epoch


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resync purchases to Mailchimp")
    parser.add_argument("--email", default="", help="Only purchases of this buyer")
    parser.add_argument("--from", dest="date_from", help="From purchase date (YYYY-MM-DD)")
    parser.add_argument("--to", dest="date_to", help="To purchase date, inclusive (YYYY-MM-DD)")
    parser.add_argument("--dry-run", action="store_true", help="Report only, no Mailchimp calls")
    parser.add_argument("--unsynced-only", action="store_true", help="Skip purchases already synced")
    return parser


async def main(args: argparse.Namespace) -> int:
    db = get_db()
    try:
        config = load_sync_config(db).model_copy(update={
            "resync_email": sanitize_email(args.email),
            "resync_from": parse_date_to_epoch(args.date_from),
            "resync_to": parse_date_to_epoch(args.date_to),
            "resync_dry_run": args.dry_run,
            "resync_unsynced_only": args.unsynced_only,
        })

        report = await run_resync(config, db, MailchimpClient.from_config(config))
        print(report.render())
        return 1 if report.errors else 0

    except Exception as e:
        logger.error(f"Resync failed: {str(e)}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(main(build_parser().parse_args())))
