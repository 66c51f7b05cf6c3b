"""
Bulk resync of historical purchases

Selects purchases by date range and/or buyer email, then either simulates the
sync (dry-run) or runs every item through sync_purchase, and reports the
outcome per item plus totals.
"""
import time
from typing import Callable, List, Optional, Tuple

from clients.mailchimp_client import MailchimpClient
from config import END_OF_DAY_SECONDS, PURCHASE_TEMPLATE, RESYNC_LIMIT, SyncConfig
from db.store import PurchaseStore
from models import PurchaseRecord, ResyncReport, SyncStatus
from sync.purchase_sync import sync_purchase
from utils.log import log
from utils.transforms import format_timestamp, purchase_tags_from_record


def resync_window(config: SyncConfig) -> Tuple[Optional[int], Optional[int]]:
    """Date range of a resync; the "to" day is included up to 23:59:59"""
    date_from = config.resync_from or None
    date_to = config.resync_to or None
    if date_to is not None:
        date_to += END_OF_DAY_SECONDS
    return date_from, date_to


def build_selector(date_from: Optional[int], date_to: Optional[int]) -> str:
    """Human-readable description of the global purchase query"""
    selector = f"template={PURCHASE_TEMPLATE}, limit={RESYNC_LIMIT}"
    if date_from:
        selector += f", purchase_date>={date_from}"
    if date_to:
        selector += f", purchase_date<={date_to}"
    return selector


def select_purchases(config: SyncConfig, store: PurchaseStore) -> List[PurchaseRecord]:
    """
    Working set of a resync

    With an email filter only that buyer's purchases are considered; an unknown
    email yields nothing.
    """
    date_from, date_to = resync_window(config)

    if config.resync_email:
        contact = store.get_contact_by_email(config.resync_email)
        if contact is None:
            return []
        return store.find_purchases(date_from, date_to, owner_id=contact.id, limit=RESYNC_LIMIT)

    return store.find_purchases(date_from, date_to, limit=RESYNC_LIMIT)


def _report_header(config: SyncConfig, date_from: Optional[int], date_to: Optional[int]) -> List[str]:
    header = [
        "== StripePaymentLinks Mailchimp Resync ==",
        "Mode: " + ("DRY RUN (no writes)" if config.resync_dry_run else "WRITE"),
        "Only unsynced: " + ("yes" if config.resync_unsynced_only else "no"),
        "Email: " + (config.resync_email or "-"),
        "From: " + format_timestamp(date_from, "%Y-%m-%d"),
        "To:   " + format_timestamp(date_to, "%Y-%m-%d"),
    ]
    # The selector only describes the global query
    if not config.resync_email:
        header.append("Selector: " + build_selector(date_from, date_to))
    header.append("")
    return header


async def _resync_item(
    item: PurchaseRecord,
    config: SyncConfig,
    store: PurchaseStore,
    mailchimp: MailchimpClient,
    report: ResyncReport,
    clock: Callable[[], float],
) -> Optional[str]:
    """Handle one purchase, update the counters and return its report line"""
    when = format_timestamp(item.purchased_at)
    owner = store.get_owner(item)
    owner_email = owner.email if owner is not None else ""

    filter_email = config.resync_email.lower()
    if filter_email and owner_email.lower() != filter_email:
        return None

    prefix = f"{when}  #{item.id}  {owner_email or '(no email)'}"
    tags = ", ".join(purchase_tags_from_record(item))

    if config.resync_unsynced_only and item.is_synced:
        report.skipped += 1
        return f"{prefix}  [SKIP already synced]"

    if config.resync_dry_run:
        report.would_sync += 1
        return f"{prefix}  => DRY would sync  | tags: {tags}"

    result = await sync_purchase(item, store, mailchimp, force=True, clock=clock)
    if result.status == SyncStatus.SYNCED:
        report.synced += 1
        return f"{prefix}  => SYNCED         | tags: {tags}"
    if result.status == SyncStatus.SKIPPED:
        report.skipped += 1
        return f"{prefix}  [SKIP {result.reason}]"
    report.errors += 1
    return f"{prefix}  [ERROR] {result.reason}"


async def run_resync(
    config: SyncConfig,
    store: PurchaseStore,
    mailchimp: MailchimpClient,
    clock: Callable[[], float] = time.time,
) -> ResyncReport:
    """
    Resync purchases selected by the resync filters of the module config

    Errors never leave this function: a failing item (or a failing query) is
    counted in `errors` and described in the report.

    Args:
        config: Module settings holding the resync filters
        store: Purchase storage
        mailchimp: Mailchimp client (never called in dry-run mode)
        clock: Source of synced-at timestamps

    Returns:
        ResyncReport with one line per handled purchase and the totals
    """
    date_from, date_to = resync_window(config)
    report = ResyncReport(dry_run=config.resync_dry_run, header=_report_header(config, date_from, date_to))

    log.info(
        f"Resync started (dry_run={config.resync_dry_run}, "
        f"unsynced_only={config.resync_unsynced_only}, email={config.resync_email or '-'})"
    )

    try:
        items = select_purchases(config, store)
    except Exception as e:
        report.errors += 1
        line = f"[ERROR] loading purchases failed: {e}"
        report.lines.append(line)
        log.error(f"resync: {line}")
        items = []

    for item in items:
        try:
            line = await _resync_item(item, config, store, mailchimp, report, clock)
        except Exception as e:
            report.errors += 1
            line = f"{format_timestamp(item.purchased_at)}  #{item.id}  [ERROR] {e}"
            log.error(f"resync: {line}")
            report.lines.append(line)
            continue

        if line is None:
            continue
        report.lines.append(line)
        log.info(f"resync: {line}")

    log.info(f"Resync finished. {report.totals}")
    return report
