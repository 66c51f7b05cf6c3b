"""
Sync a single purchase to Mailchimp

Resolves the buyer, builds name and tags, upserts the member and marks the
purchase as synced. Never raises: the outcome is returned as a SyncResult.
"""
import time
from typing import Callable

from clients.mailchimp_client import MailchimpClient
from db.store import PurchaseStore
from models import PurchaseRecord, SyncResult
from utils.log import log
from utils.transforms import display_name_for, purchase_tags_from_record, split_full_name


async def sync_purchase(
    record: PurchaseRecord,
    store: PurchaseStore,
    mailchimp: MailchimpClient,
    force: bool = False,
    clock: Callable[[], float] = time.time,
) -> SyncResult:
    """
    Push the buyer of a purchase and the purchased products to Mailchimp

    Args:
        record: Purchase item
        store: Storage used to resolve the owner and persist the synced marker
        mailchimp: Configured Mailchimp client
        force: Sync even if the purchase already carries mc_synced_at
        clock: Source of the synced-at timestamp

    Returns:
        SyncResult (synced, skipped with reason, or failed with error)
    """
    email = ""
    try:
        if record.is_synced and not force:
            return SyncResult.skipped(record.id, "already synced")

        owner = store.get_owner(record)
        if owner is None or owner.kind != "user":
            return SyncResult.skipped(record.id, "no owning user")

        email = (owner.email or "").strip()
        if not email:
            return SyncResult.skipped(record.id, "user has no email")

        name = split_full_name(display_name_for(email, owner.title))
        first, last = name["first"], name["last"]

        tags = purchase_tags_from_record(record)
        if not tags:
            return SyncResult.skipped(record.id, "no product tags", email=email)

        if not await mailchimp.subscribe(email, tags, first, last):
            return SyncResult.failed(record.id, "Mailchimp config invalid or incomplete.", email=email)

        # Keep the first successful sync time on forced resyncs
        if not record.is_synced:
            synced_at = int(clock())
            store.mark_synced(record.id, synced_at)
            record.mc_synced_at = synced_at

        log.info(f"sync success: Synched {email} | {', '.join(tags)} | {first} | {last}")
        return SyncResult.synced(record.id, email, tags)

    except Exception as e:
        log.error(f"sync error: {e}")
        return SyncResult.failed(record.id, str(e) or e.__class__.__name__, email=email)
