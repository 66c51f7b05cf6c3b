"""
Entry points called by the host

- a purchase item was saved/created -> sync it once
- the module config was saved with "Run resync now" -> bulk resync
"""
from typing import Any, Dict, Optional

from clients.mailchimp_client import MailchimpClient
from config import SyncConfig, settings
from db.store import PurchaseStore
from models import PurchaseRecord, ResyncReport, SyncResult
from sync.purchase_sync import sync_purchase
from sync.resync import run_resync


def load_sync_config(store: PurchaseStore) -> SyncConfig:
    return SyncConfig.model_validate(store.load_config(settings.module_name))


async def on_record_created(
    record: PurchaseRecord,
    store: PurchaseStore,
    mailchimp: Optional[MailchimpClient] = None,
) -> SyncResult:
    """Sync a newly created purchase item"""
    if mailchimp is None:
        mailchimp = MailchimpClient.from_config(load_sync_config(store))
    return await sync_purchase(record, store, mailchimp)


async def on_record_saved(
    record: Any,
    store: PurchaseStore,
    mailchimp: Optional[MailchimpClient] = None,
) -> Optional[SyncResult]:
    """
    "Record saved" notification

    Only purchase items that were never synced are handled, so later edits of
    a purchase do not send it again.
    """
    if not isinstance(record, PurchaseRecord):
        return None
    if record.template != settings.purchase_template:
        return None
    if record.is_synced:
        return None
    return await on_record_created(record, store, mailchimp)


async def on_config_saved(
    module_name: str,
    data: Dict[str, Any],
    store: PurchaseStore,
    mailchimp: Optional[MailchimpClient] = None,
) -> Optional[ResyncReport]:
    """
    "Configuration saved" notification

    Runs a resync when the run flag is set, then clears the flag and saves the
    config again so the next save does not trigger another run.

    Returns:
        The resync report, or None when nothing ran
    """
    if module_name != settings.module_name:
        return None

    config = SyncConfig.model_validate(data)
    if not config.resync_run:
        return None

    try:
        if mailchimp is None:
            mailchimp = MailchimpClient.from_config(config)
        return await run_resync(config, store, mailchimp)
    finally:
        # Cleared whatever happened during the run
        saved = dict(data)
        saved["resyncRun"] = False
        store.save_config(module_name, saved)
