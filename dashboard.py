"""
Admin API for the Mailchimp sync
Settings form, resync trigger and the purchase notification endpoint
Run with: uvicorn dashboard:app --host 0.0.0.0 --port 8000
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

import httpx
from fastapi import Body, Depends, FastAPI, HTTPException
from pydantic import BaseModel, ValidationError

from clients.mailchimp_client import MailchimpClient
from config import SyncConfig, config_fields, sanitize_email, settings
from db.database import get_db
from db.store import PurchaseStore
from hooks import load_sync_config, on_config_saved, on_record_saved
from sync.resync import run_resync
from utils.transforms import parse_date_to_epoch

app = FastAPI(title="Stripe Payment Links Mailchimp Sync")


def get_store() -> PurchaseStore:
    """Storage dependency (overridden in tests)"""
    return get_db()


def get_transport() -> Optional[httpx.AsyncBaseTransport]:
    """HTTP transport for Mailchimp calls; None uses the network"""
    return None


class ResyncRequest(BaseModel):
    """Ad-hoc resync filters; the saved config is left untouched"""

    email: str = ""
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    dry_run: bool = True
    unsynced_only: bool = False


def mask_api_key(api_key: str) -> str:
    """Hide the key but keep the data center suffix visible"""
    if not api_key:
        return ""
    _, dash, dc = api_key.rpartition("-")
    return "****" + (dash + dc if dash else "")


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "timestamp": datetime.now().isoformat()}


@app.get("/config")
async def read_config(store: PurchaseStore = Depends(get_store)):
    """Current module settings and the admin form fields"""
    config = load_sync_config(store)
    fields = config_fields(config)
    fields[0]["value"] = mask_api_key(config.mailchimp_api_key)
    return {
        "config": {**config.to_store(), "mailchimpApiKey": mask_api_key(config.mailchimp_api_key)},
        "fields": fields,
    }


@app.post("/config")
async def save_config(
    data: Dict[str, Any] = Body(...),
    store: PurchaseStore = Depends(get_store),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """
    Save module settings

    Posted fields are merged over the saved ones. A missing or still-masked
    "mailchimpApiKey" keeps the saved key.

    When "resyncRun" is set the resync runs right away and its report is
    returned once with this response.
    """
    current = store.load_config(settings.module_name)
    saved_key = str(current.get("mailchimpApiKey") or "")
    merged = {**current, **data}
    if merged.get("mailchimpApiKey") in (None, mask_api_key(saved_key)):
        merged["mailchimpApiKey"] = saved_key

    try:
        config = SyncConfig.model_validate(merged)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    stored = config.to_store()
    store.save_config(settings.module_name, stored)

    report = await on_config_saved(
        settings.module_name,
        stored,
        store,
        MailchimpClient.from_config(config, transport=transport),
    )
    return {
        "saved": True,
        "report": report.render() if report else None,
        "fields": config_fields(config.model_copy(update={"resync_run": False}),
                                report.render() if report else None),
    }


@app.post("/hooks/purchases/{record_id}")
async def purchase_saved(
    record_id: int,
    store: PurchaseStore = Depends(get_store),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """Called by the payment-links plugin after it saved a purchase item"""
    record = store.get_purchase(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Purchase {record_id} not found")

    mailchimp = MailchimpClient.from_config(load_sync_config(store), transport=transport)
    result = await on_record_saved(record, store, mailchimp)
    return {
        "handled": result is not None,
        "result": result.model_dump(mode="json") if result else None,
    }


@app.post("/resync")
async def resync(
    request: ResyncRequest,
    store: PurchaseStore = Depends(get_store),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
    """Run a resync with the given filters and return the report"""
    config = load_sync_config(store).model_copy(update={
        "resync_email": sanitize_email(request.email),
        "resync_from": parse_date_to_epoch(request.date_from.isoformat()) if request.date_from else None,
        "resync_to": parse_date_to_epoch(request.date_to.isoformat()) if request.date_to else None,
        "resync_dry_run": request.dry_run,
        "resync_unsynced_only": request.unsynced_only,
    })
    report = await run_resync(config, store, MailchimpClient.from_config(config, transport=transport))
    return {
        "report": report.render(),
        "synced": report.synced,
        "skipped": report.skipped,
        "errors": report.errors,
        "wouldSync": report.would_sync,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
