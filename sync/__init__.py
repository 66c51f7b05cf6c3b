"""Purchase -> Mailchimp sync routines"""
from .purchase_sync import sync_purchase
from .resync import run_resync

__all__ = ["sync_purchase", "run_resync"]
