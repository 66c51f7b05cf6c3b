"""
Storage interface the sync code depends on
"""
from typing import Any, Dict, List, Optional, Protocol

from models import Contact, PurchaseRecord


class PurchaseStore(Protocol):
    """Host storage for purchases, their owners and the module config"""

    def get_purchase(self, record_id: int) -> Optional[PurchaseRecord]:
        ...

    def get_owner(self, record: PurchaseRecord) -> Optional[Contact]:
        """Contact owning the purchase item, if any"""
        ...

    def get_contact_by_email(self, email: str) -> Optional[Contact]:
        ...

    def find_purchases(
        self,
        date_from: Optional[int] = None,
        date_to: Optional[int] = None,
        owner_id: Optional[int] = None,
        limit: int = 1000,
    ) -> List[PurchaseRecord]:
        """Purchases with purchased_at in [date_from, date_to], oldest first"""
        ...

    def mark_synced(self, record_id: int, synced_at: int) -> None:
        """Persist only the mc_synced_at marker of a purchase"""
        ...

    def load_config(self, module_name: str) -> Dict[str, Any]:
        ...

    def save_config(self, module_name: str, data: Dict[str, Any]) -> None:
        ...
