"""
Domain models: purchases, buyers, per-item sync outcomes and resync reports
"""
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from config import PURCHASE_TEMPLATE


class Contact(BaseModel):
    """Buyer owning a purchase. Read-only from our side."""

    id: int
    email: str = ""
    title: str = ""
    kind: str = "user"


class PurchaseRecord(BaseModel):
    """One purchase item created by the payment-links plugin"""

    id: int
    template: str = PURCHASE_TEMPLATE
    created: int = 0
    purchase_date: Optional[int] = None
    owner_id: Optional[int] = None
    stripe_session: Optional[Any] = None
    purchase_lines: str = ""
    mc_synced_at: Optional[int] = None

    @property
    def purchased_at(self) -> int:
        return self.purchase_date or self.created

    @property
    def is_synced(self) -> bool:
        return bool(self.mc_synced_at)


class SyncStatus(str, Enum):
    SYNCED = "synced"
    SKIPPED = "skipped"
    FAILED = "failed"


class SyncResult(BaseModel):
    """Outcome of syncing a single purchase"""

    record_id: int
    status: SyncStatus
    reason: str = ""
    email: str = ""
    tags: List[str] = Field(default_factory=list)

    @classmethod
    def synced(cls, record_id: int, email: str, tags: List[str]) -> "SyncResult":
        return cls(record_id=record_id, status=SyncStatus.SYNCED, email=email, tags=tags)

    @classmethod
    def skipped(cls, record_id: int, reason: str, email: str = "") -> "SyncResult":
        return cls(record_id=record_id, status=SyncStatus.SKIPPED, reason=reason, email=email)

    @classmethod
    def failed(cls, record_id: int, error: str, email: str = "") -> "SyncResult":
        return cls(record_id=record_id, status=SyncStatus.FAILED, reason=error, email=email)

    @property
    def ok(self) -> bool:
        return self.status == SyncStatus.SYNCED


class ResyncReport(BaseModel):
    """Text summary of a bulk resync run"""

    dry_run: bool = False
    header: List[str] = Field(default_factory=list)
    lines: List[str] = Field(default_factory=list)
    synced: int = 0
    skipped: int = 0
    errors: int = 0
    would_sync: int = 0

    @property
    def totals(self) -> str:
        totals = f"Totals: synced={self.synced}, skipped={self.skipped}, errors={self.errors}"
        if self.dry_run:
            totals += f", wouldSync={self.would_sync}"
        return totals

    def render(self) -> str:
        return "\n".join(self.header + self.lines + ["", self.totals])

    def __str__(self) -> str:
        return self.render()
