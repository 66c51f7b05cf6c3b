"""Shared test fixtures."""
from typing import Any, Dict, List, Optional

import httpx
import pytest
from loguru import logger

from clients.mailchimp_client import MailchimpClient
from models import Contact, PurchaseRecord


class InMemoryStore:
    """PurchaseStore backed by dicts. Records every write."""

    def __init__(self, purchases=(), contacts=(), configs: Optional[Dict[str, Dict]] = None):
        self.purchases = {p.id: p for p in purchases}
        self.contacts = {c.id: c for c in contacts}
        self.configs = dict(configs or {})
        self.marked: List[tuple] = []
        self.saved_configs: List[tuple] = []

    def get_purchase(self, record_id: int) -> Optional[PurchaseRecord]:
        return self.purchases.get(record_id)

    def get_owner(self, record: PurchaseRecord) -> Optional[Contact]:
        if record.owner_id is None:
            return None
        return self.contacts.get(record.owner_id)

    def get_contact_by_email(self, email: str) -> Optional[Contact]:
        for contact in self.contacts.values():
            if contact.email.lower() == email.lower():
                return contact
        return None

    def find_purchases(self, date_from=None, date_to=None, owner_id=None, limit=1000):
        found = [
            p for p in self.purchases.values()
            if (not date_from or p.purchased_at >= date_from)
            and (not date_to or p.purchased_at <= date_to)
            and (owner_id is None or p.owner_id == owner_id)
        ]
        return sorted(found, key=lambda p: (p.purchased_at, p.id))[:limit]

    def mark_synced(self, record_id: int, synced_at: int) -> None:
        self.marked.append((record_id, synced_at))
        self.purchases[record_id].mc_synced_at = synced_at

    def load_config(self, module_name: str) -> Dict[str, Any]:
        return dict(self.configs.get(module_name, {}))

    def save_config(self, module_name: str, data: Dict[str, Any]) -> None:
        self.saved_configs.append((module_name, dict(data)))
        self.configs[module_name] = dict(data)


class MailchimpRecorder:
    """httpx.MockTransport handler that records requests."""

    def __init__(self, status_code: int = 200, error: Optional[Exception] = None):
        self.status_code = status_code
        self.error = error
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json={"id": "member"})


API_KEY = "0123456789abcdef-us13"
AUDIENCE_ID = "aud123"
NOW = 1_717_000_000


def session_with_products(*names: str) -> Dict[str, Any]:
    """Minimal expanded Stripe checkout session with one line item per product"""
    return {
        "id": "cs_test_123",
        "line_items": {
            "data": [{"price": {"product": {"name": name}}} for name in names],
        },
    }


@pytest.fixture
def buyer() -> Contact:
    return Contact(id=10, email="Jane.Doe@Example.com", title="Jane Doe")


@pytest.fixture
def purchase(buyer) -> PurchaseRecord:
    return PurchaseRecord(
        id=1001,
        created=1_706_000_000,
        purchase_date=1_706_000_000,
        owner_id=buyer.id,
        stripe_session=session_with_products("Course A", "Course B"),
    )


@pytest.fixture
def store(buyer, purchase) -> InMemoryStore:
    return InMemoryStore(purchases=[purchase], contacts=[buyer])


@pytest.fixture
def recorder() -> MailchimpRecorder:
    return MailchimpRecorder()


@pytest.fixture
def mailchimp(recorder) -> MailchimpClient:
    return MailchimpClient(
        api_key=API_KEY,
        audience_id=AUDIENCE_ID,
        create_if_missing=True,
        transport=httpx.MockTransport(recorder),
    )


@pytest.fixture
def log_messages():
    """Messages logged through loguru while the test runs."""
    messages: List[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
