"""
Integration tests for sync_purchase.

Uses the in-memory store and a mock Mailchimp transport.
"""
import json

import httpx
import pytest

from clients.mailchimp_client import MailchimpClient
from models import Contact, PurchaseRecord, SyncStatus
from sync.purchase_sync import sync_purchase
from tests.conftest import API_KEY, AUDIENCE_ID, NOW, InMemoryStore, MailchimpRecorder


def clock():
    return NOW


class TestSyncPurchase:
    @pytest.mark.asyncio
    async def test_success_marks_synced(self, purchase, store, mailchimp, recorder):
        result = await sync_purchase(purchase, store, mailchimp, clock=clock)

        assert result.status == SyncStatus.SYNCED
        assert result.tags == ["Course A", "Course B"]
        assert store.marked == [(purchase.id, NOW)]
        assert purchase.mc_synced_at == NOW
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_name_split_into_merge_fields(self, purchase, store, mailchimp, recorder):
        await sync_purchase(purchase, store, mailchimp, clock=clock)

        body = json.loads(recorder.requests[0].content)
        assert body["merge_fields"] == {"FNAME": "Jane", "LNAME": "Doe"}
        assert body["email_address"] == "Jane.Doe@Example.com"

    @pytest.mark.asyncio
    async def test_name_falls_back_to_email_local_part(self, purchase, mailchimp, recorder):
        store = InMemoryStore(purchases=[purchase], contacts=[Contact(id=10, email="solo@example.com")])

        await sync_purchase(purchase, store, mailchimp, clock=clock)

        body = json.loads(recorder.requests[0].content)
        assert body["merge_fields"] == {"FNAME": "solo", "LNAME": ""}

    @pytest.mark.asyncio
    async def test_logs_success_line(self, purchase, store, mailchimp, log_messages):
        await sync_purchase(purchase, store, mailchimp, clock=clock)

        assert "sync success: Synched Jane.Doe@Example.com | Course A, Course B | Jane | Doe" in log_messages

    @pytest.mark.asyncio
    async def test_already_synced_is_untouched(self, purchase, store, mailchimp, recorder):
        purchase.mc_synced_at = 123

        result = await sync_purchase(purchase, store, mailchimp, clock=clock)

        assert result.status == SyncStatus.SKIPPED
        assert recorder.requests == []
        assert store.marked == []
        assert purchase.mc_synced_at == 123

    @pytest.mark.asyncio
    async def test_force_resends_but_keeps_marker(self, purchase, store, mailchimp, recorder):
        purchase.mc_synced_at = 123

        result = await sync_purchase(purchase, store, mailchimp, force=True, clock=clock)

        assert result.ok
        assert len(recorder.requests) == 2
        assert store.marked == []
        assert purchase.mc_synced_at == 123

    @pytest.mark.asyncio
    @pytest.mark.parametrize("contacts, reason", [
        ([], "no owning user"),
        ([Contact(id=10, email="a@b.com", kind="role")], "no owning user"),
        ([Contact(id=10, email="  ")], "user has no email"),
    ])
    async def test_data_errors_skip_silently(self, purchase, mailchimp, recorder, log_messages, contacts, reason):
        store = InMemoryStore(purchases=[purchase], contacts=contacts)

        result = await sync_purchase(purchase, store, mailchimp, clock=clock)

        assert result.status == SyncStatus.SKIPPED
        assert result.reason == reason
        assert recorder.requests == []
        assert log_messages == []

    @pytest.mark.asyncio
    async def test_no_tags_no_network(self, buyer, mailchimp, recorder):
        record = PurchaseRecord(id=5, owner_id=buyer.id, created=NOW)
        store = InMemoryStore(purchases=[record], contacts=[buyer])

        result = await sync_purchase(record, store, mailchimp, clock=clock)

        assert result.status == SyncStatus.SKIPPED
        assert result.reason == "no product tags"
        assert recorder.requests == []
        assert store.marked == []

    @pytest.mark.asyncio
    async def test_invalid_config_fails_without_marking(self, purchase, store, recorder):
        client = MailchimpClient("", AUDIENCE_ID, transport=httpx.MockTransport(recorder))

        result = await sync_purchase(purchase, store, client, clock=clock)

        assert result.status == SyncStatus.FAILED
        assert recorder.requests == []
        assert store.marked == []

    @pytest.mark.asyncio
    async def test_transport_error_is_failed_result(self, purchase, store, log_messages):
        recorder = MailchimpRecorder(error=httpx.ReadTimeout("timed out"))
        client = MailchimpClient(API_KEY, AUDIENCE_ID, transport=httpx.MockTransport(recorder))

        result = await sync_purchase(purchase, store, client, clock=clock)

        assert result.status == SyncStatus.FAILED
        assert result.reason == "timed out"
        assert store.marked == []
        assert "sync error: timed out" in log_messages

    @pytest.mark.asyncio
    async def test_unexpected_error_is_caught(self, purchase, mailchimp, log_messages):
        class BrokenStore(InMemoryStore):
            def get_owner(self, record):
                raise RuntimeError("storage down")

        result = await sync_purchase(purchase, BrokenStore(purchases=[purchase]), mailchimp, clock=clock)

        assert result.status == SyncStatus.FAILED
        assert result.reason == "storage down"
        assert "sync error: storage down" in log_messages
