"""Tests for purchase records, sync results and report rendering."""
from models import PurchaseRecord, ResyncReport, SyncResult, SyncStatus


class TestPurchaseRecord:
    def test_purchased_at_prefers_purchase_date(self):
        assert PurchaseRecord(id=1, created=100, purchase_date=200).purchased_at == 200

    def test_purchased_at_falls_back_to_created(self):
        assert PurchaseRecord(id=1, created=100).purchased_at == 100

    def test_is_synced(self):
        assert not PurchaseRecord(id=1).is_synced
        assert PurchaseRecord(id=1, mc_synced_at=123).is_synced


class TestSyncResult:
    def test_constructors(self):
        assert SyncResult.synced(1, "a@b.com", ["X"]).ok
        skipped = SyncResult.skipped(1, "no product tags")
        assert skipped.status == SyncStatus.SKIPPED and skipped.reason == "no product tags"
        failed = SyncResult.failed(1, "boom")
        assert failed.status == SyncStatus.FAILED and not failed.ok


class TestResyncReport:
    def test_totals_without_dry_run(self):
        report = ResyncReport(synced=2, skipped=1, errors=1)
        assert report.totals == "Totals: synced=2, skipped=1, errors=1"

    def test_totals_with_dry_run(self):
        report = ResyncReport(dry_run=True, skipped=3, would_sync=2)
        assert report.totals == "Totals: synced=0, skipped=3, errors=0, wouldSync=2"

    def test_render(self):
        report = ResyncReport(header=["== Title ==", ""], lines=["line 1"], synced=1)
        assert str(report) == "== Title ==\n\nline 1\n\nTotals: synced=1, skipped=0, errors=0"
