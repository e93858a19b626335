"""Tests for ReceiptService layer."""

import pytest

from splitfree.config import Settings
from splitfree.db import Database
from splitfree.exceptions import ClaimRejectedError, UnclaimedItemsError
from splitfree.models import Member, Receipt, ReceiptItem, ReceiptSnapshot
from splitfree.service import ReceiptService


@pytest.fixture
def mock_settings(tmp_path):
    """Create settings pointing at a temporary database."""
    return Settings(database_path=tmp_path / "test.db", default_claim_source="web")


@pytest.fixture
def mock_db(mock_settings):
    """Create a temporary database."""
    db = Database(mock_settings.database_path)
    yield db
    db.close()


@pytest.fixture
def service(mock_settings, mock_db):
    """Create a ReceiptService with a sample dinner receipt imported."""
    mock_db.import_snapshot(
        ReceiptSnapshot(
            receipt=Receipt(
                id="r1",
                group_id="g1",
                merchant_name="Corner Bistro",
                subtotal=100,
                tax_amount=10,
                tip_amount=20,
                total_amount=130,
                status="claiming",
            ),
            members=[
                Member(id="alice", name="Alice"),
                Member(id="bob", name="Bob"),
                Member(id="carol", name="Carol"),
            ],
            items=[
                ReceiptItem(id="steak", description="Steak", total_price=75),
                ReceiptItem(id="salad", description="Salad", total_price=25),
                ReceiptItem(id="tax", description="Tax", total_price=10, is_tax=True),
            ],
        )
    )
    return ReceiptService(mock_settings, mock_db)


class TestClaimItem:
    """Tests for claim_item."""

    def test_full_claim(self, service):
        claim = service.claim_item("steak", "alice")

        assert claim.share_fraction == 1
        assert claim.claim_type == "full"
        assert claim.claimed_via == "web"
        assert claim.id is not None

    def test_explicit_source(self, service):
        claim = service.claim_item("steak", "alice", claimed_via="imessage")

        assert claim.claimed_via == "imessage"

    def test_second_member_rejected_when_fully_claimed(self, service):
        service.claim_item("steak", "alice")

        with pytest.raises(ClaimRejectedError, match="Item is fully claimed"):
            service.claim_item("steak", "bob")

    def test_claim_capped_at_remaining(self, service):
        service.claim_item("steak", "alice", share_fraction=0.6)

        claim = service.claim_item("steak", "bob")

        assert claim.share_fraction == pytest.approx(0.4)
        assert claim.claim_type == "split"

    def test_reclaim_keeps_own_share(self, service):
        """A member's existing share is freed up before the new claim is capped."""
        service.claim_item("steak", "alice", share_fraction=0.6)
        service.claim_item("steak", "bob")

        claim = service.claim_item("steak", "alice")

        assert claim.share_fraction == pytest.approx(0.6)
        fractions = {c.member_id: c.share_fraction for c in service.db.get_item("steak").claim_list}
        assert fractions == pytest.approx({"alice": 0.6, "bob": 0.4})

    def test_reclaim_can_shrink(self, service):
        service.claim_item("steak", "alice", share_fraction=0.6)

        claim = service.claim_item("steak", "alice", share_fraction=0.25)

        assert claim.share_fraction == 0.25
        assert len(service.db.get_item("steak").claim_list) == 1

    def test_split_count_claim(self, service):
        claim = service.claim_item("steak", "alice", split_count=3)

        assert claim.share_fraction == pytest.approx(1 / 3)
        assert claim.split_count == 3

    def test_already_claimed(self, service):
        service.claim_item("steak", "alice")

        with pytest.raises(ClaimRejectedError, match="You already claimed this item"):
            service.claim_item("steak", "alice")

    def test_tax_item_rejected(self, service):
        with pytest.raises(ClaimRejectedError, match="This item cannot be claimed"):
            service.claim_item("tax", "alice")

    @pytest.mark.parametrize("fraction", [0, -0.5])
    def test_empty_or_negative_fraction_rejected(self, service, fraction):
        with pytest.raises(ClaimRejectedError, match="Claim must cover part of the item"):
            service.claim_item("salad", "bob", share_fraction=fraction)

        assert service.db.get_item("salad").claim_list == []

    def test_rejected_fraction_keeps_existing_claim(self, service):
        service.claim_item("salad", "bob", share_fraction=0.5)

        with pytest.raises(ClaimRejectedError):
            service.claim_item("salad", "bob", share_fraction=0)

        claims = service.db.get_item("salad").claim_list
        assert [(c.member_id, c.share_fraction) for c in claims] == [("bob", 0.5)]


class TestUnclaimItem:
    """Tests for unclaim_item."""

    def test_unclaim_frees_item(self, service):
        service.claim_item("steak", "alice")

        assert service.unclaim_item("steak", "alice")

        claim = service.claim_item("steak", "bob")
        assert claim.share_fraction == 1

    def test_unclaim_without_claim(self, service):
        assert not service.unclaim_item("steak", "alice")


class TestSplitItem:
    """Tests for split_item."""

    def test_three_way_split(self, service):
        claims = service.split_item("steak", ["alice", "bob", "carol"])

        assert [c.member_id for c in claims] == ["alice", "bob", "carol"]
        assert all(c.share_fraction == pytest.approx(1 / 3) for c in claims)
        assert all(c.split_count == 3 for c in claims)

    def test_split_replaces_existing_claims(self, service):
        service.claim_item("steak", "alice")

        service.split_item("steak", ["bob", "carol"])

        stored = service.db.get_item("steak").claim_list
        assert sorted(c.member_id for c in stored) == ["bob", "carol"]
        assert sum(c.share_fraction for c in stored) == 1

    def test_needs_two_members(self, service):
        with pytest.raises(ClaimRejectedError, match="Need at least 2 members to split"):
            service.split_item("steak", ["alice"])

    def test_duplicate_member_ids_count_once(self, service):
        with pytest.raises(ClaimRejectedError, match="Need at least 2 members"):
            service.split_item("steak", ["alice", "alice"])

    def test_repeated_member_split_once(self, service):
        claims = service.split_item("steak", ["alice", "alice", "bob"])

        assert [c.member_id for c in claims] == ["alice", "bob"]
        assert all(c.share_fraction == 0.5 for c in claims)
        assert all(c.split_count == 2 for c in claims)

    def test_special_item_rejected(self, service):
        with pytest.raises(ClaimRejectedError, match="This item cannot be claimed"):
            service.split_item("tax", ["alice", "bob"])


class TestSummaryAndSettle:
    """Tests for get_summary and settle_receipt."""

    def test_summary_reads_fresh_claims(self, service):
        service.claim_item("steak", "alice")

        summary = service.get_summary("r1")

        assert summary.item_count == 2
        assert summary.claimed_item_count == 1
        assert summary.member_totals[0].member_name == "Alice"
        assert summary.member_totals[0].grand_total == 105

    def test_settle_with_unclaimed_items(self, service):
        service.claim_item("steak", "alice")

        with pytest.raises(UnclaimedItemsError) as exc_info:
            service.settle_receipt("r1")

        assert [item.id for item in exc_info.value.unclaimed_items] == ["salad"]
        assert service.db.get_receipt("r1").status == "claiming"

    def test_settle(self, service):
        service.claim_item("steak", "alice")
        service.claim_item("salad", "bob")

        totals = service.settle_receipt("r1")

        assert [(t.member_id, t.grand_total) for t in totals] == [
            ("alice", 97.5),
            ("bob", 32.5),
        ]
        assert service.db.get_receipt("r1").status == "settled"
        stored = service.db.list_member_totals("r1")
        assert [t.grand_total for t in stored] == [97.5, 32.5]

    def test_settle_after_three_way_split(self, service):
        service.split_item("steak", ["alice", "bob", "carol"])
        service.claim_item("salad", "carol")

        totals = service.settle_receipt("r1")

        assert sum(t.grand_total for t in totals) == pytest.approx(130)
