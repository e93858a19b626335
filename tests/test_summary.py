"""Tests for whole-receipt validation and summary."""

from datetime import date

import pytest

from splitfree.models import ItemClaim, Member, Receipt, ReceiptItem
from splitfree.summary import generate_receipt_summary, validate_all_items_claimed

MEMBERS = [Member(id="alice", name="Alice"), Member(id="bob", name="Bob")]


def make_item(id: str, price: float, **flags) -> ReceiptItem:
    """Create a ReceiptItem for testing."""
    return ReceiptItem(id=id, receipt_id="r1", description=id.title(), total_price=price, **flags)


def make_claim(item_id: str, member_id: str, fraction: float = 1.0) -> ItemClaim:
    """Create an ItemClaim for testing."""
    return ItemClaim(
        receipt_item_id=item_id,
        member_id=member_id,
        claim_type="full" if fraction == 1 else "split",
        share_fraction=fraction,
    )


@pytest.fixture
def items():
    return [
        make_item("nachos", 12),
        make_item("tacos", 18),
        make_item("tax", 2.4, is_tax=True),
        make_item("subtotal", 30, is_subtotal=True),
    ]


class TestValidateAllItemsClaimed:
    """Tests for validate_all_items_claimed."""

    def test_all_claimed(self, items):
        claims = [make_claim("nachos", "alice"), make_claim("tacos", "bob")]

        result = validate_all_items_claimed(items, claims)

        assert result.is_valid
        assert result.unclaimed_items == []

    def test_three_way_split_counts_as_claimed(self, items):
        """0.33/0.33/0.34 reaches the 99% threshold; the unclaimed item fails."""
        claims = [
            make_claim("nachos", "alice", 0.33),
            make_claim("nachos", "bob", 0.33),
            make_claim("nachos", "carol", 0.34),
        ]

        result = validate_all_items_claimed(items, claims)

        assert not result.is_valid
        assert [item.id for item in result.unclaimed_items] == ["tacos"]

    def test_half_claimed_item_is_unclaimed(self, items):
        claims = [make_claim("nachos", "alice"), make_claim("tacos", "bob", 0.5)]

        result = validate_all_items_claimed(items, claims)

        assert [item.id for item in result.unclaimed_items] == ["tacos"]

    def test_threshold_is_looser_than_full_claim(self, items):
        """0.99 passes here even though is_item_fully_claimed would say no."""
        claims = [make_claim("nachos", "alice", 0.99), make_claim("tacos", "bob", 0.995)]

        assert validate_all_items_claimed(items, claims).is_valid

    def test_ignores_special_items(self):
        items = [
            make_item("tax", 1, is_tax=True),
            make_item("tip", 1, is_tip=True),
            make_item("subtotal", 1, is_subtotal=True),
            make_item("total", 1, is_total=True),
            make_item("coupon", 1, is_discount=True),
        ]

        assert validate_all_items_claimed(items, []).is_valid

    def test_zero_price_item_needs_no_claim(self):
        items = [make_item("water", 0), make_item("bread", 3)]

        result = validate_all_items_claimed(items, [make_claim("bread", "alice")])

        assert result.is_valid

    def test_no_items(self):
        assert validate_all_items_claimed([], []).is_valid


class TestGenerateReceiptSummary:
    """Tests for generate_receipt_summary."""

    def test_counts_and_passthrough(self, items):
        receipt = Receipt(
            id="r1",
            merchant_name="Taqueria",
            receipt_date=date(2026, 3, 14),
            subtotal=30,
            tax_amount=2.4,
            tip_amount=6,
            total_amount=38.4,
        )
        claims = [make_claim("nachos", "alice")]

        summary = generate_receipt_summary(receipt, items, claims, MEMBERS)

        assert summary.receipt_id == "r1"
        assert summary.merchant_name == "Taqueria"
        assert summary.receipt_date == date(2026, 3, 14)
        assert summary.item_count == 2
        assert summary.claimed_item_count == 1
        assert summary.unclaimed_item_count == 1
        assert summary.subtotal == 30
        assert summary.tax == 2.4
        assert summary.tip == 6
        assert summary.total == 38.4

    def test_member_totals_included(self, items):
        receipt = Receipt(id="r1", tax_amount=3, tip_amount=6)
        claims = [make_claim("nachos", "alice"), make_claim("tacos", "bob")]

        summary = generate_receipt_summary(receipt, items, claims, MEMBERS)

        totals = {t.member_id: t.grand_total for t in summary.member_totals}
        assert totals == {"alice": 15.6, "bob": 23.4}

    def test_missing_amounts_fall_back(self, items):
        """Without receipt amounts, subtotal and total come from the items."""
        receipt = Receipt(id="r1", tax_amount=2.4)

        summary = generate_receipt_summary(receipt, items, [], MEMBERS)

        assert summary.subtotal == 30
        assert summary.tax == 2.4
        assert summary.tip == 0
        assert summary.total == 32.4
        assert summary.member_totals == []
        assert summary.unclaimed_item_count == 2

    def test_currency(self, items):
        receipt = Receipt(id="r1", currency="EUR")

        assert generate_receipt_summary(receipt, items, [], MEMBERS).currency == "EUR"
