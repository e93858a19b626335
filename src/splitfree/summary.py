"""Whole-receipt claim validation and settlement summary."""

import logging
from collections import defaultdict

from .claims import SETTLE_CLAIM_THRESHOLD
from .models import (
    ClaimValidation,
    ItemClaim,
    Member,
    Receipt,
    ReceiptItem,
    ReceiptSummary,
)
from .money import round_currency
from .totals import calculate_member_totals

logger = logging.getLogger(__name__)


def _fractions_by_item(claims: list[ItemClaim]) -> dict[str, float]:
    fractions: dict[str, float] = defaultdict(float)
    for claim in claims:
        fractions[claim.receipt_item_id] += claim.share_fraction
    return fractions


def _is_settled_item(item: ReceiptItem, fractions: dict[str, float]) -> bool:
    """An item is claimed for settling at 99%; zero-price items always are."""
    if item.total_price == 0:
        return True
    return fractions.get(item.id, 0) >= SETTLE_CLAIM_THRESHOLD


def validate_all_items_claimed(
    items: list[ReceiptItem], claims: list[ItemClaim]
) -> ClaimValidation:
    """
    Check that every claimable item is claimed before settling.

    Uses a looser threshold than is_item_fully_claimed so that many-way
    splits with rounded fractions still pass.

    Args:
        items: The receipt's items
        claims: All claims on those items

    Returns:
        Validation result listing the unclaimed items
    """
    fractions = _fractions_by_item(claims)

    unclaimed = [
        item
        for item in items
        if item.is_claimable and not _is_settled_item(item, fractions)
    ]

    if unclaimed:
        logger.debug(f"{len(unclaimed)} unclaimed item(s): {[i.id for i in unclaimed]}")

    return ClaimValidation(is_valid=not unclaimed, unclaimed_items=unclaimed)


def generate_receipt_summary(
    receipt: Receipt,
    items: list[ReceiptItem],
    claims: list[ItemClaim],
    members: list[Member],
) -> ReceiptSummary:
    """
    Build the read-only summary shown on the settlement screen.

    Receipt amounts are passed through; a missing subtotal falls back to the
    sum of claimable item prices and a missing total to subtotal + tax + tip.
    """
    claimable = [item for item in items if item.is_claimable]
    fractions = _fractions_by_item(claims)

    claimed_count = sum(1 for item in claimable if _is_settled_item(item, fractions))

    calculated_subtotal = round_currency(sum(item.total_price for item in claimable))
    subtotal = receipt.subtotal if receipt.subtotal is not None else calculated_subtotal
    tax = receipt.tax_amount or 0
    tip = receipt.tip_amount or 0
    total = (
        receipt.total_amount
        if receipt.total_amount is not None
        else round_currency(calculated_subtotal + tax + tip)
    )

    return ReceiptSummary(
        receipt_id=receipt.id,
        merchant_name=receipt.merchant_name,
        receipt_date=receipt.receipt_date,
        currency=receipt.currency,
        item_count=len(claimable),
        claimed_item_count=claimed_count,
        unclaimed_item_count=len(claimable) - claimed_count,
        subtotal=subtotal,
        tax=tax,
        tip=tip,
        total=total,
        member_totals=calculate_member_totals(receipt, items, claims, members),
    )
