"""Per-member receipt totals with proportional tax and tip."""

import logging
from collections import defaultdict

from .models import (
    ClaimedItemShare,
    ItemClaim,
    Member,
    MemberTotal,
    Receipt,
    ReceiptItem,
)
from .money import round_currency

logger = logging.getLogger(__name__)

# Largest rounding drift absorbed silently; anything bigger is left visible
RECONCILE_THRESHOLD = 0.10


def calculate_member_totals(
    receipt: Receipt,
    items: list[ReceiptItem],
    claims: list[ItemClaim],
    members: list[Member],
) -> list[MemberTotal]:
    """
    Calculate what each member owes for a receipt.

    Steps:
    1. Keep only claimable items (no tax/tip/subtotal/total/discount lines)
    2. Credit each claim's share of its item's price to the claiming member
    3. Sum the claimed amounts into the claimed subtotal
    4. Give each member tax and tip in proportion to their share of the
       claimed subtotal, so unclaimed items carry no tax or tip
    5. Absorb sub-10-cent rounding drift into the largest total

    Members without claimed items are left out.

    Args:
        receipt: The receipt (tax and tip default to 0 when missing)
        items: The receipt's items
        claims: All claims on the receipt's items
        members: Group members, used for display names

    Returns:
        One total per member with claimed items, in order of first claim
    """
    claimable = {item.id: item for item in items if item.is_claimable}

    items_total: dict[str, float] = defaultdict(float)
    breakdown: dict[str, list[ClaimedItemShare]] = defaultdict(list)

    for claim in claims:
        item = claimable.get(claim.receipt_item_id)
        if item is None:
            continue

        amount = item.total_price * claim.share_fraction
        items_total[claim.member_id] += amount
        breakdown[claim.member_id].append(
            ClaimedItemShare(
                item_id=item.id,
                description=item.description,
                amount=round_currency(amount),
                share_fraction=claim.share_fraction,
            )
        )

    claimed_subtotal = sum(items_total.values())
    tax_amount = receipt.tax_amount or 0
    tip_amount = receipt.tip_amount or 0

    names = {member.id: member.name for member in members}
    totals: list[MemberTotal] = []
    unrounded_total = 0.0

    for member_id, member_items_total in items_total.items():
        if member_items_total <= 0:
            continue

        if member_id not in names:
            logger.warning(
                f"Receipt {receipt.id}: claims by unknown member {member_id} "
                f"left out of member totals"
            )
            continue

        proportion = member_items_total / claimed_subtotal if claimed_subtotal > 0 else 0
        tax_share = tax_amount * proportion
        tip_share = tip_amount * proportion
        unrounded_total += member_items_total + tax_share + tip_share

        totals.append(
            MemberTotal(
                member_id=member_id,
                member_name=names[member_id],
                items_total=round_currency(member_items_total),
                tax_share=round_currency(tax_share),
                tip_share=round_currency(tip_share),
                grand_total=round_currency(member_items_total + tax_share + tip_share),
                claimed_items=breakdown[member_id],
            )
        )

    _reconcile_rounding(receipt, totals, unrounded_total)

    return totals


def _reconcile_rounding(
    receipt: Receipt, totals: list[MemberTotal], expected: float
) -> None:
    """Move cent-level drift onto the member with the largest grand total."""
    if not totals:
        return

    calculated = sum(total.grand_total for total in totals)
    discrepancy = round_currency(expected - calculated)

    if discrepancy == 0 or abs(discrepancy) >= RECONCILE_THRESHOLD:
        return

    largest = max(totals, key=lambda total: total.grand_total)
    largest.grand_total = round_currency(largest.grand_total + discrepancy)

    logger.info(
        f"Receipt {receipt.id}: applied rounding adjustment of {discrepancy} "
        f"to member {largest.member_id}"
    )
