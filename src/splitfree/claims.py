"""Claiming of receipt line items, in whole or in part.

These functions look at one item snapshot at a time. They don't stop two
members from over-claiming the same item concurrently; the store that
serializes writes owns that invariant.
"""

import logging

from .models import ClaimEligibility, ClaimSource, ItemClaim, ReceiptItem
from .money import to_percent

logger = logging.getLogger(__name__)

# 1 - claimed fraction below this counts as fully claimed (0.333/0.333/0.334 splits)
FULL_CLAIM_TOLERANCE = 0.002

# Claimed fraction at or above this counts as claimed for display and settling
SETTLE_CLAIM_THRESHOLD = 0.99


def claimed_fraction(item: ReceiptItem) -> float:
    """Sum of share fractions over an item's claims (0 when it has none)."""
    return sum(claim.share_fraction for claim in item.claim_list)


def get_item_claimed_amount(item: ReceiptItem) -> float:
    """
    Amount of an item's price covered by its claims.

    Over-claimed items report more than their price.
    """
    return item.total_price * claimed_fraction(item)


def get_item_remaining_fraction(item: ReceiptItem) -> float:
    """Fraction of an item still available, floored at 0 for over-claimed items."""
    return max(0.0, 1 - claimed_fraction(item))


def is_item_fully_claimed(item: ReceiptItem) -> bool:
    """
    Check whether an item is fully claimed.

    Zero-price items have nothing to claim and always count as fully claimed.
    Otherwise the claims must cover the item to within FULL_CLAIM_TOLERANCE.
    """
    if item.total_price == 0:
        return True

    fraction = claimed_fraction(item)
    if fraction == 0:
        return False

    return 1 - fraction < FULL_CLAIM_TOLERANCE


def can_claim_item(item: ReceiptItem, member_id: str) -> ClaimEligibility:
    """
    Decide whether a member may claim an item at all.

    A positive answer doesn't bound how much the member may take; pass the
    remaining fraction to create_claim as max_fraction for that.

    Args:
        item: Fresh snapshot of the item including its claims
        member_id: Member asking to claim

    Returns:
        Eligibility with a user-facing reason when the claim is refused
    """
    if not item.is_claimable:
        return ClaimEligibility(can_claim=False, reason="This item cannot be claimed")

    own_claim = next(
        (claim for claim in item.claim_list if claim.member_id == member_id), None
    )
    if own_claim and own_claim.share_fraction >= 1:
        return ClaimEligibility(can_claim=False, reason="You already claimed this item")

    if own_claim is None and is_item_fully_claimed(item):
        return ClaimEligibility(can_claim=False, reason="Item is fully claimed")

    return ClaimEligibility(
        can_claim=True, remaining_fraction=get_item_remaining_fraction(item)
    )


def create_claim(
    item_id: str,
    member_id: str,
    *,
    share_fraction: float | None = None,
    split_count: int | None = None,
    claimed_via: ClaimSource = "app",
    max_fraction: float | None = None,
) -> ItemClaim:
    """
    Build a claim record for the store to persist.

    Resolution order:
    1. split_count, when given, sets the fraction to 1/split_count
    2. otherwise share_fraction, defaulting to the whole item
    3. the fraction is capped at max_fraction when given

    The claim type is derived from the final fraction. No check is made
    against other claims on the item; the caller supplies max_fraction.

    Args:
        item_id: The receipt item ID
        member_id: The claiming member
        share_fraction: Explicit fraction of the item
        split_count: Number of ways the item is split
        claimed_via: Where the claim was made (app, web, imessage, assigned)
        max_fraction: Upper bound on the fraction

    Returns:
        Unsaved claim (no id or claimed_at yet)
    """
    if split_count:
        fraction = 1 / split_count
    elif share_fraction is not None:
        fraction = share_fraction
    else:
        fraction = 1.0

    if max_fraction is not None and fraction > max_fraction:
        logger.debug(
            f"Capping claim on {item_id} by {member_id} from {fraction} to {max_fraction}"
        )
        fraction = max_fraction

    return ItemClaim(
        receipt_item_id=item_id,
        member_id=member_id,
        claim_type="full" if fraction == 1 else "split",
        share_fraction=fraction,
        split_count=split_count or 1,
        claimed_via=claimed_via,
    )


def format_claim_description(item: ReceiptItem, claim: ItemClaim) -> str:
    """Describe a claim for display: "Pizza", "Pizza (1/3)" or "Pizza (40%)"."""
    if claim.share_fraction == 1:
        return item.description

    if claim.split_count > 1:
        return f"{item.description} (1/{claim.split_count})"

    return f"{item.description} ({to_percent(claim.share_fraction)}%)"


def get_item_claim_status(item: ReceiptItem) -> str:
    """Short claim status for an item row."""
    claims = item.claim_list
    if not claims:
        return "Unclaimed"

    fraction = claimed_fraction(item)
    if fraction >= SETTLE_CLAIM_THRESHOLD:
        if len(claims) == 1:
            name = claims[0].member.name if claims[0].member else "someone"
            return f"Claimed by {name}"
        return f"Split {len(claims)} ways"

    return f"{to_percent(fraction)}% claimed"
