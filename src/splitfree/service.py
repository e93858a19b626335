"""Service layer that composes the store with the settlement engine.

The engine functions are pure and see one snapshot at a time. This layer
re-reads fresh snapshots from the store for every operation and computes the
fraction cap that create_claim expects from its caller.
"""

import logging

from .claims import can_claim_item, create_claim
from .config import Settings
from .db import Database
from .exceptions import ClaimRejectedError, UnclaimedItemsError
from .models import ClaimSource, ItemClaim, MemberTotal, ReceiptSummary
from .summary import generate_receipt_summary, validate_all_items_claimed
from .totals import calculate_member_totals

logger = logging.getLogger(__name__)


class ReceiptService:
    """Claim, split and settle receipt items."""

    def __init__(self, settings: Settings, database: Database):
        """Initialize the receipt service."""
        self.settings = settings
        self.db = database

    def claim_item(
        self,
        item_id: str,
        member_id: str,
        *,
        share_fraction: float | None = None,
        split_count: int | None = None,
        claimed_via: ClaimSource | None = None,
    ) -> ItemClaim:
        """
        Claim an item, or part of it, for a member.

        A member's existing claim on the item is replaced, so the fraction
        they already hold counts towards what they may take.

        Args:
            item_id: The receipt item ID
            member_id: The claiming member
            share_fraction: Fraction of the item to claim (default: all of it)
            split_count: Claim 1/split_count of the item instead
            claimed_via: Claim source (default from settings)

        Returns:
            The saved claim

        Raises:
            ClaimRejectedError: If the member can't claim the item
        """
        item = self.db.get_item(item_id)

        eligibility = can_claim_item(item, member_id)
        if not eligibility.can_claim:
            logger.info(f"Claim on {item_id} by {member_id} rejected: {eligibility.reason}")
            raise ClaimRejectedError(eligibility.reason or "This item cannot be claimed")

        held = sum(
            claim.share_fraction for claim in item.claim_list if claim.member_id == member_id
        )
        max_fraction = min(1.0, (eligibility.remaining_fraction or 0) + held)
        if max_fraction <= 0:
            raise ClaimRejectedError("Item is fully claimed")

        claim = create_claim(
            item_id,
            member_id,
            share_fraction=share_fraction,
            split_count=split_count,
            claimed_via=claimed_via or self.settings.default_claim_source,
            max_fraction=max_fraction,
        )
        if claim.share_fraction <= 0:
            raise ClaimRejectedError("Claim must cover part of the item")

        return self.db.replace_claim(claim)

    def unclaim_item(self, item_id: str, member_id: str) -> bool:
        """Remove a member's claim on an item. Returns False if there was none."""
        removed = self.db.delete_claim(item_id, member_id)
        if removed:
            logger.info(f"Removed claim on {item_id} by {member_id}")
        return removed

    def split_item(
        self,
        item_id: str,
        member_ids: list[str],
        claimed_via: ClaimSource | None = None,
    ) -> list[ItemClaim]:
        """
        Split an item evenly, replacing all of its current claims.

        Repeated member IDs count once.

        Raises:
            ClaimRejectedError: If fewer than 2 members are given or the item
                can't be claimed
        """
        member_ids = list(dict.fromkeys(member_ids))
        if len(member_ids) < 2:
            raise ClaimRejectedError("Need at least 2 members to split")

        item = self.db.get_item(item_id)
        if not item.is_claimable:
            raise ClaimRejectedError("This item cannot be claimed")

        source = claimed_via or self.settings.default_claim_source
        claims = [
            create_claim(
                item_id, member_id, split_count=len(member_ids), claimed_via=source
            )
            for member_id in member_ids
        ]

        return self.db.replace_item_claims(item_id, claims)

    def get_summary(self, receipt_id: str) -> ReceiptSummary:
        """Summarize a receipt from a fresh read of the store."""
        receipt = self.db.get_receipt(receipt_id)
        items = self.db.list_items(receipt_id)
        claims = self.db.list_claims(receipt_id)
        members = self.db.list_members(receipt.group_id)

        return generate_receipt_summary(receipt, items, claims, members)

    def settle_receipt(self, receipt_id: str) -> list[MemberTotal]:
        """
        Settle a receipt once every item is claimed.

        Stores each member's total and marks the receipt settled.

        Raises:
            UnclaimedItemsError: If any claimable item is not claimed
        """
        receipt = self.db.get_receipt(receipt_id)
        items = self.db.list_items(receipt_id)
        claims = self.db.list_claims(receipt_id)

        validation = validate_all_items_claimed(items, claims)
        if not validation.is_valid:
            raise UnclaimedItemsError(validation.unclaimed_items)

        members = self.db.list_members(receipt.group_id)
        totals = calculate_member_totals(receipt, items, claims, members)

        self.db.save_member_totals(receipt_id, totals)
        self.db.update_receipt_status(receipt_id, "settled")

        logger.info(
            f"Settled receipt {receipt_id}: {len(totals)} member(s), "
            f"total {sum(t.grand_total for t in totals):.2f}"
        )

        return totals
