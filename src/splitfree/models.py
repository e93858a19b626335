"""Pydantic domain models for SplitFree."""

from datetime import date, datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field

ClaimType = Literal["full", "split"]
ClaimSource = Literal["app", "web", "imessage", "assigned"]
ReceiptStatus = Literal["draft", "processing", "claiming", "settled", "archived"]


# ============================================================================
# Group Models
# ============================================================================


class Member(BaseModel):
    """A participant in a group."""

    id: str
    name: str
    group_id: str | None = None
    user_id: str | None = None  # None for members without an account


# ============================================================================
# Split Models
# ============================================================================


class SplitMethod(StrEnum):
    """Strategy used to divide an expense among members."""

    EQUAL = "equal"
    EXACT = "exact"
    PERCENT = "percent"
    SHARES = "shares"

    @property
    def label(self) -> str:
        return _METHOD_LABELS[self]

    @property
    def description(self) -> str:
        return _METHOD_DESCRIPTIONS[self]

    @property
    def icon(self) -> str:
        return _METHOD_ICONS[self]


_METHOD_LABELS = {
    SplitMethod.EQUAL: "Split Equally",
    SplitMethod.EXACT: "Exact Amounts",
    SplitMethod.PERCENT: "By Percentage",
    SplitMethod.SHARES: "By Shares",
}

_METHOD_DESCRIPTIONS = {
    SplitMethod.EQUAL: "Everyone pays the same amount",
    SplitMethod.EXACT: "Enter specific amounts for each person",
    SplitMethod.PERCENT: "Split by percentage (must total 100%)",
    SplitMethod.SHARES: "Split by shares (e.g., 1x, 2x)",
}

_METHOD_ICONS = {
    SplitMethod.EQUAL: "=",
    SplitMethod.EXACT: "$",
    SplitMethod.PERCENT: "%",
    SplitMethod.SHARES: "#",
}


class SplitParams(BaseModel):
    """Strategy-specific input for a split.

    Only the field matching the split method is read:
    - equal: member_ids
    - exact: amounts (member_id -> dollar amount)
    - percent: percents (member_id -> percentage)
    - shares: shares (member_id -> share count)
    """

    member_ids: list[str] | None = None
    amounts: dict[str, float] | None = None
    percents: dict[str, float] | None = None
    shares: dict[str, float] | None = None


class Split(BaseModel):
    """One member's portion of an expense."""

    member_id: str
    amount: float


class SplitValidation(BaseModel):
    """Result of a pre-submit split check."""

    is_valid: bool
    error: str | None = None


class Expense(BaseModel):
    """An expense paid by one member and split among several."""

    id: str | None = None
    paid_by: str
    amount: float
    splits: list[Split] = Field(default_factory=list)


class Settlement(BaseModel):
    """A payment from one member to another."""

    from_member_id: str
    to_member_id: str
    amount: float


class MemberBalance(BaseModel):
    """Net position of a member within a group."""

    member_id: str
    member_name: str
    balance: float  # positive = owed money, negative = owes money


class GroupLedger(BaseModel):
    """A group's roster with its expenses and recorded settlements."""

    currency: str = "USD"
    members: list[Member] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    settlements: list[Settlement] = Field(default_factory=list)


# ============================================================================
# Receipt Models
# ============================================================================


class ItemClaim(BaseModel):
    """A member's ownership of a fraction of a receipt item.

    Claims are never edited in place; a changed claim is deleted and
    recreated.
    """

    id: str | None = None
    receipt_item_id: str
    member_id: str
    claim_type: ClaimType = "full"
    share_fraction: float = 1.0
    split_count: int = 1
    claimed_at: datetime | None = None
    claimed_via: ClaimSource = "app"
    member: Member | None = None  # joined for display


class ReceiptItem(BaseModel):
    """A line from a scanned receipt."""

    id: str
    receipt_id: str | None = None
    description: str = ""
    quantity: int = 1
    unit_price: float | None = None
    total_price: float
    is_tax: bool = False
    is_tip: bool = False
    is_subtotal: bool = False
    is_total: bool = False
    is_discount: bool = False
    claims: list[ItemClaim] | None = None

    @property
    def is_claimable(self) -> bool:
        """Tax, tip, subtotal, total and discount lines cannot be claimed."""
        return not (
            self.is_tax
            or self.is_tip
            or self.is_subtotal
            or self.is_total
            or self.is_discount
        )

    @property
    def claim_list(self) -> list[ItemClaim]:
        return self.claims or []


class Receipt(BaseModel):
    """A scanned receipt. Amounts may be missing when OCR didn't find them."""

    id: str
    group_id: str | None = None
    merchant_name: str | None = None
    receipt_date: date | None = None
    currency: str = "USD"
    subtotal: float | None = None
    tax_amount: float | None = None
    tip_amount: float | None = None
    total_amount: float | None = None
    status: ReceiptStatus = "draft"


class ClaimEligibility(BaseModel):
    """Whether a member may claim (more of) an item."""

    can_claim: bool
    reason: str | None = None
    remaining_fraction: float | None = None  # informational only


class ClaimedItemShare(BaseModel):
    """One claimed item line within a member's total."""

    item_id: str
    description: str
    amount: float
    share_fraction: float


class MemberTotal(BaseModel):
    """What one member owes for a receipt."""

    member_id: str
    member_name: str
    items_total: float
    tax_share: float
    tip_share: float
    grand_total: float
    claimed_items: list[ClaimedItemShare] = Field(default_factory=list)


class ClaimValidation(BaseModel):
    """Result of checking that every claimable item is claimed."""

    is_valid: bool
    unclaimed_items: list[ReceiptItem] = Field(default_factory=list)


class ReceiptSummary(BaseModel):
    """Read-only view of a receipt's claim state for the settlement screen."""

    receipt_id: str
    merchant_name: str | None = None
    receipt_date: date | None = None
    currency: str = "USD"
    item_count: int
    claimed_item_count: int
    unclaimed_item_count: int
    subtotal: float
    tax: float
    tip: float
    total: float
    member_totals: list[MemberTotal] = Field(default_factory=list)


class ReceiptSnapshot(BaseModel):
    """A receipt with everything needed to compute its totals."""

    receipt: Receipt
    items: list[ReceiptItem] = Field(default_factory=list)
    members: list[Member] = Field(default_factory=list)
    claims: list[ItemClaim] = Field(default_factory=list)


# ============================================================================
# Settlement Hand-off Models
# ============================================================================


class PaymentLink(BaseModel):
    """A deep link that opens a payment app prefilled with an amount."""

    provider: Literal["venmo", "paypal", "cashapp"]
    url: str
    display_name: str
