"""SplitFree - Split shared expenses and settle scanned receipts."""

__version__ = "0.1.0"

from .claims import (
    can_claim_item,
    create_claim,
    get_item_claimed_amount,
    get_item_remaining_fraction,
    is_item_fully_claimed,
)
from .config import Settings, load_settings
from .db import Database
from .ledger import (
    calculate_balances,
    calculate_balances_with_settlements,
    member_balances,
)
from .models import (
    Expense,
    ItemClaim,
    Member,
    MemberBalance,
    MemberTotal,
    PaymentLink,
    Receipt,
    ReceiptItem,
    ReceiptSummary,
    Settlement,
    Split,
    SplitMethod,
    SplitParams,
)
from .payment_links import generate_payment_links
from .service import ReceiptService
from .splits import calculate_splits, validate_split_data
from .summary import generate_receipt_summary, validate_all_items_claimed
from .totals import calculate_member_totals

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "Expense",
    "ItemClaim",
    "Member",
    "MemberBalance",
    "MemberTotal",
    "PaymentLink",
    "Receipt",
    "ReceiptItem",
    "ReceiptSummary",
    "Settlement",
    "Split",
    "SplitMethod",
    "SplitParams",
    "can_claim_item",
    "create_claim",
    "get_item_claimed_amount",
    "get_item_remaining_fraction",
    "is_item_fully_claimed",
    "calculate_splits",
    "validate_split_data",
    "calculate_member_totals",
    "generate_receipt_summary",
    "validate_all_items_claimed",
    "calculate_balances",
    "calculate_balances_with_settlements",
    "member_balances",
    "generate_payment_links",
    "ReceiptService",
]
