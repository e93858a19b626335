"""Custom exceptions for SplitFree."""

from typing import Any


class SplitFreeError(Exception):
    """Base exception for all SplitFree errors."""

    pass


class ConfigurationError(SplitFreeError):
    """Raised when configuration is invalid or missing."""

    pass


class UnknownSplitMethodError(SplitFreeError):
    """Raised by strict split dispatch when the method is not recognized."""

    def __init__(self, method: Any, message: str | None = None):
        self.method = method
        super().__init__(message or f"Unknown split method: {method!r}")


class RecordNotFoundError(SplitFreeError):
    """Raised when a record is missing from the store."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} '{record_id}' not found")


class ClaimRejectedError(SplitFreeError):
    """Raised when a member is not allowed to claim an item.

    The message is the user-facing reason and can be shown as-is.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class DuplicateClaimError(SplitFreeError):
    """Raised when a member already holds a claim on an item."""

    def __init__(self, item_id: str, member_id: str):
        self.item_id = item_id
        self.member_id = member_id
        super().__init__(f"Member '{member_id}' already has a claim on item '{item_id}'")


class UnclaimedItemsError(SplitFreeError):
    """Raised when settling a receipt that still has unclaimed items."""

    def __init__(self, unclaimed_items: list[Any]):
        self.unclaimed_items = unclaimed_items
        names = ", ".join(item.description or item.id for item in unclaimed_items)
        super().__init__(
            f"{len(unclaimed_items)} item(s) still need to be claimed: {names}"
        )


class SnapshotFormatError(SplitFreeError):
    """Raised when a receipt snapshot file cannot be read or validated."""

    pass
