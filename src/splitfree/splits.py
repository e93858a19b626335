"""Split calculators for dividing an expense among group members.

Only the equal split corrects its own rounding drift (the last member absorbs
it). Exact, percent and shares splits round each member independently and
leave any drift for validate_split_data to catch, which accepts up to two
cents of difference.
"""

import logging

from .exceptions import UnknownSplitMethodError
from .models import Split, SplitMethod, SplitParams, SplitValidation
from .money import format_amount, round_currency

logger = logging.getLogger(__name__)

# Allowed difference between the entered amounts/percents and their target
SPLIT_TOLERANCE = 0.02


def calculate_equal_split(total: float, member_ids: list[str]) -> list[Split]:
    """
    Split an amount equally among members.

    Every member but the last gets the rounded per-person amount; the last
    member gets whatever is left so the splits add up to the total.

    Args:
        total: Total expense amount
        member_ids: Members to split between, in display order

    Returns:
        One split per member, or an empty list when there are no members
    """
    if not member_ids:
        return []

    per_person = round_currency(total / len(member_ids))
    splits = [Split(member_id=member_id, amount=per_person) for member_id in member_ids]

    assigned = sum(split.amount for split in splits[:-1])
    splits[-1].amount = round_currency(total - assigned)

    if splits[-1].amount != per_person:
        logger.debug(
            f"Equal split of {total} among {len(member_ids)}: "
            f"{splits[-1].member_id} absorbs {round_currency(splits[-1].amount - per_person)}"
        )

    return splits


def calculate_exact_split(amounts: dict[str, float]) -> list[Split]:
    """Build splits from explicit per-member amounts, dropping zero entries."""
    return [
        Split(member_id=member_id, amount=round_currency(amount))
        for member_id, amount in amounts.items()
        if amount > 0
    ]


def calculate_percent_split(total: float, percents: dict[str, float]) -> list[Split]:
    """Split an amount by percentage. Zero-percent members are dropped."""
    return [
        Split(member_id=member_id, amount=round_currency(total * percent / 100))
        for member_id, percent in percents.items()
        if percent > 0
    ]


def calculate_shares_split(total: float, shares: dict[str, float]) -> list[Split]:
    """
    Split an amount proportionally to share counts (e.g. 2x, 1x, 1x).

    Returns an empty list when nobody holds a share.
    """
    entries = [(member_id, count) for member_id, count in shares.items() if count > 0]
    total_shares = sum(count for _, count in entries)

    if total_shares == 0:
        return []

    return [
        Split(member_id=member_id, amount=round_currency(total * count / total_shares))
        for member_id, count in entries
    ]


def _coerce_method(method: SplitMethod | str) -> SplitMethod | None:
    try:
        return SplitMethod(method)
    except ValueError:
        return None


def calculate_splits(
    method: SplitMethod | str,
    total: float,
    params: SplitParams,
    strict: bool = False,
) -> list[Split]:
    """
    Calculate splits with the given method.

    Args:
        method: Split method (enum member or its string value)
        total: Total expense amount
        params: Strategy-specific input; missing collections count as empty
        strict: Raise instead of returning [] for an unknown method

    Returns:
        List of splits

    Raises:
        UnknownSplitMethodError: If strict and the method is not recognized
    """
    split_method = _coerce_method(method)

    if split_method is SplitMethod.EQUAL:
        return calculate_equal_split(total, params.member_ids or [])
    if split_method is SplitMethod.EXACT:
        return calculate_exact_split(params.amounts or {})
    if split_method is SplitMethod.PERCENT:
        return calculate_percent_split(total, params.percents or {})
    if split_method is SplitMethod.SHARES:
        return calculate_shares_split(total, params.shares or {})

    if strict:
        raise UnknownSplitMethodError(method)

    logger.warning(f"Unknown split method {method!r}, returning no splits")
    return []


def validate_split_data(
    method: SplitMethod | str,
    total: float,
    params: SplitParams,
) -> SplitValidation:
    """
    Check split input before it is submitted.

    The error message is meant to be shown to the user directly.
    """
    split_method = _coerce_method(method)

    if split_method is SplitMethod.EQUAL:
        if not params.member_ids:
            return SplitValidation(
                is_valid=False, error="Please select at least one person to split with"
            )
        return SplitValidation(is_valid=True)

    if split_method is SplitMethod.EXACT:
        if params.amounts is None:
            return SplitValidation(
                is_valid=False, error="Please enter amounts for each person"
            )
        entered = sum(amount or 0 for amount in params.amounts.values())
        if round_currency(abs(entered - total)) > SPLIT_TOLERANCE:
            return SplitValidation(
                is_valid=False,
                error=(
                    f"Amounts must add up to {format_amount(total)} "
                    f"(currently {format_amount(entered)})"
                ),
            )
        return SplitValidation(is_valid=True)

    if split_method is SplitMethod.PERCENT:
        if params.percents is None:
            return SplitValidation(
                is_valid=False, error="Please enter percentages for each person"
            )
        total_percent = sum(percent or 0 for percent in params.percents.values())
        if round_currency(abs(total_percent - 100)) > SPLIT_TOLERANCE:
            return SplitValidation(
                is_valid=False,
                error=(
                    f"Percentages must add up to 100% "
                    f"(currently {total_percent:.1f}%)"
                ),
            )
        return SplitValidation(is_valid=True)

    if split_method is SplitMethod.SHARES:
        if params.shares is None:
            return SplitValidation(
                is_valid=False, error="Please enter shares for each person"
            )
        total_shares = sum(count or 0 for count in params.shares.values())
        if total_shares <= 0:
            return SplitValidation(
                is_valid=False, error="Please assign at least one share"
            )
        return SplitValidation(is_valid=True)

    return SplitValidation(is_valid=False, error="Invalid split method")
