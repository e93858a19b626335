"""Group balance netting from expenses and settlements.

This nets each member's position; it doesn't propose who should pay whom.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from .exceptions import SnapshotFormatError
from .models import Expense, GroupLedger, Member, MemberBalance, Settlement
from .money import round_currency

logger = logging.getLogger(__name__)


def load_ledger(path: Path) -> GroupLedger:
    """
    Read a group ledger from a JSON file.

    Expected shape: {"members": [...], "expenses": [...], "settlements": [...]}.

    Raises:
        SnapshotFormatError: If the file can't be read or doesn't validate
    """
    try:
        return GroupLedger.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise SnapshotFormatError(f"Cannot read ledger {path}: {e}") from e
    except ValidationError as e:
        raise SnapshotFormatError(f"Invalid ledger {path}:\n{e}") from e


def calculate_balances(
    expenses: list[Expense], members: list[Member]
) -> dict[str, float]:
    """
    Net each member's position across a group's expenses.

    The payer is credited the full amount and each split member is debited
    their share. Positive = owed money, negative = owes money.

    Args:
        expenses: Expenses with their splits
        members: Group roster; every member starts at 0

    Returns:
        Balance per member ID (members outside the roster included if they
        appear in an expense)
    """
    balances = {member.id: 0.0 for member in members}

    for expense in expenses:
        balances[expense.paid_by] = balances.get(expense.paid_by, 0.0) + expense.amount
        for split in expense.splits:
            balances[split.member_id] = balances.get(split.member_id, 0.0) - split.amount

    return balances


def calculate_balances_with_settlements(
    expenses: list[Expense],
    settlements: list[Settlement],
    members: list[Member],
) -> dict[str, float]:
    """
    Net balances after applying recorded settlements.

    When A pays B, A's debt shrinks and B's credit shrinks.
    """
    balances = calculate_balances(expenses, members)

    for settlement in settlements:
        balances[settlement.from_member_id] = (
            balances.get(settlement.from_member_id, 0.0) + settlement.amount
        )
        balances[settlement.to_member_id] = (
            balances.get(settlement.to_member_id, 0.0) - settlement.amount
        )

    return balances


def member_balances(
    expenses: list[Expense],
    settlements: list[Settlement],
    members: list[Member],
) -> list[MemberBalance]:
    """Rounded balances for the roster, in roster order."""
    balances = calculate_balances_with_settlements(expenses, settlements, members)

    unknown = set(balances) - {member.id for member in members}
    if unknown:
        logger.warning(f"Balances reference members outside the roster: {sorted(unknown)}")

    return [
        MemberBalance(
            member_id=member.id,
            member_name=member.name,
            balance=round_currency(balances[member.id]),
        )
        for member in members
    ]
