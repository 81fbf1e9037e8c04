from __future__ import annotations

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from settleup.db.models import Expense, Group, Member, SplitDetail, SplitType

CENT = 0.01


def round_cents(value: float) -> float:
    quantized = Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return float(quantized)


def _equal(expense: Expense, members: Sequence[Member]) -> dict[str, float]:
    if expense.split_details:
        participants = [detail.member_id for detail in expense.split_details]
    else:
        participants = [member.id for member in members]
    if not participants:
        return {}

    per_person = expense.amount / len(participants)
    return {member_id: per_person for member_id in participants}


def _exact(expense: Expense, members: Sequence[Member]) -> dict[str, float]:
    return {detail.member_id: detail.value for detail in expense.split_details}


def _percentage(expense: Expense, members: Sequence[Member]) -> dict[str, float]:
    return {detail.member_id: detail.value / 100 * expense.amount for detail in expense.split_details}


def _proportional(expense: Expense, members: Sequence[Member]) -> dict[str, float]:
    total_weight = sum(detail.value for detail in expense.split_details)
    if total_weight <= 0:
        return {}
    return {
        detail.member_id: detail.value / total_weight * expense.amount
        for detail in expense.split_details
    }


_RESOLVERS = {
    SplitType.EQUAL: _equal,
    SplitType.EXACT: _exact,
    SplitType.PERCENTAGE: _percentage,
    SplitType.PROPORTIONAL: _proportional,
}


def resolve_shares(expense: Expense, members: Sequence[Member]) -> dict[str, float]:
    resolver = _RESOLVERS.get(expense.split_type)  # type: ignore[call-overload]
    if resolver is None:
        return {}
    return resolver(expense, members)


def calculate_balances(group: Group) -> dict[str, float]:
    balances: dict[str, float] = {member.id: 0.0 for member in group.members}

    for expense in group.expenses:
        balances[expense.paid_by_id] = balances.get(expense.paid_by_id, 0.0) + expense.amount
        for member_id, share in resolve_shares(expense, group.members).items():
            balances[member_id] = balances.get(member_id, 0.0) - share

    for payment in group.payments:
        balances[payment.from_member_id] = balances.get(payment.from_member_id, 0.0) + payment.amount
        balances[payment.to_member_id] = balances.get(payment.to_member_id, 0.0) - payment.amount

    return balances


def equal_split(members: Sequence[Member]) -> tuple[SplitDetail, ...]:
    return tuple(SplitDetail(member_id=m.id, value=1) for m in members)


def exact_split(members: Sequence[Member], amount: float) -> tuple[SplitDetail, ...]:
    if not members:
        return ()
    per_person = round_cents(amount / len(members))
    return tuple(SplitDetail(member_id=m.id, value=per_person) for m in members)


def percentage_split(members: Sequence[Member]) -> tuple[SplitDetail, ...]:
    if not members:
        return ()
    percent = math.floor(100 / len(members))
    remainder = 100 - percent * len(members)
    return tuple(
        SplitDetail(member_id=m.id, value=percent + remainder if i == 0 else percent)
        for i, m in enumerate(members)
    )


def proportional_split(members: Sequence[Member]) -> tuple[SplitDetail, ...]:
    return tuple(SplitDetail(member_id=m.id, value=1) for m in members)


def default_split(split_type: SplitType, members: Sequence[Member], amount: float = 0.0) -> tuple[SplitDetail, ...]:
    if split_type == SplitType.EXACT:
        return exact_split(members, amount)
    if split_type == SplitType.PERCENTAGE:
        return percentage_split(members)
    if split_type == SplitType.PROPORTIONAL:
        return proportional_split(members)
    return equal_split(members)
