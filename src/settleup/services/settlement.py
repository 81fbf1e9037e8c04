from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping

from settleup.db.models import Group, Settlement
from settleup.services.split import CENT, calculate_balances, round_cents


@dataclass(slots=True)
class Transfer:
    from_member_id: str
    to_member_id: str
    amount: float


def plan_transfers(balances: Mapping[str, float]) -> List[Transfer]:
    creditors: list[tuple[str, float]] = []
    debtors: list[tuple[str, float]] = []

    for member_id, balance in balances.items():
        rounded = round_cents(balance)
        if rounded > CENT:
            creditors.append((member_id, rounded))
        elif rounded < -CENT:
            debtors.append((member_id, -rounded))

    # sort() стабилен: при равных суммах сохраняется исходный порядок
    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)

    transfers: list[Transfer] = []
    i, j = 0, 0

    while i < len(creditors) and j < len(debtors):
        cred_id, cred_amount = creditors[i]
        debt_id, debt_amount = debtors[j]

        settle_amount = min(cred_amount, debt_amount)
        rounded = round_cents(settle_amount)
        if rounded > CENT:
            transfers.append(Transfer(from_member_id=debt_id, to_member_id=cred_id, amount=rounded))

        cred_amount -= settle_amount
        debt_amount -= settle_amount
        creditors[i] = (cred_id, cred_amount)
        debtors[j] = (debt_id, debt_amount)

        if cred_amount < CENT:
            i += 1
        if debt_amount < CENT:
            j += 1

    return transfers


def simplify_debts(group: Group) -> List[Settlement]:
    members = {member.id: member for member in group.members}
    settlements: list[Settlement] = []

    for transfer in plan_transfers(calculate_balances(group)):
        from_member = members.get(transfer.from_member_id)
        to_member = members.get(transfer.to_member_id)
        # долги бывших участников в план не попадают
        if from_member is None or to_member is None:
            continue
        settlements.append(Settlement(from_member=from_member, to_member=to_member, amount=transfer.amount))

    return settlements
