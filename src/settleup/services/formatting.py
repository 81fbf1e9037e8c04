from __future__ import annotations

from typing import Iterable, Mapping

from aiogram import html

from settleup.db.models import Group, Settlement, SplitType
from settleup.services.split import CENT, round_cents

SPLIT_LABELS = {
    SplitType.EQUAL: "поровну",
    SplitType.EXACT: "точные суммы",
    SplitType.PERCENTAGE: "проценты",
    SplitType.PROPORTIONAL: "пропорционально",
}


def format_currency(amount: float) -> str:
    rounded = round_cents(amount)
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,.2f}"


def humanize_split(split_type: SplitType | str) -> str:
    return SPLIT_LABELS.get(split_type, str(split_type))  # type: ignore[call-overload]


def format_group_card(group: Group) -> str:
    lines = [f"<b>{html.quote(group.name)}</b>", f"id: <code>{group.id}</code>"]
    if group.members:
        lines.append("Участники: " + ", ".join(html.quote(m.name) for m in group.members))
    else:
        lines.append("Участников пока нет")
    total = sum(e.amount for e in group.expenses)
    lines.append(f"Расходов: {len(group.expenses)} на {format_currency(total)}")
    return "\n".join(lines)


def format_expenses(group: Group) -> str:
    if not group.expenses:
        return "Расходов пока нет."
    lines = []
    for expense in group.expenses:
        payer = group.member(expense.paid_by_id)
        payer_name = html.quote(payer.name) if payer else "бывший участник"
        lines.append(
            f"• <code>{expense.id[:8]}</code> {html.quote(expense.description)}: {format_currency(expense.amount)}"
            f" — платил {payer_name}, {humanize_split(expense.split_type)}"
        )
    return "\n".join(lines)


def format_balances(group: Group, balances: Mapping[str, float]) -> str:
    lines = []
    for member in group.members:
        balance = round_cents(balances.get(member.id, 0.0))
        if balance > CENT:
            lines.append(f"{html.quote(member.name)}: должны ему {format_currency(balance)}")
        elif balance < -CENT:
            lines.append(f"{html.quote(member.name)}: должен {format_currency(-balance)}")
        else:
            lines.append(f"{html.quote(member.name)}: в расчёте")
    return "\n".join(lines) if lines else "В группе нет участников."


def format_settlements(settlements: Iterable[Settlement]) -> str:
    lines = [
        f"{html.quote(s.from_member.name)} → {html.quote(s.to_member.name)}: {format_currency(s.amount)}"
        for s in settlements
    ]
    return "\n".join(lines) if lines else "Все в расчёте 🎉"
