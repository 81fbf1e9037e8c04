from __future__ import annotations

import re
from typing import Sequence

from settleup.db.models import Member, SplitDetail, SplitType

SPLIT_ALIASES = {
    "equal": SplitType.EQUAL,
    "поровну": SplitType.EQUAL,
    "exact": SplitType.EXACT,
    "точно": SplitType.EXACT,
    "percentage": SplitType.PERCENTAGE,
    "percent": SplitType.PERCENTAGE,
    "%": SplitType.PERCENTAGE,
    "проценты": SplitType.PERCENTAGE,
    "proportional": SplitType.PROPORTIONAL,
    "weights": SplitType.PROPORTIONAL,
    "доли": SplitType.PROPORTIONAL,
}

_AMOUNT_RE = re.compile(r"^\$?\s*(\d+(?:[.,]\d{1,2})?)$")


def split_args(text: str, command: str) -> list[str]:
    """Аргументы команды вида ``/cmd a | b | c``."""
    body = text.strip()
    if body.startswith(command):
        body = body[len(command):]
    # /cmd@botname
    if body.startswith("@"):
        body = body.split(maxsplit=1)[1] if " " in body else ""
    if not body.strip():
        return []
    return [part.strip() for part in body.split("|")]


def parse_amount(value: str) -> float:
    match = _AMOUNT_RE.match(value.strip())
    if not match:
        raise ValueError("Ожидается сумма вида 12.50")
    amount = float(match.group(1).replace(",", "."))
    if amount <= 0:
        raise ValueError("Сумма должна быть больше нуля")
    return amount


def parse_split_type(value: str) -> SplitType:
    try:
        return SPLIT_ALIASES[value.strip().lower()]
    except KeyError as exc:
        raise ValueError("Способ деления: equal, exact, percentage или proportional") from exc


def find_member(members: Sequence[Member], query: str) -> Member:
    needle = query.strip().lower()
    for member in members:
        if member.id == query.strip() or member.email.lower() == needle:
            return member
    matches = [m for m in members if m.name.lower() == needle]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise ValueError(f"Несколько участников с именем {query}, укажите email")
    raise ValueError(f"Участник {query} не найден")


def parse_split_details(value: str, members: Sequence[Member], split_type: SplitType) -> tuple[SplitDetail, ...]:
    """
    Разбор долей участников.

    - для equal: ``alice, bob`` (пусто — все участники группы)
    - для остальных: ``alice=20, bob=30``
    """
    value = value.strip()
    if not value:
        return ()

    details: list[SplitDetail] = []
    for chunk in value.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        if split_type == SplitType.EQUAL:
            details.append(SplitDetail(member_id=find_member(members, chunk).id, value=1))
            continue
        if "=" not in chunk:
            raise ValueError(f"Ожидается имя=значение, получено: {chunk}")
        name, raw = chunk.split("=", 1)
        try:
            number = float(raw.strip().replace(",", "."))
        except ValueError as exc:
            raise ValueError(f"Некорректное значение для {name.strip()}") from exc
        details.append(SplitDetail(member_id=find_member(members, name).id, value=number))
    return tuple(details)
