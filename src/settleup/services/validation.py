from __future__ import annotations

import re
from dataclasses import replace
from typing import Sequence

from settleup.db.models import Group, Member, SplitType
from settleup.exceptions import DuplicateMemberError, ValidationError
from settleup.services.mutations import ExpenseDraft
from settleup.services.split import CENT, round_cents

_AMOUNT_RE = re.compile(r"^\d*\.?\d{0,2}$")


def validate_expense(draft: ExpenseDraft, members: Sequence[Member]) -> ExpenseDraft:
    if not draft.description.strip():
        raise ValidationError("Укажите описание расхода.")
    if draft.amount <= 0:
        raise ValidationError("Сумма должна быть больше нуля.")
    if not any(m.id == draft.paid_by_id for m in members):
        raise ValidationError("Плательщик должен быть участником группы.")

    total = sum(d.value for d in draft.split_details)
    if draft.split_type == SplitType.PERCENTAGE and abs(total - 100) >= CENT:
        raise ValidationError(f"Проценты должны давать 100%, сейчас {total:.1f}%.")
    if draft.split_type == SplitType.EXACT and abs(total - draft.amount) >= CENT:
        raise ValidationError(f"Суммы долей ({total:.2f}) не совпадают с суммой расхода ({draft.amount:.2f}).")

    details = tuple(d for d in draft.split_details if d.value > 0)
    if not details and not (draft.split_type == SplitType.EQUAL and not draft.split_details and members):
        raise ValidationError("Хотя бы один участник должен участвовать в расходе.")

    return replace(draft, description=draft.description.strip(), split_details=details)


def validate_payment(group: Group, from_member_id: str, to_member_id: str, amount: str | float) -> float:
    if len(group.members) < 2:
        raise ValidationError("Чтобы записать платёж, в группе должно быть хотя бы 2 участника.")
    if group.member(from_member_id) is None or group.member(to_member_id) is None:
        raise ValidationError("Оба участника платежа должны состоять в группе.")
    if from_member_id == to_member_id:
        raise ValidationError("Нельзя записать платёж самому себе.")

    text = amount if isinstance(amount, str) else repr(amount)
    if not _AMOUNT_RE.match(text.strip()):
        raise ValidationError("Сумма платежа: не больше двух знаков после точки.")
    try:
        value = float(text)
    except ValueError as exc:
        raise ValidationError("Некорректная сумма платежа.") from exc
    if value <= 0:
        raise ValidationError("Сумма платежа должна быть больше нуля.")
    return round_cents(value)


def validate_new_member(group: Group, name: str, email: str) -> tuple[str, str]:
    name = name.strip()
    email = email.strip()
    if not name or not email:
        raise ValidationError("Нужны имя и email участника.")
    if group.member_by_email(email) is not None:
        raise DuplicateMemberError(email)
    return name, email
