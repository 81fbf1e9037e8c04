from __future__ import annotations

from aiogram import Router, html
from aiogram.filters import Command
from aiogram.types import Message

from settleup.db.models import Group, SplitType
from settleup.exceptions import ValidationError
from settleup.handlers.common import current_group, find_expense
from settleup.services.formatting import (
    format_balances,
    format_currency,
    format_expenses,
    format_settlements,
)
from settleup.services.mutations import ExpenseDraft
from settleup.services.session import SessionRegistry
from settleup.services.split import default_split
from settleup.utils.parse import find_member, parse_amount, parse_split_details, parse_split_type, split_args

expenses_router = Router()

ADD_USAGE = "Использование: /addexpense <описание> | <сумма> | <кто платил> | <способ> | <доли>"
EDIT_USAGE = "Использование: /editexpense <id> | <описание> | <сумма> | <кто платил> | <способ> | <доли>"


def _build_draft(group: Group, args: list[str]) -> ExpenseDraft:
    if len(args) < 3:
        raise ValueError("Нужны описание, сумма и плательщик")
    description, raw_amount, payer = args[0], args[1], args[2]
    amount = parse_amount(raw_amount)
    paid_by = find_member(group.members, payer)
    split_type = parse_split_type(args[3]) if len(args) > 3 and args[3] else SplitType.EQUAL

    if len(args) > 4 and args[4]:
        details = parse_split_details(args[4], group.members, split_type)
    else:
        details = default_split(split_type, group.members, amount)

    return ExpenseDraft(
        description=description,
        amount=amount,
        paid_by_id=paid_by.id,
        split_type=split_type,
        split_details=details,
    )


@expenses_router.message(Command("addexpense"))
async def cmd_addexpense(message: Message, sessions: SessionRegistry) -> None:
    if not message.text:
        return
    session, group = await current_group(message, sessions)
    if session is None or group is None:
        return
    args = split_args(message.text, "/addexpense")
    if len(args) < 3:
        await message.answer(ADD_USAGE)
        return

    try:
        draft = _build_draft(group, args)
        session.add_expense(group.id, draft)
    except ValidationError as exc:
        await message.answer(html.quote(exc.message))
        return
    except ValueError as exc:
        await message.answer(html.quote(str(exc)))
        return
    await message.answer(f"✅ Расход «{html.quote(draft.description)}» на {format_currency(draft.amount)} добавлен")


@expenses_router.message(Command("editexpense"))
async def cmd_editexpense(message: Message, sessions: SessionRegistry) -> None:
    if not message.text:
        return
    session, group = await current_group(message, sessions)
    if session is None or group is None:
        return
    args = split_args(message.text, "/editexpense")
    if len(args) < 4:
        await message.answer(EDIT_USAGE)
        return

    expense = find_expense(group, args[0])
    if expense is None:
        await message.answer("Расход не найден. Список: /expenses")
        return
    try:
        draft = _build_draft(group, args[1:])
        session.update_expense(group.id, expense.id, draft)
    except ValidationError as exc:
        await message.answer(html.quote(exc.message))
        return
    except ValueError as exc:
        await message.answer(html.quote(str(exc)))
        return
    await message.answer(f"✅ Расход «{html.quote(draft.description)}» обновлён")


@expenses_router.message(Command("delexpense"))
async def cmd_delexpense(message: Message, sessions: SessionRegistry) -> None:
    if not message.text:
        return
    session, group = await current_group(message, sessions)
    if session is None or group is None:
        return
    args = split_args(message.text, "/delexpense")
    expense = find_expense(group, args[0]) if args else None
    if expense is None:
        await message.answer("Расход не найден. Список: /expenses")
        return
    session.delete_expense(group.id, expense.id)
    await message.answer(f"Расход «{html.quote(expense.description)}» удалён")


@expenses_router.message(Command("expenses"))
async def cmd_expenses(message: Message, sessions: SessionRegistry) -> None:
    session, group = await current_group(message, sessions)
    if session is None or group is None:
        return
    await message.answer(f"<b>{html.quote(group.name)}</b>\n\n" + format_expenses(group))


@expenses_router.message(Command("pay"))
async def cmd_pay(message: Message, sessions: SessionRegistry) -> None:
    if not message.text:
        return
    session, group = await current_group(message, sessions)
    if session is None or group is None:
        return
    args = split_args(message.text, "/pay")
    if len(args) < 3:
        await message.answer("Использование: /pay <кто платил> | <кому> | <сумма>")
        return

    try:
        payer = find_member(group.members, args[0])
        payee = find_member(group.members, args[1])
        session.record_payment(group.id, payer.id, payee.id, args[2])
    except ValidationError as exc:
        await message.answer(html.quote(exc.message))
        return
    except ValueError as exc:
        await message.answer(html.quote(str(exc)))
        return
    await message.answer(f"✅ Записан платёж {html.quote(payer.name)} → {html.quote(payee.name)}")


@expenses_router.message(Command("balances"))
async def cmd_balances(message: Message, sessions: SessionRegistry) -> None:
    session, group = await current_group(message, sessions)
    if session is None or group is None:
        return
    balances = session.balances(group.id)
    await message.answer(f"<b>Балансы — {html.quote(group.name)}</b>\n\n" + format_balances(group, balances))


@expenses_router.message(Command("settle"))
async def cmd_settle(message: Message, sessions: SessionRegistry) -> None:
    session, group = await current_group(message, sessions)
    if session is None or group is None:
        return
    settlements = session.settlements(group.id)
    await message.answer(f"<b>Расчёты — {html.quote(group.name)}</b>\n\n" + format_settlements(settlements))
