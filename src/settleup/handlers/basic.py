from __future__ import annotations

import asyncpg
from aiogram import Router, html
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from settleup.db.repo import GroupStore
from settleup.handlers.common import NO_SESSION_TEXT, owner_id
from settleup.exceptions import NoSessionError
from settleup.services.session import SessionRegistry
from settleup.utils.parse import split_args

basic_router = Router()

HELP_TEXT = (
    "<b>📖 Справка по командам</b>\n\n"
    "<b>Аккаунт:</b>\n"
    "/register [email] | [имя] - регистрация\n\n"
    "<b>Группы:</b>\n"
    "/newgroup [название] | [имя=email, ...] - создать группу\n"
    "/groups - список групп\n"
    "/use [id] - выбрать группу\n"
    "/addmember [имя] | [email] - добавить участника\n"
    "/removemember [имя или email] - удалить участника\n"
    "/delgroup - удалить выбранную группу\n\n"
    "<b>Расходы:</b>\n"
    "/addexpense [описание] | [сумма] | [кто платил] | [equal/exact/percentage/proportional] | [доли]\n"
    "/editexpense [id] | [описание] | [сумма] | [кто платил] | [способ] | [доли]\n"
    "/delexpense [id] - удалить расход\n"
    "/expenses - список расходов\n"
    "/pay [кто] | [кому] | [сумма] - записать платёж\n"
    "/balances - балансы\n"
    "/settle - кто кому сколько должен\n\n"
    "<b>Доли:</b> для equal — <i>alice, bob</i> (пусто — все), "
    "для остальных — <i>alice=20, bob=30</i>"
)


@basic_router.message(CommandStart())
async def cmd_start(message: Message, sessions: SessionRegistry) -> None:
    owner = owner_id(message)
    if owner is None:
        return
    user_name = message.from_user.first_name if message.from_user else "друг"

    try:
        session = await sessions.open(owner)
    except NoSessionError:
        await message.answer(
            f"👋 Привет, {html.quote(user_name)}!\n\n"
            "Я <b>SettleUp</b> — посчитаю общие расходы и подскажу, кто кому должен.\n\n"
            + NO_SESSION_TEXT
        )
        return

    await session.reload()
    await message.answer(
        f"👋 Привет, {html.quote(user_name)}!\n\n"
        f"Групп у тебя: {len(session.groups)}. Список: /groups, справка: /help"
    )


@basic_router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    """Команда /help"""
    await message.answer(HELP_TEXT)


@basic_router.message(Command("register"))
async def cmd_register(message: Message, store: GroupStore, sessions: SessionRegistry) -> None:
    owner = owner_id(message)
    if owner is None or not message.text:
        return
    args = split_args(message.text, "/register")
    if not args or "@" not in args[0]:
        await message.answer("Использование: /register <email> | <имя>")
        return

    email = args[0]
    name = args[1] if len(args) > 1 and args[1] else (message.from_user.full_name if message.from_user else email)
    try:
        await store.ensure_account(owner, email, name)
    except asyncpg.UniqueViolationError:
        await message.answer(f"Email {html.quote(email)} уже занят другим аккаунтом.")
        return
    session = await sessions.open(owner)
    await message.answer(f"✅ Готово, {html.quote(name)}! Групп у тебя: {len(session.groups)}. Создать: /newgroup")
