from __future__ import annotations

from aiogram import Router, html
from aiogram.filters import Command
from aiogram.types import Message

from settleup.db.repo import GroupStore
from settleup.exceptions import ValidationError
from settleup.handlers.common import current_group, find_group, open_session
from settleup.logging import get_logger
from settleup.services.formatting import format_group_card
from settleup.services.mutations import NewMember
from settleup.services.session import SessionRegistry
from settleup.utils.parse import find_member, split_args

groups_router = Router()
log = get_logger(__name__)


def _parse_members(value: str) -> list[NewMember]:
    members = []
    for chunk in value.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        if "=" not in chunk:
            raise ValueError(f"Ожидается имя=email, получено: {chunk}")
        name, email = (part.strip() for part in chunk.split("=", 1))
        members.append(NewMember(name=name, email=email))
    return members


@groups_router.message(Command("newgroup"))
async def cmd_newgroup(message: Message, store: GroupStore, sessions: SessionRegistry) -> None:
    if not message.text:
        return
    session = await open_session(message, sessions)
    if session is None:
        return
    args = split_args(message.text, "/newgroup")
    if not args or not args[0]:
        await message.answer("Использование: /newgroup <название> | <имя=email, ...>")
        return

    try:
        extra = _parse_members(args[1]) if len(args) > 1 else []
    except ValueError as exc:
        await message.answer(html.quote(str(exc)))
        return

    # создатель сразу становится участником группы
    account = await store.get_account(session.owner_id)
    members = []
    if account is not None:
        members.append(NewMember(name=account["name"] or account["email"], email=account["email"]))
    for member in extra:
        if not await session.member_exists(member.email):
            await message.answer(f"Пользователь с email {html.quote(member.email)} не зарегистрирован.")
            return
        members.append(member)

    group = session.create_group(args[0], members)
    sessions.select_group(session.owner_id, group.id)
    log.info("group.created", owner=session.owner_id, group_id=group.id)
    await message.answer("✅ Группа создана и выбрана\n\n" + format_group_card(group))


@groups_router.message(Command("groups"))
async def cmd_groups(message: Message, sessions: SessionRegistry) -> None:
    session = await open_session(message, sessions)
    if session is None:
        return
    await session.reload()
    if not session.groups:
        await message.answer("У тебя пока нет групп. Создай первую: /newgroup")
        return
    selected = sessions.selected_group(session.owner_id)
    cards = []
    for group in session.groups:
        marker = "👉 " if group.id == selected else ""
        cards.append(marker + format_group_card(group))
    await message.answer("\n\n".join(cards))


@groups_router.message(Command("use"))
async def cmd_use(message: Message, sessions: SessionRegistry) -> None:
    if not message.text:
        return
    session = await open_session(message, sessions)
    if session is None:
        return
    args = split_args(message.text, "/use")
    group = find_group(session, args[0]) if args else None
    if group is None:
        await message.answer("Группа не найдена. Список: /groups")
        return
    sessions.select_group(session.owner_id, group.id)
    await message.answer(format_group_card(group))


@groups_router.message(Command("addmember"))
async def cmd_addmember(message: Message, sessions: SessionRegistry) -> None:
    if not message.text:
        return
    session, group = await current_group(message, sessions)
    if session is None or group is None:
        return
    args = split_args(message.text, "/addmember")
    if len(args) < 2:
        await message.answer("Использование: /addmember <имя> | <email>")
        return

    try:
        member = await session.add_member(group.id, args[0], args[1])
    except ValidationError as exc:
        await message.answer(html.quote(exc.message))
        return
    await message.answer(f"✅ {html.quote(member.name)} добавлен в группу {html.quote(group.name)}")


@groups_router.message(Command("removemember"))
async def cmd_removemember(message: Message, sessions: SessionRegistry) -> None:
    if not message.text:
        return
    session, group = await current_group(message, sessions)
    if session is None or group is None:
        return
    args = split_args(message.text, "/removemember")
    if not args:
        await message.answer("Использование: /removemember <имя или email>")
        return
    try:
        member = find_member(group.members, args[0])
    except ValueError as exc:
        await message.answer(html.quote(str(exc)))
        return
    session.remove_member(group.id, member.id)
    await message.answer(f"Участник {html.quote(member.name)} удалён. Его прошлые расходы остаются в истории.")


@groups_router.message(Command("delgroup"))
async def cmd_delgroup(message: Message, sessions: SessionRegistry) -> None:
    session, group = await current_group(message, sessions)
    if session is None or group is None:
        return
    session.delete_group(group.id)
    sessions.clear_selected_group(session.owner_id)
    await message.answer(f"Группа {html.quote(group.name)} удалена.")
