from __future__ import annotations

from typing import Optional

from aiogram.types import Message

from settleup.db.models import Expense, Group
from settleup.exceptions import NoSessionError
from settleup.services.session import GroupSession, SessionRegistry

NO_SESSION_TEXT = "Сначала зарегистрируйся: /register <email> | <имя>"
NO_GROUP_TEXT = "Сначала выбери группу: /groups, затем /use <id>"


def owner_id(message: Message) -> Optional[str]:
    if not message.from_user:
        return None
    return str(message.from_user.id)


async def open_session(message: Message, sessions: SessionRegistry) -> Optional[GroupSession]:
    owner = owner_id(message)
    if owner is None:
        return None
    try:
        return await sessions.open(owner)
    except NoSessionError:
        await message.answer(NO_SESSION_TEXT)
        return None


async def current_group(
    message: Message, sessions: SessionRegistry
) -> tuple[Optional[GroupSession], Optional[Group]]:
    session = await open_session(message, sessions)
    if session is None:
        return None, None
    group_id = sessions.selected_group(session.owner_id)
    group = session.state.group(group_id) if group_id else None
    if group is None:
        await message.answer(NO_GROUP_TEXT)
        return session, None
    return session, group


def find_group(session: GroupSession, prefix: str) -> Optional[Group]:
    prefix = prefix.strip()
    if not prefix:
        return None
    matches = [g for g in session.groups if g.id.startswith(prefix) or g.name == prefix]
    return matches[0] if len(matches) == 1 else None


def find_expense(group: Group, prefix: str) -> Optional[Expense]:
    prefix = prefix.strip()
    if not prefix:
        return None
    matches = [e for e in group.expenses if e.id.startswith(prefix)]
    return matches[0] if len(matches) == 1 else None
