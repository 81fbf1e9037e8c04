"""Синхронизация копий групп между участниками.

Модель простая: последняя запись побеждает на уровне всей группы. Каждый
push целиком перезаписывает копию группы с тем же id у получателя, без
версий и слияния полей. Если два участника правят одну группу почти
одновременно, одна из правок молча теряется.

Сетевые ошибки и ошибки хранилища логируются и не пробрасываются:
локальное состояние остаётся рабочим до следующего успешного цикла.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

import asyncpg

from settleup.db.models import Group
from settleup.logging import get_logger

TRANSIENT_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class GroupStoreProtocol(Protocol):
    async def fetch_groups(self, owner_id: str) -> Optional[list[Group]]: ...

    async def save_groups(self, owner_id: str, groups: Iterable[Group]) -> None: ...

    async def exists_by_email(self, email: str) -> bool: ...

    async def sync_group_to_member(self, email: str, group: Group) -> bool: ...

    async def sync_group_to_all_members(self, group: Group) -> None: ...


class GroupReplicator:
    def __init__(self, store: GroupStoreProtocol) -> None:
        self._store = store
        self._log = get_logger(__name__)

    async def fetch(self, owner_id: str) -> Optional[list[Group]]:
        try:
            groups = await self._store.fetch_groups(owner_id)
        except TRANSIENT_ERRORS:
            self._log.exception("replication.fetch.failed", owner=owner_id)
            return None
        if groups is None:
            self._log.info("replication.fetch.no_session", owner=owner_id)
        return groups

    async def persist(self, owner_id: str, groups: Iterable[Group]) -> bool:
        groups = list(groups)
        try:
            await self._store.save_groups(owner_id, groups)
        except TRANSIENT_ERRORS:
            self._log.exception("replication.persist.failed", owner=owner_id)
            return False
        self._log.info("replication.persist", owner=owner_id, groups=len(groups))
        return True

    async def member_exists(self, email: str) -> bool:
        try:
            return await self._store.exists_by_email(email)
        except TRANSIENT_ERRORS:
            self._log.exception("replication.member_exists.failed", email=email)
            return False

    async def push_to_member(self, email: str, group: Group) -> bool:
        try:
            synced = await self._store.sync_group_to_member(email, group)
        except TRANSIENT_ERRORS:
            self._log.exception("replication.push.failed", email=email, group_id=group.id)
            return False
        if not synced:
            self._log.warning("replication.push.no_account", email=email, group_id=group.id)
        return synced

    async def push_to_all_members(self, group: Group) -> None:
        if not group.members:
            return
        try:
            await self._store.sync_group_to_all_members(group)
        except TRANSIENT_ERRORS:
            self._log.exception("replication.push_all.failed", group_id=group.id)
