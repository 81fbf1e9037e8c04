from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Optional

import asyncpg

from settleup.db.models import Group, groups_from_json, groups_to_json
from settleup.logging import get_logger, sql_logger


def normalize_email(email: str) -> str:
    return email.strip().lower()


class Database:
    def __init__(self, dsn: str) -> None:
        self._dsn = dsn
        self._pool: asyncpg.Pool | None = None
        self._log = get_logger(__name__)

    async def connect(self) -> None:
        if self._pool is None:
            # asyncpg ожидает схему postgresql/postgres, без "+asyncpg"
            dsn = self._dsn.replace("+asyncpg", "")
            self._pool = await asyncpg.create_pool(dsn, init=_init_connection)
            self._log.info("db.pool.created")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            self._log.info("db.pool.closed")

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.fetch", query=query)
        return await self._pool.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.fetchrow", query=query)
        return await self._pool.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.fetchval", query=query)
        return await self._pool.fetchval(query, *args)

    async def execute(self, query: str, *args: Any) -> str:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.execute", query=query)
        return await self._pool.execute(query, *args)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        await self._ensure_pool()
        assert self._pool
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                sql_logger.info("sql.transaction")
                yield conn

    async def _ensure_pool(self) -> None:
        if self._pool is None:
            await self.connect()


async def _init_connection(conn: asyncpg.Connection) -> None:
    await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


def _merge_group(groups: list[Group], group: Group) -> list[Group]:
    for index, existing in enumerate(groups):
        if existing.id == group.id:
            # последняя запись побеждает: копия группы заменяется целиком
            return groups[:index] + [group] + groups[index + 1:]
    return groups + [group]


class GroupStore:
    """Документ групп каждого владельца в таблице ``user_groups``.

    Реализует RPC-поверхность синхронизации поверх PostgreSQL: проверку
    аккаунта по email и запись копии группы в документы других участников.
    """

    def __init__(self, db: Database) -> None:
        self.db = db
        self._log = get_logger(__name__)

    async def ensure_account(self, owner_id: str, email: str, name: Optional[str]) -> None:
        await self.db.execute(
            """
            INSERT INTO accounts (owner_id, email, name)
            VALUES ($1, $2, $3)
            ON CONFLICT (owner_id) DO UPDATE
                SET email = EXCLUDED.email,
                    name = EXCLUDED.name
            """,
            owner_id,
            normalize_email(email),
            name,
        )

    async def get_account(self, owner_id: str) -> asyncpg.Record | None:
        return await self.db.fetchrow("SELECT * FROM accounts WHERE owner_id = $1", owner_id)

    async def fetch_groups(self, owner_id: str) -> list[Group] | None:
        account = await self.db.fetchval("SELECT owner_id FROM accounts WHERE owner_id = $1", owner_id)
        if account is None:
            return None
        data = await self.db.fetchval("SELECT groups FROM user_groups WHERE owner_id = $1", owner_id)
        return groups_from_json(data)

    async def save_groups(self, owner_id: str, groups: Iterable[Group]) -> None:
        await self.db.execute(
            """
            INSERT INTO user_groups (owner_id, groups, updated_at)
            VALUES ($1, $2, now())
            ON CONFLICT (owner_id) DO UPDATE
                SET groups = EXCLUDED.groups,
                    updated_at = EXCLUDED.updated_at
            """,
            owner_id,
            groups_to_json(groups),
        )

    async def exists_by_email(self, email: str) -> bool:
        owner_id = await self.db.fetchval(
            "SELECT owner_id FROM accounts WHERE email = $1",
            normalize_email(email),
        )
        return owner_id is not None

    async def sync_group_to_member(self, email: str, group: Group) -> bool:
        async with self.db.transaction() as conn:
            owner_id = await conn.fetchval(
                "SELECT owner_id FROM accounts WHERE email = $1",
                normalize_email(email),
            )
            if owner_id is None:
                return False
            await self._write_group(conn, owner_id, group)
        self._log.info("store.sync_group", group_id=group.id, owner=owner_id)
        return True

    async def sync_group_to_all_members(self, group: Group) -> None:
        emails = sorted({normalize_email(m.email) for m in group.members if m.email})
        if not emails:
            return
        async with self.db.transaction() as conn:
            rows = await conn.fetch(
                "SELECT owner_id FROM accounts WHERE email = ANY($1::text[]) ORDER BY owner_id",
                emails,
            )
            for row in rows:
                await self._write_group(conn, row["owner_id"], group)
        self._log.info("store.sync_group_all", group_id=group.id, owners=len(rows))

    async def _write_group(self, conn: asyncpg.Connection, owner_id: str, group: Group) -> None:
        data = await conn.fetchval(
            "SELECT groups FROM user_groups WHERE owner_id = $1 FOR UPDATE",
            owner_id,
        )
        merged = _merge_group(groups_from_json(data), group)
        await conn.execute(
            """
            INSERT INTO user_groups (owner_id, groups, updated_at)
            VALUES ($1, $2, now())
            ON CONFLICT (owner_id) DO UPDATE
                SET groups = EXCLUDED.groups,
                    updated_at = EXCLUDED.updated_at
            """,
            owner_id,
            groups_to_json(merged),
        )
