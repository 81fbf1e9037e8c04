import pytest

from settleup.db.models import Group, Member
from settleup.services.replication import GroupReplicator


class StubStore:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.accounts = {"alice@example.com": "1", "bob@example.com": "2"}
        self.documents: dict[str, list[Group]] = {"1": [], "2": []}

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("store is down")

    async def fetch_groups(self, owner_id):
        self._check()
        return self.documents.get(owner_id)

    async def save_groups(self, owner_id, groups):
        self._check()
        self.documents[owner_id] = list(groups)

    async def exists_by_email(self, email):
        self._check()
        return email.strip().lower() in self.accounts

    async def sync_group_to_member(self, email, group):
        self._check()
        owner_id = self.accounts.get(email.strip().lower())
        if owner_id is None:
            return False
        groups = [g for g in self.documents[owner_id] if g.id != group.id]
        self.documents[owner_id] = groups + [group]
        return True

    async def sync_group_to_all_members(self, group):
        for member in group.members:
            await self.sync_group_to_member(member.email, group)


def group_with(*members: Member, name: str = "Trip") -> Group:
    return Group(id="g1", name=name, members=members)


ALICE = Member(id="a", name="Alice", email="alice@example.com")
BOB = Member(id="b", name="Bob", email="bob@example.com")


@pytest.mark.asyncio
async def test_fetch_absent_owner_returns_none():
    replicator = GroupReplicator(StubStore())
    assert await replicator.fetch("404") is None


@pytest.mark.asyncio
async def test_persist_and_fetch():
    store = StubStore()
    replicator = GroupReplicator(store)

    assert await replicator.persist("1", [group_with(ALICE)]) is True
    assert await replicator.fetch("1") == [group_with(ALICE)]


@pytest.mark.asyncio
async def test_failures_are_swallowed():
    replicator = GroupReplicator(StubStore(fail=True))

    assert await replicator.fetch("1") is None
    assert await replicator.persist("1", []) is False
    assert await replicator.member_exists("alice@example.com") is False
    assert await replicator.push_to_member("alice@example.com", group_with(ALICE)) is False
    await replicator.push_to_all_members(group_with(ALICE))


@pytest.mark.asyncio
async def test_push_to_member_without_account():
    replicator = GroupReplicator(StubStore())
    assert await replicator.push_to_member("nobody@example.com", group_with(ALICE)) is False


@pytest.mark.asyncio
async def test_push_to_all_members_overwrites_whole_group():
    store = StubStore()
    replicator = GroupReplicator(store)

    await replicator.push_to_all_members(group_with(ALICE, BOB, name="old"))
    await replicator.push_to_all_members(group_with(ALICE, BOB, name="new"))

    assert [g.name for g in store.documents["1"]] == ["new"]
    assert [g.name for g in store.documents["2"]] == ["new"]


@pytest.mark.asyncio
async def test_concurrent_edits_last_writer_wins():
    store = StubStore()
    replicator = GroupReplicator(store)

    # оба участника правят одну группу, вторая запись затирает первую целиком
    await replicator.push_to_all_members(group_with(ALICE, BOB, name="alice edit"))
    await replicator.push_to_all_members(group_with(ALICE, BOB, name="bob edit"))

    assert store.documents["1"] == store.documents["2"] == [group_with(ALICE, BOB, name="bob edit")]
