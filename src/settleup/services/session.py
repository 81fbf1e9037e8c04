from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Protocol

from apscheduler.triggers.date import DateTrigger

from settleup.db.models import AppState, Group, Member, Settlement
from settleup.exceptions import GroupNotFoundError, MemberNotFoundError, NoSessionError
from settleup.logging import get_logger
from settleup.services import mutations
from settleup.services.mutations import ExpenseDraft, NewMember
from settleup.services.replication import GroupReplicator
from settleup.services.settlement import simplify_debts
from settleup.services.split import calculate_balances
from settleup.services.validation import validate_expense, validate_new_member, validate_payment


class Scheduler(Protocol):
    def add_job(self, func, trigger=None, **kwargs): ...

    def get_job(self, job_id, jobstore=None): ...

    def remove_job(self, job_id, jobstore=None) -> None: ...


class GroupSession:
    """Состояние групп одного участника.

    Все изменения идут через журнал мутаций. После каждого изменения
    перезапускается отложенная запись: пачка правок за окно debounce
    сохраняется и рассылается участникам одним циклом, по последнему
    состоянию. Если сессия закрыта раньше, чем таймер сработал, эти правки
    не сохраняются.
    """

    def __init__(
        self,
        owner_id: str,
        replicator: GroupReplicator,
        scheduler: Scheduler,
        *,
        debounce_seconds: float = 1.5,
        state: Optional[AppState] = None,
    ) -> None:
        self.owner_id = owner_id
        self.state = state or AppState()
        self._replicator = replicator
        self._scheduler = scheduler
        self._debounce = timedelta(seconds=debounce_seconds)
        self._log = get_logger(__name__).bind(owner=owner_id)

    @property
    def job_id(self) -> str:
        return f"sync:{self.owner_id}"

    @property
    def groups(self) -> tuple[Group, ...]:
        return self.state.groups

    def group(self, group_id: str) -> Group:
        group = self.state.group(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        return group

    async def load(self) -> bool:
        groups = await self._replicator.fetch(self.owner_id)
        if groups is None:
            return False
        self.state = AppState(groups=tuple(groups))
        self._log.info("session.loaded", groups=len(groups))
        return True

    @property
    def has_pending(self) -> bool:
        return self._scheduler.get_job(self.job_id) is not None

    async def reload(self) -> bool:
        # несохранённые локальные правки не затираем
        if self.has_pending:
            return False
        return await self.load()

    def dispatch(self, intent: object) -> AppState:
        new_state = mutations.apply(self.state, intent)
        if new_state is self.state:
            return new_state
        self.state = new_state
        self._schedule_flush()
        return new_state

    def _schedule_flush(self) -> None:
        run_date = datetime.now(timezone.utc) + self._debounce
        self._scheduler.add_job(
            self.flush,
            DateTrigger(run_date=run_date),
            id=self.job_id,
            replace_existing=True,
        )

    async def flush(self) -> None:
        state = self.state
        persisted = await self._replicator.persist(self.owner_id, state.groups)
        for group in state.groups:
            await self._replicator.push_to_all_members(group)
        self._log.info("session.flushed", groups=len(state.groups), persisted=persisted)

    def close(self) -> None:
        if self.has_pending:
            self._scheduler.remove_job(self.job_id)
            self._log.info("session.pending_dropped")

    def create_group(self, name: str, members: Iterable[NewMember] = ()) -> Group:
        group_id = mutations.generate_id()
        self.dispatch(mutations.AddGroup(name=name.strip(), group_id=group_id, members=tuple(members)))
        return self.group(group_id)

    def delete_group(self, group_id: str) -> None:
        self.group(group_id)
        self.dispatch(mutations.DeleteGroup(group_id=group_id))

    async def member_exists(self, email: str) -> bool:
        return await self._replicator.member_exists(email)

    async def add_member(self, group_id: str, name: str, email: str) -> Member:
        name, email = validate_new_member(self.group(group_id), name, email)
        if not await self.member_exists(email):
            raise MemberNotFoundError(email)

        # пока шла проверка, группу могли удалить
        self.group(group_id)
        self.dispatch(mutations.AddMember(group_id=group_id, name=name, email=email))
        group = self.group(group_id)
        member = group.members[-1]
        await self._replicator.push_to_member(email, group)
        return member

    def remove_member(self, group_id: str, member_id: str) -> None:
        self.group(group_id)
        self.dispatch(mutations.RemoveMember(group_id=group_id, member_id=member_id))

    def add_expense(self, group_id: str, draft: ExpenseDraft) -> None:
        draft = validate_expense(draft, self.group(group_id).members)
        self.dispatch(mutations.AddExpense(group_id=group_id, draft=draft))

    def update_expense(self, group_id: str, expense_id: str, draft: ExpenseDraft) -> None:
        draft = validate_expense(draft, self.group(group_id).members)
        self.dispatch(mutations.UpdateExpense(group_id=group_id, expense_id=expense_id, draft=draft))

    def delete_expense(self, group_id: str, expense_id: str) -> None:
        self.group(group_id)
        self.dispatch(mutations.DeleteExpense(group_id=group_id, expense_id=expense_id))

    def record_payment(self, group_id: str, from_member_id: str, to_member_id: str, amount: str | float) -> None:
        value = validate_payment(self.group(group_id), from_member_id, to_member_id, amount)
        self.dispatch(
            mutations.RecordPayment(
                group_id=group_id,
                from_member_id=from_member_id,
                to_member_id=to_member_id,
                amount=value,
            )
        )

    def balances(self, group_id: str) -> dict[str, float]:
        return calculate_balances(self.group(group_id))

    def settlements(self, group_id: str) -> list[Settlement]:
        return simplify_debts(self.group(group_id))


class SessionRegistry:
    def __init__(self, replicator: GroupReplicator, scheduler: Scheduler, *, debounce_seconds: float = 1.5) -> None:
        self._replicator = replicator
        self._scheduler = scheduler
        self._debounce_seconds = debounce_seconds
        self._sessions: dict[str, GroupSession] = {}
        self._selected: dict[str, str] = {}

    async def open(self, owner_id: str) -> GroupSession:
        session = self._sessions.get(owner_id)
        if session is not None:
            return session
        session = GroupSession(
            owner_id,
            self._replicator,
            self._scheduler,
            debounce_seconds=self._debounce_seconds,
        )
        if not await session.load():
            raise NoSessionError(f"Нет сохранённой сессии для {owner_id}")
        self._sessions[owner_id] = session
        return session

    def get(self, owner_id: str) -> GroupSession:
        session = self._sessions.get(owner_id)
        if session is None:
            raise NoSessionError(f"Нет открытой сессии для {owner_id}")
        return session

    def select_group(self, owner_id: str, group_id: str) -> None:
        self._selected[owner_id] = group_id

    def selected_group(self, owner_id: str) -> Optional[str]:
        return self._selected.get(owner_id)

    def clear_selected_group(self, owner_id: str) -> None:
        self._selected.pop(owner_id, None)

    def close(self, owner_id: str) -> None:
        session = self._sessions.pop(owner_id, None)
        self._selected.pop(owner_id, None)
        if session is not None:
            session.close()

    def close_all(self) -> None:
        for owner_id in list(self._sessions):
            self.close(owner_id)
