"""Журнал мутаций: единственное место, где меняется коллекция групп.

``apply`` чистая и тотальная: на каждый интент возвращает новый снимок
состояния, старый снимок не трогает. Идентификаторы и метки времени
выдаются здесь, а не вызывающим кодом. Неизвестный интент, отсутствующая
группа или расход возвращают исходное состояние без изменений.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Optional, Sequence

from settleup.db.models import AppState, Expense, Group, Member, RecordedPayment, SplitDetail, SplitType

IdFactory = Callable[[], str]
Clock = Callable[[], int]


def generate_id() -> str:
    return uuid.uuid4().hex


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class NewMember:
    name: str
    email: str


@dataclass(frozen=True, slots=True)
class ExpenseDraft:
    description: str
    amount: float
    paid_by_id: str
    split_type: SplitType | str
    split_details: tuple[SplitDetail, ...] = ()


@dataclass(frozen=True, slots=True)
class AddGroup:
    name: str
    group_id: Optional[str] = None
    members: Sequence[NewMember] = ()


@dataclass(frozen=True, slots=True)
class DeleteGroup:
    group_id: str


@dataclass(frozen=True, slots=True)
class AddMember:
    group_id: str
    name: str
    email: str


@dataclass(frozen=True, slots=True)
class RemoveMember:
    group_id: str
    member_id: str


@dataclass(frozen=True, slots=True)
class AddExpense:
    group_id: str
    draft: ExpenseDraft


@dataclass(frozen=True, slots=True)
class UpdateExpense:
    group_id: str
    expense_id: str
    draft: ExpenseDraft


@dataclass(frozen=True, slots=True)
class DeleteExpense:
    group_id: str
    expense_id: str


@dataclass(frozen=True, slots=True)
class RecordPayment:
    group_id: str
    from_member_id: str
    to_member_id: str
    amount: float


def _update_group(state: AppState, group_id: str, change: Callable[[Group], Group]) -> AppState:
    if state.group(group_id) is None:
        return state
    return replace(state, groups=tuple(change(g) if g.id == group_id else g for g in state.groups))


def _add_group(state: AppState, intent: AddGroup, new_id: IdFactory, now: Clock) -> AppState:
    group = Group(
        id=intent.group_id or new_id(),
        name=intent.name,
        members=tuple(Member(id=new_id(), name=m.name, email=m.email) for m in intent.members),
        expenses=(),
        payments=(),
        created_at=now(),
    )
    return replace(state, groups=state.groups + (group,))


def _delete_group(state: AppState, intent: DeleteGroup, new_id: IdFactory, now: Clock) -> AppState:
    if state.group(intent.group_id) is None:
        return state
    return replace(state, groups=tuple(g for g in state.groups if g.id != intent.group_id))


def _add_member(state: AppState, intent: AddMember, new_id: IdFactory, now: Clock) -> AppState:
    member = Member(id=new_id(), name=intent.name, email=intent.email)
    return _update_group(state, intent.group_id, lambda g: replace(g, members=g.members + (member,)))


def _remove_member(state: AppState, intent: RemoveMember, new_id: IdFactory, now: Clock) -> AppState:
    # расходы с этим участником остаются как есть, ссылка просто повисает
    return _update_group(
        state,
        intent.group_id,
        lambda g: replace(g, members=tuple(m for m in g.members if m.id != intent.member_id)),
    )


def _expense_from_draft(draft: ExpenseDraft, expense_id: str, created_at: int) -> Expense:
    return Expense(
        id=expense_id,
        description=draft.description,
        amount=draft.amount,
        paid_by_id=draft.paid_by_id,
        split_type=draft.split_type,
        split_details=tuple(draft.split_details),
        created_at=created_at,
    )


def _add_expense(state: AppState, intent: AddExpense, new_id: IdFactory, now: Clock) -> AppState:
    if state.group(intent.group_id) is None:
        return state
    expense = _expense_from_draft(intent.draft, new_id(), now())
    return _update_group(state, intent.group_id, lambda g: replace(g, expenses=g.expenses + (expense,)))


def _update_expense(state: AppState, intent: UpdateExpense, new_id: IdFactory, now: Clock) -> AppState:
    group = state.group(intent.group_id)
    if group is None or group.expense(intent.expense_id) is None:
        return state

    def change(g: Group) -> Group:
        return replace(
            g,
            expenses=tuple(
                _expense_from_draft(intent.draft, e.id, e.created_at) if e.id == intent.expense_id else e
                for e in g.expenses
            ),
        )

    return _update_group(state, intent.group_id, change)


def _delete_expense(state: AppState, intent: DeleteExpense, new_id: IdFactory, now: Clock) -> AppState:
    group = state.group(intent.group_id)
    if group is None or group.expense(intent.expense_id) is None:
        return state
    return _update_group(
        state,
        intent.group_id,
        lambda g: replace(g, expenses=tuple(e for e in g.expenses if e.id != intent.expense_id)),
    )


def _record_payment(state: AppState, intent: RecordPayment, new_id: IdFactory, now: Clock) -> AppState:
    if state.group(intent.group_id) is None:
        return state
    payment = RecordedPayment(
        id=new_id(),
        from_member_id=intent.from_member_id,
        to_member_id=intent.to_member_id,
        amount=intent.amount,
        created_at=now(),
    )
    return _update_group(state, intent.group_id, lambda g: replace(g, payments=g.payments + (payment,)))


_HANDLERS = {
    AddGroup: _add_group,
    DeleteGroup: _delete_group,
    AddMember: _add_member,
    RemoveMember: _remove_member,
    AddExpense: _add_expense,
    UpdateExpense: _update_expense,
    DeleteExpense: _delete_expense,
    RecordPayment: _record_payment,
}


def apply(
    state: AppState,
    intent: object,
    *,
    new_id: IdFactory = generate_id,
    now: Clock = now_ms,
) -> AppState:
    handler = _HANDLERS.get(type(intent))
    if handler is None:
        return state
    return handler(state, intent, new_id, now)  # type: ignore[operator]
