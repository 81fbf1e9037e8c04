from __future__ import annotations

import itertools

import pytest

from settleup.db.models import Expense, Group, Member, RecordedPayment, SplitDetail, SplitType


@pytest.fixture
def alice() -> Member:
    return Member(id="a", name="Alice", email="alice@example.com")


@pytest.fixture
def bob() -> Member:
    return Member(id="b", name="Bob", email="bob@example.com")


@pytest.fixture
def carol() -> Member:
    return Member(id="c", name="Carol", email="carol@example.com")


@pytest.fixture
def trio(alice, bob, carol) -> Group:
    return Group(id="g1", name="Trip", members=(alice, bob, carol), created_at=1)


@pytest.fixture
def ids():
    counter = itertools.count(1)
    return lambda: f"id{next(counter)}"


def make_expense(
    amount: float,
    paid_by: str,
    split_type: SplitType = SplitType.EQUAL,
    details: tuple[tuple[str, float], ...] = (),
    expense_id: str = "e1",
) -> Expense:
    return Expense(
        id=expense_id,
        description="dinner",
        amount=amount,
        paid_by_id=paid_by,
        split_type=split_type,
        split_details=tuple(SplitDetail(member_id=m, value=v) for m, v in details),
        created_at=1,
    )


def make_payment(from_id: str, to_id: str, amount: float, payment_id: str = "p1") -> RecordedPayment:
    return RecordedPayment(id=payment_id, from_member_id=from_id, to_member_id=to_id, amount=amount, created_at=2)
