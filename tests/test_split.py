from dataclasses import replace

import pytest

from settleup.db.models import Member, SplitType
from settleup.services.split import (
    calculate_balances,
    exact_split,
    percentage_split,
    resolve_shares,
    round_cents,
)

from conftest import make_expense, make_payment


def test_equal_split_uses_all_members_when_no_details(trio):
    shares = resolve_shares(make_expense(90, "a"), trio.members)
    assert shares == {"a": 30, "b": 30, "c": 30}


def test_equal_split_uses_declared_participants(trio):
    expense = make_expense(50, "a", details=(("a", 1), ("b", 1)))
    assert resolve_shares(expense, trio.members) == {"a": 25, "b": 25}


def test_equal_split_does_not_redistribute_cents(trio):
    shares = resolve_shares(make_expense(100, "a"), trio.members)
    assert [round_cents(v) for v in shares.values()] == [33.33, 33.33, 33.33]
    assert sum(shares.values()) == pytest.approx(100)


def test_equal_split_without_participants_assigns_nothing():
    assert resolve_shares(make_expense(100, "a"), ()) == {}


def test_exact_split_is_verbatim(trio):
    expense = make_expense(50, "c", SplitType.EXACT, (("a", 20), ("b", 30)))
    assert resolve_shares(expense, trio.members) == {"a": 20, "b": 30}


def test_percentage_split(trio):
    expense = make_expense(200, "a", SplitType.PERCENTAGE, (("a", 25), ("b", 75)))
    assert resolve_shares(expense, trio.members) == {"a": 50, "b": 150}


def test_proportional_split(trio):
    expense = make_expense(100, "c", SplitType.PROPORTIONAL, (("a", 1), ("b", 3)))
    assert resolve_shares(expense, trio.members) == {"a": 25, "b": 75}


def test_proportional_split_zero_weight(trio):
    expense = make_expense(100, "c", SplitType.PROPORTIONAL, (("a", 0), ("b", 0)))
    assert resolve_shares(expense, trio.members) == {}


def test_unknown_split_type_assigns_nothing(trio):
    expense = replace(make_expense(100, "a"), split_type="itemized")
    assert resolve_shares(expense, trio.members) == {}


def test_balances_scenario_equal(trio):
    group = replace(trio, expenses=(make_expense(90, "a"),))
    assert calculate_balances(group) == {"a": 60, "b": -30, "c": -30}


def test_balances_with_payment(trio):
    group = replace(trio, expenses=(make_expense(90, "a"),), payments=(make_payment("b", "a", 30),))
    assert calculate_balances(group) == {"a": 30, "b": 0, "c": -30}


def test_balances_exact_split(trio):
    group = replace(trio, expenses=(make_expense(50, "c", SplitType.EXACT, (("a", 20), ("b", 30))),))
    assert calculate_balances(group) == {"a": -20, "b": -30, "c": 50}


def test_balances_tolerate_removed_member(trio):
    expense = make_expense(90, "a", details=(("a", 1), ("b", 1), ("c", 1)))
    group = replace(trio, expenses=(expense,))
    without_carol = replace(group, members=group.members[:2])

    balances = calculate_balances(without_carol)

    assert balances == {"a": 60, "b": -30, "c": -30}
    assert sum(balances.values()) == pytest.approx(0)


def test_balances_self_payment_is_noop(trio):
    group = replace(trio, expenses=(make_expense(90, "a"),), payments=(make_payment("a", "a", 10),))
    assert calculate_balances(group) == {"a": 60, "b": -30, "c": -30}


def test_balances_sum_to_zero(trio):
    group = replace(
        trio,
        expenses=(
            make_expense(100, "a", expense_id="e1"),
            make_expense(33.33, "b", SplitType.PERCENTAGE, (("a", 10), ("c", 90)), expense_id="e2"),
            make_expense(17, "c", SplitType.PROPORTIONAL, (("a", 2), ("b", 5), ("c", 1)), expense_id="e3"),
        ),
        payments=(make_payment("c", "a", 12.5),),
    )
    assert sum(calculate_balances(group).values()) == pytest.approx(0)


def test_round_cents_half_up():
    assert round_cents(0.125) == 0.13
    assert round_cents(-2.675) == -2.68
    assert round_cents(33.333333) == 33.33


def test_default_splits():
    members = [Member(id=str(i), name=str(i), email=f"{i}@x") for i in range(3)]
    assert [d.value for d in percentage_split(members)] == [34, 33, 33]
    assert [d.value for d in exact_split(members, 100)] == [33.33, 33.33, 33.33]
    assert exact_split([], 100) == ()
