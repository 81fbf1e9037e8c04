from settleup.db.models import AppState, SplitDetail, SplitType
from settleup.services import mutations
from settleup.services.mutations import (
    AddExpense,
    AddGroup,
    AddMember,
    DeleteExpense,
    DeleteGroup,
    ExpenseDraft,
    NewMember,
    RecordPayment,
    RemoveMember,
    UpdateExpense,
)


def clock():
    return 1000


def apply(state, intent, ids):
    return mutations.apply(state, intent, new_id=ids, now=clock)


def draft(description: str = "dinner", amount: float = 90) -> ExpenseDraft:
    return ExpenseDraft(
        description=description,
        amount=amount,
        paid_by_id="id2",
        split_type=SplitType.EQUAL,
        split_details=(SplitDetail(member_id="id2", value=1),),
    )


def seeded(ids) -> AppState:
    state = apply(AppState(), AddGroup(name="Trip", members=(NewMember("Alice", "alice@example.com"),)), ids)
    return state


def test_add_group_mints_ids_and_seeds_members(ids):
    state = seeded(ids)

    group = state.groups[0]
    assert group.id == "id1"
    assert group.members[0].id == "id2"
    assert group.members[0].email == "alice@example.com"
    assert group.expenses == ()
    assert group.payments == ()
    assert group.created_at == 1000


def test_add_group_keeps_caller_group_id(ids):
    state = apply(AppState(), AddGroup(name="Trip", group_id="chosen"), ids)
    assert state.groups[0].id == "chosen"


def test_apply_never_mutates_previous_snapshot(ids):
    before = seeded(ids)
    after = apply(before, AddMember(group_id="id1", name="Bob", email="bob@example.com"), ids)

    assert len(before.groups[0].members) == 1
    assert len(after.groups[0].members) == 2
    assert after.groups[0].members[1].id == "id3"


def test_remove_member_keeps_expenses(ids):
    state = apply(seeded(ids), AddExpense(group_id="id1", draft=draft()), ids)
    state = apply(state, RemoveMember(group_id="id1", member_id="id2"), ids)

    group = state.groups[0]
    assert group.members == ()
    assert group.expenses[0].paid_by_id == "id2"


def test_add_expense_sets_id_and_timestamp(ids):
    state = apply(seeded(ids), AddExpense(group_id="id1", draft=draft()), ids)

    expense = state.groups[0].expenses[0]
    assert expense.id == "id3"
    assert expense.created_at == 1000
    assert expense.description == "dinner"


def test_update_expense_is_idempotent(ids):
    state = apply(seeded(ids), AddExpense(group_id="id1", draft=draft()), ids)
    intent = UpdateExpense(group_id="id1", expense_id="id3", draft=draft("lunch", 40))

    once = apply(state, intent, ids)
    twice = apply(once, intent, ids)

    assert once.groups[0].expenses == twice.groups[0].expenses
    expense = twice.groups[0].expenses[0]
    assert (expense.id, expense.created_at, expense.description, expense.amount) == ("id3", 1000, "lunch", 40)


def test_update_missing_expense_is_noop(ids):
    state = seeded(ids)
    assert apply(state, UpdateExpense(group_id="id1", expense_id="nope", draft=draft()), ids) is state


def test_delete_expense(ids):
    state = apply(seeded(ids), AddExpense(group_id="id1", draft=draft()), ids)
    state = apply(state, DeleteExpense(group_id="id1", expense_id="id3"), ids)
    assert state.groups[0].expenses == ()


def test_record_payment_appends(ids):
    state = apply(seeded(ids), RecordPayment(group_id="id1", from_member_id="x", to_member_id="y", amount=5), ids)

    payment = state.groups[0].payments[0]
    assert (payment.id, payment.from_member_id, payment.to_member_id, payment.amount) == ("id3", "x", "y", 5)


def test_delete_group(ids):
    state = seeded(ids)
    assert apply(state, DeleteGroup(group_id="id1"), ids).groups == ()


def test_unknown_group_is_noop(ids):
    state = seeded(ids)
    assert apply(state, AddMember(group_id="missing", name="Bob", email="bob@example.com"), ids) is state
    assert apply(state, AddExpense(group_id="missing", draft=draft()), ids) is state


def test_unknown_intent_is_noop(ids):
    state = seeded(ids)
    assert apply(state, {"type": "RENAME_GROUP"}, ids) is state


def test_default_ids_are_unique():
    state = AppState()
    for _ in range(3):
        state = mutations.apply(state, AddGroup(name="g"))
    assert len({g.id for g in state.groups}) == 3
