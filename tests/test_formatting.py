from dataclasses import replace

from settleup.services.formatting import (
    format_balances,
    format_currency,
    format_expenses,
    format_group_card,
    format_settlements,
)
from settleup.services.settlement import simplify_debts
from settleup.services.split import calculate_balances

from conftest import make_expense


def test_format_currency():
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(-5) == "-$5.00"
    assert format_currency(33.333) == "$33.33"


def test_format_balances_and_settlements(trio):
    group = replace(trio, expenses=(make_expense(90, "a"),))

    balances_text = format_balances(group, calculate_balances(group))
    settlements_text = format_settlements(simplify_debts(group))

    assert "Alice: должны ему $60.00" in balances_text
    assert "Bob: должен $30.00" in balances_text
    assert settlements_text.splitlines() == ["Bob → Alice: $30.00", "Carol → Alice: $30.00"]


def test_format_settled_group(trio):
    assert format_settlements([]) == "Все в расчёте 🎉"
    assert "Carol: в расчёте" in format_balances(trio, calculate_balances(trio))


def test_format_group_card(trio):
    card = format_group_card(replace(trio, expenses=(make_expense(90, "a"),)))
    assert "Trip" in card
    assert "Alice, Bob, Carol" in card
    assert "$90.00" in card


def test_user_text_is_html_escaped(trio):
    expense = replace(make_expense(10, "a"), description="<b>пицца</b> & пиво")
    group = replace(trio, name="Tom & <Jerry>", expenses=(expense,))

    assert "<b>Tom &amp; &lt;Jerry&gt;</b>" in format_group_card(group)
    assert "&lt;b&gt;пицца&lt;/b&gt; &amp; пиво" in format_expenses(group)
