from datetime import timedelta

from cashflow.errors import TransportError, ValidationError
from cashflow.transactions import (
    LOAD_ERROR,
    DateRange,
    EmptyState,
    TransactionListViewModel,
    TypeFilter,
    amount_text,
    apply_pipeline,
)

from conftest import TODAY, FakeClient, expense, income

YESTERDAY = TODAY - timedelta(days=1)
TOMORROW = TODAY + timedelta(days=1)
NEXT_WEEK = TODAY + timedelta(days=7)


def sample():
    return [
        income("1", 4500, NEXT_WEEK, "Monthly Salary"),
        expense("2", 15.99, TOMORROW, "Netflix Subscription", is_recurring=True, frequency="MONTHLY"),
        expense("3", 1200, TODAY, "Apartment Rent"),
        expense("4", 30, YESTERDAY, "Groceries"),
    ]


def ids(rows):
    return [tx.id for tx in rows]


def test_pipeline_keeps_today_and_future_sorted():
    rows = apply_pipeline(sample(), TypeFilter.ALL, "", TODAY)

    assert ids(rows) == ["3", "2", "1"]
    assert all(tx.transaction_date >= TODAY for tx in rows)
    assert all(a.transaction_date <= b.transaction_date for a, b in zip(rows, rows[1:]))


def test_pipeline_search_matches_description_case_insensitively():
    assert ids(apply_pipeline(sample(), TypeFilter.ALL, "netflix", TODAY)) == ["2"]


def test_pipeline_search_matches_amount_text():
    assert ids(apply_pipeline(sample(), TypeFilter.ALL, "4500", TODAY)) == ["1"]
    assert ids(apply_pipeline(sample(), TypeFilter.ALL, "15.9", TODAY)) == ["2"]
    assert ids(apply_pipeline(sample(), TypeFilter.ALL, "30", TODAY)) == []


def test_pipeline_type_filter():
    assert ids(apply_pipeline(sample(), TypeFilter.INCOME, "", TODAY)) == ["1"]
    assert ids(apply_pipeline(sample(), TypeFilter.EXPENSE, "", TODAY)) == ["3", "2"]


def test_pipeline_is_idempotent():
    for type_filter in TypeFilter:
        for query in ("", "rent", "1", "SUB"):
            once = apply_pipeline(sample(), type_filter, query, TODAY)
            assert apply_pipeline(once, type_filter, query, TODAY) == once


def test_amount_text_matches_display():
    assert amount_text(4500.0) == "4500"
    assert amount_text(15.99) == "15.99"
    assert amount_text(0.00001) == "0.00001"
    assert amount_text(0) == "0"


def test_search_matches_tiny_amounts_without_exponent():
    rows = [expense("tiny", 0.00001, TOMORROW, "Rounding fee")]
    assert ids(apply_pipeline(rows, TypeFilter.ALL, "0.00001", TODAY)) == ["tiny"]


def test_full_fetch_without_complete_range(today):
    client = FakeClient(list_transactions=sample())
    model = TransactionListViewModel(client, today=today)

    model.set_date_range(DateRange(start=TODAY))

    assert client.calls == [("list_transactions", (), {})]
    assert ids(model.view().items) == ["3", "2", "1"]


def test_complete_range_uses_range_endpoint(today):
    client = FakeClient(list_transactions=sample())
    model = TransactionListViewModel(client, today=today)

    model.set_date_range(DateRange(TODAY, NEXT_WEEK))

    assert client.calls == [("list_transactions", (TODAY, NEXT_WEEK), {})]


def test_type_and_search_changes_do_not_refetch(today):
    client = FakeClient(list_transactions=sample())
    model = TransactionListViewModel(client, today=today)
    model.load()

    model.set_type_filter("EXPENSE")
    model.set_search("rent")

    assert len(client.calls) == 1
    assert ids(model.view().items) == ["3"]


def test_same_range_does_not_refetch(today):
    client = FakeClient(list_transactions=sample())
    model = TransactionListViewModel(client, today=today)
    model.set_date_range(DateRange(TODAY, NEXT_WEEK))
    model.set_date_range(DateRange(TODAY, NEXT_WEEK))

    assert len(client.called("list_transactions")) == 1


def test_empty_state_without_filters_invites_first_transaction(today):
    model = TransactionListViewModel(FakeClient(list_transactions=[]), today=today)
    model.load()

    view = model.view()
    assert view.items == ()
    assert view.empty_state is EmptyState.ADD_FIRST
    assert view.error is None


def test_empty_state_with_filters_suggests_adjusting(today):
    model = TransactionListViewModel(FakeClient(list_transactions=sample()), today=today)
    model.load()
    model.set_search("nothing matches this")

    assert model.view().empty_state is EmptyState.ADJUST_FILTERS


def test_fetch_failure_shows_error_without_empty_state(today):
    model = TransactionListViewModel(FakeClient(list_transactions=TransportError("down")), today=today)
    model.load()

    view = model.view()
    assert view.error == LOAD_ERROR
    assert view.empty_state is None
    assert view.items == ()


def test_delete_requires_confirmation(today):
    client = FakeClient(list_transactions=sample())
    model = TransactionListViewModel(client, today=today)

    assert model.delete("2", confirm=lambda prompt: False) is False
    assert client.called("delete_transaction") == []

    assert model.delete("2", confirm=lambda prompt: True) is True
    assert client.called("delete_transaction") == [("delete_transaction", ("2",), {})]
    assert len(client.called("list_transactions")) == 1


def test_add_refetches_instead_of_reloading(today):
    client = FakeClient(list_transactions=sample())
    model = TransactionListViewModel(client, today=today)
    new = expense(None, 12, TOMORROW, "Coffee")

    assert model.add(new)
    assert client.calls[0] == ("create_transaction", (new,), {})
    assert client.calls[1][0] == "list_transactions"


def test_failed_status_transition_sets_action_error(today):
    client = FakeClient(mark_paid=ValidationError("already paid"))
    model = TransactionListViewModel(client, today=today)

    assert model.mark_paid("2") is False
    assert "already paid" in model.action_error
    assert client.called("list_transactions") == []


def test_export_keeps_every_fetched_row(today):
    model = TransactionListViewModel(FakeClient(list_transactions=sample()), today=today)
    model.load()
    model.set_type_filter("INCOME")
    model.set_search("salary")

    lines = model.export_csv().splitlines()

    assert len(lines) == 1 + 4
    assert "Groceries" in lines[1]
    assert [line.split(",")[0] for line in lines[1:]] == sorted(line.split(",")[0] for line in lines[1:])
