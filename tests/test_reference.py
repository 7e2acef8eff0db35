import pytest

from cashflow.errors import ApiError, TransportError, ValidationError
from cashflow.importing import ImportViewModel
from cashflow.models import BankAccount, Currency, ImportSummary, Reminder, Tag
from cashflow.reference import BankAccountSettings, CurrencySettings, TagSettings
from cashflow.reminders import RemindersViewModel

from conftest import TODAY, FakeClient


def test_base_currency_rate_forced_to_one():
    client = FakeClient(create_currency=lambda c: c, list_currencies=[])
    settings = CurrencySettings(client)

    assert settings.create(Currency(code="eur", name="Euro", symbol="€", exchange_rate=4.2, is_base_currency=True))

    sent = client.called("create_currency")[0][1][0]
    assert sent.code == "EUR"
    assert sent.exchange_rate == 1.0


def test_non_base_currency_needs_positive_rate():
    client = FakeClient()
    with pytest.raises(ValidationError):
        CurrencySettings(client).create(Currency(code="USD", name="Dollar", symbol="$", exchange_rate=0))
    with pytest.raises(ValidationError):
        CurrencySettings(client).create(Currency(code="US", name="Dollar", symbol="$"))
    assert client.calls == []


def test_base_currency_is_not_rate_editable():
    currencies = [Currency(id="1", code="EUR", name="Euro", symbol="€", is_base_currency=True),
                  Currency(id="2", code="USD", name="Dollar", symbol="$", exchange_rate=1.1)]
    settings = CurrencySettings(FakeClient(list_currencies=currencies))
    settings.load()

    assert settings.base.code == "EUR"
    assert not settings.rate_editable(currencies[0])
    assert settings.rate_editable(currencies[1])


def test_set_base_reloads():
    client = FakeClient(list_currencies=[])
    assert CurrencySettings(client).set_base("2")
    assert [c[0] for c in client.calls] == ["set_base_currency", "list_currencies"]


@pytest.mark.parametrize(
    "settings_cls",
    [CurrencySettings, BankAccountSettings, TagSettings],
)
def test_deletes_require_confirmation(settings_cls):
    client = FakeClient()
    prompts = []

    def decline(prompt):
        prompts.append(prompt)
        return False

    assert settings_cls(client).delete("x", confirm=decline) is False
    assert client.calls == []
    assert prompts and prompts[0].startswith("Are you sure")


def test_failed_delete_reports_inline_error():
    client = FakeClient(delete_tag=ApiError("in use", 409))
    settings = TagSettings(client)

    assert settings.delete("t1", confirm=lambda prompt: True) is False
    assert settings.error == "Failed to delete tag"


def test_bank_account_and_tag_names_are_required():
    with pytest.raises(ValidationError):
        BankAccountSettings(FakeClient()).create(BankAccount(name=" ", currency="EUR"))
    with pytest.raises(ValidationError):
        TagSettings(FakeClient()).create(Tag(name=""))


def test_reminders_sorted_by_due_date():
    items = [
        Reminder("r2", "Rent", 1200, "EUR", TODAY, 5),
        Reminder("r1", "Gym", 30, "EUR", TODAY, 0),
    ]
    client = FakeClient(list_reminders=items)
    model = RemindersViewModel(client)

    assert model.load()
    assert [r.rule_id for r in model.reminders] == ["r1", "r2"]
    assert [r.rule_id for r in model.due_today()] == ["r1"]
    assert client.calls[0][1] == (30,)


def test_reminder_failure_is_inline():
    model = RemindersViewModel(FakeClient(list_reminders=TransportError("down")))
    assert model.load() is False
    assert model.error == "Failed to load reminders"


def test_import_rejects_non_csv(tmp_path):
    path = tmp_path / "statement.xlsx"
    path.write_bytes(b"data")
    client = FakeClient()

    with pytest.raises(ValidationError):
        ImportViewModel(client).upload(path)
    assert client.calls == []


def test_import_uploads_csv(tmp_path):
    path = tmp_path / "statement.csv"
    path.write_text("date,amount\n2026-10-18,10\n")
    summary = ImportSummary(total_processed=1, imported_count=1)
    client = FakeClient(import_csv=lambda name, handle: summary if handle.read() else None)

    model = ImportViewModel(client)
    assert model.upload(path) == summary
    assert client.calls[0][1][0] == "statement.csv"
    assert not model.uploading


def test_import_failure_is_inline(tmp_path):
    path = tmp_path / "statement.csv"
    path.write_text("x\n")
    model = ImportViewModel(FakeClient(import_csv=TransportError("down")))

    assert model.upload(path) is None
    assert model.error == "Failed to import file"
