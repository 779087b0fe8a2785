"""
Tests for the storage backends.

The Google Sheets store runs against MagicMock worksheets; no network.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import gspread
import pytest

from household_finance.config.settings import GoogleSheetsSettings
from household_finance.models.audit import AuditEventBuilder
from household_finance.models.expense import ExpenseCategory, ExpenseStatus
from household_finance.models.user import UserPlan, UserRole
from household_finance.services.storage import (
    DuplicateIdentityError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStore,
    InMemoryAuditStorage,
    InMemoryFinanceStore,
    NotFoundError,
    StorageError,
    StoreUnavailableError,
)
from household_finance.services.storage.google_sheets import (
    BUDGET_COLUMNS,
    EXPENSE_COLUMNS,
    USER_COLUMNS,
)
from household_finance.services.storage.memory import hash_password


class TestInMemoryStore:
    """Tests for InMemoryFinanceStore."""

    @pytest.mark.asyncio
    async def test_seeded_household(self):
        """The demo household has one user per role."""
        store = InMemoryFinanceStore()
        await store.initialize_storage()
        roles = {u.role for u in await store.get_users()}
        assert roles == {UserRole.SYSTEM_ADMIN, UserRole.ADMIN, UserRole.MEMBER}
        assert len(await store.get_budgets()) == len(ExpenseCategory)

    @pytest.mark.asyncio
    async def test_unseeded_store_is_empty(self):
        """seed=False starts with nothing."""
        store = InMemoryFinanceStore(seed=False)
        await store.initialize_storage()
        assert await store.get_users() == []
        assert await store.get_budgets() == []

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, store):
        """Re-initializing keeps what was written since."""
        await store.initialize_storage()
        await store.delete_all_expenses()
        await store.initialize_storage()
        assert await store.get_expenses() == []

    @pytest.mark.asyncio
    async def test_authenticate(self, store):
        """Email, CPF and wrong passwords."""
        await store.initialize_storage()
        assert (await store.authenticate_user("carlos@familia.com", "admin123")).id == "u1"
        assert (await store.authenticate_user("111.111.111-11", "admin123")).id == "u1"
        assert await store.authenticate_user("carlos@familia.com", "x") is None
        assert await store.authenticate_user("ninguem@x.com", "admin123") is None
        assert await store.authenticate_user("", "admin123") is None

    @pytest.mark.asyncio
    async def test_register_assigns_member_free(self, store):
        """New users are free MEMBERs with a fresh id and avatar."""
        await store.initialize_storage()
        user = await store.register_user("Bia Lima", "bia@x.com", "33333333333", "pw")
        assert user.role == UserRole.MEMBER
        assert user.plan == UserPlan.FREE
        assert user.id
        assert "Bia+Lima" in user.avatar

    @pytest.mark.asyncio
    async def test_update_user_keeps_id(self, store):
        """An id in the updates is ignored."""
        await store.initialize_storage()
        updated = await store.update_user("u2", {"id": "hacked", "plan": UserPlan.PREMIUM})
        assert updated.id == "u2"
        assert updated.is_premium

    @pytest.mark.asyncio
    async def test_update_missing_user(self, store):
        """Unknown users raise NotFoundError."""
        await store.initialize_storage()
        with pytest.raises(NotFoundError):
            await store.update_user("ghost", {"name": "X"})

    @pytest.mark.asyncio
    async def test_expenses_keep_insertion_order(self, store, sample_expenses):
        """get_expenses returns expenses in the order they were added."""
        await store.initialize_storage()
        assert [e.id for e in await store.get_expenses()] == [e.id for e in sample_expenses]

    @pytest.mark.asyncio
    async def test_audit_storage_newest_first(self):
        """Recent events come back newest first."""
        storage = InMemoryAuditStorage()
        await storage.append_event(AuditEventBuilder.logged_out("u1"))
        await storage.append_event(AuditEventBuilder.logged_out("u2"))
        events = await storage.get_recent_events(limit=1)
        assert [e.actor_id for e in events] == ["u2"]


def make_sheet(rows):
    sheet = MagicMock()
    sheet.get_all_values.return_value = rows
    return sheet


CARLOS_ROW = [
    "u1", "Carlos Silva", "carlos@familia.com", "11111111111", "",
    "ADMIN", "free", hash_password("admin123"),
]
ANA_ROW = [
    "u2", "Ana Silva", "ana@familia.com", "22222222222", "",
    "MEMBER", "free", hash_password("membro123"),
]
EXPENSE_ROW = [
    "1704067200000", "u1", "250.00", "Compra do mês", "Supermercado Central",
    "Mercado", "2024-01-05", "paid", "", "", "",
]


class TestGoogleSheetsStore:
    """Tests for GoogleSheetsFinanceStore with mocked worksheets."""

    @pytest.fixture
    def users_sheet(self):
        return make_sheet([USER_COLUMNS, CARLOS_ROW, ANA_ROW])

    @pytest.fixture
    def expenses_sheet(self):
        return make_sheet([EXPENSE_COLUMNS, EXPENSE_ROW])

    @pytest.fixture
    def client(self, users_sheet, expenses_sheet):
        client = MagicMock()
        client.users_sheet.return_value = users_sheet
        client.expenses_sheet.return_value = expenses_sheet
        client.budgets_sheet.return_value = make_sheet([BUDGET_COLUMNS, ["Lazer", "500.00"]])
        return client

    @pytest.fixture
    def sheets_store(self, client):
        return GoogleSheetsFinanceStore(client)

    @pytest.mark.asyncio
    async def test_get_users_hides_password(self, sheets_store):
        """Users are read without their password digest."""
        users = await sheets_store.get_users()
        assert [u.id for u in users] == ["u1", "u2"]
        assert "password" not in users[0].model_dump()
        assert users[0].role == UserRole.ADMIN

    @pytest.mark.asyncio
    async def test_authenticate(self, sheets_store):
        """Digest comparison against the password column."""
        assert (await sheets_store.authenticate_user("CARLOS@familia.com", "admin123")).id == "u1"
        assert (await sheets_store.authenticate_user("222.222.222-22", "membro123")).id == "u2"
        assert await sheets_store.authenticate_user("carlos@familia.com", "wrong") is None

    @pytest.mark.asyncio
    async def test_register_duplicate(self, sheets_store, users_sheet):
        """A taken email raises and nothing is written."""
        with pytest.raises(DuplicateIdentityError):
            await sheets_store.register_user("C", "carlos@familia.com", "99999999999", "pw")
        users_sheet.append_row.assert_not_called()

    @pytest.mark.asyncio
    async def test_register_appends_row(self, sheets_store, users_sheet):
        """A new user is appended with the hashed password."""
        user = await sheets_store.register_user("Bia", "bia@x.com", "33333333333", "pw")
        row = users_sheet.append_row.call_args[0][0]
        assert row[0] == user.id
        assert row[-1] == hash_password("pw")
        assert len(row) == len(USER_COLUMNS)

    @pytest.mark.asyncio
    async def test_update_user_writes_row(self, sheets_store, users_sheet):
        """The user's own row is overwritten in place."""
        updated = await sheets_store.update_user("u2", {"plan": UserPlan.PREMIUM})
        assert updated.is_premium
        kwargs = users_sheet.update.call_args.kwargs
        assert kwargs["range_name"] == "A3"
        assert kwargs["values"][0][6] == "premium"
        assert kwargs["values"][0][7] == hash_password("membro123")

    @pytest.mark.asyncio
    async def test_update_user_duplicate_email(self, sheets_store, users_sheet):
        """Taking another user's email raises."""
        with pytest.raises(DuplicateIdentityError):
            await sheets_store.update_user("u2", {"email": "carlos@familia.com"})
        users_sheet.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_missing_user(self, sheets_store):
        """Unknown user id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await sheets_store.update_user("ghost", {"name": "X"})

    @pytest.mark.asyncio
    async def test_get_expenses(self, sheets_store):
        """Rows become Expense models."""
        expenses = await sheets_store.get_expenses()
        assert len(expenses) == 1
        assert expenses[0].amount == Decimal("250.00")
        assert expenses[0].date == date(2024, 1, 5)
        assert expenses[0].status == ExpenseStatus.PAID
        assert expenses[0].notes is None

    @pytest.mark.asyncio
    async def test_malformed_expense_row(self, sheets_store, expenses_sheet):
        """A row that does not parse is a StorageError."""
        bad = list(EXPENSE_ROW)
        bad[5] = "Viagem"
        expenses_sheet.get_all_values.return_value = [EXPENSE_COLUMNS, bad]
        with pytest.raises(StorageError):
            await sheets_store.get_expenses()

    @pytest.mark.asyncio
    async def test_delete_expense(self, sheets_store, expenses_sheet):
        """The matching row is deleted; missing ids are ignored."""
        await sheets_store.delete_expense("1704067200000")
        expenses_sheet.delete_rows.assert_called_once_with(2)
        await sheets_store.delete_expense("nope")
        assert expenses_sheet.delete_rows.call_count == 1

    @pytest.mark.asyncio
    async def test_delete_all_keeps_header(self, sheets_store, expenses_sheet):
        """Clearing the sheet puts the header back."""
        await sheets_store.delete_all_expenses()
        expenses_sheet.clear.assert_called_once()
        expenses_sheet.append_row.assert_called_once_with(EXPENSE_COLUMNS)

    @pytest.mark.asyncio
    async def test_update_expense_status(self, sheets_store, expenses_sheet):
        """Only the status column changes."""
        updated = await sheets_store.update_expense("1704067200000", {"status": ExpenseStatus.PENDING})
        assert updated.status == ExpenseStatus.PENDING
        row = expenses_sheet.update.call_args.kwargs["values"][0]
        assert row[7] == "pending"
        assert row[2] == "250.00"

    @pytest.mark.asyncio
    async def test_get_budgets(self, sheets_store):
        """Budget rows become Budget models."""
        budgets = await sheets_store.get_budgets()
        assert budgets[0].category == ExpenseCategory.LAZER
        assert budgets[0].limit == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_initialize_seeds_empty_budgets(self, client):
        """An empty budgets sheet gets the default limits."""
        budgets = make_sheet([BUDGET_COLUMNS])
        client.budgets_sheet.return_value = budgets
        await GoogleSheetsFinanceStore(client).initialize_storage()
        assert budgets.append_row.call_count == len(ExpenseCategory)


class TestGoogleSheetsAudit:
    """Tests for GoogleSheetsAuditStorage."""

    @pytest.mark.asyncio
    async def test_append_and_read_back(self):
        """Appended rows parse back into events."""
        event = AuditEventBuilder.expense_added("u1", "123", "50.00", "u2")
        sheet = make_sheet([["header"], event.to_sheets_row()])
        client = MagicMock()
        client.audit_sheet.return_value = sheet

        storage = GoogleSheetsAuditStorage(client)
        assert await storage.append_event(event)
        events = await storage.get_recent_events()
        assert events[0].event_id == event.event_id
        assert events[0].details == {"amount": "50.00", "owner_id": "u2"}

    @pytest.mark.asyncio
    async def test_append_failure_returns_false(self):
        """A failed append is reported, not raised."""
        client = MagicMock()
        client.audit_sheet.side_effect = StoreUnavailableError("down")
        storage = GoogleSheetsAuditStorage(client)
        assert not await storage.append_event(AuditEventBuilder.logged_out("u1"))


class TestGoogleSheetsClient:
    """Tests for worksheet bootstrap."""

    @pytest.fixture
    def sheets_settings(self, tmp_path):
        credentials = tmp_path / "credentials.json"
        credentials.write_text("{}")
        return GoogleSheetsSettings(credentials_path=str(credentials), spreadsheet_id="sheet-id")

    def test_missing_worksheet_is_created(self, sheets_settings):
        """A missing worksheet is added with its header row."""
        spreadsheet = MagicMock()
        spreadsheet.worksheet.side_effect = gspread.WorksheetNotFound("Expenses")
        client = GoogleSheetsClient(sheets_settings)
        client._spreadsheet = spreadsheet

        sheet = client.expenses_sheet()
        spreadsheet.add_worksheet.assert_called_once_with(
            title="Expenses",
            rows=1000,
            cols=len(EXPENSE_COLUMNS),
        )
        sheet.append_row.assert_called_once_with(EXPENSE_COLUMNS)

    def test_bad_credentials_raise_unavailable(self, sheets_settings):
        """Unreadable credentials surface as StoreUnavailableError."""
        client = GoogleSheetsClient(sheets_settings)
        with pytest.raises(StoreUnavailableError):
            client.connect()
