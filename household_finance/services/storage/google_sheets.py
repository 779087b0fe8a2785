"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets lets the family see and fix their data
directly in a spreadsheet, without running a database.

TRADEOFFS:
- Not suitable for high-volume data (we're fine for a household)
- No transactions (each mutation is a single sheet operation)
- Limited query capabilities (we filter in Python)

Each entity lives in its own worksheet with a header row. Passwords are
stored as SHA-256 digests in the last column of the Users sheet and are
never copied onto User objects.
"""

import json
from datetime import date
from decimal import Decimal
from typing import Any, Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from household_finance.config import get_settings
from household_finance.config.settings import GoogleSheetsSettings
from household_finance.models.audit import AuditEvent, AuditEventType, AuditSeverity
from household_finance.models.expense import Budget, Expense, ExpenseCategory, ExpenseStatus
from household_finance.models.user import User, UserPlan, UserRole, normalize_cpf
from household_finance.services.storage.interface import (
    AuditStorageInterface,
    DuplicateIdentityError,
    FinanceStoreInterface,
    NotFoundError,
    StorageError,
    StoreUnavailableError,
)
from household_finance.services.storage.memory import (
    DEFAULT_BUDGET_LIMITS,
    avatar_for,
    hash_password,
)


USER_COLUMNS = [
    "id",
    "name",
    "email",
    "cpf",
    "avatar",
    "role",
    "plan",
    "password_hash",
]

EXPENSE_COLUMNS = [
    "id",
    "user_id",
    "amount",
    "description",
    "location",
    "category",
    "date",
    "status",
    "notes",
    "attachment_name",
    "attachment_data",
]

BUDGET_COLUMNS = [
    "category",
    "limit",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "actor_id",
    "entity_type",
    "entity_id",
    "description",
    "details_json",
    "error_message",
]

# Only transient backend failures are worth retrying
sheets_retry = retry(
    retry=retry_if_exception_type(StoreUnavailableError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and creates missing worksheets on first use.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StoreUnavailableError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreUnavailableError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StoreUnavailableError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        except gspread.exceptions.APIError as e:
            raise StoreUnavailableError(f"Failed to open worksheet {title}: {e}")
        return sheet

    def users_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.users_sheet_name, USER_COLUMNS)

    def expenses_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.expenses_sheet_name, EXPENSE_COLUMNS)

    def budgets_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.budgets_sheet_name, BUDGET_COLUMNS, rows=50)

    def audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


class GoogleSheetsFinanceStore(FinanceStoreInterface):
    """
    Google Sheets implementation of the finance store.

    One row per user, expense or budget. Lookups read the whole sheet and
    filter in Python.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    @staticmethod
    def _user_to_row(user: User, password_hash: str) -> list:
        return [
            user.id,
            user.name,
            user.email,
            user.cpf,
            user.avatar,
            user.role.value,
            user.plan.value,
            password_hash,
        ]

    @staticmethod
    def _row_to_user(row: list) -> User:
        return User(
            id=_safe_get(row, 0),
            name=_safe_get(row, 1),
            email=_safe_get(row, 2),
            cpf=_safe_get(row, 3),
            avatar=_safe_get(row, 4),
            role=UserRole(_safe_get(row, 5, UserRole.MEMBER.value)),
            plan=UserPlan(_safe_get(row, 6, UserPlan.FREE.value)),
        )

    @staticmethod
    def _expense_to_row(expense: Expense) -> list:
        return [
            expense.id,
            expense.user_id,
            str(expense.amount),
            expense.description,
            expense.location,
            expense.category.value,
            expense.date.isoformat(),
            expense.status.value,
            expense.notes or "",
            expense.attachment_name or "",
            expense.attachment_data or "",
        ]

    @staticmethod
    def _row_to_expense(row: list) -> Expense:
        return Expense(
            id=_safe_get(row, 0),
            user_id=_safe_get(row, 1),
            amount=Decimal(_safe_get(row, 2, "0")),
            description=_safe_get(row, 3),
            location=_safe_get(row, 4),
            category=ExpenseCategory(_safe_get(row, 5)),
            date=date.fromisoformat(_safe_get(row, 6)),
            status=ExpenseStatus(_safe_get(row, 7)),
            notes=_safe_get(row, 8) or None,
            attachment_name=_safe_get(row, 9) or None,
            attachment_data=_safe_get(row, 10) or None,
        )

    @staticmethod
    def _values(sheet: gspread.Worksheet) -> list[list]:
        try:
            return sheet.get_all_values()
        except gspread.exceptions.APIError as e:
            raise StoreUnavailableError(f"Failed to read sheet: {e}")

    @classmethod
    def _rows(cls, sheet: gspread.Worksheet) -> list[list]:
        """Data rows without the header, skipping blank rows."""
        return [row for row in cls._values(sheet)[1:] if row and row[0]]

    @classmethod
    def _find_row(cls, sheet: gspread.Worksheet, entity_id: str) -> Optional[tuple[int, list]]:
        """Return (sheet row number, row) for an id. Row 1 is the header."""
        for idx, row in enumerate(cls._values(sheet)[1:], start=2):
            if row and row[0] == entity_id:
                return idx, row
        return None

    # -------------------------------------------------------------------------
    # Store operations
    # -------------------------------------------------------------------------

    @sheets_retry
    async def initialize_storage(self) -> None:
        """Create missing sheets and seed default budgets on an empty sheet."""
        try:
            self._client.users_sheet()
            self._client.expenses_sheet()
            budgets = self._client.budgets_sheet()
            if not self._rows(budgets):
                for category, limit in DEFAULT_BUDGET_LIMITS.items():
                    budgets.append_row([category.value, str(limit)], value_input_option="RAW")
        except (StorageError, gspread.exceptions.APIError) as e:
            raise StoreUnavailableError(f"Failed to initialize storage: {e}")

    @sheets_retry
    async def authenticate_user(self, identifier: str, password: str) -> Optional[User]:
        identifier = identifier.strip()
        by_email = "@" in identifier
        needle = identifier.lower() if by_email else normalize_cpf(identifier)
        if not needle:
            return None

        digest = hash_password(password)
        for row in self._rows(self._client.users_sheet()):
            value = _safe_get(row, 2).lower() if by_email else _safe_get(row, 3)
            if value == needle:
                if _safe_get(row, 7) != digest:
                    return None
                return self._row_to_user(row)
        return None

    @sheets_retry
    async def register_user(self, name: str, email: str, cpf: str, password: str) -> User:
        sheet = self._client.users_sheet()
        existing = [self._row_to_user(row) for row in self._rows(sheet)]
        if any(u.email == email.strip().lower() for u in existing):
            raise DuplicateIdentityError(f"Email already registered: {email}")
        if any(u.cpf == normalize_cpf(cpf) for u in existing):
            raise DuplicateIdentityError("CPF already registered")

        user = User(
            id=uuid4().hex,
            name=name,
            email=email,
            cpf=cpf,
            avatar=avatar_for(name),
        )
        try:
            sheet.append_row(self._user_to_row(user, hash_password(password)), value_input_option="RAW")
        except gspread.exceptions.APIError as e:
            raise StoreUnavailableError(f"Failed to register user: {e}")
        return user

    @sheets_retry
    async def update_user(self, user_id: str, updates: dict[str, Any]) -> User:
        sheet = self._client.users_sheet()
        found = self._find_row(sheet, user_id)
        if found is None:
            raise NotFoundError(f"User not found: {user_id}")
        row_number, row = found

        updates = dict(updates)
        updates.pop("id", None)
        password = updates.pop("password", None)

        current = self._row_to_user(row)
        updated = User.model_validate({**current.model_dump(), **updates})

        for other in self._rows(sheet):
            if other[0] == user_id:
                continue
            other_user = self._row_to_user(other)
            if other_user.email == updated.email or other_user.cpf == updated.cpf:
                raise DuplicateIdentityError("Email or CPF already registered")

        password_hash = hash_password(password) if password else _safe_get(row, 7)
        try:
            sheet.update(
                range_name=f"A{row_number}",
                values=[self._user_to_row(updated, password_hash)],
                value_input_option="RAW",
            )
        except gspread.exceptions.APIError as e:
            raise StoreUnavailableError(f"Failed to update user: {e}")
        return updated

    @sheets_retry
    async def get_users(self) -> list[User]:
        return [self._row_to_user(row) for row in self._rows(self._client.users_sheet())]

    @sheets_retry
    async def get_expenses(self) -> list[Expense]:
        expenses = []
        for row in self._rows(self._client.expenses_sheet()):
            try:
                expenses.append(self._row_to_expense(row))
            except ValueError as e:
                raise StorageError(f"Malformed expense row {row[0]}: {e}")
        return expenses

    @sheets_retry
    async def get_budgets(self) -> list[Budget]:
        return [
            Budget(category=ExpenseCategory(row[0]), limit=Decimal(_safe_get(row, 1, "0")))
            for row in self._rows(self._client.budgets_sheet())
        ]

    @sheets_retry
    async def add_expense(self, expense: Expense) -> None:
        try:
            self._client.expenses_sheet().append_row(
                self._expense_to_row(expense),
                value_input_option="RAW",
            )
        except gspread.exceptions.APIError as e:
            raise StoreUnavailableError(f"Failed to save expense: {e}")

    @sheets_retry
    async def delete_expense(self, expense_id: str) -> None:
        sheet = self._client.expenses_sheet()
        found = self._find_row(sheet, expense_id)
        if found is None:
            return
        try:
            sheet.delete_rows(found[0])
        except gspread.exceptions.APIError as e:
            raise StoreUnavailableError(f"Failed to delete expense: {e}")

    @sheets_retry
    async def delete_all_expenses(self) -> None:
        sheet = self._client.expenses_sheet()
        try:
            sheet.clear()
            sheet.append_row(EXPENSE_COLUMNS)
        except gspread.exceptions.APIError as e:
            raise StoreUnavailableError(f"Failed to clear expenses: {e}")

    @sheets_retry
    async def update_expense(self, expense_id: str, updates: dict[str, Any]) -> Expense:
        sheet = self._client.expenses_sheet()
        found = self._find_row(sheet, expense_id)
        if found is None:
            raise NotFoundError(f"Expense not found: {expense_id}")
        row_number, row = found

        updates = dict(updates)
        updates.pop("id", None)
        current = self._row_to_expense(row)
        updated = Expense.model_validate({**current.model_dump(), **updates})
        try:
            sheet.update(
                range_name=f"A{row_number}",
                values=[self._expense_to_row(updated)],
                value_input_option="RAW",
            )
        except gspread.exceptions.APIError as e:
            raise StoreUnavailableError(f"Failed to update expense: {e}")
        return updated


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        return AuditEvent(
            event_id=_safe_get(row, 0),
            timestamp=_safe_get(row, 1),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            actor_id=_safe_get(row, 4) or None,
            entity_type=_safe_get(row, 5) or None,
            entity_id=_safe_get(row, 6) or None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Failures are reported, not raised."""
        try:
            self._client.audit_sheet().append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except (StorageError, gspread.exceptions.APIError):
            return False

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        try:
            rows = self._client.audit_sheet().get_all_values()[1:]
        except gspread.exceptions.APIError as e:
            raise StoreUnavailableError(f"Failed to read audit log: {e}")

        events = [self._row_to_event(row) for row in rows if row and row[0]]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
