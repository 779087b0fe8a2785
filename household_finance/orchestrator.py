"""
Main Orchestrator for Household Finance

This module ties the components together:
1. Session Manager (who is signed in)
2. View Router (what screen and tab is active)
3. Expense Gateway (changes to household data)
4. Notification Signal (what the user is told)

DESIGN DECISION: One orchestrator instance owns all state for the life
of the process. The UI only reads ``state`` and calls the intent methods
below; it never talks to the store itself.
"""

from typing import Optional, Union

from household_finance.audit import AuditLogger
from household_finance.config import AppSettings, get_settings
from household_finance.gateway import ConfirmCallback, ExpenseGateway
from household_finance.models.expense import Budget, Expense, ExpenseStatus, NewExpense
from household_finance.models.user import ProfileUpdate, User
from household_finance.models.view import Tab, ViewState
from household_finance.notifications import NotificationSignal
from household_finance.routing import NavigationAction, NavigationIntent
from household_finance.services.checkout import CheckoutService, SimulatedCheckout
from household_finance.services.storage import (
    AuditStorageInterface,
    FinanceStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStore,
    InMemoryAuditStorage,
    InMemoryFinanceStore,
    StorageError,
)
from household_finance.session import SessionManager
from household_finance.state import (
    OrchestratorState,
    StateContainer,
    cache_loaded,
    checkout_succeeded,
    navigated,
    users_refreshed,
)


class HouseholdOrchestrator:
    """
    Session and domain-state orchestrator.

    Flow:
    1. initialize() -> bootstrap the store, load the cache
    2. go_to_login() / login() / register() -> session + dashboard
    3. select_tab() / expense intents -> store, cache refresh, notification
    4. start_checkout() / run_checkout() -> premium plan
    5. logout() -> back to the landing page
    """

    def __init__(
        self,
        store: FinanceStoreInterface,
        settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        confirm: Optional[ConfirmCallback] = None,
        notifications: Optional[NotificationSignal] = None,
    ):
        self._store = store
        self._settings = settings or get_settings().app
        self._audit = audit_logger or AuditLogger()
        self._notifications = notifications or NotificationSignal(
            ttl_seconds=self._settings.notification_ttl_seconds,
        )
        self._container = StateContainer(self._notifications)
        self.session = SessionManager(store, self._container, self._audit, self._settings)
        self.expenses = ExpenseGateway(
            store,
            self._container,
            self.session,
            self._audit,
            confirm=confirm,
        )
        self._initialized = False

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @property
    def state(self) -> OrchestratorState:
        return self._container.state

    @property
    def view(self) -> ViewState:
        return self._container.state.view

    @property
    def current_user(self) -> Optional[User]:
        return self._container.state.current_user

    @property
    def notification(self) -> Optional[str]:
        return self._notifications.message

    @property
    def users(self) -> tuple[User, ...]:
        return self._container.state.users

    @property
    def expense_list(self) -> tuple[Expense, ...]:
        return self._container.state.expenses

    @property
    def budgets(self) -> tuple[Budget, ...]:
        return self._container.state.budgets

    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """Bootstrap the store once and load users, expenses and budgets."""
        if self._initialized:
            return

        try:
            await self._store.initialize_storage()
            users = await self._store.get_users()
            expenses = await self._store.get_expenses()
            budgets = await self._store.get_budgets()
        except StorageError as e:
            await self._audit.log_store_error("initialize_storage", str(e))
            raise

        self._container.apply(cache_loaded(self.state, users, expenses, budgets))
        self._initialized = True
        await self._audit.log_storage_initialized(len(users), len(expenses), len(budgets))

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def navigate(self, intent: NavigationIntent) -> ViewState:
        return self._container.apply(navigated(self.state, intent)).view

    def go_to_login(self) -> ViewState:
        return self.navigate(NavigationIntent(action=NavigationAction.GO_TO_LOGIN))

    def back_to_landing(self) -> ViewState:
        return self.navigate(NavigationIntent(action=NavigationAction.BACK))

    def select_tab(self, tab: Union[Tab, str]) -> ViewState:
        return self.navigate(NavigationIntent.select(Tab(tab)))

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    async def login(self, identifier: str, password: str, require_admin: bool = False) -> bool:
        return await self.session.login(identifier, password, require_admin)

    async def register(self, name: str, email: str, cpf: str, password: str) -> bool:
        return await self.session.register(name, email, cpf, password)

    async def update_profile(self, updates: Union[ProfileUpdate, dict]) -> User:
        return await self.session.update_profile(updates)

    async def logout(self) -> None:
        await self.session.logout()

    # -------------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------------

    async def start_checkout(self) -> ViewState:
        """Open the checkout screen. Needs a signed-in user."""
        user = self.session.require_user()
        view = self.navigate(NavigationIntent(action=NavigationAction.START_CHECKOUT))
        await self._audit.log_checkout_started(user.id)
        return view

    async def complete_checkout(self, updated_user: User, epoch: Optional[int] = None) -> bool:
        """
        Payment confirmed: adopt the upgraded user and go back to the dashboard.

        Args:
            updated_user: The user returned by the checkout service
            epoch: Session epoch from when checkout started; defaults to now

        Returns:
            False if the session changed meanwhile. The users cache is
            refreshed either way, the session only when it still belongs
            to ``updated_user``.
        """
        if epoch is None:
            epoch = self.session.epoch
        try:
            users = await self._store.get_users()
        except StorageError as e:
            await self._audit.log_store_error("get_users", str(e), updated_user.id)
            raise
        await self._audit.log_subscription_activated(updated_user.id)
        if not self.session.owns_session(epoch, updated_user.id):
            self._container.apply(users_refreshed(self.state, users))
            return False

        self._container.apply(checkout_succeeded(self.state, updated_user, users))
        return True

    async def cancel_checkout(self) -> ViewState:
        view = self.navigate(NavigationIntent(action=NavigationAction.CHECKOUT_CANCELLED))
        await self._audit.log_checkout_cancelled(self.current_user.id if self.current_user else None)
        return view

    async def run_checkout(self, service: CheckoutService) -> bool:
        """
        Hand the signed-in user to a checkout service.

        Returns:
            True if the plan was upgraded for the signed-in user, False if
            checkout was cancelled or the user signed out meanwhile
        """
        user = self.session.require_user()
        epoch = self.session.epoch
        try:
            updated = await service.checkout(user)
        except StorageError as e:
            await self._audit.log_store_error("checkout", str(e), user.id)
            raise
        if updated is None:
            await self.cancel_checkout()
            return False
        return await self.complete_checkout(updated, epoch)

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def add_expense(self, data: NewExpense) -> Expense:
        return await self.expenses.add_expense(data)

    async def delete_expense(self, expense_id: str, confirm: Optional[ConfirmCallback] = None) -> bool:
        return await self.expenses.delete_expense(expense_id, confirm)

    async def delete_all_expenses(self) -> None:
        await self.expenses.delete_all_expenses()

    async def update_status(self, expense_id: str, status: Union[ExpenseStatus, str]) -> None:
        await self.expenses.update_status(expense_id, status)


def create_storage(
    settings: Optional[AppSettings] = None,
) -> tuple[FinanceStoreInterface, AuditStorageInterface]:
    """
    Build the store and audit storage picked by ``settings.storage_backend``.

    These are process-wide: every visitor reads and writes the same
    household data.
    """
    settings = settings or get_settings().app

    if settings.storage_backend == "google_sheets":
        sheets_client = GoogleSheetsClient()
        return GoogleSheetsFinanceStore(sheets_client), GoogleSheetsAuditStorage(sheets_client)
    return InMemoryFinanceStore(seed=settings.seed_demo_data), InMemoryAuditStorage()


def create_app_components(
    settings: Optional[AppSettings] = None,
    confirm: Optional[ConfirmCallback] = None,
    storage: Optional[tuple[FinanceStoreInterface, AuditStorageInterface]] = None,
) -> tuple[HouseholdOrchestrator, CheckoutService]:
    """
    Factory function to create all application components.

    One orchestrator per visitor: it holds that visitor's session, view
    and notification. Pass ``storage`` from ``create_storage`` to share
    the backend between orchestrators.

    Returns:
        (orchestrator, checkout_service)
    """
    settings = settings or get_settings().app
    store, audit_storage = storage or create_storage(settings)

    orchestrator = HouseholdOrchestrator(
        store=store,
        settings=settings,
        audit_logger=AuditLogger(audit_storage),
        confirm=confirm,
    )
    return orchestrator, SimulatedCheckout(store)
