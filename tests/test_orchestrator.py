"""
Tests for the orchestrator facade: startup, navigation, checkout and the
pure state transitions behind it.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from household_finance.config import AppSettings
from household_finance.exceptions import NoActiveSessionError
from household_finance.models.expense import ExpenseCategory, NewExpense
from household_finance.models.user import UserPlan
from household_finance.models.view import Screen, Tab, ViewState
from household_finance.notifications import NotificationSignal
from household_finance.orchestrator import HouseholdOrchestrator, create_app_components, create_storage
from household_finance.services.checkout import SimulatedCheckout
from household_finance.services.storage import InMemoryFinanceStore, StoreUnavailableError
from household_finance.state import (
    PREMIUM_MESSAGE,
    ClearNotification,
    OrchestratorState,
    ShowNotification,
    StateContainer,
    expenses_cleared,
    logged_in,
    logged_out,
)


class BrokenStore(InMemoryFinanceStore):
    async def initialize_storage(self):
        raise StoreUnavailableError("no backend")


class TestInitialize:
    """Tests for startup."""

    @pytest.mark.asyncio
    async def test_cache_loaded(self, orchestrator):
        """Users, expenses and budgets are loaded on startup."""
        assert {u.id for u in orchestrator.users} == {"sys-1", "u1", "u2"}
        assert len(orchestrator.expense_list) == 2
        assert len(orchestrator.budgets) == 8
        assert orchestrator.view == ViewState.landing()
        assert orchestrator.current_user is None

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, orchestrator, make_expense):
        """A second initialize does not reload the cache."""
        await orchestrator.login("carlos@familia.com", "admin123")
        await orchestrator.add_expense(make_expense())
        await orchestrator.initialize()
        assert len(orchestrator.expense_list) == 3

    @pytest.mark.asyncio
    async def test_initialize_failure_propagates(self, app_settings):
        """A dead backend at startup is an error."""
        orch = HouseholdOrchestrator(store=BrokenStore(), settings=app_settings)
        with pytest.raises(StoreUnavailableError):
            await orch.initialize()


class TestNavigation:
    """Tests for the navigation intents."""

    @pytest.mark.asyncio
    async def test_landing_auth_landing(self, orchestrator):
        """go_to_login and back move between landing and auth."""
        assert orchestrator.go_to_login().screen == Screen.AUTH
        assert orchestrator.back_to_landing().screen == Screen.LANDING

    @pytest.mark.asyncio
    async def test_select_tab_accepts_strings(self, signed_in):
        """Tabs can be selected by value."""
        assert signed_in.select_tab("reports").active_tab == Tab.REPORTS

    @pytest.mark.asyncio
    async def test_select_unknown_tab(self, signed_in):
        """Unknown tab names are rejected."""
        with pytest.raises(ValueError):
            signed_in.select_tab("settings")

    @pytest.mark.asyncio
    async def test_select_tab_while_signed_out(self, orchestrator):
        """Tab selection is ignored on the landing page."""
        assert orchestrator.select_tab(Tab.REPORTS) == ViewState.landing()


class TestCheckout:
    """Tests for the premium checkout flow."""

    @pytest.mark.asyncio
    async def test_successful_checkout(self, store, signed_in):
        """Payment upgrades the plan and returns to the dashboard."""
        signed_in.select_tab(Tab.SUBSCRIPTION)
        view = await signed_in.start_checkout()
        assert view.screen == Screen.CHECKOUT

        assert await signed_in.run_checkout(SimulatedCheckout(store))
        assert signed_in.current_user.plan == UserPlan.PREMIUM
        assert signed_in.view == ViewState.authenticated(Tab.DASHBOARD)
        assert signed_in.notification == PREMIUM_MESSAGE
        assert next(u for u in signed_in.users if u.id == "u1").is_premium

    @pytest.mark.asyncio
    async def test_cancelled_checkout(self, store, signed_in):
        """A cancelled checkout keeps the plan and returns to the dashboard."""
        await signed_in.start_checkout()
        assert not await signed_in.run_checkout(SimulatedCheckout(store, approve=False))
        assert signed_in.current_user.plan == UserPlan.FREE
        assert signed_in.view == ViewState.authenticated(Tab.DASHBOARD)

    @pytest.mark.asyncio
    async def test_logout_during_checkout(self, store, signed_in):
        """A checkout approved after logout upgrades the account but not the session."""
        await signed_in.start_checkout()
        pending = asyncio.create_task(
            signed_in.run_checkout(SimulatedCheckout(store, delay_seconds=0.03))
        )
        await asyncio.sleep(0.005)
        await signed_in.logout()

        assert await pending is False
        assert signed_in.current_user is None
        assert signed_in.view == ViewState.landing()
        assert next(u for u in signed_in.users if u.id == "u1").is_premium
        assert signed_in.notification is None

    @pytest.mark.asyncio
    async def test_cancel_checkout_directly(self, signed_in):
        """cancel_checkout leaves the checkout screen."""
        await signed_in.start_checkout()
        view = await signed_in.cancel_checkout()
        assert view == ViewState.authenticated(Tab.DASHBOARD)

    @pytest.mark.asyncio
    async def test_checkout_needs_session(self, store, orchestrator):
        """Signed out, checkout cannot start."""
        with pytest.raises(NoActiveSessionError):
            await orchestrator.start_checkout()
        with pytest.raises(NoActiveSessionError):
            await orchestrator.run_checkout(SimulatedCheckout(store))


class TestStateTransitions:
    """The transition functions are pure: same input, same output."""

    def test_logged_in_is_pure(self, member_user):
        """The input state is left untouched."""
        state = OrchestratorState()
        transition = logged_in(state, member_user)
        assert state.current_user is None
        assert transition.state.current_user == member_user
        assert transition.state.view == ViewState.authenticated(Tab.DASHBOARD)
        assert transition.effects == ()

    def test_logged_out_clears_notification(self, member_user):
        """Logging out asks for the notification to be cleared."""
        state = logged_in(OrchestratorState(), member_user).state
        transition = logged_out(state)
        assert transition.state.view == ViewState.landing()
        assert transition.effects == (ClearNotification(),)

    def test_expenses_cleared(self, sample_expenses):
        """Clearing empties the cache and announces it."""
        state = OrchestratorState(expenses=tuple(sample_expenses))
        transition = expenses_cleared(state)
        assert transition.state.expenses == ()
        assert isinstance(transition.effects[0], ShowNotification)

    def test_container_runs_effects(self, member_user):
        """apply() swaps the state and drives the notification slot."""
        signal = NotificationSignal()
        container = StateContainer(signal)
        state = container.apply(expenses_cleared(container.state))
        assert container.state is state
        assert signal.message is not None
        container.apply(logged_out(container.state))
        assert signal.message is None


class TestCreateAppComponents:
    """Tests for the component factory."""

    @pytest.mark.asyncio
    async def test_memory_backend(self):
        """The default backend is the seeded in-memory store."""
        orchestrator, checkout = create_app_components(AppSettings(login_delay_ms=0))
        assert isinstance(checkout, SimulatedCheckout)
        await orchestrator.initialize()
        assert await orchestrator.login("ana@familia.com", "membro123")

    @pytest.mark.asyncio
    async def test_unseeded_memory_backend(self):
        """seed_demo_data=False starts empty."""
        orchestrator, _ = create_app_components(AppSettings(seed_demo_data=False))
        await orchestrator.initialize()
        assert orchestrator.users == ()
        assert orchestrator.budgets == ()

    @pytest.mark.asyncio
    async def test_visitors_share_data_not_sessions(self):
        """Two orchestrators over one storage keep separate sessions."""
        settings = AppSettings(login_delay_ms=0)
        storage = create_storage(settings)
        first, _ = create_app_components(settings, storage=storage)
        second, _ = create_app_components(settings, storage=storage)
        await first.initialize()
        await second.initialize()

        assert await first.login("carlos@familia.com", "admin123")
        assert second.current_user is None
        assert second.view == ViewState.landing()

        await first.add_expense(NewExpense(
            user_id="u1",
            amount=Decimal("10.00"),
            description="Pão",
            category=ExpenseCategory.MERCADO,
            date=date(2024, 3, 1),
        ))
        assert len(await storage[0].get_expenses()) == 1
