"""
Orchestrator State and Transitions

The orchestrator's whole in-memory state is one immutable
``OrchestratorState``. Every change goes through a pure transition
function that takes the current state plus whatever the store returned,
and gives back ``Transition(state, effects)``. Effects are notification
intents; ``StateContainer.apply`` swaps the state in and runs them.

Store calls happen before a transition, because their results are its
input.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from household_finance.models.expense import Budget, Expense
from household_finance.models.user import User
from household_finance.models.view import Tab, ViewState
from household_finance.notifications import DEFAULT_SUCCESS_MESSAGE, NotificationSignal
from household_finance.routing import NavigationAction, NavigationIntent, route


NEW_USER_MESSAGE = "Novo usuário cadastrado com sucesso"
PREMIUM_MESSAGE = "Assinatura Premium ativada com sucesso!"
ALL_CLEARED_MESSAGE = "Todos os lançamentos foram excluídos. Dashboard zerada."


# =============================================================================
# STATE
# =============================================================================

class OrchestratorState(BaseModel):
    """Session, navigation and the read-through cache."""
    model_config = ConfigDict(frozen=True)

    current_user: Optional[User] = None
    view: ViewState = ViewState()
    users: tuple[User, ...] = ()
    expenses: tuple[Expense, ...] = ()
    budgets: tuple[Budget, ...] = ()

    @property
    def has_session(self) -> bool:
        return self.current_user is not None


# =============================================================================
# EFFECTS
# =============================================================================

class ShowNotification(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = DEFAULT_SUCCESS_MESSAGE


class ClearNotification(BaseModel):
    model_config = ConfigDict(frozen=True)


Effect = Union[ShowNotification, ClearNotification]


class Transition(BaseModel):
    """Result of a transition function."""
    model_config = ConfigDict(frozen=True)

    state: OrchestratorState
    effects: tuple[Effect, ...] = ()


# =============================================================================
# TRANSITIONS
# =============================================================================

def _navigate(state: OrchestratorState, intent: NavigationIntent) -> ViewState:
    return route(state.view, intent, state.has_session)


def cache_loaded(
    state: OrchestratorState,
    users: list[User],
    expenses: list[Expense],
    budgets: list[Budget],
) -> Transition:
    return Transition(state=state.model_copy(update={
        "users": tuple(users),
        "expenses": tuple(expenses),
        "budgets": tuple(budgets),
    }))


def navigated(state: OrchestratorState, intent: NavigationIntent) -> Transition:
    return Transition(state=state.model_copy(update={"view": _navigate(state, intent)}))


def logged_in(state: OrchestratorState, user: User) -> Transition:
    signed_in = state.model_copy(update={"current_user": user})
    view = _navigate(signed_in, NavigationIntent(action=NavigationAction.AUTHENTICATED))
    return Transition(state=signed_in.model_copy(update={"view": view}))


def registered(
    state: OrchestratorState,
    new_user: User,
    users: list[User],
    sign_in: bool,
) -> Transition:
    """
    A user was created.

    ``sign_in`` is True when nobody was signed in when registration
    started: the new user becomes the session. Otherwise the acting user
    stays signed in and is told the account was created.
    """
    refreshed = state.model_copy(update={"users": tuple(users)})
    if sign_in:
        return logged_in(refreshed, new_user)
    return Transition(state=refreshed, effects=(ShowNotification(message=NEW_USER_MESSAGE),))


def users_refreshed(state: OrchestratorState, users: list[User]) -> Transition:
    return Transition(state=state.model_copy(update={"users": tuple(users)}))


def profile_updated(state: OrchestratorState, user: User, users: list[User]) -> Transition:
    return Transition(
        state=state.model_copy(update={"current_user": user, "users": tuple(users)}),
        effects=(ShowNotification(),),
    )


def logged_out(state: OrchestratorState) -> Transition:
    signed_out = state.model_copy(update={"current_user": None})
    view = _navigate(signed_out, NavigationIntent(action=NavigationAction.LOGGED_OUT))
    return Transition(
        state=signed_out.model_copy(update={"view": view}),
        effects=(ClearNotification(),),
    )


def checkout_succeeded(state: OrchestratorState, user: User, users: list[User]) -> Transition:
    updated = state.model_copy(update={"current_user": user, "users": tuple(users)})
    view = _navigate(updated, NavigationIntent(action=NavigationAction.CHECKOUT_SUCCEEDED))
    return Transition(
        state=updated.model_copy(update={"view": view}),
        effects=(ShowNotification(message=PREMIUM_MESSAGE),),
    )


def expense_added(state: OrchestratorState, expenses: list[Expense]) -> Transition:
    refreshed = state.model_copy(update={"expenses": tuple(expenses)})
    view = _navigate(refreshed, NavigationIntent.select(Tab.EXPENSES))
    return Transition(
        state=refreshed.model_copy(update={"view": view}),
        effects=(ShowNotification(),),
    )


def expenses_refreshed(state: OrchestratorState, expenses: list[Expense]) -> Transition:
    """After a delete or status update: new cache, generic success message."""
    return Transition(
        state=state.model_copy(update={"expenses": tuple(expenses)}),
        effects=(ShowNotification(),),
    )


def expenses_cleared(state: OrchestratorState) -> Transition:
    return Transition(
        state=state.model_copy(update={"expenses": ()}),
        effects=(ShowNotification(message=ALL_CLEARED_MESSAGE),),
    )


# =============================================================================
# CONTAINER
# =============================================================================

class StateContainer:
    """
    Owns the single live ``OrchestratorState``.

    The only place where state is replaced and effects are executed.
    """

    def __init__(self, notifications: NotificationSignal, state: Optional[OrchestratorState] = None):
        self._state = state or OrchestratorState()
        self._notifications = notifications

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def notifications(self) -> NotificationSignal:
        return self._notifications

    def apply(self, transition: Transition) -> OrchestratorState:
        self._state = transition.state
        for effect in transition.effects:
            if isinstance(effect, ShowNotification):
                self._notifications.show(effect.message)
            elif isinstance(effect, ClearNotification):
                self._notifications.clear()
        return self._state
