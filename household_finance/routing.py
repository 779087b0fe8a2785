"""
View Router

A pure, total state machine over the top-level screens and the tabs of
the authenticated screen:

    LANDING --go_to_login--> AUTH --authenticated--> AUTHENTICATED(dashboard)
    AUTH --back--> LANDING
    AUTHENTICATED(t) --select_tab(t')--> AUTHENTICATED(t')
    AUTHENTICATED --start_checkout--> CHECKOUT
    CHECKOUT --checkout_succeeded | checkout_cancelled--> AUTHENTICATED(dashboard)
    any --logged_out--> LANDING

Any other (state, intent) pair returns the state unchanged.

Tab selection is never refused here. Whether a tab's content may be shown
is decided by ``renderable_tab`` at render time. That gate is a UI
convenience: the store must still check roles on anything it protects.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from household_finance.models.user import User, UserRole
from household_finance.models.view import Screen, Tab, ViewState


class NavigationAction(str, Enum):
    GO_TO_LOGIN = "go_to_login"
    BACK = "back"
    AUTHENTICATED = "authenticated"
    SELECT_TAB = "select_tab"
    START_CHECKOUT = "start_checkout"
    CHECKOUT_SUCCEEDED = "checkout_succeeded"
    CHECKOUT_CANCELLED = "checkout_cancelled"
    LOGGED_OUT = "logged_out"


class NavigationIntent(BaseModel):
    """A navigation request. ``tab`` is only read by SELECT_TAB."""
    model_config = ConfigDict(frozen=True)

    action: NavigationAction
    tab: Optional[Tab] = None

    @classmethod
    def select(cls, tab: Tab) -> "NavigationIntent":
        return cls(action=NavigationAction.SELECT_TAB, tab=tab)


# Tabs whose content needs a specific role
TAB_REQUIRED_ROLE = {
    Tab.ADMIN: UserRole.ADMIN,
    Tab.SYSTEM_ADMIN: UserRole.SYSTEM_ADMIN,
}


def route(view: ViewState, intent: NavigationIntent, has_session: bool) -> ViewState:
    """
    Compute the next view.

    Args:
        view: Current view
        intent: Requested navigation
        has_session: Whether a user is signed in *after* the action that
            produced this intent (e.g. True right after a successful login)

    Returns:
        The next view; ``view`` itself when the intent does not apply
    """
    action = intent.action

    if action == NavigationAction.LOGGED_OUT:
        return ViewState.landing()

    # Without a session only the unauthenticated screens are reachable
    if not has_session:
        if view.screen == Screen.LANDING and action == NavigationAction.GO_TO_LOGIN:
            return view.model_copy(update={"screen": Screen.AUTH})
        if view.screen == Screen.AUTH and action == NavigationAction.BACK:
            return view.model_copy(update={"screen": Screen.LANDING})
        if view.screen in (Screen.AUTHENTICATED, Screen.CHECKOUT):
            # Session vanished underneath us
            return ViewState.landing()
        return view

    if action == NavigationAction.AUTHENTICATED:
        return ViewState.authenticated(Tab.DASHBOARD)

    if view.screen == Screen.AUTHENTICATED:
        if action == NavigationAction.SELECT_TAB and intent.tab is not None:
            return view.model_copy(update={"active_tab": intent.tab})
        if action == NavigationAction.START_CHECKOUT:
            return view.model_copy(update={"screen": Screen.CHECKOUT})
        return view

    if view.screen == Screen.CHECKOUT:
        if action in (NavigationAction.CHECKOUT_SUCCEEDED, NavigationAction.CHECKOUT_CANCELLED):
            return ViewState.authenticated(Tab.DASHBOARD)
        return view

    return view


def can_render(tab: Tab, user: Optional[User]) -> bool:
    """Whether ``user`` may see the content of ``tab``."""
    if user is None:
        return False
    required = TAB_REQUIRED_ROLE.get(tab)
    return required is None or user.role == required


def renderable_tab(view: ViewState, user: Optional[User]) -> Optional[Tab]:
    """
    The tab whose content should be rendered, or None.

    The active tab may be one the user lacks permission for; in that case
    nothing is rendered for it.
    """
    if view.screen != Screen.AUTHENTICATED:
        return None
    if not can_render(view.active_tab, user):
        return None
    return view.active_tab


def visible_tabs(user: Optional[User]) -> list[Tab]:
    """Tabs to offer in the navigation bar for ``user``."""
    return [tab for tab in Tab if can_render(tab, user)]
