"""
Navigation models.

The screen and the active tab are the only navigation facts; everything
else about what is on screen is derived from them and the session.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Screen(str, Enum):
    """Top-level screens. Exactly one is active."""
    LANDING = "landing"
    AUTH = "auth"
    CHECKOUT = "checkout"
    AUTHENTICATED = "authenticated"


class Tab(str, Enum):
    """Tabs of the authenticated screen."""
    DASHBOARD = "dashboard"
    EXPENSES = "expenses"
    ADVANCED_HISTORY = "advanced_history"
    REPORTS = "reports"
    NEW = "new"
    PROFILE = "profile"
    SUBSCRIPTION = "subscription"
    ADMIN = "admin"
    SYSTEM_ADMIN = "system_admin"


class ViewState(BaseModel):
    """Current navigation mode."""
    model_config = ConfigDict(frozen=True)

    screen: Screen = Screen.LANDING
    active_tab: Tab = Tab.DASHBOARD

    @classmethod
    def landing(cls) -> "ViewState":
        return cls()

    @classmethod
    def authenticated(cls, tab: Tab = Tab.DASHBOARD) -> "ViewState":
        return cls(screen=Screen.AUTHENTICATED, active_tab=tab)
