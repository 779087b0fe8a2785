"""
Session Manager

Holds the signed-in identity and mediates login, registration, profile
updates and logout against the store.

Login and self-registration write the session after an await, so two
overlapping attempts could race. Each attempt takes a ticket; only the
most recently issued ticket may write the session.
"""

import asyncio
from typing import Any, Optional, Union

from household_finance.audit import AuditLogger
from household_finance.config import AppSettings
from household_finance.exceptions import (
    AuthenticationError,
    InsufficientRoleError,
    InvalidCredentialsError,
    NoActiveSessionError,
)
from household_finance.models.user import ProfileUpdate, User
from household_finance.services.storage import DuplicateIdentityError, FinanceStoreInterface, StorageError
from household_finance.state import (
    StateContainer,
    logged_in,
    logged_out,
    profile_updated,
    registered,
    users_refreshed,
)


class SessionManager:
    """Login, registration, profile update and logout."""

    def __init__(
        self,
        store: FinanceStoreInterface,
        container: StateContainer,
        audit_logger: AuditLogger,
        settings: AppSettings,
    ):
        self._store = store
        self._container = container
        self._audit = audit_logger
        self._settings = settings
        self._ticket = 0

    @property
    def current_user(self) -> Optional[User]:
        return self._container.state.current_user

    @property
    def is_authenticated(self) -> bool:
        return self._container.state.has_session

    def require_user(self) -> User:
        """The signed-in user, or NoActiveSessionError."""
        user = self.current_user
        if user is None:
            raise NoActiveSessionError("This action requires a signed-in user")
        return user

    def _issue_ticket(self) -> int:
        self._ticket += 1
        return self._ticket

    def _is_current(self, ticket: int) -> bool:
        return ticket == self._ticket

    @property
    def epoch(self) -> int:
        """Changes whenever a login, self-registration or logout may rewrite the session."""
        return self._ticket

    def owns_session(self, epoch: int, user_id: str) -> bool:
        """
        Whether a call that started at ``epoch`` on behalf of ``user_id``
        may still write the session.
        """
        user = self.current_user
        return self._is_current(epoch) and user is not None and user.id == user_id

    async def _authenticate(self, identifier: str, password: str, require_admin: bool) -> User:
        user = await self._store.authenticate_user(identifier, password)
        if user is None:
            raise InvalidCredentialsError("Identifier or password did not match")
        if require_admin and not user.is_admin:
            raise InsufficientRoleError("Admin entry point requires ADMIN or SYSTEM_ADMIN")
        return user

    async def login(self, identifier: str, password: str, require_admin: bool = False) -> bool:
        """
        Sign in.

        Wrong credentials and a non-admin role on the admin entry point
        both return False; callers cannot tell them apart.

        Raises:
            StorageError: If the store itself fails
        """
        ticket = self._issue_ticket()
        await asyncio.sleep(self._settings.login_delay_seconds)

        try:
            user = await self._authenticate(identifier, password, require_admin)
        except AuthenticationError as e:
            await self._audit.log_login_rejected(type(e).__name__, require_admin)
            return False
        except StorageError as e:
            await self._audit.log_store_error("authenticate_user", str(e))
            raise

        if not self._is_current(ticket):
            await self._audit.log_login_superseded(ticket)
            return False

        self._container.apply(logged_in(self._container.state, user))
        await self._audit.log_login_succeeded(user.id, require_admin)
        return True

    async def register(self, name: str, email: str, cpf: str, password: str) -> bool:
        """
        Create a user.

        With nobody signed in, the new user is signed in. When an
        administrator registers a member, the administrator stays signed
        in and gets a confirmation notification.

        Raises:
            DuplicateIdentityError: If email or cpf is already registered
            StorageError: If the store fails
        """
        acting = self.current_user
        ticket = self._issue_ticket() if acting is None else None
        await asyncio.sleep(self._settings.register_delay_seconds)

        try:
            new_user = await self._store.register_user(name, email, cpf, password)
            users = await self._store.get_users()
        except DuplicateIdentityError as e:
            await self._audit.log_registration_rejected(str(e), acting.id if acting else None)
            raise
        except StorageError as e:
            await self._audit.log_store_error("register_user", str(e), acting.id if acting else None)
            raise

        if ticket is not None and not self._is_current(ticket):
            # A newer sign-in attempt owns the session write: keep the
            # account, refresh the cache, leave the session alone.
            await self._audit.log_login_superseded(ticket)
            self._container.apply(users_refreshed(self._container.state, users))
            await self._audit.log_user_registered(new_user.id, None, auto_login=False)
            return True

        auto_login = acting is None
        self._container.apply(registered(self._container.state, new_user, users, sign_in=auto_login))
        await self._audit.log_user_registered(
            new_user.id,
            None if auto_login else acting.id,
            auto_login=auto_login,
        )
        return True

    async def update_profile(self, updates: Union[ProfileUpdate, dict[str, Any]]) -> User:
        """
        Update the signed-in user's profile.

        Raises:
            NoActiveSessionError: If nobody is signed in
            DuplicateIdentityError: If the new email or cpf is taken
            StorageError: If the store fails
        """
        user = self.require_user()
        if not isinstance(updates, ProfileUpdate):
            updates = ProfileUpdate.model_validate(updates)
        changes = updates.changes()
        epoch = self.epoch

        await asyncio.sleep(self._settings.profile_update_delay_seconds)

        try:
            updated = await self._store.update_user(user.id, changes)
            users = await self._store.get_users()
        except StorageError as e:
            await self._audit.log_store_error("update_user", str(e), user.id)
            raise

        await self._audit.log_profile_updated(user.id, list(changes))
        if not self.owns_session(epoch, user.id):
            # Signed out (or someone else signed in) meanwhile: the store
            # keeps the change, the session is left alone.
            self._container.apply(users_refreshed(self._container.state, users))
            return updated

        self._container.apply(profile_updated(self._container.state, updated, users))
        return updated

    async def logout(self) -> None:
        """
        Sign out. Always succeeds, even with nobody signed in.

        Calls still in flight for the old session can no longer write it.
        """
        user = self.current_user
        self._issue_ticket()
        self._container.apply(logged_out(self._container.state))
        await self._audit.log_logged_out(user.id if user else None)
