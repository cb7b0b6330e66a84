"""
Login and session handling for the storefront console.

There is no security model here: credentials are compared in plaintext
against two static logins plus the accounts customers registered
themselves. The session is stored next to the collections but is not one
of them, and changes to it are never broadcast.
"""

import json
import logging
from typing import Optional

from storefront.models import CustomerAccount, UserRole, UserSession
from storefront.storage import LocalStorage

logger = logging.getLogger("auth")


SESSION_KEY = "currentUser"
ACCOUNTS_KEY = "customerAccounts"

STATIC_CREDENTIALS = {
    "admin": ("admin123", UserRole.ADMIN),
    "customer": ("customer123", UserRole.CUSTOMER),
}

MIN_PASSWORD_LENGTH = 6


class RegistrationError(ValueError):
    """A customer registration was rejected."""


def authenticate(
    username: str,
    password: str,
    accounts: list[CustomerAccount],
) -> Optional[UserSession]:
    """
    Check a login against the static credentials and registered accounts.

    Returns the session on success, None otherwise.
    """
    static = STATIC_CREDENTIALS.get(username)
    if static is not None:
        expected_password, role = static
        if password == expected_password:
            return UserSession(username=username, role=role)
        return None

    for account in accounts:
        if account.username == username and account.password == password:
            return UserSession(username=username, role=UserRole.CUSTOMER)
    return None


def register_customer(
    username: str,
    password: str,
    confirm_password: str,
    accounts: list[CustomerAccount],
) -> CustomerAccount:
    """Validate a new customer account. Raises RegistrationError."""
    username = username.strip()
    if not username:
        raise RegistrationError("Username is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise RegistrationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if password != confirm_password:
        raise RegistrationError("Passwords do not match")
    if username in STATIC_CREDENTIALS or any(a.username == username for a in accounts):
        raise RegistrationError("Username already exists")
    return CustomerAccount(username=username, password=password)


class SessionStore:
    """Persists the logged-in user and the registered customer accounts."""

    def __init__(self, storage: LocalStorage):
        self.storage = storage

    def get_accounts(self) -> list[CustomerAccount]:
        raw = self.storage.get_item(ACCOUNTS_KEY)
        if not raw:
            return []
        return [CustomerAccount.model_validate(a) for a in json.loads(raw)]

    def register(self, username: str, password: str, confirm_password: str) -> CustomerAccount:
        accounts = self.get_accounts()
        account = register_customer(username, password, confirm_password, accounts)
        accounts.append(account)
        self.storage.set_item(ACCOUNTS_KEY, json.dumps([a.to_record() for a in accounts]))
        logger.info(f"Registered customer account: {account.username}")
        return account

    def login(self, username: str, password: str) -> Optional[UserSession]:
        session = authenticate(username, password, self.get_accounts())
        if session is None:
            logger.warning(f"Failed login for '{username}'")
            return None
        self.storage.set_item(SESSION_KEY, session.model_dump_json(by_alias=True))
        logger.info(f"{session.username} logged in as {session.role}")
        return session

    def current_user(self) -> Optional[UserSession]:
        raw = self.storage.get_item(SESSION_KEY)
        if not raw:
            return None
        return UserSession.model_validate_json(raw)

    def logout(self) -> None:
        self.storage.remove_item(SESSION_KEY)
