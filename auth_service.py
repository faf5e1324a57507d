import logging
from typing import List, Optional

import pydantic
from passlib.context import CryptContext

from config import get_settings
from errors import (
    AuthenticationError,
    DuplicateUsernameError,
    PermissionDeniedError,
    StoreFailure,
    ValidationError,
)
from schemas import AccountSummary, AccountView, UserCreate
from stores import AccountStore

logger = logging.getLogger(__name__)


def build_password_context(rounds: int = 12) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


class AuthService:
    """Registers, authenticates and removes accounts."""

    def __init__(self, account_store: AccountStore, pwd_context: Optional[CryptContext] = None):
        self.account_store = account_store
        self.pwd_context = pwd_context or build_password_context(get_settings().bcrypt_rounds)

    def get_password_hash(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return self.pwd_context.verify(plain_password, hashed_password)

    def register(self, username: str, password: str, role: str = "child") -> AccountView:
        try:
            user = UserCreate(username=username, password=password, role=role)
        except pydantic.ValidationError as e:
            raise ValidationError.from_pydantic(e) from e

        if self.account_store.find_by_username(user.username):
            logger.info("Registration rejected, username %r already taken", user.username)
            raise DuplicateUsernameError(user.username)

        account = self.account_store.insert(
            user.username, self.get_password_hash(user.password), user.role
        )
        logger.info("Registered %s account %r (id=%s)", account.role, account.username, account.id)
        return account

    def login(self, username: str, password: str) -> AccountView:
        """
        Return the account when ``password`` matches its stored hash.

        Unknown usernames and wrong passwords raise the same
        AuthenticationError; only the operator log tells them apart.
        """
        account = self.account_store.find_by_username(username)
        if account is None:
            self.pwd_context.dummy_verify()
            logger.warning("Login failed for %r: no such user", username)
            raise AuthenticationError()
        if not self.verify_password(password, account.hashed_password):
            logger.warning("Login failed for %r: bad password", username)
            raise AuthenticationError()
        logger.info("User %r logged in", username)
        return account

    def delete_account(self, username: str, requested_by: Optional[AccountSummary] = None) -> bool:
        """
        Delete ``username`` together with its avatar and progress history.

        When ``requested_by`` is given it must be an admin other than the
        account being removed.
        """
        if requested_by is not None:
            if requested_by.role != "admin":
                raise PermissionDeniedError("Permission denied. Admin role required.")
            if requested_by.username == username:
                raise PermissionDeniedError("Admins cannot delete their own account.")
        try:
            deleted = self.account_store.delete_by_username(username)
        except StoreFailure:
            return False
        if deleted:
            logger.info("Deleted account %r", username)
        else:
            logger.info("Delete requested for unknown account %r", username)
        return deleted

    def get_account(self, username: str) -> Optional[AccountView]:
        return self.account_store.find_by_username(username)

    def list_accounts(self) -> List[AccountView]:
        return self.account_store.list_all()
