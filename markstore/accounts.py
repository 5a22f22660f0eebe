"""
Account storage. Passwords are kept only as bcrypt hashes.
"""
import logging
from typing import List, Optional

import bcrypt
from sqlalchemy import delete, select

from markstore.db import Database, restrict_to
from markstore.errors import ConflictError, NotFoundError, ValidationError
from markstore.models import Account
from markstore.records import AccountRecord

logger = logging.getLogger(__name__)


def hash_password(password: str, rounds: int) -> str:
    """Hash a password with bcrypt at the given cost."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


class AccountStore:
    """CRUD for login accounts."""

    def __init__(self, db: Database, rounds: Optional[int] = None):
        """
        Args:
            db: Storage handle
            rounds: bcrypt cost factor; defaults to the configured bcrypt_rounds
        """
        self.db = db
        self.rounds = rounds or db.config.bcrypt_rounds

    def create(self, username: str, password: str) -> AccountRecord:
        """
        Create an account.

        Raises:
            ValidationError: if username or password is empty
            ConflictError: if the username is taken
        """
        if not username or not username.strip():
            raise ValidationError("username", "Username must not be empty")
        if not password:
            raise ValidationError("password", "Password must not be empty")

        # Hash before opening the transaction; bcrypt is slow on purpose
        hashed = hash_password(password, self.rounds)

        with self.db.atomic() as session:
            taken = session.execute(
                select(Account.id).where(Account.username == username)
            ).first()
            if taken is not None:
                raise ConflictError(f"Username already exists: {username}")

            account = Account(username=username, password=hashed)
            session.add(account)
            session.flush()
            record = AccountRecord.from_model(account)

        logger.debug("Created account %s", record.id)
        return record

    def get_by_username(self, username: str) -> AccountRecord:
        """
        Fetch an account by exact username.

        Raises:
            NotFoundError: if no account has that username
        """
        with self.db.read_session() as session:
            account = session.execute(
                select(Account).where(Account.username == username)
            ).scalar_one_or_none()
            if account is None:
                raise NotFoundError("account", username)
            return AccountRecord.from_model(account)

    def list(self, keyword: str = "") -> List[AccountRecord]:
        """List accounts whose username contains keyword, ordered by username."""
        query = select(Account).order_by(Account.username)
        if keyword:
            query = query.where(Account.username.contains(keyword, autoescape=True))

        with self.db.read_session() as session:
            return [AccountRecord.from_model(a) for a in session.execute(query).scalars()]

    def delete(self, *usernames: str) -> int:
        """
        Delete accounts by username. With no usernames every account is deleted.

        Returns:
            Number of accounts removed
        """
        with self.db.atomic() as session:
            result = session.execute(
                restrict_to(delete(Account), Account.username, usernames)
                .execution_options(synchronize_session=False)
            )
            removed = result.rowcount

        logger.debug("Deleted %s accounts", removed)
        return removed
