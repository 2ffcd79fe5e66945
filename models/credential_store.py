"""
Credential store: users, their password hash and their refresh-token hashes.

Auth handlers talk to this class instead of building queries themselves.
It wraps the application's DBStorage; every write commits (or rolls back)
before returning.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from models.db_storage import DBStorage
from models.exceptions import ConflictError
from models.password import Password
from models.refresh_token import RefreshToken
from models.user import User

logger = logging.getLogger(__name__)


class CredentialStore:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    @property
    def session(self):
        return self.storage.get_session()

    def find_user_by_email(self, email: str) -> Optional[User]:
        """User with its Password row loaded, or None."""
        return (
            self.session.query(User)
            .options(joinedload(User.password))
            .filter(User.email == email)
            .first()
        )

    def find_user_by_id(self, user_id: str) -> Optional[User]:
        return self.storage.get(User, user_id)

    def create_user_with_password(self, email: str, name: Optional[str], password_hash: str) -> User:
        """
        Insert a User and its Password in one commit.
        Raises ConflictError when the email is taken, including when a
        concurrent insert wins the race and the unique index rejects ours.
        """
        if self._email_taken(email):
            raise ConflictError("Email already registered")

        user = User(email=email, name=name)
        user.password = Password(hash=password_hash)
        self.storage.new(user)
        try:
            self.storage.save()
        except IntegrityError as err:
            logger.info("Duplicate registration for %s rejected by the database: %s", email, err.orig)
            raise ConflictError("Email already registered") from err
        return user

    def _email_taken(self, email: str) -> bool:
        return self.session.query(User.id).filter(User.email == email).first() is not None

    def store_refresh_token_hash(self, user_id: str, hashed_token: str, expires_at: datetime) -> RefreshToken:
        rt = RefreshToken(user_id=user_id, hashed_token=hashed_token, expires_at=expires_at)
        self.storage.new(rt)
        self.storage.save()
        return rt

    def find_active_refresh_token(self, hashed_token: str, now: datetime) -> Optional[RefreshToken]:
        """
        Unexpired record for this hash. An expired match is deleted on the
        spot and reported as absent.
        """
        rt = self.session.query(RefreshToken).filter(RefreshToken.hashed_token == hashed_token).first()
        if rt is None:
            return None
        expired = (
            self.session.query(RefreshToken.id)
            .filter(RefreshToken.id == rt.id, RefreshToken.expires_at <= now)
            .first()
        )
        if expired:
            self.storage.delete(rt)
            self.storage.save()
            return None
        return rt

    def delete_refresh_token_by_hash(self, hashed_token: str) -> int:
        """Remove the record for this hash; 0 when there was none."""
        deleted = (
            self.session.query(RefreshToken)
            .filter(RefreshToken.hashed_token == hashed_token)
            .delete(synchronize_session=False)
        )
        self.storage.save()
        return deleted

    def purge_expired_refresh_tokens(self, now: datetime) -> int:
        deleted = (
            self.session.query(RefreshToken)
            .filter(RefreshToken.expires_at <= now)
            .delete(synchronize_session=False)
        )
        self.storage.save()
        if deleted:
            logger.info("Purged %d expired refresh token(s)", deleted)
        return deleted
