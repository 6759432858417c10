import hashlib
import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from opsdesk.core.config import settings
from opsdesk.core.db import as_utc, utcnow
from opsdesk.core.errors import NotAuthenticated, ValidationFailed
from opsdesk.core.security import create_access_token, decode_access_token, hash_password, verify_password
from opsdesk.models.enums import UserRole
from opsdesk.models.user import PasswordResetToken, RevokedToken, User
from opsdesk.services import mailer
from opsdesk.services.record_store import RecordStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _check_password(password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


class IdentityProvider:
    """Local accounts and bearer-token sessions."""

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def _by_email(self, email: str) -> User | None:
        rows = self.store.query(User, User.email == email.strip().lower(), limit=1)
        return rows[0] if rows else None

    def sign_up(self, email: str, password: str, display_name: str = "", company_name: str = "") -> User:
        """Create an account.

        The first account on an empty database owns it; every later sign-up
        is a viewer until an owner promotes it.
        """
        _check_password(password)
        role = UserRole.VIEWER if self.store.count(User) else UserRole.OWNER
        user = User(
            email=email.strip().lower(),
            hashed_password=hash_password(password),
            display_name=display_name.strip(),
            company_name=company_name.strip(),
            role=role,
        )
        user = self.store.insert(user)
        logger.info("user #%s signed up as %s", user.id, user.role.value)
        return user

    def list_users(self) -> list[User]:
        return self.store.query(User, order_by=(User.created_at.asc(), User.id.asc()))

    def set_role(self, user_id: int, role: UserRole | str) -> User:
        role = UserRole(role)
        user = self.store.get(User, user_id)
        if user.role == UserRole.OWNER and role != UserRole.OWNER:
            if self.store.count(User, User.role == UserRole.OWNER) <= 1:
                raise ValidationFailed("The last owner cannot be demoted")
        user = self.store.update_by_id(User, user_id, {"role": role})
        logger.info("user #%s is now %s", user_id, role.value)
        return user

    def sign_in(self, email: str, password: str) -> dict[str, Any]:
        user = self._by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.warning("failed sign-in for %s", email)
            raise NotAuthenticated("Invalid email or password")
        token, _, expires_at = create_access_token(user.id)
        logger.info("user #%s signed in", user.id)
        return {"access_token": token, "token_type": "bearer", "expires_at": expires_at, "user": user}

    def session(self, token: str | None) -> User | None:
        """The signed-in user for ``token``, or None."""
        if not token:
            return None
        claims = decode_access_token(token)
        if claims is None:
            return None
        if self.store.find(RevokedToken, claims["jti"]) is not None:
            return None
        return self.store.find(User, int(claims["sub"]))

    def sign_out(self, token: str) -> None:
        claims = decode_access_token(token)
        if claims is None:
            return
        if self.store.find(RevokedToken, claims["jti"]) is not None:
            return
        expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
        revoked = RevokedToken(jti=claims["jti"], user_id=int(claims["sub"]), expires_at=expires_at)
        with self.store.transaction():
            self.store.db.add(revoked)
        logger.info("user #%s signed out", claims["sub"])

    def request_password_reset(self, email: str) -> None:
        # same outcome for unknown addresses, so accounts cannot be enumerated
        user = self._by_email(email)
        if user is None:
            logger.info("password reset requested for unknown address")
            return
        token = secrets.token_urlsafe(32)
        row = PasswordResetToken(
            user_id=user.id,
            token_hash=_digest(token),
            expires_at=self.clock() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES),
        )
        self.store.insert(row)
        mailer.send_password_reset(user.email, token)
        logger.info("password reset issued for user #%s", user.id)

    def reset_password(self, token: str, new_password: str) -> None:
        _check_password(new_password)
        rows = self.store.query(PasswordResetToken, PasswordResetToken.token_hash == _digest(token), limit=1)
        row = rows[0] if rows else None
        now = self.clock()
        if row is None or row.used_at is not None or as_utc(row.expires_at) < now:
            raise ValidationFailed("This reset link is invalid or has expired")
        with self.store.transaction():
            self.store.update_by_id(User, row.user_id, {"hashed_password": hash_password(new_password)})
            self.store.update_by_id(
                PasswordResetToken, row.id, {"used_at": now}, expected={"used_at": None},
            )
        logger.info("password reset completed for user #%s", row.user_id)
