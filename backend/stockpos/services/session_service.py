# Overview: Service-layer operations for bearer sessions.

"""
Bearer sessions.

The client holds a random 32-byte token; the database only ever sees its
SHA-256. A session dies at SESSION_TTL_HOURS after login, after
SESSION_IDLE_MINUTES without use, on logout, or when its user is deactivated.

MULTI-TENANT: Sessions capture store_id at creation time. The Caller built
from a session uses that store_id, not whatever the user row says later.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from .store_scope import Caller, Role
from stockpos.time_utils import utcnow


@dataclass
class SessionContext:
    """Session context returned by validate_session."""
    user: User
    session: SessionToken
    store_id: int | None

    @property
    def caller(self) -> Caller:
        return Caller(
            role=Role.parse(self.user.role) or Role.CLIENT,
            store_id=self.store_id,
            user_id=self.user.id,
        )


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_TTL_HOURS", 24))


def _idle_timeout() -> timedelta:
    return timedelta(minutes=current_app.config.get("SESSION_IDLE_MINUTES", 120))


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy). Never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is sufficient for high-entropy tokens."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Open a session for an active user; returns (row, plaintext token).
    Raises ValueError if the user is missing or inactive.
    """
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        raise ValueError("User not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        store_id=user.store_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _live_session(token: str) -> SessionToken | None:
    return db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token), is_revoked=False
    ).first()


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a plaintext token into its session context.

    None when the token is unknown, expired, idle too long or revoked, or the
    user has been deactivated. Touches last_used_at on success.
    """
    now = utcnow()
    session = _live_session(token)
    if session is None or session.expires_at < now:
        return None

    if now - session.last_used_at > _idle_timeout():
        _revoke(session, "Idle timeout")
        db.session.commit()
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session, store_id=session.store_id)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """False when the token is unknown or already revoked."""
    session = _live_session(token)
    if session is None:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    """Revoke all active sessions for a user. Returns count revoked."""
    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False
    ).all()

    for session in sessions:
        _revoke(session, reason)

    db.session.commit()
    return len(sessions)


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """Delete expired or revoked sessions older than the retention window."""
    cutoff = utcnow() - timedelta(days=retention_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked.is_(True)
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
