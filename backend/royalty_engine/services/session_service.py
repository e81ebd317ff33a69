# Overview: Bearer session tokens for API callers; issue and validate.

"""
Session Token Management

Tokens are random, shown to the client once, and stored only as a SHA-256
hash. A session is valid until its absolute expiry or revocation, and only
while the user stays active.

Role context (hq_admin, licensee_owner for a tenant) is read from the user's
active role assignments on every validation, so revoking a role takes effect
on the next request.
"""

import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import timedelta

from ..extensions import db
from ..models import SessionToken, User, UserRoleAssignment
from royalty_engine.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)


@dataclass
class SessionContext:
    """
    Identity plus role grants of the caller.

    roles maps role name -> set of tenant ids (None for global grants).
    """
    user: User
    session: SessionToken
    roles: dict = field(default_factory=dict)

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def tenant_ids_for(self, role: str) -> set:
        return {t for t in self.roles.get(role, set()) if t is not None}


def generate_token() -> str:
    """64-character hex token (32 bytes of entropy). Never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(user_id: int, ttl: timedelta = SESSION_ABSOLUTE_TIMEOUT) -> tuple[SessionToken, str]:
    """
    Issue a session for an active user.

    Returns (session_record, plaintext_token). Raises ValueError when the user
    is missing or inactive.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("User is not active")

    plaintext_token = generate_token()
    now = utcnow()
    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + ttl,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, plaintext_token


def _role_map(user_id: int) -> dict:
    roles: dict = {}
    assignments = (
        db.session.query(UserRoleAssignment)
        .filter(
            UserRoleAssignment.user_id == user_id,
            UserRoleAssignment.is_active.is_(True),
        )
        .all()
    )
    for assignment in assignments:
        roles.setdefault(assignment.role, set()).add(assignment.tenant_id)
    return roles


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a plaintext token to a SessionContext.

    Returns None when the token is unknown, revoked or expired, or when the
    user has been deactivated (the session is revoked in that case).
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return None

    if session.expires_at < utcnow():
        return None

    user = session.user
    if not user or not user.is_active:
        session.is_revoked = True
        db.session.commit()
        return None

    return SessionContext(user=user, session=session, roles=_role_map(user.id))
