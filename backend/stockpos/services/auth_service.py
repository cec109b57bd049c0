# Overview: Service-layer operations for users and credentials.

"""
Users and credentials.

Passwords are stored as bcrypt hashes and must pass validate_password_strength
first. Bearer tokens live in session_service.

MULTI-TENANT: Every user except super_admin belongs to a store. Admins manage
users of their own store only and can never mint a super_admin.
"""

import re

import bcrypt

from ..extensions import db
from ..models import User
from .session_service import revoke_all_user_sessions
from .store_scope import Role, StoreContextError, apply_store_scope, caller_role, resolve_store
from stockpos.time_utils import utcnow


class PasswordValidationError(Exception):
    """Password too weak to store."""


class UserError(ValueError):
    """Invalid user management request."""


MIN_PASSWORD_LENGTH = 8
BCRYPT_ROUNDS = 12

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"\d"), "a digit"),
    (re.compile(r"[!@#$%^&*(),.'\":{}|<>]"), "a special character"),
)


def validate_password_strength(password: str) -> None:
    """Raise PasswordValidationError naming the first rule the password breaks."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password needs at least {MIN_PASSWORD_LENGTH} characters")
    for pattern, what in _PASSWORD_RULES:
        if not pattern.search(password):
            raise PasswordValidationError(f"Password needs {what}")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    digest = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return digest.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt comparison; a malformed stored hash simply fails."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def authenticate(email: str, password: str) -> User | None:
    """
    Check credentials. Returns the active User or None.

    Updates last_login_at on success.
    """
    if not email or not password:
        return None

    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def create_user(
    *,
    email: str,
    name: str,
    password: str,
    role: str,
    store_id: int | None = None,
) -> User:
    """
    Persist a new account with a hashed password.

    super_admin users have no store; every other role requires one.

    Raises:
        PasswordValidationError: weak password
        UserError: unknown role, duplicate email, missing store
    """
    parsed_role = Role.parse(role)
    if parsed_role is None:
        raise UserError(f"Invalid role: {role}")

    if parsed_role.is_privileged():
        store_id = None
    elif not store_id:
        raise UserError("store_id is required for non-super_admin users")

    email = (email or "").strip().lower()
    if not email:
        raise UserError("email is required")

    if db.session.query(User).filter_by(email=email).first():
        raise UserError(f"Email '{email}' already exists")

    user = User(
        email=email,
        name=(name or "").strip() or email,
        password_hash=hash_password(password),
        role=parsed_role.value,
        store_id=store_id,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def list_users(caller) -> list[User]:
    where = apply_store_scope(caller, {})
    return db.session.query(User).filter_by(**where).order_by(User.name.asc(), User.id.asc()).all()


def get_user(caller, user_id: int) -> User | None:
    where = apply_store_scope(caller, {"id": user_id})
    return db.session.query(User).filter_by(**where).first()


def create_user_for(caller, payload: dict) -> User:
    """
    Create a user on behalf of an authenticated admin.

    Admins create users in their own store and cannot create super_admins.
    """
    role = Role.parse(payload.get("role") or Role.SALES.value)
    if role is None:
        raise UserError(f"Invalid role: {payload.get('role')}")

    acting_role = caller_role(caller)
    if role.is_privileged() and not (acting_role and acting_role.is_privileged()):
        raise UserError("Only a super_admin can create super_admin users")

    store_id = None
    if not role.is_privileged():
        try:
            store_id = resolve_store(caller, payload.get("store_id")).id
        except StoreContextError as e:
            raise UserError(str(e))

    return create_user(
        email=payload.get("email"),
        name=payload.get("name"),
        password=payload.get("password"),
        role=role.value,
        store_id=store_id,
    )


def update_user(caller, user_id: int, payload: dict) -> User | None:
    user = get_user(caller, user_id)
    if user is None:
        return None

    acting_role = caller_role(caller)
    privileged = bool(acting_role and acting_role.is_privileged())

    if "role" in payload and payload["role"] is not None:
        role = Role.parse(payload["role"])
        if role is None:
            raise UserError(f"Invalid role: {payload['role']}")
        if role.is_privileged() and not privileged:
            raise UserError("Only a super_admin can grant super_admin")
        user.role = role.value
        if role.is_privileged():
            user.store_id = None

    if "store_id" in payload and privileged and user.role != Role.SUPER_ADMIN.value:
        try:
            user.store_id = resolve_store(caller, payload["store_id"]).id
        except StoreContextError as e:
            raise UserError(str(e))

    if user.role != Role.SUPER_ADMIN.value and not user.store_id:
        raise UserError("store_id is required for non-super_admin users")

    if payload.get("name"):
        user.name = str(payload["name"]).strip()
    if "is_active" in payload:
        user.is_active = bool(payload["is_active"])
    if payload.get("password"):
        user.password_hash = hash_password(payload["password"])

    db.session.commit()
    return user


def deactivate_user(caller, user_id: int) -> User | None:
    """Users are deactivated, not deleted. super_admin accounts are protected."""
    user = get_user(caller, user_id)
    if user is None:
        return None
    if user.role == Role.SUPER_ADMIN.value:
        raise UserError("Cannot delete super_admin user")

    user.is_active = False
    db.session.commit()

    revoke_all_user_sessions(user.id, reason="User deactivated")
    return user
