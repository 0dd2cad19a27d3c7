"""Profiles: creation with invite side-effects, invite acceptance and password login."""

from __future__ import annotations

import logging
import secrets
from typing import Any, Dict, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from ..config import settings
from ..constants import USER_ROLES
from ..db import get_session
from ..errors import AuthError, ValidationError
from ..models import Profile, Site
from ..notifications import ensure_user_channel, send_invite_email

logger = logging.getLogger(__name__)

INVITE_SALT = "stockly-invite"
MIN_PASSWORD_LENGTH = 8
# Tail of the password hash bound into invite tokens; a new password voids them.
HASH_FINGERPRINT_CHARS = 16


def _serialize(profile: Profile) -> Dict[str, Any]:
    return {
        "id": profile.id,
        "email": profile.email,
        "full_name": profile.full_name,
        "role": profile.role,
        "site_id": profile.site_id,
        "company_id": profile.company_id,
    }


def create_user(
    company_id,
    email: str,
    full_name: str,
    role: Optional[str] = None,
    site_id=None,
) -> Dict[str, Any]:
    """Create a profile in ``company_id`` and try to invite the new user.

    The invite e-mail and messaging channel are attempted after the profile
    is committed; their outcome is reported as ``invite_sent`` and
    ``channel_ready`` and never fails the call.
    """
    email = (email or "").strip().lower()
    full_name = (full_name or "").strip()
    role = (role or "staff").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    if not full_name:
        raise ValidationError("full_name is required")
    if role not in USER_ROLES:
        raise ValidationError(f"Invalid role '{role}'")

    unusable_password = secrets.token_urlsafe(32)
    with get_session() as db:
        if db.query(Profile).filter_by(email=email).first():
            raise ValidationError(f"A user with email {email} already exists")
        if site_id is not None:
            site = db.query(Site).filter_by(id=site_id, company_id=company_id).first()
            if site is None:
                raise ValidationError(f"Unknown site {site_id}")
        profile = Profile(
            company_id=company_id,
            site_id=site_id,
            email=email,
            full_name=full_name,
            role=role,
            password=generate_password_hash(unusable_password),
        )
        db.add(profile)
        db.flush()
        payload = _serialize(profile)
        token = make_invite_token(profile.id, profile.password)
    logger.info("Created user %s (%s) in company %s", payload["id"], email, company_id)

    payload["invite_sent"] = send_invite_email(email, full_name, invite_link(token))
    payload["channel_ready"] = ensure_user_channel(payload["id"], full_name, email)
    return payload


def _invite_serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.SECRET_KEY, salt=INVITE_SALT)


def make_invite_token(profile_id, password_hash: str) -> str:
    return _invite_serializer().dumps(
        {"uid": profile_id, "pw": password_hash[-HASH_FINGERPRINT_CHARS:]}
    )


def invite_link(token: str) -> str:
    return f"{str(settings.APP_BASE_URL).rstrip('/')}/accept-invite?token={token}"


def accept_invite(token: str, password: str) -> Dict[str, Any]:
    """Set the first password of an invited profile and return the profile.

    A token stops working when it expires or once the profile's password
    changes, so each invite can be used only once.
    """
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    max_age = int(settings.INVITE_TOKEN_MAX_AGE_DAYS) * 24 * 60 * 60
    try:
        data = _invite_serializer().loads(token or "", max_age=max_age)
    except SignatureExpired:
        raise AuthError("Invite link has expired") from None
    except BadSignature:
        raise AuthError("Invite link is invalid") from None

    with get_session() as db:
        profile = db.get(Profile, data.get("uid"))
        if profile is None or profile.password[-HASH_FINGERPRINT_CHARS:] != data.get("pw"):
            raise AuthError("Invite link is invalid")
        profile.password = generate_password_hash(password)
        payload = _serialize(profile)
    logger.info("User %s accepted their invite", payload["id"])
    return payload


def authenticate(email: str, password: str) -> Dict[str, Any]:
    email = (email or "").strip().lower()
    with get_session() as db:
        profile = db.query(Profile).filter_by(email=email).first()
        if profile is None or not check_password_hash(profile.password, password or ""):
            raise AuthError("Invalid email or password")
        return _serialize(profile)


def set_password(profile_id, password: str) -> None:
    with get_session() as db:
        profile = db.get(Profile, profile_id)
        if profile is None:
            raise ValidationError(f"Unknown user {profile_id}")
        profile.password = generate_password_hash(password)


__all__ = [
    "create_user",
    "make_invite_token",
    "invite_link",
    "accept_invite",
    "authenticate",
    "set_password",
]
