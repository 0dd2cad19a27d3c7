"""Session-based authentication helpers for the JSON API."""

from functools import wraps

from flask import jsonify, session

from .errors import AuthError

SESSION_KEYS = ("user_id", "company_id", "site_id", "role", "email")


def login_required(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        if "user_id" not in session or "company_id" not in session:
            return jsonify(AuthError("Authentication required").to_dict()), 401
        return func(*args, **kwargs)

    return wrapper


def login_user(profile: dict) -> None:
    session.clear()
    session["user_id"] = profile["id"]
    session["company_id"] = profile["company_id"]
    session["site_id"] = profile.get("site_id")
    session["role"] = profile.get("role")
    session["email"] = profile.get("email")


def logout_user() -> None:
    for key in SESSION_KEYS:
        session.pop(key, None)


def current_user_id():
    return session.get("user_id")


def current_company_id():
    return session.get("company_id")


def current_site_id():
    return session.get("site_id")
