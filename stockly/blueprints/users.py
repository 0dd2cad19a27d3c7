"""User management and session login."""

import logging

from flask import Blueprint, jsonify, request
from werkzeug.datastructures import MultiDict

from ..auth import current_company_id, login_required, login_user, logout_user
from ..domain import users
from ..errors import ValidationError
from ..forms import AcceptInviteForm, LoginForm, UserCreateForm, first_error

logger = logging.getLogger(__name__)

bp = Blueprint("users", __name__, url_prefix="/api")


def _form_data():
    body = request.get_json(silent=True) or {}
    return MultiDict({key: str(value) for key, value in body.items() if value is not None})


@bp.route("/auth/login", methods=["POST"])
def login():
    form = LoginForm(formdata=_form_data(), meta={"csrf": False})
    if not form.validate():
        raise ValidationError(first_error(form))
    profile = users.authenticate(form.email.data, form.password.data)
    login_user(profile)
    logger.info("User %s logged in", profile["id"])
    return jsonify({"success": True, "data": profile})


@bp.route("/auth/accept-invite", methods=["POST"])
def accept_invite():
    """Choose a first password from an invite link and start a session."""
    form = AcceptInviteForm(formdata=_form_data(), meta={"csrf": False})
    if not form.validate():
        raise ValidationError(first_error(form))
    profile = users.accept_invite(form.token.data, form.password.data)
    login_user(profile)
    return jsonify({"success": True, "data": profile})


@bp.route("/auth/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})


@bp.route("/users/create", methods=["POST"])
@login_required
def create_user():
    form = UserCreateForm(formdata=_form_data(), meta={"csrf": False})
    if not form.validate():
        raise ValidationError(first_error(form))
    profile = users.create_user(
        current_company_id(),
        email=form.email.data,
        full_name=form.full_name.data,
        role=form.role.data,
        site_id=form.site_id.data,
    )
    return jsonify({"success": True, "data": profile}), 201
