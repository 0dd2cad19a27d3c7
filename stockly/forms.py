from flask_wtf import FlaskForm
from wtforms import IntegerField, PasswordField, SelectField, StringField
from wtforms.validators import DataRequired, Length, Optional

from .constants import USER_ROLES


class LoginForm(FlaskForm):
    email = StringField("email", validators=[DataRequired()])
    password = PasswordField("password", validators=[DataRequired()])


class AcceptInviteForm(FlaskForm):
    token = StringField("token", validators=[DataRequired()])
    password = PasswordField("password", validators=[DataRequired(), Length(max=128)])


class UserCreateForm(FlaskForm):
    email = StringField("email", validators=[DataRequired(), Length(max=254)])
    full_name = StringField("full_name", validators=[DataRequired(), Length(max=200)])
    role = SelectField(
        "role",
        choices=[(role, role.title()) for role in USER_ROLES],
        default="staff",
        coerce=lambda value: str(value).strip().lower(),
        validators=[Optional()],
    )
    site_id = IntegerField("site_id", validators=[Optional()])


def first_error(form) -> str:
    """Return a readable message for the first failing field."""
    for field_name, errors in form.errors.items():
        if errors:
            return f"{field_name}: {errors[0]}"
    return "Invalid request"
