"""Forms for the auth blueprint."""

from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField
from wtforms.validators import URL, DataRequired, Email, EqualTo, Length, Optional

MIN_PASSWORD_LENGTH = 6


class RegisterForm(FlaskForm):
    """Form for creating an account."""

    name = StringField("Name", validators=[DataRequired(), Length(max=80)])
    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField(
        "Password", validators=[DataRequired(), Length(min=MIN_PASSWORD_LENGTH)]
    )
    confirm_password = PasswordField(
        "Confirm Password",
        validators=[
            DataRequired(),
            EqualTo("password", message="Passwords do not match"),
        ],
    )


class ResetPasswordRequestForm(FlaskForm):
    """Form for requesting a password reset email."""

    email = StringField("Email", validators=[DataRequired(), Email()])


class UpdateProfileForm(FlaskForm):
    """Form for changing the display name and avatar."""

    name = StringField("Name", validators=[DataRequired(), Length(max=80)])
    photo_url = StringField("Photo URL", validators=[Optional(), URL()])


class ChangePasswordForm(FlaskForm):
    """Form for changing the password after signing in again."""

    id_token = StringField("ID Token", validators=[DataRequired()])
    new_password = PasswordField(
        "New Password", validators=[DataRequired(), Length(min=MIN_PASSWORD_LENGTH)]
    )
    confirm_password = PasswordField(
        "Confirm Password",
        validators=[
            DataRequired(),
            EqualTo("new_password", message="Passwords do not match"),
        ],
    )
