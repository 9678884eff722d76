"""Forms for the party blueprint."""

from flask_wtf import FlaskForm
from wtforms import DateTimeField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional

from shopsquad.core.constants import (
    PARTY_STATUSES,
    PRODUCT_KEPT,
    PRODUCT_RETURNED,
    REACTION_TYPES,
)

from .services import MAX_MESSAGE_LENGTH

PARTY_DATE_FORMATS = ["%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M"]


class PartyForm(FlaskForm):
    """Form for creating a new squad."""

    title = StringField("Title", validators=[DataRequired(), Length(max=120)])
    date = DateTimeField(
        "Date",
        format=PARTY_DATE_FORMATS,
        validators=[DataRequired(message="Invalid date or time")],
    )
    location = StringField("Location", validators=[DataRequired(), Length(max=200)])


class AddProductForm(FlaskForm):
    """Form for adding a catalog product to a squad."""

    product_id = StringField("Product", validators=[DataRequired()])
    size = StringField("Size", validators=[Optional()])
    color = StringField("Color", validators=[Optional()])


class CouponForm(FlaskForm):
    """Form for applying a coupon code."""

    code = StringField("Coupon Code", validators=[DataRequired()])


class MessageForm(FlaskForm):
    """Form for posting a chat message."""

    text = TextAreaField(
        "Message", validators=[DataRequired(), Length(max=MAX_MESSAGE_LENGTH)]
    )


class StatusForm(FlaskForm):
    """Form for moving a squad to another status."""

    status = SelectField(
        "Status",
        choices=[(s, s) for s in PARTY_STATUSES],
        validators=[DataRequired()],
    )


class ReactionForm(FlaskForm):
    """Form for liking or disliking a product."""

    type = SelectField(
        "Reaction",
        choices=[(r, r) for r in REACTION_TYPES],
        validators=[DataRequired()],
    )


class ProductStatusForm(FlaskForm):
    """Form for keeping or returning a product."""

    status = SelectField(
        "Decision",
        choices=[(PRODUCT_KEPT, PRODUCT_KEPT), (PRODUCT_RETURNED, PRODUCT_RETURNED)],
        validators=[DataRequired()],
    )


class InviteForm(FlaskForm):
    """Form for inviting another user to a squad."""

    user_id = StringField("User", validators=[DataRequired()])
