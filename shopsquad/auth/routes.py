"""Routes for signing in, registering and managing the account."""

import time

from firebase_admin import auth, firestore
from flask import current_app, g, jsonify, request, session

from shopsquad.core.constants import USERS_COLLECTION
from shopsquad.errors import DuplicateResourceError, PermissionDeniedError, ValidationError
from shopsquad.extensions import csrf
from shopsquad.utils import EmailError, avatar_url, first_form_error, send_email

from . import bp
from .decorators import login_required
from .forms import (
    ChangePasswordForm,
    RegisterForm,
    ResetPasswordRequestForm,
    UpdateProfileForm,
)


def _user_payload(uid, data):
    return {
        "uid": uid,
        "name": data.get("name"),
        "email": data.get("email"),
        "avatar": data.get("avatar"),
        "isAdmin": data.get("isAdmin", False),
    }


@bp.route("/session_login", methods=["POST"])
@csrf.exempt
def session_login():
    """
    Called by the client after a successful Firebase sign-in.
    It receives the ID token, verifies it, and creates a server-side session.
    """
    id_token = (request.get_json(silent=True) or {}).get("idToken")
    if not id_token:
        return jsonify({"status": "error", "message": "Missing ID token."}), 400
    try:
        decoded_token = auth.verify_id_token(id_token)
    except Exception as e:
        current_app.logger.error(f"Error during session login: {e}")
        return jsonify({"status": "error", "message": "Invalid token or server error."}), 401

    uid = decoded_token["uid"]
    db = firestore.client()
    user_ref = db.collection(USERS_COLLECTION).document(uid)
    user_doc = user_ref.get()
    if user_doc.exists:
        user_info = user_doc.to_dict() or {}
    else:
        # First sign-in through a provider that skipped /register.
        user_info = {
            "name": decoded_token.get("name") or decoded_token.get("email"),
            "email": decoded_token.get("email", ""),
            "avatar": avatar_url(decoded_token),
            "isAdmin": False,
        }
        user_ref.set({**user_info, "createdAt": firestore.SERVER_TIMESTAMP})

    session["user_id"] = uid
    session["is_admin"] = user_info.get("isAdmin", False)
    return jsonify({"status": "success", "user": _user_payload(uid, user_info)})


@bp.route("/logout", methods=["POST"])
def logout():
    """Clear the server-side session. Firebase sign-out happens on the client."""
    session.clear()
    return jsonify({"status": "success", "message": "You have been logged out."})


@bp.route("/me", methods=["GET"])
@login_required
def me():
    """Return the signed-in user."""
    return jsonify(_user_payload(g.user["uid"], g.user))


@bp.route("/register", methods=["POST"])
def register():
    """Create a Firebase Auth account and its profile document."""
    form = RegisterForm()
    if not form.validate_on_submit():
        raise ValidationError(first_form_error(form))

    name = form.name.data.strip()
    email = form.email.data.strip().lower()
    try:
        user_record = auth.create_user(
            email=email,
            password=form.password.data,
            display_name=name,
            email_verified=False,
        )
    except auth.EmailAlreadyExistsError:
        raise DuplicateResourceError("Email address is already registered.") from None

    profile = {
        "name": name,
        "email": email,
        "avatar": avatar_url({"name": name}),
        "isAdmin": False,
    }
    db = firestore.client()
    db.collection(USERS_COLLECTION).document(user_record.uid).set(
        {**profile, "createdAt": firestore.SERVER_TIMESTAMP}
    )
    return (
        jsonify({"status": "success", "user": _user_payload(user_record.uid, profile)}),
        201,
    )


@bp.route("/reset_password", methods=["POST"])
def reset_password_request():
    """Email a password reset link. The response never reveals if the email exists."""
    form = ResetPasswordRequestForm()
    if not form.validate_on_submit():
        raise ValidationError(first_form_error(form))

    email = form.email.data.strip().lower()
    try:
        reset_link = auth.generate_password_reset_link(email)
        send_email(
            to=email,
            subject="Reset Your ShopSquad Password",
            template="email/password_reset.html",
            name=email,
            reset_link=reset_link,
        )
    except auth.UserNotFoundError:
        current_app.logger.info(f"Password reset requested for unknown email {email}")
    except EmailError as e:
        current_app.logger.error(f"Password reset email failed: {e}")

    return jsonify(
        {
            "status": "success",
            "message": "If an account exists for that email, a reset link is on its way.",
        }
    )


@bp.route("/profile", methods=["POST"])
@login_required
def update_profile():
    """Change the display name and avatar in Firebase Auth and Firestore."""
    form = UpdateProfileForm()
    if not form.validate_on_submit():
        raise ValidationError(first_form_error(form))

    uid = g.user["uid"]
    name = form.name.data.strip()
    updates = {"name": name}
    if form.photo_url.data:
        updates["avatar"] = form.photo_url.data
    auth.update_user(uid, display_name=name, photo_url=form.photo_url.data or None)
    firestore.client().collection(USERS_COLLECTION).document(uid).update(updates)
    return jsonify({"status": "success", "user": _user_payload(uid, {**g.user, **updates})})


@bp.route("/change_password", methods=["POST"])
@login_required
def change_password():
    """Change the password; the client must have signed in again moments ago."""
    form = ChangePasswordForm()
    if not form.validate_on_submit():
        raise ValidationError(first_form_error(form))

    try:
        decoded_token = auth.verify_id_token(form.id_token.data)
    except Exception as e:
        current_app.logger.warning(f"Re-authentication failed: {e}")
        raise PermissionDeniedError("Please sign in again to change your password.") from e

    max_age = current_app.config["REAUTH_MAX_AGE_SECONDS"]
    if decoded_token.get("uid") != g.user["uid"] or (
        time.time() - decoded_token.get("auth_time", 0) > max_age
    ):
        raise PermissionDeniedError("Please sign in again to change your password.")

    auth.update_user(g.user["uid"], password=form.new_password.data)
    return jsonify({"status": "success", "message": "Your password has been changed."})
