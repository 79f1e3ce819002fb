"""User management blueprint, including first-run onboarding."""
from __future__ import annotations

import logging

from flask import Blueprint
from sqlalchemy.exc import SQLAlchemyError

from database import db
from forms import UserForm, UserUpdateForm
from routes import error_response, is_valid_id, json_payload, success_response, validation_error
from services.errors import ConflictError
from services.onboarding_service import create_sample_data
from services.profile_service import serialize_profile
from services.user_service import create_user, delete_user, get_user, list_users, update_user

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _load_user(user_id: str):
    if not is_valid_id(user_id):
        return None, error_response("Invalid user ID format", status=400)
    user = get_user(user_id)
    if user is None:
        return None, error_response("User not found", status=404)
    return user, None


@users_bp.route("", methods=["GET"])
def index():
    return success_response([user.to_dict() for user in list_users()])


@users_bp.route("", methods=["POST"])
def create():
    form = UserForm(json_payload())
    if not form.validate():
        return validation_error(form)
    try:
        user = create_user(form.email.data, form.name.data or None)
    except ConflictError as exc:
        return error_response(str(exc), {exc.field: str(exc)}, status=409)
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while creating user", exc_info=True)
        return error_response("Failed to create user", status=500)
    return success_response(user.to_dict(), "User created successfully", status=201)


@users_bp.route("/<user_id>", methods=["GET"])
def detail(user_id: str):
    user, error = _load_user(user_id)
    if error:
        return error
    return success_response(user.to_dict(include_profiles=True))


@users_bp.route("/<user_id>", methods=["PUT"])
def update(user_id: str):
    user, error = _load_user(user_id)
    if error:
        return error
    payload = json_payload()
    if payload is None:
        return error_response("Request body must be a JSON object", status=400)
    form = UserUpdateForm(payload)
    if not form.validate():
        return validation_error(form)
    try:
        user = update_user(user, {"email": form.email.data or None, "name": form.name.data or None})
    except ConflictError as exc:
        db.session.rollback()
        return error_response(str(exc), {exc.field: str(exc)}, status=409)
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while updating user %s", user_id, exc_info=True)
        return error_response("Failed to update user", status=500)
    return success_response(user.to_dict(), "User updated successfully")


@users_bp.route("/<user_id>", methods=["DELETE"])
def delete(user_id: str):
    user, error = _load_user(user_id)
    if error:
        return error
    try:
        delete_user(user)
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while deleting user %s", user_id, exc_info=True)
        return error_response("Failed to delete user", status=500)
    return success_response({"id": user_id, "deleted": True}, "User deleted successfully")


@users_bp.route("/<user_id>/onboard", methods=["POST"])
def onboard(user_id: str):
    """Create the sample Work and Personal profiles for a user without any."""
    user, error = _load_user(user_id)
    if error:
        return error
    if user.profiles:
        return error_response("User already has profiles", status=409)
    try:
        created = create_sample_data(user.id)
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while onboarding user %s", user_id, exc_info=True)
        return error_response("Failed to create sample data", status=500)
    logging.info("Created sample data for user %s", user_id)
    return success_response(
        {
            "profiles": [serialize_profile(profile) for profile in created["profiles"]],
            "taskCount": len(created["tasks"]),
        },
        "Sample data created successfully",
        status=201,
    )
