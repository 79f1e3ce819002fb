"""Profile management blueprint."""
from __future__ import annotations

import logging

from flask import Blueprint, request
from sqlalchemy.exc import SQLAlchemyError

from database import db
from forms import ProfileForm, ProfileUpdateForm
from routes import error_response, is_valid_id, json_payload, success_response, validation_error
from services.errors import ConflictError, NotFoundError
from services.profile_service import (
    PROFILE_NAME_CONFLICT,
    create_profile,
    delete_profile,
    get_profile,
    get_user_profiles,
    serialize_profile,
    update_profile,
)

profiles_bp = Blueprint("profiles", __name__, url_prefix="/api/profiles")


def _conflict(exc: ConflictError):
    return error_response(str(exc), {exc.field or "name": PROFILE_NAME_CONFLICT}, status=409)


@profiles_bp.route("", methods=["GET"])
def list_profiles():
    user_id = request.args.get("userId")
    if not user_id:
        return error_response("userId is required", status=400)
    if not is_valid_id(user_id):
        return error_response("Invalid user ID format", status=400)
    profiles = get_user_profiles(user_id)
    return success_response([serialize_profile(profile) for profile in profiles])


@profiles_bp.route("", methods=["POST"])
def create():
    form = ProfileForm(json_payload())
    if not form.validate():
        return validation_error(form)
    try:
        profile = create_profile(form.user_id.data, form.name.data, form.color.data or None)
    except ConflictError as exc:
        return _conflict(exc)
    except NotFoundError as exc:
        return error_response(str(exc), status=404)
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while creating profile", exc_info=True)
        return error_response("Failed to create profile", status=500)
    return success_response(serialize_profile(profile), "Profile created successfully", status=201)


@profiles_bp.route("/<profile_id>", methods=["GET"])
def detail(profile_id: str):
    if not is_valid_id(profile_id):
        return error_response("Invalid profile ID format", status=400)
    profile = get_profile(profile_id)
    if profile is None:
        return error_response("Profile not found", status=404)
    return success_response(serialize_profile(profile, include_stats=True))


@profiles_bp.route("/<profile_id>", methods=["PUT"])
def update(profile_id: str):
    if not is_valid_id(profile_id):
        return error_response("Invalid profile ID format", status=400)
    payload = json_payload()
    if payload is None:
        return error_response("Request body must be a JSON object", status=400)
    form = ProfileUpdateForm(payload)
    if not form.validate():
        return validation_error(form)
    profile = get_profile(profile_id)
    if profile is None:
        return error_response("Profile not found", status=404)

    changes = {}
    if payload.get("name") is not None:
        changes["name"] = form.name.data
    if payload.get("color") is not None:
        changes["color"] = form.color.data
    try:
        profile = update_profile(profile, changes)
    except ConflictError as exc:
        db.session.rollback()
        return _conflict(exc)
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while updating profile %s", profile_id, exc_info=True)
        return error_response("Failed to update profile", status=500)
    return success_response(serialize_profile(profile), "Profile updated successfully")


@profiles_bp.route("/<profile_id>", methods=["DELETE"])
def delete(profile_id: str):
    if not is_valid_id(profile_id):
        return error_response("Invalid profile ID format", status=400)
    profile = get_profile(profile_id)
    if profile is None:
        return error_response("Profile not found", status=404)
    try:
        delete_profile(profile)
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while deleting profile %s", profile_id, exc_info=True)
        return error_response("Failed to delete profile", status=500)
    return success_response({"id": profile_id, "deleted": True}, "Profile deleted successfully")
