"""Category management blueprint."""
from __future__ import annotations

import logging

from flask import Blueprint, request
from sqlalchemy.exc import SQLAlchemyError

from database import db
from forms import CategoryForm, CategoryUpdateForm
from routes import error_response, is_valid_id, json_payload, success_response, validation_error
from services.category_service import (
    create_category,
    delete_category,
    get_category,
    get_profile_categories,
    update_category,
)
from services.errors import NotFoundError

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.route("", methods=["GET"])
def list_categories():
    profile_id = request.args.get("profileId")
    if not profile_id:
        return error_response("profileId is required", status=400)
    if not is_valid_id(profile_id):
        return error_response("Invalid profile ID format", status=400)
    categories = get_profile_categories(profile_id)
    return success_response([category.to_dict() for category in categories])


@categories_bp.route("", methods=["POST"])
def create():
    form = CategoryForm(json_payload())
    if not form.validate():
        return validation_error(form)
    try:
        category = create_category(form.profile_id.data, form.name.data, form.color.data or None)
    except NotFoundError as exc:
        return error_response(str(exc), status=404)
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while creating category", exc_info=True)
        return error_response("Failed to create category", status=500)
    return success_response(category.to_dict(), "Category created successfully", status=201)


@categories_bp.route("/<category_id>", methods=["GET"])
def detail(category_id: str):
    if not is_valid_id(category_id):
        return error_response("Invalid category ID format", status=400)
    category = get_category(category_id)
    if category is None:
        return error_response("Category not found", status=404)
    return success_response(category.to_dict(include_tasks=True))


@categories_bp.route("/<category_id>", methods=["PUT"])
def update(category_id: str):
    if not is_valid_id(category_id):
        return error_response("Invalid category ID format", status=400)
    payload = json_payload()
    if payload is None:
        return error_response("Request body must be a JSON object", status=400)
    form = CategoryUpdateForm(payload)
    if not form.validate():
        return validation_error(form)
    category = get_category(category_id)
    if category is None:
        return error_response("Category not found", status=404)
    try:
        category = update_category(
            category,
            {
                "name": form.name.data if payload.get("name") is not None else None,
                "color": form.color.data if payload.get("color") is not None else None,
            },
        )
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while updating category %s", category_id, exc_info=True)
        return error_response("Failed to update category", status=500)
    return success_response(category.to_dict(), "Category updated successfully")


@categories_bp.route("/<category_id>", methods=["DELETE"])
def delete(category_id: str):
    if not is_valid_id(category_id):
        return error_response("Invalid category ID format", status=400)
    category = get_category(category_id)
    if category is None:
        return error_response("Category not found", status=404)
    try:
        detached = delete_category(category)
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while deleting category %s", category_id, exc_info=True)
        return error_response("Failed to delete category", status=500)
    return success_response(
        {"id": category_id, "deleted": True, "detachedTasks": detached},
        "Category deleted successfully",
    )
