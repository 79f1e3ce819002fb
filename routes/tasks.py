"""Task JSON API blueprint: CRUD, status changes, bulk reorder and search."""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from flask import Blueprint, request
from sqlalchemy.exc import SQLAlchemyError

from database import db
from forms import (
    BulkTaskOrderForm,
    TaskForm,
    TaskListForm,
    TaskSearchForm,
    TaskStatusForm,
    TaskUpdateForm,
)
from routes import error_response, is_valid_id, json_payload, success_response, validation_error
from services.errors import CrossPartitionError, NotFoundError, TaskNotFoundError
from services.ordering_service import OrderUpdate, bulk_reorder, change_status, check_batch
from services.task_service import (
    TaskFilters,
    TaskSort,
    create_task,
    delete_task,
    get_task,
    list_tasks,
    overdue_tasks,
    search_tasks,
    tasks_due_today,
    update_task,
)

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


def _to_datetime(value: date | None) -> datetime | None:
    if value is None:
        return None
    return datetime(value.year, value.month, value.day)


def _serialize(tasks) -> list[dict[str, Any]]:
    return [task.to_dict() for task in tasks]


def _invalid_body():
    return error_response("Request body must be a JSON object", status=400)


@tasks_bp.route("", methods=["GET"])
def list_profile_tasks():
    form = TaskListForm(request.args.to_dict())
    if not form.validate():
        if "profile_id" in form.errors:
            return error_response(form.errors["profile_id"][0], status=400)
        return validation_error(form, "Invalid filters")

    filters = TaskFilters(
        status=form.status.data or None,
        category_id=form.category_id.data or None,
        priority=form.priority.data or None,
        search=form.search.data or None,
        due_date_from=_to_datetime(form.due_date_from.data),
        due_date_to=_to_datetime(form.due_date_to.data),
    )
    sort = TaskSort(field=form.sort_by.data, direction=form.sort_direction.data)
    try:
        tasks = list_tasks(
            form.profile_id.data,
            filters,
            sort,
            limit=form.limit.data,
            offset=form.offset.data,
        )
    except SQLAlchemyError:
        logging.error("Database error while listing tasks", exc_info=True)
        return error_response("Failed to fetch tasks", status=500)
    return success_response(_serialize(tasks))


@tasks_bp.route("", methods=["POST"])
def create():
    payload = json_payload()
    if payload is None:
        return _invalid_body()
    form = TaskForm(payload)
    if not form.validate():
        return validation_error(form)

    try:
        task = create_task(
            form.profile_id.data,
            form.title.data,
            description=payload.get("description"),
            status=form.status.data,
            priority=form.priority.data,
            due_date=_to_datetime(form.due_date.data),
            category_id=form.category_id.data or None,
        )
    except NotFoundError as exc:
        return error_response(str(exc), status=404)
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while adding task", exc_info=True)
        return error_response("Failed to create task", status=500)
    return success_response(task.to_dict(), "Task created successfully", status=201)


@tasks_bp.route("/<task_id>", methods=["GET"])
def detail(task_id: str):
    if not is_valid_id(task_id):
        return error_response("Invalid task ID format", status=400)
    task = get_task(task_id)
    if task is None:
        return error_response("Task not found", status=404)
    return success_response(task.to_dict())


@tasks_bp.route("/<task_id>", methods=["PUT"])
def update(task_id: str):
    if not is_valid_id(task_id):
        return error_response("Invalid task ID format", status=400)
    payload = json_payload()
    if payload is None:
        return _invalid_body()
    form = TaskUpdateForm(payload)
    if not form.validate():
        return validation_error(form)

    task = get_task(task_id)
    if task is None:
        return error_response("Task not found", status=404)

    changes: dict[str, Any] = {}
    if payload.get("title") is not None:
        changes["title"] = form.title.data
    if "description" in payload:
        changes["description"] = payload["description"]
    if payload.get("status") is not None:
        changes["status"] = form.status.data
    if payload.get("priority") is not None:
        changes["priority"] = form.priority.data
    if "dueDate" in payload:
        changes["due_date"] = _to_datetime(form.due_date.data)
    if "categoryId" in payload:
        changes["category_id"] = form.category_id.data or None

    try:
        task = update_task(task, changes)
    except NotFoundError as exc:
        db.session.rollback()
        return error_response(str(exc), status=404)
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error during task update", exc_info=True)
        return error_response("Failed to update task", status=500)
    return success_response(task.to_dict(), "Task updated successfully")


@tasks_bp.route("/<task_id>/status", methods=["PATCH"])
def update_status(task_id: str):
    if not is_valid_id(task_id):
        return error_response("Invalid task ID format", status=400)
    payload = json_payload()
    if payload is None:
        return _invalid_body()
    form = TaskStatusForm(payload)
    if not form.validate():
        return validation_error(form)

    try:
        task = change_status(task_id, form.status.data)
    except TaskNotFoundError:
        return error_response("Task not found", status=404)
    except SQLAlchemyError:
        return error_response("Failed to update task status", status=500)
    return success_response(task.to_dict(), "Task status updated successfully")


@tasks_bp.route("/<task_id>", methods=["DELETE"])
def delete(task_id: str):
    if not is_valid_id(task_id):
        return error_response("Invalid task ID format", status=400)
    task = get_task(task_id)
    if task is None:
        return error_response("Task not found", status=404)
    profile_id = task.profile_id
    try:
        delete_task(task)
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while deleting task %s", task_id, exc_info=True)
        return error_response("Failed to delete task", status=500)
    return success_response(
        {"id": task_id, "profileId": profile_id, "deleted": True},
        "Task deleted successfully",
    )


@tasks_bp.route("/reorder", methods=["POST"])
def reorder():
    """Persist a new manual order for a set of tasks, all or nothing."""
    payload = json_payload()
    if payload is None or not isinstance(payload.get("taskUpdates"), list):
        return error_response(
            "Validation failed",
            {"taskUpdates": "Expected an array of task updates"},
            status=400,
        )
    form = BulkTaskOrderForm(payload)
    if not form.validate():
        return validation_error(form)

    updates = [
        OrderUpdate(task_id=entry.data["id"], sort_order=entry.data["sort_order"])
        for entry in form.task_updates
    ]
    task_ids = [update.task_id for update in updates]
    if len(set(task_ids)) != len(task_ids):
        return error_response(
            "Validation failed",
            {"taskUpdates": "Each task may appear only once"},
            status=400,
        )

    try:
        check_batch(task_ids)
        updated = bulk_reorder(updates)
    except TaskNotFoundError as exc:
        return error_response(str(exc), status=404)
    except CrossPartitionError as exc:
        return error_response(str(exc), status=400)
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Error updating task order", exc_info=True)
        return error_response("Error updating task order", status=500)
    return success_response(
        {"updated": updated, "failed": 0},
        "Task order updated successfully",
    )


@tasks_bp.route("/search", methods=["POST"])
def search():
    payload = json_payload()
    if payload is None:
        return _invalid_body()
    form = TaskSearchForm(payload)
    if not form.validate():
        return validation_error(form)

    filter_form = form.filters.form
    filters = TaskFilters(
        status=filter_form.status.data or None,
        category_id=filter_form.category_id.data or None,
        priority=filter_form.priority.data or None,
        due_date_from=_to_datetime(filter_form.due_date_from.data),
        due_date_to=_to_datetime(filter_form.due_date_to.data),
    )
    try:
        results = search_tasks(form.user_id.data, form.query.data, filters)
    except SQLAlchemyError:
        logging.error("Database error while searching tasks", exc_info=True)
        return error_response("Failed to search tasks", status=500)
    return success_response(
        {"results": _serialize(results), "query": form.query.data, "total": len(results)}
    )


def _profile_id_argument():
    profile_id = request.args.get("profileId")
    if not profile_id:
        return None, error_response("profileId is required", status=400)
    if not is_valid_id(profile_id):
        return None, error_response("Invalid profile ID format", status=400)
    return profile_id, None


@tasks_bp.route("/overdue", methods=["GET"])
def overdue():
    profile_id, error = _profile_id_argument()
    if error:
        return error
    return success_response(_serialize(overdue_tasks(profile_id)))


@tasks_bp.route("/due-today", methods=["GET"])
def due_today():
    profile_id, error = _profile_id_argument()
    if error:
        return error
    return success_response(_serialize(tasks_due_today(profile_id)))
