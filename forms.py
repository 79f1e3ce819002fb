import re
from typing import Any, Mapping

from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import (
    DateField,
    FieldList,
    Form,
    FormField,
    IntegerField,
    SelectField,
    StringField,
    TextAreaField,
)
from wtforms.validators import (
    UUID,
    StopValidation,
    DataRequired,
    Email,
    InputRequired,
    Length,
    NumberRange,
    Optional,
    Regexp,
)

from models.partition import TaskPriority, TaskStatus

STATUS_CHOICES = [(status.value, status.value) for status in TaskStatus]
PRIORITY_CHOICES = [(priority.value, priority.value) for priority in TaskPriority]
SORT_FIELD_CHOICES = [
    (field, field)
    for field in ("title", "dueDate", "priority", "status", "createdAt", "sortOrder")
]
SORT_DIRECTION_CHOICES = [("asc", "asc"), ("desc", "desc")]
HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def json_formdata(payload: Mapping[str, Any] | None) -> MultiDict:
    """Flatten a camelCase JSON object into WTForms formdata.

    Nested lists of objects use the FieldList naming scheme
    (``task_updates-0-sort_order``). ``None`` values are treated as absent.
    """
    formdata = MultiDict()

    def _add(prefix: str, value: Any):
        if value is None:
            return
        if isinstance(value, Mapping):
            for key, item in value.items():
                _add(f"{prefix}-{_snake(key)}", item)
        elif isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                _add(f"{prefix}-{index}", item)
        else:
            formdata.add(prefix, str(value))

    for key, value in (payload or {}).items():
        _add(_snake(str(key)), value)
    return formdata


def form_error_details(errors: Any, prefix: str = "") -> dict[str, str]:
    """Flatten WTForms errors into ``{"wireField": "first message"}``."""
    details: dict[str, str] = {}
    if isinstance(errors, Mapping):
        for name, nested in errors.items():
            key = _camel(str(name)) if name is not None else "form"
            details.update(form_error_details(nested, f"{prefix}{key}."))
    elif isinstance(errors, (list, tuple)):
        if errors and all(isinstance(item, str) for item in errors):
            details[prefix.rstrip(".")] = errors[0]
        else:
            for index, nested in enumerate(errors):
                details.update(form_error_details(nested, f"{prefix}{index}."))
    return details


class IfPresent:
    """Skip validation when the key is missing from the payload.

    Unlike Optional, an empty string still runs the remaining validators.
    """

    field_flags = {"optional": True}

    def __call__(self, form, field):
        if not field.raw_data:
            field.errors[:] = []
            raise StopValidation()


class JsonString:
    """Reject payload values that are not JSON strings. ``null`` counts as absent."""

    def __init__(self, message: str | None = None):
        self.message = message

    def __call__(self, form, field):
        value = getattr(form, "payload", {}).get(_camel(field.name))
        if value is not None and not isinstance(value, str):
            field.errors[:] = []
            raise StopValidation(self.message or f"{field.label.text} must be a string")


class JsonForm(FlaskForm):
    """Form fed from a JSON payload instead of a submitted HTML form."""

    def __init__(self, payload: Mapping[str, Any] | None = None, **kwargs):
        kwargs.setdefault("meta", {"csrf": False})
        super().__init__(formdata=json_formdata(payload), **kwargs)
        self.payload = dict(payload or {})


class UserForm(JsonForm):
    email = StringField("Email", [DataRequired(), Email()], filters=[_strip])
    name = StringField("Name", [Optional(), Length(max=120)], filters=[_strip])


class UserUpdateForm(JsonForm):
    email = StringField("Email", [Optional(), Email()], filters=[_strip])
    name = StringField("Name", [Optional(), Length(max=120)], filters=[_strip])


class ProfileForm(JsonForm):
    user_id = StringField("User", [DataRequired(), UUID(message="Invalid user ID")])
    name = StringField(
        "Name",
        [
            DataRequired(message="Profile name is required"),
            Length(max=50, message="Profile name must be 50 characters or less"),
        ],
        filters=[_strip],
    )
    color = StringField("Color", [Optional(), Regexp(HEX_COLOR, message="Invalid hex color format")])


class ProfileUpdateForm(JsonForm):
    name = StringField(
        "Name",
        [
            IfPresent(),
            DataRequired(message="Profile name is required"),
            Length(max=50, message="Profile name must be 50 characters or less"),
        ],
        filters=[_strip],
    )
    color = StringField("Color", [Optional(), Regexp(HEX_COLOR, message="Invalid hex color format")])


class CategoryForm(JsonForm):
    profile_id = StringField("Profile", [DataRequired(), UUID(message="Invalid profile ID")])
    name = StringField(
        "Name",
        [DataRequired(message="Category name is required"), Length(max=50)],
        filters=[_strip],
    )
    color = StringField("Color", [Optional(), Regexp(HEX_COLOR, message="Invalid hex color")])


class CategoryUpdateForm(JsonForm):
    name = StringField(
        "Name",
        [IfPresent(), DataRequired(message="Category name is required"), Length(max=50)],
        filters=[_strip],
    )
    color = StringField("Color", [Optional(), Regexp(HEX_COLOR, message="Invalid hex color")])


class TaskForm(JsonForm):
    profile_id = StringField("Profile", [DataRequired(), UUID(message="Invalid profile ID")])
    category_id = StringField("Category", [Optional(), UUID(message="Invalid category ID")])
    title = StringField(
        "Title",
        [JsonString(), DataRequired(message="Task title is required"), Length(max=200)],
        filters=[_strip],
    )
    description = TextAreaField("Description", [JsonString(), Optional()])
    status = SelectField("Status", choices=STATUS_CHOICES, default=TaskStatus.PENDING.value)
    priority = SelectField("Priority", choices=PRIORITY_CHOICES, default=TaskPriority.MEDIUM.value)
    due_date = DateField("Due Date", format="%Y-%m-%d", validators=[Optional()])


class TaskUpdateForm(JsonForm):
    category_id = StringField("Category", [Optional(), UUID(message="Invalid category ID")])
    title = StringField(
        "Title",
        [JsonString(), IfPresent(), DataRequired(message="Task title is required"), Length(max=200)],
        filters=[_strip],
    )
    description = TextAreaField("Description", [JsonString()])
    status = SelectField("Status", choices=STATUS_CHOICES, validators=[Optional()])
    priority = SelectField("Priority", choices=PRIORITY_CHOICES, validators=[Optional()])
    due_date = DateField("Due Date", format="%Y-%m-%d", validators=[Optional()])


class TaskStatusForm(JsonForm):
    status = SelectField("Status", choices=STATUS_CHOICES, validators=[InputRequired()])


class TaskFilterForm(JsonForm):
    status = SelectField("Status", choices=STATUS_CHOICES, validators=[Optional()])
    category_id = StringField("Category", [Optional(), UUID()])
    priority = SelectField("Priority", choices=PRIORITY_CHOICES, validators=[Optional()])
    search = StringField("Search", [Optional()], filters=[_strip])
    due_date_from = DateField("Due From", format="%Y-%m-%d", validators=[Optional()])
    due_date_to = DateField("Due To", format="%Y-%m-%d", validators=[Optional()])


class TaskListForm(TaskFilterForm):
    profile_id = StringField(
        "Profile",
        [InputRequired(message="profileId is required"), UUID(message="Invalid profile ID")],
    )
    sort_by = SelectField("Sort By", choices=SORT_FIELD_CHOICES, default="sortOrder")
    sort_direction = SelectField("Direction", choices=SORT_DIRECTION_CHOICES, default="asc")
    limit = IntegerField("Limit", [Optional(), NumberRange(min=1)])
    offset = IntegerField("Offset", [Optional(), NumberRange(min=0)])


class TaskSearchFilterForm(Form):
    status = SelectField("Status", choices=STATUS_CHOICES, validators=[Optional()])
    category_id = StringField("Category", [Optional(), UUID()])
    priority = SelectField("Priority", choices=PRIORITY_CHOICES, validators=[Optional()])
    due_date_from = DateField("Due From", format="%Y-%m-%d", validators=[Optional()])
    due_date_to = DateField("Due To", format="%Y-%m-%d", validators=[Optional()])


class TaskSearchForm(JsonForm):
    user_id = StringField("User", [DataRequired(), UUID(message="Invalid user ID")])
    query = StringField(
        "Query", [DataRequired(message="Search query is required")], filters=[_strip]
    )
    filters = FormField(TaskSearchFilterForm)


class TaskOrderEntryForm(Form):
    id = StringField("Task", [InputRequired(), UUID(message="Invalid task ID")])
    sort_order = IntegerField("Sort Order", [InputRequired(), NumberRange(min=0)])


class BulkTaskOrderForm(JsonForm):
    task_updates = FieldList(FormField(TaskOrderEntryForm))
