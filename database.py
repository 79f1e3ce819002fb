import uuid
from datetime import datetime
from typing import Optional

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def generate_id() -> str:
    """Primary key factory shared by all models."""
    return str(uuid.uuid4())


def isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()
