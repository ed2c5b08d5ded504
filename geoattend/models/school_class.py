from datetime import datetime, timezone
from typing import Optional

from beanie import Document, Indexed
from pydantic import Field
from pymongo import ASCENDING, IndexModel


class SchoolClass(Document):
    """Class session owned by a teacher. Managed by the admin app; read-only here."""
    name: str
    teacher_id: Indexed(str)
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "classes"


class ClassEnrollment(Document):
    """Student membership of a class."""
    student_id: str
    class_id: Indexed(str)
    enrolled_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "class_enrollments"
        indexes = [
            IndexModel(
                [("student_id", ASCENDING), ("class_id", ASCENDING)],
                unique=True,
                name="student_class_unique",
            ),
        ]
