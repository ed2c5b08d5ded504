"""Read-only view of class membership and class ownership."""
from __future__ import annotations

from collections import defaultdict
from typing import Protocol

from beanie import PydanticObjectId

from geoattend.models.school_class import ClassEnrollment, SchoolClass


def safe_object_id(value: str | None) -> PydanticObjectId | None:
    if not value:
        return None
    try:
        return PydanticObjectId(value)
    except Exception:
        return None


class EnrollmentDirectory(Protocol):
    async def is_enrolled(self, student_id: str, class_id: str) -> bool: ...

    async def teaches(self, teacher_id: str, class_id: str) -> bool: ...


class MongoEnrollmentDirectory:
    async def is_enrolled(self, student_id: str, class_id: str) -> bool:
        enrollment = await ClassEnrollment.find_one({"student_id": student_id, "class_id": class_id})
        return enrollment is not None

    async def teaches(self, teacher_id: str, class_id: str) -> bool:
        oid = safe_object_id(class_id)
        if not oid:
            return False
        school_class = await SchoolClass.get(oid)
        return bool(school_class and school_class.teacher_id == teacher_id)


class InMemoryEnrollmentDirectory:
    def __init__(self):
        self._students: dict[str, set[str]] = defaultdict(set)
        self._teachers: dict[str, str] = {}

    def enroll(self, student_id: str, class_id: str) -> None:
        self._students[class_id].add(student_id)

    def assign_teacher(self, teacher_id: str, class_id: str) -> None:
        self._teachers[class_id] = teacher_id

    async def is_enrolled(self, student_id: str, class_id: str) -> bool:
        return student_id in self._students.get(class_id, ())

    async def teaches(self, teacher_id: str, class_id: str) -> bool:
        return self._teachers.get(class_id) == teacher_id
