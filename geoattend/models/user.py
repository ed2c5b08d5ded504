"""Authenticated callers: identity comes from the bearer token's claims."""
from enum import Enum

from pydantic import BaseModel


class UserRole(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class Principal(BaseModel):
    id: str
    role: UserRole
