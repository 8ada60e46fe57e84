"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Academic content forms a strict containment chain:
`Module -> Subject -> Lecture -> LectureLink`, and every module belongs to
a `Year`. Users are assigned to a year too, which is what scopes their
access to content.
"""

from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime, date, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    """Roles a user account can hold."""
    ADMIN = "Admin"
    STUDENT = "Student"


class Year(SQLModel, table=True):
    """An academic cohort grouping (e.g. "Year 1")."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, nullable=False, unique=True)
    created_at: datetime = Field(default_factory=utcnow)


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    - `role`: `Admin` or `Student`
    - `year_id`: the year the user is enrolled in; scopes content access
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    role: UserRole = Field(default=UserRole.STUDENT)
    year_id: Optional[int] = Field(default=None, foreign_key='year.id')
    created_at: datetime = Field(default_factory=utcnow)


class Faculty(SQLModel, table=True):
    """A faculty (school) offering modules."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    city: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Module(SQLModel, table=True):
    """A module taught in a given year.

    `year_id` is the authorization scope for everything contained in the
    module.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    year_id: int = Field(foreign_key='year.id', index=True)
    faculty_id: Optional[int] = Field(default=None, foreign_key='faculty.id')
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Subject(SQLModel, table=True):
    """A subject belonging to a `Module`."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    module_id: int = Field(foreign_key='module.id', index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Lecture(SQLModel, table=True):
    """A single lecture of a `Subject`."""
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: Optional[str] = None
    lecturer: Optional[str] = None
    lecture_date: Optional[date] = None
    subject_id: int = Field(foreign_key='subject.id', index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class LectureLink(SQLModel, table=True):
    """An external resource (slides, recording, ...) attached to a lecture."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    url: str
    lecture_id: int = Field(foreign_key='lecture.id', index=True)
    created_at: datetime = Field(default_factory=utcnow)
