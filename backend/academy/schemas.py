"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. Mutation payloads are parsed inside the
services (after authorization) through `parse_payload`, so an
unauthorized caller is rejected before the body is ever inspected.
"""

from datetime import date
from typing import Annotated, Any, ClassVar, Optional, Type, TypeVar

from pydantic import AfterValidator, AnyHttpUrl, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from . import errors, models
from .models import UserRole


class RegisterIn(BaseModel):
    """Payload for user registration and admin bootstrap."""
    username: str = Field(min_length=3, max_length=64)
    password: str = Field(min_length=6, max_length=128)
    year_id: int


class LoginIn(BaseModel):
    """Payload for the login endpoint."""
    username: str
    password: str


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    """Public view of a user account (no password hash)."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role: UserRole
    year_id: Optional[int] = None


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class YearIn(_Strict):
    name: str = Field(min_length=1, max_length=200)


class FacultyIn(_Strict):
    name: str = Field(min_length=1, max_length=200)
    city: Optional[str] = Field(default=None, max_length=200)


class FacultyUpdate(_Strict):
    table_model: ClassVar[type] = models.Faculty

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    city: Optional[str] = Field(default=None, max_length=200)


class ModuleIn(_Strict):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    year_id: Optional[int] = None
    faculty_id: Optional[int] = None


class ModuleUpdate(_Strict):
    table_model: ClassVar[type] = models.Module

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    year_id: Optional[int] = None
    faculty_id: Optional[int] = None


class SubjectIn(_Strict):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None


class SubjectUpdate(_Strict):
    table_model: ClassVar[type] = models.Subject

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    module_id: Optional[int] = None


class LectureIn(_Strict):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    lecturer: Optional[str] = Field(default=None, max_length=200)
    lecture_date: Optional[date] = None


class LectureUpdate(_Strict):
    table_model: ClassVar[type] = models.Lecture

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    lecturer: Optional[str] = Field(default=None, max_length=200)
    lecture_date: Optional[date] = None
    subject_id: Optional[int] = None


_HTTP_URL = TypeAdapter(AnyHttpUrl)


def _http_url(value: str) -> str:
    """Check `value` is an http(s) URL but keep the text the client sent."""
    try:
        _HTTP_URL.validate_python(value)
    except PydanticValidationError as e:
        raise ValueError(e.errors()[0]["msg"]) from None
    return value


HttpUrlText = Annotated[str, Field(max_length=2083), AfterValidator(_http_url)]


class LinkIn(_Strict):
    name: str = Field(min_length=1, max_length=200)
    url: HttpUrlText


class LinkUpdate(_Strict):
    table_model: ClassVar[type] = models.LectureLink

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    url: Optional[HttpUrlText] = None


M = TypeVar("M", bound=BaseModel)


def parse_payload(schema: Type[M], payload: Any, partial: bool = False) -> M:
    """Validate a raw request body against `schema`.

    Raises `errors.ValidationError` with one entry per failing field. For
    partial updates an empty body (or only explicit nulls on required
    columns) is rejected too.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise errors.ValidationError(errors=[{"field": "body", "error": "expected a JSON object"}])
    try:
        parsed = schema.model_validate(payload)
    except PydanticValidationError as e:
        raise errors.ValidationError(errors=[
            {"field": ".".join(str(p) for p in err["loc"]) or "body", "error": err["msg"]}
            for err in e.errors()
        ])
    if partial:
        if not parsed.model_fields_set:
            raise errors.ValidationError(errors=[{"field": "body", "error": "no fields to update"}])
        required = _non_nullable_fields(schema)
        nulls = [f for f in parsed.model_fields_set if f in required and getattr(parsed, f) is None]
        if nulls:
            raise errors.ValidationError(errors=[{"field": f, "error": "may not be null"} for f in sorted(nulls)])
    return parsed


def _non_nullable_fields(schema: Type[BaseModel]) -> set:
    # a field may be nulled only when the column it writes to is nullable
    table = getattr(schema, "table_model", None)
    if table is None:
        return set(schema.model_fields)
    columns = table.__table__.columns
    return {name for name in schema.model_fields if name not in columns or not columns[name].nullable}


def changes(parsed: BaseModel) -> dict:
    """Fields explicitly supplied by the client, for partial updates."""
    return parsed.model_dump(exclude_unset=True)
