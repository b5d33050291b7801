# PURPOSE: request/response schemas (Pydantic v2) and boundary validation.
# Validation here runs before any store call; failures surface as 400.

from datetime import UTC, datetime
from typing import Annotated, Any, Generic, TypeVar

from email_validator import EmailNotValidError, validate_email
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .domain import CLEAR, UNSET, Priority, SetTo, TaskPatch

T = TypeVar("T")

TITLE_MAX = 200
DESCRIPTION_MAX = 1000
NAME_MIN, NAME_MAX = 3, 200
PASSWORD_MIN = 6


# --- Shared field cleaners -------------------------------------------------


def _clean_title(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Title must not be empty")
    if len(value) > TITLE_MAX:
        raise ValueError(f"Title has {len(value)} characters. Maximum allowed: {TITLE_MAX}")
    return value


def _clean_description(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if len(value) > DESCRIPTION_MAX:
        raise ValueError(
            f"Description has {len(value)} characters. Maximum allowed: {DESCRIPTION_MAX}"
        )
    return value or None


def _parse_due_date(value: Any) -> datetime | None:
    """Accept ISO-8601 dates/timestamps; "" and None mean no due date.

    Aware values are converted to UTC and stored naive, like every other
    timestamp column.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(
                "Invalid due date. Use ISO 8601: YYYY-MM-DD or YYYY-MM-DDTHH:mm:ss"
            ) from None
    else:
        raise ValueError("Due date must be an ISO 8601 string")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def _clean_name(value: str) -> str:
    value = value.strip()
    if len(value) < NAME_MIN:
        raise ValueError(f"Name must have at least {NAME_MIN} characters")
    if len(value) > NAME_MAX:
        raise ValueError(f"Name must have at most {NAME_MAX} characters")
    return value


def _normalize_login_email(value: str) -> str:
    """Same normalisation EmailStr applies at registration, so lookups match.

    Malformed addresses pass through unchanged; they match no account and
    fail like any unknown email.
    """
    value = value.strip()
    try:
        return validate_email(value, check_deliverability=False).normalized
    except EmailNotValidError:
        return value


TitleStr = Annotated[str, AfterValidator(_clean_title)]
DescriptionStr = Annotated[str | None, AfterValidator(_clean_description)]
DueDate = Annotated[datetime | None, BeforeValidator(_parse_due_date)]
NameStr = Annotated[str, AfterValidator(_clean_name)]
LoginEmail = Annotated[str, Field(min_length=1), AfterValidator(_normalize_login_email)]


# --- Tasks -----------------------------------------------------------------


class TaskCreate(BaseModel):
    title: TitleStr
    description: DescriptionStr = None
    priority: Priority = Priority.MEDIUM
    due_date: DueDate = None
    completed: bool = False
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"title": "Buy milk", "priority": "low"},
                {"title": "Plan trip", "priority": "high", "due_date": "2026-12-31T18:00:00Z"},
            ]
        },
    )

    @field_validator("priority", mode="before")
    @classmethod
    def _default_priority(cls, value: Any) -> Any:
        # Absent/empty priority falls back to medium; unknown strings still fail
        if value is None or value == "":
            return Priority.MEDIUM
        return value


class TaskUpdate(BaseModel):
    """Partial update body. Presence of a key matters, not only its value."""

    title: TitleStr | None = None
    description: DescriptionStr = None
    completed: bool | None = None
    priority: Priority | None = None
    due_date: DueDate = None
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"completed": True},
                {"priority": "high"},
                {"due_date": ""},
            ]
        },
    )

    @model_validator(mode="after")
    def _reject_null_required(self) -> "TaskUpdate":
        for name in ("title", "completed", "priority"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def to_patch(self) -> TaskPatch:
        """Translate supplied keys into UNSET / CLEAR / SetTo values."""
        changes: dict[str, Any] = {}
        for name in ("title", "description", "completed", "priority", "due_date"):
            if name not in self.model_fields_set:
                changes[name] = UNSET
                continue
            value = getattr(self, name)
            changes[name] = CLEAR if value is None else SetTo(value)
        return TaskPatch(**changes)


class TaskOut(BaseModel):
    id: int
    title: str
    description: str | None
    completed: bool
    priority: Priority
    due_date: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)  # ORM -> schema


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskStats(BaseModel):
    total: int
    completed: int
    pending: int
    by_priority: dict[str, int]

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BulkDeleted(BaseModel):
    deleted: int


class BulkUpdated(BaseModel):
    updated: int


# --- Users / Auth ----------------------------------------------------------


class UserCreate(BaseModel):
    name: NameStr
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN)


class LoginRequest(BaseModel):
    email: LoginEmail
    password: str = Field(min_length=1)


class ProfileUpdate(BaseModel):
    name: NameStr | None = None
    email: EmailStr | None = None

    @model_validator(mode="after")
    def _at_least_one(self) -> "ProfileUpdate":
        if self.name is None and self.email is None:
            raise ValueError("Provide name or email to update")
        return self


class PasswordChange(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=PASSWORD_MIN)

    @model_validator(mode="after")
    def _must_differ(self) -> "PasswordChange":
        if self.current_password == self.new_password:
            raise ValueError("New password must differ from the current one")
        return self


class UserPublic(BaseModel):
    id: int
    name: str
    email: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)  # allow ORM -> schema


class AuthData(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserPublic


class UserData(BaseModel):
    user: UserPublic


class TokenCheck(BaseModel):
    user: UserPublic
    valid: bool = True


# --- Envelopes ---------------------------------------------------------------


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: T


class PaginatedResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: list[T]
    pagination: Pagination


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: list[str]
