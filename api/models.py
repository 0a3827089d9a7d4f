"""
API request and response models for the TaskGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for both services.
They are intentionally separate from the dataclasses in auth/models.py and
tasks/models.py, which own the internal domain representation. Route handlers
map between the two.

Credential length rules are NOT expressed as Field constraints here: they live
in auth/credentials.py so register_user() enforces them for every caller, and
the client gets the same field-level message either way.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from tasks.models import Task

# ---------------------------------------------------------------------------
# Auth service -- requests
# ---------------------------------------------------------------------------


class CredentialsRequest(BaseModel):
    """Request body for POST /register and POST /login."""

    username: str
    password: str


# ---------------------------------------------------------------------------
# Auth service -- responses
# ---------------------------------------------------------------------------


class UserInfo(BaseModel):
    """Public view of a credential. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str


class TokenResponse(BaseModel):
    """Response for POST /register (201) and POST /login (200)."""

    model_config = ConfigDict(frozen=True)

    token: str
    user: UserInfo


class VerifyResponse(BaseModel):
    """Response for GET /verify.

    expires_at lets callers (the tasks service cache) bound how long they
    trust this answer.
    """

    model_config = ConfigDict(frozen=True)

    valid: bool = True
    user_id: int
    username: str
    expires_at: Optional[str] = None


# ---------------------------------------------------------------------------
# Tasks service -- requests
# ---------------------------------------------------------------------------


class TaskCreate(BaseModel):
    """Request body for POST /tasks."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=10_000)


class TaskUpdate(BaseModel):
    """Request body for PUT /tasks/{id}. Missing or empty fields keep their stored value."""

    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=10_000)
    status: Optional[str] = Field(default=None, max_length=50)


# ---------------------------------------------------------------------------
# Tasks service -- responses
# ---------------------------------------------------------------------------


class TaskResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    title: str
    description: str
    status: str
    created_at: str
    updated_at: str

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        """Build a TaskResponse from a domain Task (Factory Method)."""
        return cls(
            id=task.id,
            user_id=task.user_id,
            title=task.title,
            description=task.description,
            status=task.status,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health on either service."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    service: str
    version: str
    database: str = "ok"
