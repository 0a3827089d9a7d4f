"""
tasks/models.py -- Domain dataclasses for the TaskGate task service.

Pure data containers with zero logic. Ownership rules and partial-update
semantics live in tasks/store.py.
"""

from dataclasses import dataclass
from typing import Optional

DEFAULT_STATUS = "pending"


@dataclass
class Task:
    """A to-do record owned by exactly one user.

    user_id is the identity the auth service vouched for when the task was
    created. id is None before the record is written to the database.
    """

    user_id: int
    title: str
    description: str = ""
    status: str = DEFAULT_STATUS
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, bumped by store on every update
