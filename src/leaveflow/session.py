"""Session stub — who is calling, and in which role.

There is no real authentication. Any non-empty username/password pair
logs in; a username containing the admin marker gets the reviewer role.
Signup validates its form and then discards the account: nothing is
written under the users key.

The session is passed explicitly into every service call instead of
living in global state.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from leaveflow.leave.errors import ValidationError

DEFAULT_ADMIN_MARKER = "admin"


class Role(str, enum.Enum):
    EMPLOYEE = "employee"
    ADMIN = "admin"


@dataclass(frozen=True)
class Session:
    """The identity a caller acts under. Trusted as given."""
    username: str
    role: Role = Role.EMPLOYEE
    email: str = ""

    @property
    def is_reviewer(self) -> bool:
        return self.role == Role.ADMIN


def infer_role(username: str, admin_marker: str = DEFAULT_ADMIN_MARKER) -> Role:
    if admin_marker.lower() in username.lower():
        return Role.ADMIN
    return Role.EMPLOYEE


def login(
    username: str,
    password: str,
    email: str = "",
    role: Optional[Role] = None,
    admin_marker: str = DEFAULT_ADMIN_MARKER,
) -> Session:
    """Open a session for any non-empty credential pair.

    Raises ValidationError if either credential is blank.
    """
    if not username.strip() or not password.strip():
        raise ValidationError(["Please enter both username and password"])
    return Session(
        username=username,
        role=role or infer_role(username, admin_marker),
        email=email,
    )


def signup(
    username: str,
    password: str,
    confirm_password: str,
    email: str,
) -> None:
    """Validate a signup form. The account itself is not stored.

    Raises ValidationError listing every problem found.
    """
    errors: list[str] = []
    if not username.strip() or not password.strip():
        errors.append("Please enter both username and password")
    if password != confirm_password:
        errors.append("Passwords do not match")
    if not email.strip():
        errors.append("Please enter your email")
    if errors:
        raise ValidationError(errors)
