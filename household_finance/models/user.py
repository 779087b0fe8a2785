"""
User models.

The credential never lives on the model: stores keep passwords to
themselves and only hand back the public profile.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserRole(str, Enum):
    """
    Household roles.

    SYSTEM_ADMIN owns the software, ADMIN is the head of the family,
    MEMBER is everybody else.
    """
    SYSTEM_ADMIN = "SYSTEM_ADMIN"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class UserPlan(str, Enum):
    """Subscription tier."""
    FREE = "free"
    PREMIUM = "premium"


EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
CPF_LENGTH = 11


def normalize_cpf(value: str) -> str:
    """Strip CPF punctuation so '123.456.789-00' matches '12345678900'."""
    return "".join(ch for ch in value if ch.isdigit())


def validate_cpf(value: str) -> str:
    """Normalize a CPF and require exactly 11 digits."""
    digits = normalize_cpf(value)
    if len(digits) != CPF_LENGTH:
        raise ValueError(f"CPF must have {CPF_LENGTH} digits, got {len(digits)}")
    return digits


class User(BaseModel):
    """A household member as seen by the orchestrator."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Immutable user identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    email: str = Field(..., pattern=EMAIL_PATTERN)
    cpf: str = Field(
        ...,
        description="Brazilian taxpayer id, digits only"
    )
    avatar: str = ""
    role: UserRole = UserRole.MEMBER
    plan: UserPlan = UserPlan.FREE

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("cpf")
    @classmethod
    def check_cpf(cls, v: str) -> str:
        return validate_cpf(v)

    @property
    def is_admin(self) -> bool:
        """ADMIN and SYSTEM_ADMIN may use the admin entry point."""
        return self.role in (UserRole.ADMIN, UserRole.SYSTEM_ADMIN)

    @property
    def is_premium(self) -> bool:
        return self.plan == UserPlan.PREMIUM


class ProfileUpdate(BaseModel):
    """
    Fields a signed-in user may change on their own profile.

    ``id``, ``role`` and ``plan`` are deliberately absent: identity is
    immutable, role changes belong to administrators and the plan only
    changes through checkout.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    cpf: Optional[str] = None
    avatar: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=1, repr=False)

    @field_validator("cpf")
    @classmethod
    def check_cpf(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else validate_cpf(v)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

    def changes(self) -> dict:
        """Only the fields the caller actually set."""
        return self.model_dump(exclude_none=True)
