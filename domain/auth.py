"""Domain Auth - credential policy"""
import re

from pydantic import BaseModel

from domain.enums import UserRole
from domain.errors import ValidationError

# At least 6 characters, one uppercase letter and one non-alphanumeric symbol
PASSWORD_POLICY = re.compile(r"^(?=.*[A-Z])(?=.*[^A-Za-z0-9]).{6,}$")
MIN_DNI_LENGTH = 6


class Principal(BaseModel):
    """Authenticated caller as seen by the HTTP layer"""
    user_id: str
    email: str
    role: UserRole

    class Config:
        frozen = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def validate_password(password: str) -> None:
    if not PASSWORD_POLICY.match(password or ""):
        raise ValidationError(
            "Password must have at least 6 characters, 1 uppercase letter and 1 symbol (@, -, etc)",
            code="weak_password",
        )


def validate_registration_fields(email: str, phone: str, dni: str) -> None:
    """Format checks on already-normalised sign-up fields"""
    if len(dni) < MIN_DNI_LENGTH:
        raise ValidationError("Invalid DNI", code="invalid_dni")
    if "@" not in email:
        raise ValidationError("Invalid email", code="invalid_email")
    if not phone:
        raise ValidationError("Phone is required", code="missing_phone")
