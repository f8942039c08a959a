"""Domain Enums"""
from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class UserType(str, Enum):
    SOCIO = "Socio"
    NO_SOCIO = "NoSocio"


class AuthMode(str, Enum):
    EMAIL_PASSWORD = "EMAIL_PASSWORD"


class ReservationStatus(str, Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    # Declared for a gateway decline path; no command produces it yet.
    REJECTED = "REJECTED"
    REFUNDED_PARTIAL = "REFUNDED_PARTIAL"


class PaymentMethod(str, Enum):
    GATEWAY = "GATEWAY"
    CASH = "CASH"


class SlotStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"
    INACTIVE = "INACTIVE"


class NotificationChannel(str, Enum):
    EMAIL = "EMAIL"
    WHATSAPP_BUSINESS = "WHATSAPP_BUSINESS"


class NotificationEvent(str, Enum):
    ACCOUNT_VALIDATION_REQUIRED = "ACCOUNT_VALIDATION_REQUIRED"
    ACCOUNT_VALIDATION_UPDATED = "ACCOUNT_VALIDATION_UPDATED"
    RESERVATION_CREATED = "RESERVATION_CREATED"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    CANCELLATION = "CANCELLATION"
    NO_SHOW = "NO_SHOW"


class AuditAction(str, Enum):
    SEED = "Seed"
    CONFIG = "Config"
    REGISTER = "Register"
    LOGIN = "Login"
    ACCOUNT = "Account"
    COURT = "Court"
    BLOCK = "Block"
    UNBLOCK = "Unblock"
    RESERVATION = "Reservation"
    PAYMENT = "Payment"
    NO_SHOW = "NoShow"
    ADMIN = "Admin"
