from enum import Enum


class ReferralStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESSFUL = "SUCCESSFUL"
    FAILED = "FAILED"


class ApplicationOutcome(str, Enum):
    """Final enrollment decision reported by the verification workflow."""

    ENROLLED = "ENROLLED"
    REJECTED = "REJECTED"


class UserRole(str, Enum):
    STUDENT = "STUDENT"
    AGENT = "AGENT"
    STAFF = "STAFF"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"
