from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(ServiceError):
    """Referral record lookup by student or code returned nothing."""

    def __init__(self, message: str = "Referral record not found") -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class StorageError(ServiceError):
    """Persisting a referral record failed; the event was not applied."""

    def __init__(
        self,
        message: str = "Failed to persist referral record",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    ) -> None:
        super().__init__(message, status_code)


class ConcurrentUpdateError(StorageError):
    """The record was changed by another writer between read and save."""

    def __init__(self, message: str = "Referral record was modified concurrently; retry the operation") -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class InvalidTransitionError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class DuplicateReferralError(ServiceError):
    def __init__(self, message: str = "This application is already linked to a referral.") -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)
