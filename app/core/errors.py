"""
Domain errors for BuildEx. Each carries the HTTP status it maps to and a message
that is safe to show to clients. app.main turns them into JSON responses.
"""
from typing import Optional


class BuildExError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class Conflict(BuildExError):
    status_code = 400
    message = "Already exists"


class InvalidOtp(BuildExError):
    status_code = 400
    message = "Invalid or expired OTP"


class InvalidInput(BuildExError):
    status_code = 400
    message = "Invalid input"


class NotFound(BuildExError):
    status_code = 404
    message = "Not found"


class UserNotFound(NotFound):
    message = "User not found"


class RentRequestNotFound(NotFound):
    message = "Rent request not found"


class ImageNotFound(NotFound):
    message = "Image not found"


class InvalidImageName(InvalidInput):
    message = "Invalid image name"


class FetchError(BuildExError):
    # Never echo the upstream error or local paths to clients
    status_code = 500
    message = "Failed to process image"


class StorageInitError(BuildExError):
    """Raised at startup when the image cache directory cannot be created."""
    message = "Could not initialize storage location"
