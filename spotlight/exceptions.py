"""Domain errors raised by the service layer.

Each error knows its HTTP status and machine-readable code; the API error
handlers turn them into the uniform JSON envelope.
"""


class ApiError(Exception):
    """Base class for domain errors."""
    status_code = 400
    code = "BAD_REQUEST"
    message = "Bad request"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class EmailAlreadyRegistered(ApiError):
    status_code = 400
    code = "EMAIL_ALREADY_REGISTERED"
    message = "An account with this email already exists"


class InvalidCredentials(ApiError):
    status_code = 401
    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


class AccountDisabled(ApiError):
    status_code = 401
    code = "ACCOUNT_DISABLED"
    message = "Your account has been disabled. Please contact support."


class InvalidRefreshToken(ApiError):
    status_code = 401
    code = "INVALID_REFRESH_TOKEN"
    message = "Invalid or expired refresh token"


class RefreshTokenExpired(ApiError):
    status_code = 401
    code = "REFRESH_TOKEN_EXPIRED"
    message = "Refresh token has expired. Please login again."


class PasswordsDoNotMatch(ApiError):
    status_code = 400
    code = "PASSWORDS_DO_NOT_MATCH"
    message = "New password and confirmation do not match"


class InvalidCurrentPassword(ApiError):
    status_code = 401
    code = "INVALID_CURRENT_PASSWORD"
    message = "Current password is incorrect"


class UserNotFound(ApiError):
    status_code = 404
    code = "USER_NOT_FOUND"
    message = "User not found"


class InvalidResetToken(ApiError):
    status_code = 400
    code = "INVALID_RESET_TOKEN"
    message = "Invalid or expired reset token"


class Unauthorized(ApiError):
    status_code = 401
    code = "UNAUTHORIZED"
    message = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    code = "FORBIDDEN"
    message = "You are not allowed to perform this action"


class ChatRoomNotFound(ApiError):
    status_code = 404
    code = "CHAT_ROOM_NOT_FOUND"
    message = "Chat room not found"


class NotRoomMember(ApiError):
    status_code = 403
    code = "NOT_ROOM_MEMBER"
    message = "You are not a member of this room"


class InvalidChatRoom(ApiError):
    status_code = 400
    code = "INVALID_CHAT_ROOM"
    message = "Chat room must have at least 2 members"


class InvalidAvailability(ApiError):
    status_code = 400
    code = "INVALID_AVAILABILITY"
    message = "Invalid availability status"


class CannotFollowSelf(ApiError):
    status_code = 400
    code = "CANNOT_FOLLOW_SELF"
    message = "Cannot follow yourself"


class AlreadyFollowing(ApiError):
    status_code = 400
    code = "ALREADY_FOLLOWING"
    message = "Already following this user"


class FollowNotFound(ApiError):
    status_code = 404
    code = "FOLLOW_NOT_FOUND"
    message = "Follow relationship not found"
