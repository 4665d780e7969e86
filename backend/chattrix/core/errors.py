"""Domain errors raised by the services and rendered by the API layer.

Every error carries the HTTP status it maps to and a stable ``code`` so
clients can tell, for instance, a taken room name from a wrong password
without parsing the message.
"""

from fastapi import Request
from fastapi.responses import JSONResponse


class ChatError(Exception):
    status_code = 400
    code = "error"
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ChatError):
    status_code = 422
    code = "validation_error"
    default_message = "Invalid input"


class ConflictError(ChatError):
    status_code = 409
    code = "conflict"


class NameTaken(ConflictError):
    code = "name_taken"
    default_message = "Room name already exists. Please choose another name."


class UsernameTaken(ConflictError):
    code = "username_taken"
    default_message = "Username already taken"


class AlreadyFriends(ConflictError):
    code = "already_friends"
    default_message = "Already friends."


class RoomNotFound(ConflictError):
    status_code = 404
    code = "room_not_found"
    default_message = "Room not found."


class UserNotFound(ConflictError):
    status_code = 404
    code = "user_not_found"
    default_message = "User does not exist."


class FriendRequestNotFound(ConflictError):
    status_code = 404
    code = "friend_request_not_found"
    default_message = "Friend request not found."


class WrongPassword(ConflictError):
    status_code = 403
    code = "wrong_password"
    default_message = "Incorrect password."


class NotFriends(ConflictError):
    status_code = 403
    code = "not_friends"
    default_message = "You can only message your friends."


class AllocationExhausted(ChatError):
    status_code = 503
    code = "allocation_exhausted"
    default_message = "Could not generate unique room ID. Please try again."


class BackendError(ChatError):
    status_code = 503
    code = "backend_error"
    default_message = "Storage backend unavailable"


class AuthError(ChatError):
    status_code = 401
    code = "auth_error"
    default_message = "Not authenticated"


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    default_message = "Invalid credentials"


async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})
