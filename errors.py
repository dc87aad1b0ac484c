from typing import Optional


class RoomError(Exception):
    """A recoverable, user-facing failure reported back as ``room_error``."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RoomAlreadyExists(RoomError):
    def __init__(self, room: str):
        super().__init__(f'Room "{room}" already exists. Please choose a different name.')
        self.room = room


class RoomNotFound(RoomError):
    def __init__(self, room: str, message: Optional[str] = None):
        super().__init__(message or f'Room "{room}" doesn\'t exist.')
        self.room = room


class RoomGone(RoomNotFound):
    """The room a message was sent to no longer exists."""

    def __init__(self, room: str):
        super().__init__(room, f'Room "{room}" doesn\'t exist anymore.')


class UsernameTaken(RoomError):
    def __init__(self, username: str):
        super().__init__(f'Username "{username}" is already taken in this room.')
        self.username = username


class AlreadyMember(RoomError):
    def __init__(self, room: str):
        super().__init__(f'You are already in room "{room}".')
        self.room = room


class NotAMember(RoomError):
    def __init__(self, room: str, username: str):
        super().__init__(f'"{username}" is not a member of room "{room}".')
        self.room = room
        self.username = username


class InvalidRequest(RoomError):
    """Missing or empty required field in a client intent."""
