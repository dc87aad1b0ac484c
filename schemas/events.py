from datetime import datetime
from typing import List

from schemas.rooms import CamelModel


class RoomCreatedEvent(CamelModel):
    room: str

class ChatMessageEvent(CamelModel):
    username: str
    text: str
    timestamp: datetime

class UserJoinedEvent(CamelModel):
    username: str
    room: str
    users: List[str]

class UserLeftEvent(CamelModel):
    username: str
    users: List[str]

class RoomInfoEvent(CamelModel):
    room: str
    created_at: datetime
    expires_at: datetime
    user_count: int

class RoomErrorEvent(CamelModel):
    message: str

class RoomClosedEvent(CamelModel):
    room: str
    message: str
