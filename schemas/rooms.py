from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class RoomRequest(BaseModel):
    username: Optional[str] = None
    room: Optional[str] = None

class MessageRequest(BaseModel):
    room: Optional[str] = None
    username: Optional[str] = None
    text: Optional[str] = None

class EmptyRequest(BaseModel):
    pass


class CreateRoomIntent(BaseModel):
    event: Literal["create_room"]
    data: RoomRequest = Field(default_factory=RoomRequest)

class JoinRoomIntent(BaseModel):
    event: Literal["join_room"]
    data: RoomRequest = Field(default_factory=RoomRequest)

class SendMessageIntent(BaseModel):
    event: Literal["send_message"]
    data: MessageRequest = Field(default_factory=MessageRequest)

class ListRoomsIntent(BaseModel):
    event: Literal["list_rooms"]
    data: EmptyRequest = Field(default_factory=EmptyRequest)


Intent = Annotated[
    Union[CreateRoomIntent, JoinRoomIntent, SendMessageIntent, ListRoomsIntent],
    Field(discriminator="event"),
]

intent_adapter = TypeAdapter(Intent)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class RoomListItem(CamelModel):
    name: str
    user_count: int
    created_at: datetime
    expires_at: datetime

class RoomDetailsResponse(CamelModel):
    name: str
    created_at: datetime
    expires_at: datetime
    user_count: int
    users: List[str]
