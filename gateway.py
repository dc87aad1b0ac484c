import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Set, Tuple, Union

from pydantic import BaseModel, ValidationError

from backend import RoomStore, utcnow
from constants import SEND_TIMEOUT_SECONDS, SYSTEM_USERNAME
from errors import InvalidRequest, RoomError
from logging_config import get_logger
from membership import JoinResult, LeaveEvent, MembershipCoordinator
from schemas.events import (
    ChatMessageEvent,
    RoomClosedEvent,
    RoomCreatedEvent,
    RoomErrorEvent,
    RoomInfoEvent,
    UserJoinedEvent,
    UserLeftEvent,
)
from schemas.rooms import (
    CreateRoomIntent,
    JoinRoomIntent,
    ListRoomsIntent,
    MessageRequest,
    RoomListItem,
    RoomRequest,
    SendMessageIntent,
    intent_adapter,
)

logger = get_logger(__name__)

Payload = Union[BaseModel, List[BaseModel]]


class Connection(Protocol):
    """A live client connection able to receive one JSON frame at a time."""
    id: str

    async def send(self, frame: Dict[str, Any]) -> None:
        ...


@dataclass(frozen=True)
class Session:
    room: str
    username: str


def _require(*values: Optional[str]) -> bool:
    return all(value is not None and value.strip() for value in values)


class SessionGateway:
    """Binds connections to (room, username) sessions and fans events out to them."""

    def __init__(
        self,
        store: RoomStore,
        coordinator: MembershipCoordinator,
        clock: Callable[[], datetime] = utcnow,
        send_timeout: float = SEND_TIMEOUT_SECONDS,
    ):
        self.store = store
        self.coordinator = coordinator
        self.clock = clock
        self.send_timeout = send_timeout
        self.connections: Dict[str, Connection] = {}
        self.sessions: Dict[str, Session] = {}

    def register(self, connection: Connection):
        self.connections[connection.id] = connection
        logger.debug(f"Registered connection {connection.id} ({len(self.connections)} live)")

    async def disconnect(self, connection_id: str):
        self.connections.pop(connection_id, None)
        session = self.sessions.pop(connection_id, None)
        events = self.coordinator.leave_by_connection(connection_id)
        logger.info(f"Connection {connection_id} disconnected (session: {session}, left {len(events)} room(s))")
        for event in events:
            await self._announce_leave(event)

    async def handle_frame(self, connection_id: str, raw: Union[str, bytes]):
        try:
            intent = intent_adapter.validate_json(raw)
        except ValidationError as e:
            logger.info(f"Rejected malformed frame from {connection_id}: {e.error_count()} error(s)")
            await self._emit([connection_id], "room_error", RoomErrorEvent(message="Invalid message format"))
            return
        await self.dispatch(connection_id, intent)

    async def dispatch(self, connection_id: str, intent):
        logger.debug(f"Dispatching {intent.event} from {connection_id}")
        try:
            match intent:
                case CreateRoomIntent(data=data):
                    await self._create_room(connection_id, data)
                case JoinRoomIntent(data=data):
                    await self._join_room(connection_id, data)
                case SendMessageIntent(data=data):
                    await self._send_message(connection_id, data)
                case ListRoomsIntent():
                    await self._list_rooms(connection_id)
                case _:
                    raise TypeError(f"Unhandled intent type: {type(intent).__name__}")
        except RoomError as e:
            logger.info(f"{intent.event} from {connection_id} failed: {e.message}")
            await self._emit([connection_id], "room_error", RoomErrorEvent(message=e.message))
        except Exception as e:
            logger.error(f"Error handling {intent.event} from {connection_id}: {e}", exc_info=True)
            await self._emit([connection_id], "room_error", RoomErrorEvent(message="Internal server error"))

    async def close_rooms(self, room_names: Iterable[str]):
        """Notify and unbind every session whose room was removed by a sweep."""
        names: Set[str] = set(room_names)
        closed = [
            (connection_id, session) for connection_id, session in self.sessions.items()
            if session.room in names
        ]
        for connection_id, session in closed:
            del self.sessions[connection_id]
            self.coordinator.leave(session.room, connection_id)
        await asyncio.gather(*(
            self._emit([connection_id], "room_closed", RoomClosedEvent(
                room=session.room,
                message=f'Room "{session.room}" has expired.',
            ))
            for connection_id, session in closed
        ))
        if closed:
            logger.info(f"Closed {len(names)} swept room(s), notified {len(closed)} session(s)")

    async def _create_room(self, connection_id: str, data: RoomRequest):
        if not _require(data.username, data.room):
            raise InvalidRequest("Username and room name are required")
        self.store.create(data.room, self.clock())
        logger.info(f"Room {data.room} created by {data.username} ({connection_id})")
        # the creator is a member before anything is awaited, so a sweep or a
        # concurrent join never sees the new room empty
        result, left = self._apply_join(connection_id, data)
        await self._emit([connection_id], "room_created", RoomCreatedEvent(room=data.room))
        await self._announce_join(connection_id, data, result, left)

    async def _join_room(self, connection_id: str, data: RoomRequest):
        if not _require(data.username, data.room):
            raise InvalidRequest("Username and room name are required")
        result, left = self._apply_join(connection_id, data)
        await self._announce_join(connection_id, data, result, left)

    def _apply_join(self, connection_id: str, data: RoomRequest) -> Tuple[JoinResult, Optional[LeaveEvent]]:
        result = self.coordinator.join(data.room, connection_id, data.username, self.clock())

        left = None
        previous = self.sessions.get(connection_id)
        self.sessions[connection_id] = Session(room=data.room, username=data.username)
        if previous is not None and previous.room != data.room:
            left = self.coordinator.leave(previous.room, connection_id)
        return result, left

    async def _announce_join(self, connection_id: str, data: RoomRequest,
                             result: JoinResult, left: Optional[LeaveEvent]):
        if left is not None:
            await self._announce_leave(left)
        await self._emit(result.connection_ids, "user_joined", UserJoinedEvent(
            username=data.username,
            room=data.room,
            users=result.usernames,
        ))
        await self._emit([connection_id], "message", ChatMessageEvent(
            username=SYSTEM_USERNAME,
            text=f"Welcome to room {data.room}, {data.username}!",
            timestamp=self.clock(),
        ))
        await self._emit([connection_id], "room_info", RoomInfoEvent(
            room=result.room.name,
            created_at=result.room.created_at,
            expires_at=result.room.expires_at,
            user_count=result.room.member_count,
        ))

    async def _send_message(self, connection_id: str, data: MessageRequest):
        if not _require(data.room, data.username, data.text):
            raise InvalidRequest("Room, username and text are required")
        message = self.coordinator.send(data.room, data.username, data.text, self.clock(), connection_id=connection_id)
        room = self.store.get(data.room)
        await self._emit(list(room.members), "message", ChatMessageEvent(
            username=message.username,
            text=message.text,
            timestamp=message.timestamp,
        ))

    async def _list_rooms(self, connection_id: str):
        rooms = [
            RoomListItem(
                name=summary.name,
                user_count=summary.member_count,
                created_at=summary.created_at,
                expires_at=summary.expires_at,
            )
            for summary in self.store.list()
        ]
        await self._emit([connection_id], "room_list", rooms)

    async def _announce_leave(self, event: LeaveEvent):
        await self._emit(event.remaining_connection_ids, "user_left", UserLeftEvent(
            username=event.username,
            users=event.remaining_usernames,
        ))

    async def _emit(self, connection_ids: Iterable[str], event: str, payload: Payload):
        if isinstance(payload, list):
            data = [item.model_dump(mode="json", by_alias=True) for item in payload]
        else:
            data = payload.model_dump(mode="json", by_alias=True)
        frame = {"event": event, "data": data}

        targets = [self.connections[cid] for cid in connection_ids if cid in self.connections]
        if not targets:
            return
        await asyncio.gather(*(self._deliver(connection, frame) for connection in targets))
        logger.debug(f"Sent {event} to {len(targets)} connection(s)")

    async def _deliver(self, connection: Connection, frame: Dict[str, Any]):
        try:
            await asyncio.wait_for(connection.send(frame), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Timed out sending {frame['event']} to connection {connection.id}")
        except Exception as e:
            # recipient is going away; its disconnect cleans up the session
            logger.warning(f"Error sending {frame['event']} to connection {connection.id}: {e}")
