from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from backend import RoomStore, RoomSummary
from errors import AlreadyMember, NotAMember, RoomGone, RoomNotFound, UsernameTaken
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class JoinResult:
    room: RoomSummary
    usernames: List[str]
    # connection ids of every member after the join, sender included
    connection_ids: List[str]


@dataclass(frozen=True)
class LeaveEvent:
    room_name: str
    username: str
    # (connection_id, username) pairs still in the room, join order
    remaining: Tuple[Tuple[str, str], ...]

    @property
    def remaining_usernames(self) -> List[str]:
        return [username for _, username in self.remaining]

    @property
    def remaining_connection_ids(self) -> List[str]:
        return [connection_id for connection_id, _ in self.remaining]


@dataclass(frozen=True)
class ChatMessage:
    username: str
    text: str
    timestamp: datetime


class MembershipCoordinator:
    """Applies join/leave/send to rooms held by a RoomStore.

    Keeps a connection -> room names index so a disconnect touches only the
    rooms that connection is actually in.
    """

    def __init__(self, store: RoomStore, enforce_membership: bool = True):
        self.store = store
        self.enforce_membership = enforce_membership
        self._rooms_by_connection: Dict[str, List[str]] = {}

    def join(self, room_name: str, connection_id: str, username: str, now: datetime) -> JoinResult:
        room = self.store.get(room_name)
        if room.has_connection(connection_id):
            raise AlreadyMember(room_name)
        if room.has_username(username):
            logger.info(f"Join rejected: username {username} taken in room {room_name}")
            raise UsernameTaken(username)

        room.add_member(connection_id, username)
        rooms = self._rooms_by_connection.setdefault(connection_id, [])
        if room_name not in rooms:
            rooms.append(room_name)
        logger.info(f"{username} ({connection_id}) joined room {room_name} at {now.isoformat()}, {room.member_count} member(s)")

        return JoinResult(
            room=room.summary(),
            usernames=room.usernames,
            connection_ids=list(room.members),
        )

    def leave(self, room_name: str, connection_id: str) -> Optional[LeaveEvent]:
        rooms = self._rooms_by_connection.get(connection_id)
        if rooms and room_name in rooms:
            rooms.remove(room_name)
            if not rooms:
                del self._rooms_by_connection[connection_id]
        return self._remove_member(room_name, connection_id)

    def leave_by_connection(self, connection_id: str) -> List[LeaveEvent]:
        events = []
        for room_name in self._rooms_by_connection.pop(connection_id, []):
            event = self._remove_member(room_name, connection_id)
            if event is not None:
                events.append(event)
        return events

    def send(self, room_name: str, username: str, text: str, now: datetime,
             connection_id: Optional[str] = None) -> ChatMessage:
        try:
            room = self.store.get(room_name)
        except RoomNotFound:
            raise RoomGone(room_name) from None
        if self.enforce_membership:
            if connection_id is not None:
                is_member = room.members.get(connection_id) == username
            else:
                is_member = room.has_username(username)
            if not is_member:
                logger.warning(f"Message rejected: {username} is not a member of room {room_name}")
                raise NotAMember(room_name, username)
        return ChatMessage(username=username, text=text, timestamp=now)

    def _remove_member(self, room_name: str, connection_id: str) -> Optional[LeaveEvent]:
        try:
            room = self.store.get(room_name)
        except RoomNotFound:
            # swept while the connection was still bound
            return None
        username = room.remove_member(connection_id)
        if username is None:
            return None
        logger.info(f"{username} ({connection_id}) left room {room_name}, {room.member_count} member(s) remaining")
        return LeaveEvent(
            room_name=room_name,
            username=username,
            remaining=tuple(room.members.items()),
        )
