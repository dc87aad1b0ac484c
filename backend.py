from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

from constants import ROOM_LIFETIME_SECONDS
from errors import RoomAlreadyExists, RoomNotFound
from logging_config import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RoomSummary:
    name: str
    member_count: int
    created_at: datetime
    expires_at: datetime


@dataclass
class Room:
    """A named chat room. Members are kept in join order."""
    name: str
    created_at: datetime
    expires_at: datetime
    # connection_id -> username; dict order is join order
    members: Dict[str, str] = field(default_factory=dict)

    @property
    def member_count(self) -> int:
        return len(self.members)

    @property
    def is_empty(self) -> bool:
        return not self.members

    @property
    def usernames(self) -> List[str]:
        return list(self.members.values())

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def has_username(self, username: str) -> bool:
        return username in self.members.values()

    def has_connection(self, connection_id: str) -> bool:
        return connection_id in self.members

    def add_member(self, connection_id: str, username: str):
        self.members[connection_id] = username

    def remove_member(self, connection_id: str) -> Optional[str]:
        return self.members.pop(connection_id, None)

    def summary(self) -> RoomSummary:
        return RoomSummary(
            name=self.name,
            member_count=self.member_count,
            created_at=self.created_at,
            expires_at=self.expires_at,
        )


class RoomStore:
    """In-memory registry of rooms keyed by name.

    Callers are expected to pass non-empty names; validation happens in the gateway.
    """

    def __init__(self, room_lifetime: timedelta = timedelta(seconds=ROOM_LIFETIME_SECONDS)):
        if room_lifetime <= timedelta(0):
            raise ValueError("room_lifetime must be positive")
        self.room_lifetime = room_lifetime
        self._rooms: Dict[str, Room] = {}
        logger.info(f"Initializing RoomStore with room lifetime {room_lifetime}")

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, name: str) -> bool:
        return name in self._rooms

    def create(self, name: str, now: datetime) -> Room:
        if name in self._rooms:
            logger.debug(f"Room {name} already exists")
            raise RoomAlreadyExists(name)
        room = Room(name=name, created_at=now, expires_at=now + self.room_lifetime)
        self._rooms[name] = room
        logger.info(f"Room {name} created, expires at {room.expires_at.isoformat()}")
        return room

    def get(self, name: str) -> Room:
        room = self._rooms.get(name)
        if room is None:
            logger.debug(f"Room {name} not found")
            raise RoomNotFound(name)
        return room

    def list(self) -> List[RoomSummary]:
        return [room.summary() for room in self._rooms.values()]

    def remove(self, name: str):
        if self._rooms.pop(name, None) is not None:
            logger.info(f"Room {name} removed")

    def sweep_expired(self, now: datetime) -> Set[str]:
        """Drop every room that is past its expiry or has no members."""
        removed = {
            name for name, room in self._rooms.items()
            if room.is_expired(now) or room.is_empty
        }
        for name in removed:
            del self._rooms[name]
        if removed:
            logger.info(f"Swept {len(removed)} room(s): {', '.join(sorted(removed))}")
        return removed
