import uuid
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from backend import RoomStore
from constants import (
    CORS_ORIGINS,
    ENFORCE_MEMBERSHIP,
    LOG_FILE,
    LOG_LEVEL,
    ROOM_LIFETIME_SECONDS,
    SEND_TIMEOUT_SECONDS,
    SWEEP_INTERVAL_SECONDS,
)
from gateway import SessionGateway
from logging_config import get_logger, setup_logging
from membership import MembershipCoordinator
from routers.rooms import rooms_router
from sweeper import ExpirationSweeper

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


class WebSocketConnection:
    """Adapts a FastAPI WebSocket to the gateway's Connection interface."""

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None):
        self.websocket = websocket
        self.id = connection_id or str(uuid.uuid4())

    async def send(self, frame: Dict[str, Any]) -> None:
        await self.websocket.send_json(frame)


def create_app(
    room_lifetime_seconds: float = ROOM_LIFETIME_SECONDS,
    sweep_interval_seconds: float = SWEEP_INTERVAL_SECONDS,
    send_timeout_seconds: float = SEND_TIMEOUT_SECONDS,
    enforce_membership: bool = ENFORCE_MEMBERSHIP,
    cors_origins: List[str] = CORS_ORIGINS,
) -> FastAPI:
    """Build the application with its own room registry, gateway and sweeper."""
    store = RoomStore(room_lifetime=timedelta(seconds=room_lifetime_seconds))
    coordinator = MembershipCoordinator(store, enforce_membership=enforce_membership)
    gateway = SessionGateway(store, coordinator, send_timeout=send_timeout_seconds)
    sweeper = ExpirationSweeper(store, interval_seconds=sweep_interval_seconds, on_sweep=gateway.close_rooms)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper.start()
        logger.info("Room chat service started")
        yield
        await sweeper.stop()
        logger.info("Room chat service shutting down")

    app = FastAPI(title="roomchat", lifespan=lifespan)
    app.state.store = store
    app.state.coordinator = coordinator
    app.state.gateway = gateway
    app.state.sweeper = sweeper

    # Configure CORS to allow all origins by default
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router)

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Single bidirectional channel per client carrying JSON event frames."""
        await websocket.accept()
        connection = WebSocketConnection(websocket)
        gateway.register(connection)
        logger.info(f"WebSocket connection {connection.id} accepted")

        try:
            while True:
                data = await websocket.receive_text()
                await gateway.handle_frame(connection.id, data)
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected normally for connection {connection.id}")
        except Exception as e:
            logger.error(f"WebSocket error for connection {connection.id}: {e}", exc_info=True)
        finally:
            await gateway.disconnect(connection.id)

    logger.info("FastAPI application initialized")
    return app


app = create_app()
