"""End-to-end tests over the WebSocket endpoint and REST routes."""

import pytest
from fastapi.testclient import TestClient

from app import create_app


@pytest.fixture
def client():
    with TestClient(create_app()) as client:
        yield client


def send(ws, event, **data):
    ws.send_json({"event": event, "data": data})


def receive_events(ws, count):
    return [ws.receive_json() for _ in range(count)]


class TestWebSocket:

    def test_chat_session(self, client):
        with client.websocket_connect("/ws") as alice:
            send(alice, "create_room", username="alice", room="R")
            frames = receive_events(alice, 4)
            assert [f["event"] for f in frames] == ["room_created", "user_joined", "message", "room_info"]

            with client.websocket_connect("/ws") as bob:
                send(bob, "join_room", username="bob", room="R")
                bob_frames = receive_events(bob, 3)
                assert bob_frames[0] == {
                    "event": "user_joined",
                    "data": {"username": "bob", "room": "R", "users": ["alice", "bob"]},
                }
                assert bob_frames[2]["data"]["userCount"] == 2

                joined = alice.receive_json()
                assert joined["data"]["users"] == ["alice", "bob"]

                send(alice, "send_message", room="R", username="alice", text="hello bob")
                for ws in (alice, bob):
                    message = ws.receive_json()
                    assert message["event"] == "message"
                    assert message["data"]["username"] == "alice"
                    assert message["data"]["text"] == "hello bob"

                bob.close()
                left = alice.receive_json()
                assert left == {"event": "user_left", "data": {"username": "bob", "users": ["alice"]}}

    def test_errors_go_to_sender(self, client):
        with client.websocket_connect("/ws") as ws:
            send(ws, "join_room", username="alice", room="nowhere")
            assert ws.receive_json() == {
                "event": "room_error",
                "data": {"message": 'Room "nowhere" doesn\'t exist.'},
            }

            send(ws, "create_room", username="", room="R")
            assert ws.receive_json()["data"]["message"] == "Username and room name are required"

            ws.send_text("garbage")
            assert ws.receive_json()["data"]["message"] == "Invalid message format"

    def test_list_rooms(self, client):
        with client.websocket_connect("/ws") as ws:
            send(ws, "create_room", username="alice", room="R")
            receive_events(ws, 4)

            ws.send_json({"event": "list_rooms"})
            frame = ws.receive_json()

        assert frame["event"] == "room_list"
        assert [(r["name"], r["userCount"]) for r in frame["data"]] == [("R", 1)]


class TestRoomsRouter:

    def test_list_and_details(self, client):
        with client.websocket_connect("/ws") as ws:
            send(ws, "create_room", username="alice", room="R")
            receive_events(ws, 4)

            listing = client.get("/rooms/")
            assert listing.status_code == 200
            assert [r["name"] for r in listing.json()] == ["R"]

            details = client.get("/rooms/R")
            assert details.status_code == 200
            body = details.json()
            assert body["name"] == "R"
            assert body["userCount"] == 1
            assert body["users"] == ["alice"]
            assert "createdAt" in body and "expiresAt" in body

    def test_missing_room(self, client):
        response = client.get("/rooms/nope")
        assert response.status_code == 404
        assert response.json() == {"detail": "Room not found"}

    def test_cors_allows_any_origin(self, client):
        response = client.get("/rooms/", headers={"Origin": "http://example.com"})
        assert response.headers["access-control-allow-origin"] in ("*", "http://example.com")
