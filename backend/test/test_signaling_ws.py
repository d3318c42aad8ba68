"""End-to-end tests for the /ws endpoint and HTTP routes."""

import pytest
from fastapi.testclient import TestClient

from app import app
from modules.signaling import CallRelay
from routes import init_relay, get_relay


@pytest.fixture
def client():
    previous = get_relay()
    relay = CallRelay()
    init_relay(relay)
    with TestClient(app) as test_client:
        yield test_client
    init_relay(previous)


def send(ws, event, **data):
    ws.send_json({"type": event, "data": data})


def register(ws, user_id):
    send(ws, "register", userId=user_id)
    assert ws.receive_json() == {"type": "registered", "data": {"userId": user_id}}


class TestCallScenario:

    def test_full_call_flow(self, client):
        with client.websocket_connect("/ws") as a:
            register(a, "1111")
            assert a.receive_json() == {"type": "online-users", "data": {"users": ["1111"]}}

            with client.websocket_connect("/ws") as b:
                register(b, "2222")
                both = {"type": "online-users", "data": {"users": ["1111", "2222"]}}
                assert b.receive_json() == both
                assert a.receive_json() == both

                send(a, "call-user", toUserId="2222")
                assert b.receive_json() == {"type": "incoming-call", "data": {"fromUserId": "1111"}}
                assert a.receive_json() == {"type": "calling", "data": {"toUserId": "2222"}}

                send(b, "call-accept", toUserId="1111")
                assert a.receive_json() == {"type": "call-accepted", "data": {"by": "2222"}}

                send(a, "offer", toUserId="2222", offer={"sdp": "x"})
                assert b.receive_json() == {"type": "offer", "data": {"fromUserId": "1111", "offer": {"sdp": "x"}}}

                send(b, "answer", toUserId="1111", answer={"sdp": "y"})
                assert a.receive_json() == {"type": "answer", "data": {"fromUserId": "2222", "answer": {"sdp": "y"}}}

                a.close()
                assert b.receive_json() == {"type": "online-users", "data": {"users": ["2222"]}}

                assert get_relay().registry.resolve("1111") is None

    def test_duplicate_registration_rejected(self, client):
        with client.websocket_connect("/ws") as a:
            register(a, "1234")
            a.receive_json()

            with client.websocket_connect("/ws") as b:
                send(b, "register", userId="1234")
                assert b.receive_json() == {
                    "type": "register-error",
                    "data": {"message": "This ID is already in use. Choose another."},
                }

    def test_call_offline_user(self, client):
        with client.websocket_connect("/ws") as a:
            register(a, "1111")
            a.receive_json()

            send(a, "call-user", toUserId="4040")
            assert a.receive_json() == {"type": "user-offline", "data": {"toUserId": "4040"}}

    def test_invalid_json_keeps_connection_open(self, client):
        with client.websocket_connect("/ws") as a:
            a.send_text("{not json")
            assert a.receive_json() == {"type": "error-msg", "data": {"message": "Invalid JSON"}}

            register(a, "0007")

    def test_binary_frame_decoded_as_json(self, client):
        with client.websocket_connect("/ws") as a:
            a.send_bytes(b'{"type": "register", "data": {"userId": "1111"}}')
            assert a.receive_json() == {"type": "registered", "data": {"userId": "1111"}}

    def test_undecodable_binary_frame_keeps_session(self, client):
        with client.websocket_connect("/ws") as a:
            register(a, "1111")
            a.receive_json()

            a.send_bytes(b"\x80\x81 not utf-8")
            assert a.receive_json() == {"type": "error-msg", "data": {"message": "Invalid JSON"}}

            assert get_relay().registry.current_identities() == ["1111"]
            assert len(get_relay().clients) == 1
            register(a, "1111")

    def test_oversized_integer_keeps_session(self, client):
        with client.websocket_connect("/ws") as a:
            register(a, "1111")
            a.receive_json()

            a.send_text("9" * 5000)
            assert a.receive_json()["type"] == "error-msg"

            assert get_relay().registry.current_identities() == ["1111"]
            send(a, "register", userId="2222")
            assert a.receive_json() == {"type": "registered", "data": {"userId": "2222"}}


class TestHttpRoutes:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["online"] == 0
        assert body["connections"] == 0

    def test_online_users(self, client):
        with client.websocket_connect("/ws") as a:
            register(a, "5555")
            a.receive_json()

            response = client.get("/api/online-users")

        assert response.json() == {"users": ["5555"]}
