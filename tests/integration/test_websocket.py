"""
Integration Tests: WebSocket

End-to-end relay scenarios driven through the real app over
TestClient WebSockets.
"""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect


def create(ws, session_id="s1", topic="T", user_name="Alice"):
    ws.send_json({"type": "create_session", "sessionId": session_id, "topic": topic, "userName": user_name})
    return ws.receive_json()


def join(ws, session_id="s1", user_name="Bob", **extra):
    ws.send_json({"type": "join_session", "sessionId": session_id, "userName": user_name, **extra})
    return ws.receive_json()


# =============================================================================
# Session Scenario Tests
# =============================================================================

class TestSessionScenarios:
    """Two-party session flows."""

    @pytest.mark.integration
    def test_create_session(self, client):
        with client.websocket_connect("/") as alice:
            assert create(alice) == {"type": "session_created", "sessionId": "s1", "topic": "T"}

    @pytest.mark.integration
    def test_join_notifies_both(self, client):
        expected = {"type": "participant_joined", "userName": "Bob", "topic": "T", "participantCount": 2}

        with client.websocket_connect("/") as alice, client.websocket_connect("/") as bob:
            create(alice)

            assert join(bob) == expected
            assert alice.receive_json() == expected

    @pytest.mark.integration
    def test_third_participant_rejected(self, client, app):
        with client.websocket_connect("/") as alice, \
                client.websocket_connect("/") as bob, \
                client.websocket_connect("/") as carl:
            create(alice)
            join(bob)
            alice.receive_json()

            reply = join(carl, user_name="Carl")

            assert reply["type"] == "error"
            assert reply["message"] == "Session is full"
            assert app.state.store.get("s1").participant_count == 2

    @pytest.mark.integration
    def test_relay_message(self, client):
        content = {"offer": 500, "terms": ["monthly"]}

        with client.websocket_connect("/") as alice, client.websocket_connect("/") as bob:
            create(alice)
            join(bob)
            alice.receive_json()

            alice.send_json({"type": "relay_message", "messageType": "x", "content": content})

            received = bob.receive_json()
            sent = alice.receive_json()
            assert received["type"] == "message_received"
            assert received["messageType"] == "x"
            assert received["content"] == content
            assert received["from"] == "Alice"
            assert isinstance(received["timestamp"], int)
            assert sent == {
                "type": "message_sent",
                "messageType": "x",
                "content": content,
                "timestamp": received["timestamp"],
            }

    @pytest.mark.integration
    def test_disconnect_notifies_peer_and_cleans_up(self, client, app, eventually):
        store = app.state.store

        with client.websocket_connect("/") as bob:
            with client.websocket_connect("/") as alice:
                create(alice)
                join(bob)
                alice.receive_json()

                alice.close()

                assert bob.receive_json() == {"type": "participant_left", "userName": "Alice"}
                assert store.get("s1").participant_count == 1

            bob.close()
            assert eventually(lambda: "s1" not in store)

    @pytest.mark.integration
    def test_join_missing_session(self, client):
        with client.websocket_connect("/") as bob:
            reply = join(bob, session_id="ghost")

            assert reply["type"] == "error"
            assert reply["message"] == "Session not found or expired"

    @pytest.mark.integration
    def test_join_missing_session_with_topic_recreates(self, client, app):
        with client.websocket_connect("/") as bob:
            reply = join(bob, session_id="s9", topic="Chores")

            assert reply == {"type": "participant_joined", "userName": "Bob", "topic": "Chores", "participantCount": 1}
            assert "s9" in app.state.store


# =============================================================================
# Reconnect Tests
# =============================================================================

class TestReconnect:
    """Reconnect-by-name flows."""

    @pytest.mark.integration
    def test_creator_reconnect(self, client, app):
        with client.websocket_connect("/") as first, client.websocket_connect("/") as second:
            create(first, topic="Original")

            assert create(second, topic="Other") == {
                "type": "session_created", "sessionId": "s1", "topic": "Original"
            }
            assert app.state.store.get("s1").participant_count == 1

    @pytest.mark.integration
    def test_stale_connection_close_is_silent(self, client, app):
        with client.websocket_connect("/") as alice, client.websocket_connect("/") as new_bob:
            create(alice)
            with client.websocket_connect("/") as old_bob:
                join(old_bob)
                alice.receive_json()

                join(new_bob)
                alice.receive_json()

                old_bob.close()

            # Next frame alice sees is the ping reply, not participant_left
            alice.send_json({"type": "ping"})
            assert alice.receive_json() == {"type": "pong"}
            assert app.state.store.get("s1").participant_count == 2


# =============================================================================
# Protocol Edge Tests
# =============================================================================

class TestProtocolEdges:
    """Malformed and auxiliary frames."""

    @pytest.mark.integration
    def test_ping_pong(self, client):
        with client.websocket_connect("/") as ws:
            ws.send_json({"type": "ping"})

            assert ws.receive_json() == {"type": "pong"}

    @pytest.mark.integration
    def test_malformed_frame_keeps_connection(self, client):
        with client.websocket_connect("/") as ws:
            ws.send_text("definitely not json")

            assert ws.receive_json() == {"type": "error", "message": "Invalid message format", "code": "malformed_frame"}

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    @pytest.mark.integration
    def test_unknown_type_dropped(self, client):
        with client.websocket_connect("/") as ws:
            ws.send_json({"type": "teleport"})
            ws.send_json({"type": "ping"})

            assert ws.receive_json() == {"type": "pong"}

    @pytest.mark.integration
    def test_relay_without_session(self, client):
        with client.websocket_connect("/") as ws:
            ws.send_json({"type": "relay_message", "messageType": "x", "content": 1})

            reply = ws.receive_json()
            assert reply["message"] == "Not connected to a session"


# =============================================================================
# Lifecycle Tests
# =============================================================================

class TestLifecycle:
    """Startup gating and shutdown."""

    @pytest.mark.integration
    def test_connection_before_startup(self, app):
        # No context manager: startup events never run
        client = TestClient(app)

        with client.websocket_connect("/") as ws:
            assert ws.receive_json() == {"type": "error", "message": "Server is starting up"}

            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_json()

            assert exc.value.code == 1011

    @pytest.mark.integration
    def test_services_on_app_state(self, client, app):
        assert app.state.hub.store is app.state.store
        assert app.state.hub.registry is app.state.registry
        assert app.state.sweeper.is_running()

    @pytest.mark.integration
    def test_shutdown_stops_sweeper(self, app):
        with TestClient(app):
            sweeper = app.state.sweeper
            assert sweeper.is_running()

        assert not sweeper.is_running()
        assert len(app.state.store) == 0
