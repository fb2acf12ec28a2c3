from frontdesk.core.security import create_access_token, create_refresh_token
from frontdesk.socket.events import _resolve_user_id, emergency_payload
from frontdesk.socket.manager import SocketState


def test_socket_auth_requires_access_token():
    assert _resolve_user_id(None) is None
    assert _resolve_user_id({"token": "garbage"}) is None
    assert _resolve_user_id({"token": create_refresh_token("user-1")}) is None
    assert _resolve_user_id({"token": create_access_token("user-1", "front-desk")}) == "user-1"


def test_socket_state_tracks_connections():
    state = SocketState()
    state.bind("user-1", "sid-a")
    state.bind("user-1", "sid-b")
    assert state.connection_count() == 2
    state.unbind_sid("sid-a")
    state.unbind_sid("unknown")
    assert state.connection_count() == 1


def test_emergency_snapshot_without_session(db):
    assert emergency_payload() == {"data": None}
