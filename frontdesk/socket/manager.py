class SocketState:
    """Which dashboard connections belong to which staff user."""

    def __init__(self):
        self.sid_user: dict[str, str] = {}

    def bind(self, user_id: str, sid: str):
        self.sid_user[sid] = user_id

    def unbind_sid(self, sid: str):
        self.sid_user.pop(sid, None)

    def connection_count(self) -> int:
        return len(self.sid_user)


socket_state = SocketState()
