from fastapi.requests import HTTPConnection

from .hub import LiveBroadcastHub
from .store import PacketStore


# HTTPConnection so the same dependencies serve HTTP routes and websockets
def get_store(conn: HTTPConnection) -> PacketStore:
    return conn.app.state.store


def get_hub(conn: HTTPConnection) -> LiveBroadcastHub:
    return conn.app.state.hub
