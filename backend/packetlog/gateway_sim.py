# gateway_sim.py
# Pretend to be a packet-forwarder gateway: send PUSH_DATA frames with readable sensor strings.

from __future__ import annotations

import base64
import json
import os
import random
import secrets
import socket
import time
from typing import Iterable

PROTOCOL_VERSION = 2
PUSH_DATA = 0x00

HOST = os.getenv("GATEWAY_TARGET_HOST", "127.0.0.1")
PORT = int(os.getenv("GATEWAY_TARGET_PORT", "1700"))
INTERVAL = float(os.getenv("GATEWAY_INTERVAL", "2"))
GATEWAY_EUI = bytes.fromhex(os.getenv("GATEWAY_EUI", "AA555A0000000101"))
CHANNELS_MHZ = (868.1, 868.3, 868.5)


def build_push_data(reports: Iterable[dict], token: bytes | None = None, gateway_eui: bytes = GATEWAY_EUI) -> bytes:
    """
    Frame layout:
      [version u8][token 2 bytes][PUSH_DATA u8][gateway EUI 8 bytes][JSON body]
    Each report is {"message": str, "freq": float, "rssi": int}.
    """
    token = token if token is not None else secrets.token_bytes(2)
    if len(token) != 2 or len(gateway_eui) != 8:
        raise ValueError("token must be 2 bytes and gateway_eui 8 bytes")
    rxpk = [
        {
            "data": base64.b64encode(r["message"].encode("utf-8")).decode("ascii"),
            "freq": r.get("freq"),
            "rssi": r.get("rssi"),
        }
        for r in reports
    ]
    header = bytes([PROTOCOL_VERSION]) + token + bytes([PUSH_DATA]) + gateway_eui
    return header + json.dumps({"rxpk": rxpk}).encode("utf-8")


def fake_reading(node: int) -> dict:
    temp = round(22.0 + random.uniform(-1.5, 1.5), 1)
    rh = round(45.0 + random.uniform(-5.0, 5.0), 1)
    return {
        "message": f"id:{node} temp:{temp} rh:{rh}",
        "freq": random.choice(CHANNELS_MHZ),
        "rssi": random.randint(-110, -40),
    }


def main():
    nodes = int(os.getenv("GATEWAY_NODES", "3"))
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    print(f"Sending PUSH_DATA to {HOST}:{PORT} every {INTERVAL}s for {nodes} nodes")
    try:
        while True:
            frame = build_push_data(fake_reading(n) for n in range(1, nodes + 1))
            sock.sendto(frame, (HOST, PORT))
            print(len(frame), "bytes sent")
            time.sleep(INTERVAL)
    except KeyboardInterrupt:
        pass
    finally:
        sock.close()


if __name__ == "__main__":
    main()
