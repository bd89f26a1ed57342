"""Length-prefixed JSON framing shared by the client and the daemon.

Each message is a 4-byte big-endian length followed by a UTF-8 JSON body.
"""

import json
import socket
from typing import Optional

MAX_MESSAGE_SIZE = 10 * 1024 * 1024  # 10 MB


def recv_exactly(sock: socket.socket, n: int) -> Optional[bytes]:
    """Read exactly n bytes from sock. Returns None if the connection is closed
    cleanly or a timeout occurs with no data read. Raises ConnectionError if a
    timeout occurs after a partial read (the stream is now corrupted)."""
    data = bytearray()
    while len(data) < n:
        try:
            packet = sock.recv(n - len(data))
        except socket.timeout:
            if data:
                raise ConnectionError(f"Timeout after reading {len(data)}/{n} bytes")
            return None
        if not packet:
            return None
        data.extend(packet)
    return bytes(data)


def encode_frame(payload) -> bytes:
    """Frame a dict (or an already serialized JSON string)."""
    body = payload if isinstance(payload, str) else json.dumps(payload)
    data = body.encode()
    return len(data).to_bytes(4, byteorder="big") + data


def send_frame(sock: socket.socket, payload) -> None:
    sock.sendall(encode_frame(payload))


def recv_frame(sock: socket.socket) -> Optional[dict]:
    """Read one framed JSON message; None if the peer closed or went idle."""
    length_data = recv_exactly(sock, 4)
    if not length_data:
        return None
    message_length = int.from_bytes(length_data, byteorder="big")
    if message_length > MAX_MESSAGE_SIZE:
        raise ConnectionError(f"Message too large: {message_length} bytes")
    message_data = recv_exactly(sock, message_length)
    if not message_data:
        raise ConnectionError("Failed to read complete message")
    return json.loads(message_data.decode())
