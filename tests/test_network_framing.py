"""Tests for network/_framing.py: exact reads and length-prefixed JSON frames."""

import json
import socket
import threading
import pytest

from network._framing import MAX_MESSAGE_SIZE, encode_frame, recv_exactly, recv_frame, send_frame


@pytest.fixture()
def socketpair():
    """Yield a connected AF_UNIX socketpair and close both ends after the test."""
    a, b = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
    yield a, b
    a.close()
    b.close()


class TestRecvExactly:
    def test_accumulates_across_multiple_sends(self, socketpair):
        reader, writer = socketpair
        payload = b"abcdefghij"

        def _send():
            for byte in payload:
                writer.sendall(bytes([byte]))
        t = threading.Thread(target=_send)
        t.start()
        result = recv_exactly(reader, len(payload))
        t.join(timeout=2)
        assert result == payload

    def test_returns_none_on_eof(self, socketpair):
        reader, writer = socketpair
        writer.close()
        assert recv_exactly(reader, 4) is None

    def test_raises_on_partial_read_timeout(self, socketpair):
        reader, writer = socketpair
        reader.settimeout(0.05)
        writer.sendall(b"\x00\x00")  # 2 of 4 bytes
        with pytest.raises(ConnectionError, match="Timeout after reading 2/4 bytes"):
            recv_exactly(reader, 4)


class TestFrames:
    def test_encode_frame_prefixes_big_endian_length(self):
        frame = encode_frame({"command": "scan_folder"})
        body = json.dumps({"command": "scan_folder"}).encode()
        assert frame[:4] == len(body).to_bytes(4, "big")
        assert frame[4:] == body

    def test_encode_frame_accepts_serialized_json(self):
        assert encode_frame('{"a": 1}') == (8).to_bytes(4, "big") + b'{"a": 1}'

    def test_send_then_recv(self, socketpair):
        reader, writer = socketpair
        send_frame(writer, {"status": "success", "tags": ["café", "night"]})
        assert recv_frame(reader) == {"status": "success", "tags": ["café", "night"]}

    def test_recv_frame_none_when_peer_closed(self, socketpair):
        reader, writer = socketpair
        writer.close()
        assert recv_frame(reader) is None

    def test_recv_frame_rejects_oversized_length(self, socketpair):
        reader, writer = socketpair
        writer.sendall((MAX_MESSAGE_SIZE + 1).to_bytes(4, "big"))
        with pytest.raises(ConnectionError, match="Message too large"):
            recv_frame(reader)

    def test_recv_frame_raises_on_truncated_body(self, socketpair):
        reader, writer = socketpair
        writer.sendall((10).to_bytes(4, "big") + b"{}")
        writer.close()
        with pytest.raises(ConnectionError, match="complete message"):
            recv_frame(reader)

    def test_max_message_size(self):
        assert MAX_MESSAGE_SIZE == 10 * 1024 * 1024
