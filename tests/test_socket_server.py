"""Tests for GallerySocketServer.handle_request command dispatch."""
import json
import os
import uuid
from unittest.mock import MagicMock

import pytest

from core.errors import BackendError
from network import protocol
from network.socket_server import GallerySocketServer


@pytest.fixture()
def server():
    path = f"/tmp/gallery_test_{uuid.uuid4().hex[:8]}.sock"
    srv = GallerySocketServer(path, MagicMock(), MagicMock())
    yield srv
    srv.shutdown()


def _handle(server, request: dict) -> dict:
    return json.loads(server.handle_request(request))


def test_stale_socket_file_is_replaced():
    path = f"/tmp/gallery_test_{uuid.uuid4().hex[:8]}.sock"
    with open(path, "w") as f:
        f.write("stale")
    srv = GallerySocketServer(path, MagicMock(), MagicMock())
    try:
        assert os.path.exists(path)
    finally:
        srv.shutdown()
    assert not os.path.exists(path)


def test_unknown_command(server):
    result = _handle(server, {"command": "make_coffee"})
    assert result == {"status": "error", "message": "Unknown command: make_coffee"}


def test_scan_folder_dispatch(server):
    server.scanner.scan_folder.return_value = [protocol.ImageInfo(id="img_0", path="/p/a.jpg", name="a.jpg")]
    result = _handle(server, {"command": "scan_folder", "folder_path": "/p"})
    assert result["status"] == "success"
    assert result["images"][0]["name"] == "a.jpg"


def test_backend_error_message_is_forwarded(server):
    server.tagger.generate_tags.side_effect = BackendError("Failed to call Ollama: refused. Is Ollama running?")
    result = _handle(server, {"command": "generate_tags", "image_path": "/p/a.jpg"})
    assert result == {"status": "error", "message": "Failed to call Ollama: refused. Is Ollama running?"}


def test_invalid_request_is_reported(server):
    server.scanner.scan_folder.side_effect = TypeError("bad folder_path")
    result = _handle(server, {"command": "scan_folder", "folder_path": None})
    assert result["status"] == "error"
    assert result["message"].startswith("Invalid request:")


def test_shutdown_command_acknowledged(server):
    assert _handle(server, {"command": "shutdown"})["status"] == "success"


def test_shutdown_is_idempotent(server):
    server.shutdown()
    server.shutdown()
    assert not server.running
