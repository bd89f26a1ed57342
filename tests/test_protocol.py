"""Tests for network/protocol.py message models."""
import json

import pytest

from network import protocol


def test_scan_response_hydrates_image_infos():
    data = {
        "status": "success",
        "message": None,
        "images": [{"id": "img_0", "path": "/p/a.jpg", "name": "a.jpg", "tags": [], "description": ""}],
    }
    response = protocol.ScanFolderResponse.model_validate(data)
    assert isinstance(response.images[0], protocol.ImageInfo)
    assert response.images[0].path == "/p/a.jpg"


def test_requests_carry_their_command():
    assert protocol.ScanFolderRequest(folder_path="/p").model_dump()["command"] == "scan_folder"
    assert protocol.GenerateTagsRequest(image_path="/p/a.jpg").model_dump()["command"] == "generate_tags"
    assert protocol.CheckInferenceRequest().command == "check_inference"


def test_unknown_keys_are_ignored():
    response = protocol.GenerateTagsResponse.model_validate({"status": "success", "tags": ["a"], "extra": 1})
    assert response.tags == ["a"]


def test_error_response_defaults():
    error = protocol.ErrorResponse(message="Folder does not exist")
    assert json.loads(error.model_dump_json()) == {"status": "error", "message": "Folder does not exist"}


def test_model_validate_rejects_non_dict():
    with pytest.raises(TypeError):
        protocol.Response.model_validate(["not", "a", "dict"])


def test_json_round_trip():
    response = protocol.ScanFolderResponse(images=[protocol.ImageInfo(id="img_3", path="/p/b.png", name="b.png")])
    restored = protocol.ScanFolderResponse.model_validate(json.loads(response.model_dump_json()))
    assert restored == response
