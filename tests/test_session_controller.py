"""Tests for core/session_controller.py with a manually driven executor and timer."""
from unittest.mock import MagicMock

import pytest

from core.event_system import EventType
from core.filter_view import filtered_images
from core.navigation import NavigationKey
from core.session_controller import SessionController
from core.session_store import SessionStore
from network import protocol


def _scan_response(*names, folder="/photos"):
    return protocol.ScanFolderResponse(images=[
        protocol.ImageInfo(id=f"img_{i}", path=f"{folder}/{name}", name=name)
        for i, name in enumerate(names)
    ])


@pytest.fixture()
def backend():
    return MagicMock()


@pytest.fixture()
def controller(bus, backend, executor, fake_timer):
    return SessionController(SessionStore(bus=bus), backend, executor=executor, overlay_timer=fake_timer)


def _scan(controller, executor, backend, *names):
    backend.scan_folder.return_value = _scan_response(*names)
    controller.request_scan("/photos")
    executor.run(len(executor.calls) - 1)


class TestScanning:
    def test_cancelled_prompt_is_noop(self, controller, executor):
        assert controller.request_scan(None) is None
        assert controller.request_scan("") is None
        assert executor.calls == []
        assert not controller.state.scanning

    def test_successful_scan_replaces_images(self, controller, executor, backend):
        ticket = controller.request_scan("/photos")
        assert ticket == 1
        assert controller.state.scanning

        backend.scan_folder.return_value = _scan_response("a.jpg", "b.jpg")
        executor.run(0)

        backend.scan_folder.assert_called_once_with("/photos")
        state = controller.state
        assert [r.name for r in state.images] == ["a.jpg", "b.jpg"]
        assert state.images[0].display_ref == "file:///photos/a.jpg"
        assert state.scan_generation == 1
        assert not state.scanning

    def test_failure_after_prior_scan_keeps_images(self, controller, executor, backend):
        _scan(controller, executor, backend, "1.jpg", "2.jpg", "3.jpg", "4.jpg", "5.jpg")
        backend.scan_folder.return_value = protocol.ErrorResponse(message="Failed to read directory: denied")
        controller.request_scan("/locked")
        executor.run(1)

        assert len(controller.state.images) == 5
        assert controller.state.scan_generation == 1
        assert not controller.state.scanning

    def test_unreachable_backend_is_a_scan_failure(self, controller, executor, backend):
        backend.scan_folder.return_value = None
        controller.request_scan("/photos")
        executor.run(0)
        assert controller.state.images == ()
        assert not controller.state.scanning

    def test_unexpected_worker_error_releases_scanning(self, controller, executor, backend):
        backend.scan_folder.side_effect = RuntimeError("socket exploded")
        controller.request_scan("/photos")
        executor.run(0)
        assert not controller.state.scanning

    def test_wrong_typed_entry_fails_the_scan_and_search_still_works(self, controller, executor, backend):
        _scan(controller, executor, backend, "a.jpg")
        backend.scan_folder.return_value = protocol.ScanFolderResponse.model_validate({
            "status": "success",
            "images": [{"id": "img_0", "path": "/p/a.jpg", "name": None, "tags": [3]}],
        })
        controller.request_scan("/p")
        executor.run(1)

        assert [r.name for r in controller.state.images] == ["a.jpg"]
        assert not controller.state.scanning
        controller.set_search_query("a")
        assert [r.name for r in filtered_images(controller.state)] == ["a.jpg"]

    def test_duplicate_ids_fail_the_scan(self, controller, executor, backend):
        response = _scan_response("a.jpg", "b.jpg")
        response.images[1].id = "img_0"
        backend.scan_folder.return_value = response
        controller.request_scan("/photos")
        executor.run(0)
        assert controller.state.images == ()
        assert not controller.state.scanning

    def test_older_scan_resolving_last_is_discarded(self, controller, executor, backend):
        backend.scan_folder.side_effect = [_scan_response("old.jpg"), _scan_response("new.jpg")]
        controller.request_scan("/old")
        controller.request_scan("/new")

        # Worker functions run in call order, so the first call gets "old.jpg".
        fn_old, args_old, future_old = executor.calls[0]
        fn_new, args_new, future_new = executor.calls[1]
        old_result = fn_old(*args_old)
        future_new.set_result(fn_new(*args_new))
        assert [r.name for r in controller.state.images] == ["new.jpg"]
        assert not controller.state.scanning

        future_old.set_result(old_result)
        assert [r.name for r in controller.state.images] == ["new.jpg"]
        assert controller.state.scan_generation == 1

    def test_scanning_stays_true_until_newest_resolves(self, controller, executor, backend):
        backend.scan_folder.return_value = _scan_response("a.jpg")
        controller.request_scan("/one")
        controller.request_scan("/two")
        executor.run(0)
        assert controller.state.scanning
        executor.run(1)
        assert not controller.state.scanning


class TestNavigation:
    def test_key_scenario_stops_at_last_image(self, controller, executor, backend):
        _scan(controller, executor, backend, "a.jpg", "b.jpg", "c.jpg")
        controller.select("img_1")
        controller.handle_key(NavigationKey.RIGHT)
        assert controller.state.selected_id == "img_2"
        controller.handle_key(NavigationKey.RIGHT)
        assert controller.state.selected_id == "img_2"
        controller.handle_key(NavigationKey.ESCAPE)
        assert controller.state.selected_id is None

    def test_keys_follow_search_changes(self, controller, executor, backend):
        _scan(controller, executor, backend, "cat1.jpg", "dog.jpg", "cat2.jpg")
        controller.select("img_0")
        controller.set_search_query("cat")
        controller.handle_key(NavigationKey.RIGHT)
        assert controller.state.selected_id == "img_2"

    def test_state_changes_reach_subscribers(self, controller, executor, backend, bus):
        states = []
        bus.subscribe(EventType.STATE_CHANGED, lambda e: states.append(e.state))
        _scan(controller, executor, backend, "a.jpg")
        controller.mark_loaded("img_0", 1)
        assert states[-1].loaded == frozenset({("img_0", 1)})


class TestOverlayTimer:
    def test_select_arms_timer_and_expiry_hides(self, controller, executor, backend, fake_timer):
        _scan(controller, executor, backend, "a.jpg", "b.jpg")
        controller.select("img_0")
        assert controller.state.overlay_visible
        assert fake_timer.armed
        assert fake_timer.delay_ms == 2000

        fake_timer.fire()
        assert not controller.state.overlay_visible

    def test_navigation_rearms_timer(self, controller, executor, backend, fake_timer):
        _scan(controller, executor, backend, "a.jpg", "b.jpg")
        controller.select("img_0")
        stale_callback = fake_timer.callback
        controller.go_to_next()
        assert fake_timer.arm_count == 2

        # A callback captured for the earlier epoch changes nothing.
        stale_callback()
        assert controller.state.overlay_visible

    def test_clear_selection_cancels_timer(self, controller, executor, backend, fake_timer):
        _scan(controller, executor, backend, "a.jpg")
        controller.select("img_0")
        controller.clear_selection()
        assert not fake_timer.armed
        assert not controller.state.overlay_visible

    def test_toggle_hides_and_shows(self, controller, executor, backend, fake_timer):
        _scan(controller, executor, backend, "a.jpg")
        controller.select("img_0")
        controller.toggle_overlay()
        assert not controller.state.overlay_visible
        assert not fake_timer.armed
        controller.toggle_overlay()
        assert controller.state.overlay_visible
        assert fake_timer.armed


class TestTagGeneration:
    def test_tags_land_on_requested_image_after_reselection(self, controller, executor, backend):
        _scan(controller, executor, backend, "a.jpg", "b.jpg")
        controller.select("img_1")
        assert controller.generate_tags() is True
        assert controller.state.generating_tags

        controller.select("img_0")
        backend.generate_tags.return_value = protocol.GenerateTagsResponse(tags=["outdoor", "sunset"])
        executor.run(len(executor.calls) - 1)

        backend.generate_tags.assert_called_once_with("/photos/b.jpg")
        state = controller.state
        assert state.find_image("img_1").tags == ("outdoor", "sunset")
        assert state.find_image("img_0").tags == ()
        assert state.selected_id == "img_0"
        assert not state.generating_tags

    def test_second_request_in_flight_starts_nothing(self, controller, executor, backend):
        _scan(controller, executor, backend, "a.jpg", "b.jpg")
        calls_before = len(executor.calls)
        assert controller.generate_tags("img_0") is True
        assert controller.generate_tags("img_1") is False
        assert len(executor.calls) == calls_before + 1

    def test_failure_keeps_tags_and_resets_flag(self, controller, executor, backend):
        _scan(controller, executor, backend, "a.jpg")
        backend.generate_tags.return_value = protocol.ErrorResponse(message="Failed to call Ollama")
        controller.generate_tags("img_0")
        executor.run(len(executor.calls) - 1)
        assert controller.state.find_image("img_0").tags == ()
        assert not controller.state.generating_tags
        assert controller.state.tag_request is None

    def test_malformed_tags_keep_prior_tags(self, controller, executor, backend):
        _scan(controller, executor, backend, "a.jpg")
        backend.generate_tags.return_value = protocol.GenerateTagsResponse(tags=["cat"])
        controller.generate_tags("img_0")
        executor.run(len(executor.calls) - 1)

        backend.generate_tags.return_value = protocol.GenerateTagsResponse.model_validate(
            {"status": "success", "tags": "cat, dog"}
        )
        assert controller.generate_tags("img_0") is True
        executor.run(len(executor.calls) - 1)

        assert controller.state.find_image("img_0").tags == ("cat",)
        assert not controller.state.generating_tags

    def test_non_string_tag_entries_are_rejected(self, controller, executor, backend):
        _scan(controller, executor, backend, "a.jpg")
        backend.generate_tags.return_value = protocol.GenerateTagsResponse(tags=["cat", 7])
        controller.generate_tags("img_0")
        executor.run(len(executor.calls) - 1)
        assert controller.state.find_image("img_0").tags == ()
        assert controller.state.tag_request is None

    def test_nothing_selected_is_noop(self, controller, executor):
        assert controller.generate_tags() is False
        assert executor.calls == []

    def test_unknown_image_is_noop(self, controller, executor, backend):
        _scan(controller, executor, backend, "a.jpg")
        calls_before = len(executor.calls)
        assert controller.generate_tags("img_7") is False
        assert len(executor.calls) == calls_before



class TestInferenceCheck:
    def test_unreachable_model_is_recorded(self, controller, executor, backend):
        backend.check_inference.return_value = False
        controller.check_inference()
        assert controller.state.inference_available
        executor.run(0)
        assert not controller.state.inference_available

    def test_recovery_is_recorded(self, controller, executor, backend):
        backend.check_inference.return_value = False
        controller.check_inference()
        executor.run(0)
        backend.check_inference.return_value = True
        controller.check_inference()
        executor.run(1)
        assert controller.state.inference_available

    def test_check_error_counts_as_unavailable(self, controller, executor, backend):
        backend.check_inference.side_effect = OSError("socket closed")
        controller.check_inference()
        executor.run(0)
        assert not controller.state.inference_available


def test_results_are_posted_before_they_apply(bus, backend, executor):
    posted = []
    controller = SessionController(SessionStore(bus=bus), backend, executor=executor, post=posted.append)
    backend.scan_folder.return_value = _scan_response("a.jpg")
    controller.request_scan("/photos")
    executor.run(0)

    assert controller.state.images == ()
    assert len(posted) == 1
    posted[0]()
    assert [r.name for r in controller.state.images] == ["a.jpg"]
