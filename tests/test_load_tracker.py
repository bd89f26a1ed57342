"""Tests for core/load_tracker.py."""
from dataclasses import replace

from core.load_tracker import is_loaded, mark_loaded
from core.scan_coordinator import begin_scan, complete_scan

from conftest import make_record, make_state


def test_mark_loaded_is_scoped_to_generation():
    state = make_state(["a.jpg", "b.jpg"], scan_generation=3)
    state = mark_loaded(state, "img_0")
    assert is_loaded(state, "img_0")
    assert not is_loaded(state, "img_1")
    assert ("img_0", 3) in state.loaded


def test_marking_twice_returns_same_state():
    state = mark_loaded(make_state(["a.jpg"]), "img_0")
    assert mark_loaded(state, "img_0") is state


def test_reused_id_is_unloaded_after_rescan():
    state = mark_loaded(make_state(["a.jpg"], scan_generation=1), "img_0")
    state = begin_scan(state)
    state = complete_scan(state, state.latest_scan_ticket, (make_record("other.jpg", 0),))
    assert state.scan_generation == 2
    assert not is_loaded(state, "img_0")


def test_stale_generation_load_is_ignored():
    state = make_state(["a.jpg"], scan_generation=5)
    assert mark_loaded(state, "img_0", scan_generation=4) is state
    assert is_loaded(mark_loaded(state, "img_0", scan_generation=5), "img_0")


def test_entry_from_prior_generation_is_not_loaded():
    state = replace(make_state(["a.jpg"], scan_generation=2), loaded=frozenset({("img_0", 1)}))
    assert not is_loaded(state, "img_0")
