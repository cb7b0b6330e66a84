"""
Tests for the origin storage.

These tests verify key-value behaviour and the storage change notifications
that tabs use to hear about each other's writes.
"""

import pytest

from storefront.storage import StorageArea, StorageEvent


@pytest.fixture
def tabs(storage_area: StorageArea):
    return storage_area.open("tab-a"), storage_area.open("tab-b")


class TestKeyValue:
    """Tests for basic reads and writes."""

    def test_set_and_get(self, tabs):
        tab_a, tab_b = tabs
        tab_a.set_item("products", "[]")

        assert tab_a.get_item("products") == "[]"
        assert tab_b.get_item("products") == "[]"  # same origin, same data

    def test_missing_key_is_none(self, tabs):
        tab_a, _ = tabs
        assert tab_a.get_item("nope") is None

    def test_remove_item(self, tabs):
        tab_a, _ = tabs
        tab_a.set_item("k", "v")
        tab_a.remove_item("k")

        assert "k" not in tab_a
        assert len(tab_a) == 0

    def test_values_must_be_strings(self, tabs):
        tab_a, _ = tabs
        with pytest.raises(TypeError):
            tab_a.set_item("k", 123)

    def test_keys_and_clear(self, tabs):
        tab_a, tab_b = tabs
        tab_a.set_item("a", "1")
        tab_b.set_item("b", "2")

        assert sorted(tab_a.keys()) == ["a", "b"]

        tab_b.clear()
        assert tab_a.keys() == []


class TestNotifications:
    """Tests for cross-tab storage change notifications."""

    def test_other_tab_is_notified(self, tabs):
        tab_a, tab_b = tabs
        received = []
        tab_b.add_listener(received.append)

        tab_a.set_item("orders", "[1]")

        assert received == [StorageEvent(key="orders", old_value=None, new_value="[1]")]

    def test_writer_is_not_notified(self, tabs):
        tab_a, _ = tabs
        received = []
        tab_a.add_listener(received.append)

        tab_a.set_item("orders", "[1]")

        assert received == []

    def test_unchanged_value_is_silent(self, tabs):
        tab_a, tab_b = tabs
        tab_a.set_item("k", "v")
        received = []
        tab_b.add_listener(received.append)

        tab_a.set_item("k", "v")

        assert received == []

    def test_removal_carries_old_value(self, tabs):
        tab_a, tab_b = tabs
        tab_a.set_item("k", "v")
        received = []
        tab_b.add_listener(received.append)

        tab_a.remove_item("k")

        assert received == [StorageEvent(key="k", old_value="v", new_value=None)]

    def test_removing_missing_key_is_silent(self, tabs):
        tab_a, tab_b = tabs
        received = []
        tab_b.add_listener(received.append)

        tab_a.remove_item("never-set")

        assert received == []

    def test_remove_listener_is_idempotent(self, tabs):
        tab_a, tab_b = tabs
        received = []
        remove = tab_b.add_listener(received.append)

        remove()
        remove()
        tab_a.set_item("k", "v")

        assert received == []

    def test_detached_tab_stops_hearing(self, storage_area, tabs):
        tab_a, tab_b = tabs
        received = []
        tab_b.add_listener(received.append)

        tab_b.detach()
        tab_a.set_item("k", "v")

        assert received == []
        assert storage_area.handle_count == 1

    def test_failing_listener_does_not_stop_others(self, tabs):
        tab_a, tab_b = tabs
        received = []

        def bad_listener(event):
            raise RuntimeError("boom")

        tab_b.add_listener(bad_listener)
        tab_b.add_listener(received.append)

        tab_a.set_item("k", "v")

        assert len(received) == 1

    def test_last_write_wins(self, tabs):
        tab_a, tab_b = tabs
        tab_a.set_item("products", '["from-a"]')
        tab_b.set_item("products", '["from-b"]')

        assert tab_a.get_item("products") == '["from-b"]'
