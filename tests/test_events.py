"""Tests for change notification."""

import logging

import pytest

from codemarks.events import ChangeEvent, ChangeNotifier


class TestChangeNotifier:
    def test_multicast(self):
        notifier = ChangeNotifier()
        a, b = [], []
        notifier.subscribe(a.append)
        notifier.subscribe(b.append)
        notifier.fire(ChangeEvent("group_created", ("g1",)))
        assert a == b == [ChangeEvent("group_created", ("g1",))]

    def test_unsubscribe(self):
        notifier = ChangeNotifier()
        received = []
        unsubscribe = notifier.subscribe(received.append)
        unsubscribe()
        unsubscribe()
        notifier.fire(ChangeEvent("cleared"))
        assert received == []
        assert notifier.listener_count == 0

    def test_failing_listener_isolated(self, caplog):
        notifier = ChangeNotifier()
        received = []

        def boom(event: ChangeEvent) -> None:
            raise RuntimeError("listener bug")

        notifier.subscribe(boom)
        notifier.subscribe(received.append)
        with caplog.at_level(logging.ERROR):
            notifier.fire(ChangeEvent("bookmark_added", ("b1",)))
        assert len(received) == 1
        assert "listener bug" in caplog.text

    def test_dispose(self):
        notifier = ChangeNotifier()
        notifier.subscribe(lambda e: None)
        notifier.dispose()
        assert notifier.listener_count == 0
        with pytest.raises(RuntimeError):
            notifier.subscribe(lambda e: None)
