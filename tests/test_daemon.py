"""Tests for monitor_affinity.daemon."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator
from unittest import mock

import pytest

from monitor_affinity import daemon as daemon_mod
from monitor_affinity.daemon import AffinityDaemon
from monitor_affinity.display import DisplayError
from monitor_affinity.models import Monitor


class FakeBackend:
    """Backend yielding a fixed list of events, then closing the stream."""

    name = "Fake"

    def __init__(self, snapshots: list[list[Monitor]], events: list[str]) -> None:
        self._snapshots = snapshots
        self._events = events
        self.queries = 0

    def get_monitors(self) -> list[Monitor]:
        snapshot = self._snapshots[min(self.queries, len(self._snapshots) - 1)]
        self.queries += 1
        return snapshot

    async def connect_event_socket(self) -> AsyncIterator[str]:
        for event in self._events:
            yield event


class TestRefresh:
    """Tests for AffinityDaemon.refresh."""

    def test_passes_snapshot_to_runner(self, primary: Monitor) -> None:
        runner = mock.Mock()
        AffinityDaemon(runner).refresh(FakeBackend([[primary]], []))
        runner.refresh.assert_called_once_with([primary])

    def test_query_failure_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        runner = mock.Mock()
        backend = mock.Mock()
        backend.get_monitors.side_effect = DisplayError("socket gone")
        with caplog.at_level(logging.ERROR):
            AffinityDaemon(runner).refresh(backend)
        runner.refresh.assert_not_called()
        assert "socket gone" in caplog.text


class TestListen:
    """Tests for event handling and debouncing."""

    def test_initial_refresh_then_one_debounced_refresh(
        self, monkeypatch: pytest.MonkeyPatch, primary: Monitor, large: Monitor,
    ) -> None:
        monkeypatch.setattr(daemon_mod, "DEBOUNCE_MS", 10)
        runner = mock.Mock()
        backend = FakeBackend(
            [[primary, large], [primary]],
            ["monitorremoved>>DP-2", "monitoradded>>DP-2", "monitorremoved>>DP-2"],
        )

        async def scenario() -> None:
            d = AffinityDaemon(runner)
            await d._listen(backend)
            await asyncio.sleep(0.1)

        asyncio.run(scenario())

        assert backend.queries == 2
        assert runner.refresh.call_args_list == [
            mock.call([primary, large]),
            mock.call([primary]),
        ]

    def test_separate_bursts_refresh_separately(
        self, monkeypatch: pytest.MonkeyPatch, primary: Monitor,
    ) -> None:
        monkeypatch.setattr(daemon_mod, "DEBOUNCE_MS", 10)
        runner = mock.Mock()
        backend = FakeBackend([[primary]], [])

        async def scenario() -> None:
            d = AffinityDaemon(runner)
            d._schedule_refresh(backend)
            await asyncio.sleep(0.05)
            d._schedule_refresh(backend)
            d._schedule_refresh(backend)
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        assert runner.refresh.call_count == 2


class TestRun:
    """Tests for the reconnect loop."""

    def test_retries_when_no_backend(self, monkeypatch: pytest.MonkeyPatch, primary: Monitor) -> None:
        monkeypatch.setattr(daemon_mod, "RETRY_S", 0)
        backend = FakeBackend([[primary]], [])
        detect = mock.Mock(side_effect=[None, backend, asyncio.CancelledError()])
        monkeypatch.setattr(daemon_mod, "detect_backend", detect)
        runner = mock.Mock()

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(AffinityDaemon(runner).run())

        assert detect.call_count == 3
        runner.refresh.assert_called_once_with([primary])

    def test_connection_errors_are_retried(self, monkeypatch: pytest.MonkeyPatch, primary: Monitor) -> None:
        monkeypatch.setattr(daemon_mod, "RETRY_S", 0)
        broken = mock.Mock()
        broken.name = "Broken"
        broken.get_monitors.return_value = [primary]
        broken.connect_event_socket.side_effect = ConnectionRefusedError("refused")
        detect = mock.Mock(side_effect=[broken, asyncio.CancelledError()])
        monkeypatch.setattr(daemon_mod, "detect_backend", detect)

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(AffinityDaemon(mock.Mock()).run())
        assert detect.call_count == 2


class TestServe:
    """Tests for serve."""

    def test_kill_on_exit_stops_runner(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def stop_at_once(self) -> None:
            raise asyncio.CancelledError

        monkeypatch.setattr(AffinityDaemon, "run", stop_at_once)
        runner = mock.Mock()
        daemon_mod.serve(runner, kill_on_exit=True)
        runner.stop.assert_called_once()

    def test_open_event_stream_is_closed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        closed: list[bool] = []

        async def events() -> AsyncIterator[str]:
            try:
                yield "monitoradded>>DP-2"
                await asyncio.sleep(3600)
            finally:
                closed.append(True)

        async def cancelled_while_listening(self) -> None:
            async for _ in events():
                raise asyncio.CancelledError

        monkeypatch.setattr(AffinityDaemon, "run", cancelled_while_listening)
        daemon_mod.serve(mock.Mock())
        assert closed == [True]

    def test_processes_left_running_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def stop_at_once(self) -> None:
            raise asyncio.CancelledError

        monkeypatch.setattr(AffinityDaemon, "run", stop_at_once)
        runner = mock.Mock()
        daemon_mod.serve(runner)
        runner.stop.assert_not_called()
