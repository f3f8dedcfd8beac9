"""
Unit tests for the follow session retry state machine
"""
from threading import Event
from unittest.mock import Mock

import pytest

from KFC.errors import ConnectivityError, StreamError
from KFC.log_stream.connection import ConnectionStatus, FollowSession, FollowTarget


class FakeHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ScriptedClient:
    """Runs one scripted behaviour per follow_pod_logs call (the last one repeats)"""

    def __init__(self, *behaviours):
        self.behaviours = list(behaviours)
        self.calls = 0
        self.handles = []
        self.callbacks = []
        self.called = Event()

    def follow_pod_logs(self, deployment, namespace, context, tail_lines, on_line, on_error,
                        on_progress=None, timeout_s=10):
        behaviour = self.behaviours[min(self.calls, len(self.behaviours) - 1)]
        self.calls += 1
        self.callbacks.append((on_line, on_error))
        handle = FakeHandle()
        self.handles.append(handle)
        behaviour(on_line, on_error, on_progress)
        self.called.set()
        return handle


def fail_with(message):
    def behaviour(on_line, on_error, on_progress):
        on_error(StreamError(message))
    return behaviour


def never_ends(on_line, on_error, on_progress):
    pass


@pytest.fixture
def target():
    return FollowTarget(deployment="api", namespace="prod")


def make_session(client, target, **kwargs):
    states, fatal, lines = [], [], []
    kwargs.setdefault("backoff_s", 0)
    kwargs.setdefault("exit_grace_s", 0)
    session = FollowSession(
        client, target,
        on_line=lambda pod, container, text, ts: lines.append(text),
        on_state_change=states.append,
        on_fatal=fatal.append,
        **kwargs,
    )
    return session, states, fatal, lines


class TestFollowSession:
    """Test retry and failure transitions"""

    def test_retries_then_fails(self, target):
        """Test max_retry reconnects followed by a fatal failure"""
        client = ScriptedClient(fail_with("boom"))
        session, states, fatal, _ = make_session(client, target, max_retry=2)

        session.run()

        assert client.calls == 3
        retrying = [s.retry_count for s in states if s.status == ConnectionStatus.RETRYING]
        assert retrying == [1, 2]
        assert states[0].status == ConnectionStatus.CONNECTING
        assert states[-1].status == ConnectionStatus.FAILED
        assert fatal == ["Failed after 3 attempts: boom"]
        assert all(handle.cancelled for handle in client.handles)

    def test_retry_status_message(self, target):
        client = ScriptedClient(fail_with("boom"))
        session, states, _, _ = make_session(client, target, max_retry=1)

        session.run()

        retrying = [s for s in states if s.status == ConnectionStatus.RETRYING][0]
        assert retrying.status_message == "Connection lost. Retrying (1/1)..."
        assert retrying.error == "boom"

    def test_connected_on_first_line(self, target):
        """Test CONNECTED is entered once, on the first received line"""
        def stream_then_fail(on_line, on_error, on_progress):
            on_progress("Resolving pod for deployment api")
            on_line("api-1", "web", "hello", 1)
            on_line("api-1", "web", "world", 2)
            on_error(StreamError("severed"))

        client = ScriptedClient(stream_then_fail)
        session, states, fatal, lines = make_session(client, target, max_retry=0)

        session.run()

        assert lines == ["hello", "world"]
        connected = [s for s in states if s.status == ConnectionStatus.CONNECTED]
        assert len(connected) == 1
        assert connected[0].status_message == "Following logs for api"
        assert connected[0].progress_message == "Resolving pod for deployment api"
        assert fatal == ["Failed after 1 attempts: severed"]

    def test_connectivity_error_from_follow(self, target):
        def not_found(on_line, on_error, on_progress):
            raise ConnectivityError('Deployment "api" not found')

        client = ScriptedClient(not_found)
        session, states, fatal, _ = make_session(client, target, max_retry=1)

        session.run()

        assert client.calls == 2
        assert fatal == ['Failed after 2 attempts: Deployment "api" not found']
        assert session.state.status == ConnectionStatus.FAILED

    def test_stale_callbacks_ignored(self, target):
        def not_found(on_line, on_error, on_progress):
            raise ConnectivityError("gone")

        client = ScriptedClient(fail_with("first"), not_found)
        session, _, _, lines = make_session(client, target, max_retry=1)

        session.run()

        stale_on_line, _ = client.callbacks[0]
        stale_on_line("api-1", "web", "late line", 3)
        assert lines == []

    def test_stop_cancels_active_stream(self, target):
        """Test stop() cancels the handle and ends the thread"""
        client = ScriptedClient(never_ends)
        session, _, fatal, _ = make_session(client, target)

        session.start()
        assert client.called.wait(2)
        session.stop(timeout=2)

        assert not session.is_running
        assert client.handles[0].cancelled
        assert fatal == []

    def test_stop_during_backoff(self, target):
        client = ScriptedClient(fail_with("boom"))
        retrying = Event()
        on_fatal = Mock()
        session = FollowSession(
            client, target, on_line=lambda *args: None, max_retry=5, backoff_s=30,
            on_state_change=lambda s: retrying.set() if s.status == ConnectionStatus.RETRYING else None,
            on_fatal=on_fatal,
        )

        session.start()
        assert retrying.wait(2)
        session.stop(timeout=2)

        assert not session.is_running
        assert client.calls == 1
        on_fatal.assert_not_called()

    def test_stop_during_exit_grace_skips_fatal(self, target):
        client = ScriptedClient(fail_with("boom"))
        failed = Event()
        on_fatal = Mock()
        session = FollowSession(
            client, target, on_line=lambda *args: None, max_retry=0, exit_grace_s=30,
            on_state_change=lambda s: failed.set() if s.status == ConnectionStatus.FAILED else None,
            on_fatal=on_fatal,
        )

        session.start()
        assert failed.wait(2)
        session.stop(timeout=2)

        assert not session.is_running
        on_fatal.assert_not_called()

    def test_target_str(self, target):
        assert str(target) == "prod/api"
