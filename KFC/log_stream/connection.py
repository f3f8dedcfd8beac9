"""
Connection Module - Follow session with retry state machine

Handles:
- Background thread following one deployment's logs
- Connecting / Connected / Retrying / Failed transitions
- Cancellable backoff between attempts and grace delay before exit
- Status messages for the status bar
"""
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from threading import Event, Lock, Thread
from typing import Callable, Optional, Protocol

from KFC.errors import KFCError, StreamError

logger = logging.getLogger(__name__)

DEFAULT_BACKOFF_S = 2.0
DEFAULT_EXIT_GRACE_S = 3.0

# on_line(pod, container, text, timestamp_ms)
LineCallback = Callable[[str, str, str, Optional[int]], None]


class ConnectionStatus(Enum):
    CONNECTING = "Connecting"
    CONNECTED = "Connected"
    RETRYING = "Retrying"
    FAILED = "Failed"


@dataclass(frozen=True)
class ConnectionState:
    status: ConnectionStatus = ConnectionStatus.CONNECTING
    retry_count: int = 0
    progress_message: str = ""
    status_message: str = ""
    error: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED


@dataclass(frozen=True)
class FollowTarget:
    deployment: str
    namespace: str
    context: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.namespace}/{self.deployment}"


class FollowHandleLike(Protocol):
    def cancel(self) -> None: ...


class LogClient(Protocol):
    """What the session needs from a Kubernetes client"""

    def follow_pod_logs(self, deployment: str, namespace: str, context: Optional[str], tail_lines: int,
                        on_line: LineCallback, on_error: Callable[[Exception], None],
                        on_progress: Optional[Callable[[str], None]] = None,
                        timeout_s: float = 10) -> FollowHandleLike: ...


@dataclass
class _Attempt:
    """Per-attempt bookkeeping; callbacks from a stale attempt are ignored"""
    number: int
    done: Event = field(default_factory=Event)
    error: Optional[Exception] = None
    received: bool = False


class FollowSession:
    """
    Follows a deployment's logs, reconnecting on failure

    Args:
        client: Kubernetes log client
        target: Deployment to follow
        on_line: Called for every received line (pod, container, text, timestamp_ms)
        max_retry: Reconnect attempts after the first failure
        timeout_s: Per-call Kubernetes API timeout
        tail_lines: Lines of history requested on each (re)connect
        backoff_s: Delay before each reconnect
        exit_grace_s: Delay between the final failure and on_fatal
        on_state_change: Called with each new ConnectionState
        on_fatal: Called once retries are exhausted
    """

    def __init__(self, client: LogClient, target: FollowTarget, on_line: LineCallback,
                 max_retry: int = 10, timeout_s: float = 10, tail_lines: int = 100,
                 backoff_s: float = DEFAULT_BACKOFF_S, exit_grace_s: float = DEFAULT_EXIT_GRACE_S,
                 on_state_change: Optional[Callable[[ConnectionState], None]] = None,
                 on_fatal: Optional[Callable[[str], None]] = None):
        self.client = client
        self.target = target
        self.on_line = on_line
        self.max_retry = max_retry
        self.timeout_s = timeout_s
        self.tail_lines = tail_lines
        self.backoff_s = backoff_s
        self.exit_grace_s = exit_grace_s
        self.on_state_change = on_state_change
        self.on_fatal = on_fatal

        self.state = ConnectionState(status_message=f"Connecting to {target.deployment}...")
        self.attempts = 0

        # Thread management
        self.stop_event = Event()
        self.thread: Optional[Thread] = None
        self._lock = Lock()
        self._attempt: Optional[_Attempt] = None
        self._handle: Optional[FollowHandleLike] = None

    @property
    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self) -> None:
        """Run the session on a background daemon thread"""
        if self.is_running:
            return
        self.stop_event.clear()
        self.thread = Thread(target=self.run, name=f"follow-{self.target.deployment}", daemon=True)
        self.thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        """Cancel the active stream, backoff and grace delay, then wait for the thread"""
        self.stop_event.set()
        with self._lock:
            attempt, handle = self._attempt, self._handle
        if attempt:
            attempt.done.set()
        if handle:
            self._cancel_handle(handle)
        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=timeout)

    def __enter__(self) -> "FollowSession":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    def run(self) -> None:
        """Connection loop; returns when stopped or when retries are exhausted"""
        retry_count = 0
        self._set_state(ConnectionStatus.CONNECTING, retry_count,
                        status_message=f"Connecting to {self.target.deployment}...")

        while not self.stop_event.is_set():
            error = self._attempt_follow()
            if self.stop_event.is_set():
                break

            message = str(error) or error.__class__.__name__
            logger.warning(f"Follow attempt {self.attempts} for {self.target} failed: {message}")

            if retry_count >= self.max_retry:
                self._fail(message, attempts=retry_count + 1)
                return

            retry_count += 1
            self._set_state(ConnectionStatus.RETRYING, retry_count, error=message,
                            status_message=f"Connection lost. Retrying ({retry_count}/{self.max_retry})...")
            if self.stop_event.wait(self.backoff_s):
                break

        logger.info(f"Follow session for {self.target} stopped")

    def _attempt_follow(self) -> Exception:
        """One connect-and-stream attempt; returns the error that ended it"""
        self.attempts += 1
        attempt = _Attempt(number=self.attempts)

        def on_line(pod: str, container: str, text: str, timestamp_ms: Optional[int] = None) -> None:
            if attempt.done.is_set():
                return
            if not attempt.received:
                attempt.received = True
                self._set_state(ConnectionStatus.CONNECTED, self.state.retry_count,
                                status_message=f"Following logs for {self.target.deployment}")
            self.on_line(pod, container, text, timestamp_ms)

        def on_error(error: Exception) -> None:
            if attempt.done.is_set():
                return
            attempt.error = error
            attempt.done.set()

        def on_progress(message: str) -> None:
            self.state = replace(self.state, progress_message=message)
            self._notify()

        with self._lock:
            self._attempt = attempt

        try:
            handle = self.client.follow_pod_logs(
                self.target.deployment, self.target.namespace, self.target.context, self.tail_lines,
                on_line=on_line, on_error=on_error, on_progress=on_progress, timeout_s=self.timeout_s,
            )
        except KFCError as e:
            attempt.done.set()
            return e

        with self._lock:
            self._handle = handle
        try:
            attempt.done.wait()
        finally:
            with self._lock:
                self._handle = None
            self._cancel_handle(handle)

        return attempt.error or StreamError("Log stream ended")

    def _fail(self, message: str, attempts: int) -> None:
        status_message = f"Failed after {attempts} attempts: {message}"
        logger.error(f"{self.target}: {status_message}")
        self._set_state(ConnectionStatus.FAILED, self.state.retry_count, error=message,
                        status_message=status_message)
        if self.stop_event.wait(self.exit_grace_s):
            return
        if self.on_fatal:
            self.on_fatal(status_message)

    def _set_state(self, status: ConnectionStatus, retry_count: int, status_message: str,
                   error: Optional[str] = None) -> None:
        self.state = ConnectionState(status=status, retry_count=retry_count,
                                     progress_message=self.state.progress_message,
                                     status_message=status_message, error=error)
        logger.debug(f"{self.target}: {status.value} ({status_message})")
        self._notify()

    def _notify(self) -> None:
        if self.on_state_change:
            self.on_state_change(self.state)

    @staticmethod
    def _cancel_handle(handle: FollowHandleLike) -> None:
        try:
            handle.cancel()
        except Exception as e:
            logger.debug(f"Error cancelling follow handle: {e}")
