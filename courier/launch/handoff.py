"""
Courier — Payload Handoff Store

A payload can be resolved before any window exists, or while the window
exists but its script has not registered a listener yet. The store keeps
the most recent payload and delivers it:

    1. immediately, if a surface is already up           (deliver_now)
    2. when the surface emits its one-time ready signal  (UiSession.on_ready)
    3. from a fallback timer if ready never arrives      (UiSession fallback)

2 and 3 share one flag per surface lifetime, so exactly one of them
reveals the window and pushes the payload.

State is last-writer-wins: two racing activations leave the newer payload
in place and nothing is queued.
"""
import queue
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional, Protocol, runtime_checkable

from ..core.types import LaunchPayload, DiagnosticsSnapshot


LOAD_CONTEXT_EVENT = "load-context"
UI_STATUS_EVENT = "ui-status"
READY_EVENT = "frontend-ready"


# ─── UI Surface ──────────────────────────────────────────────────────────────

@runtime_checkable
class UiSurface(Protocol):
    """Window the payload is delivered to. Implemented by the UI layer."""

    def is_ready_to_show(self) -> bool:
        ...

    def set_position(self, x: int, y: int) -> None:
        ...

    def show(self) -> None:
        ...

    def focus(self) -> None:
        ...

    def emit(self, event: str, payload: Any) -> None:
        ...


@dataclass
class UiCommand:
    """A single instruction for the UI thread."""
    kind: str                      # "position" | "show" | "focus" | "emit"
    event: Optional[str] = None
    data: Any = None


class ChannelSurface:
    """
    UiSurface that never touches widgets itself.

    Each call becomes a UiCommand on a queue; the UI thread drains it and
    applies the commands on its own loop.
    """

    def __init__(self, available: bool = True):
        self.available = available
        self._commands: "queue.Queue[UiCommand]" = queue.Queue()

    def is_ready_to_show(self) -> bool:
        return self.available

    def set_position(self, x: int, y: int) -> None:
        self._commands.put(UiCommand("position", data=(x, y)))

    def show(self) -> None:
        self._commands.put(UiCommand("show"))

    def focus(self) -> None:
        self._commands.put(UiCommand("focus"))

    def emit(self, event: str, payload: Any) -> None:
        self._commands.put(UiCommand("emit", event=event, data=payload))

    def drain(self) -> List[UiCommand]:
        """Everything queued so far, oldest first. Non-blocking."""
        out = []
        while True:
            try:
                out.append(self._commands.get_nowait())
            except queue.Empty:
                return out

    def get(self, timeout: float) -> UiCommand:
        """Block for the next command; raises queue.Empty on timeout."""
        return self._commands.get(timeout=timeout)


# ─── Shared State ────────────────────────────────────────────────────────────

@dataclass
class PayloadHandoffState:
    """Process-wide handoff state. Only touched under HandoffStore's lock."""
    last: Optional[LaunchPayload] = None
    logs: Deque[str] = field(default_factory=lambda: deque(maxlen=200))
    activation_args: List[str] = field(default_factory=list)


class HandoffStore:
    """
    Lock-guarded owner of PayloadHandoffState.

    No method holds the lock while calling into a surface.
    """

    def __init__(
        self,
        log_capacity: int = 200,
        echo: Optional[Callable[[str], None]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._lock = threading.Lock()
        self._state = PayloadHandoffState(logs=deque(maxlen=log_capacity))
        self._echo = echo
        self._clock = clock

    # ─── Diagnostics ─────────────────────────────────────────────────────

    def log(self, message: str) -> None:
        """Append a timestamped line to the ring buffer."""
        line = f"[{self._clock().strftime('%H:%M:%S.%f')[:-3]}] {message}"
        with self._lock:
            self._state.logs.append(line)
        if self._echo:
            self._echo(line)

    def record_activation(self, args: List[str]) -> None:
        with self._lock:
            self._state.activation_args = list(args)

    def snapshot(self) -> DiagnosticsSnapshot:
        with self._lock:
            return DiagnosticsSnapshot(
                logs=list(self._state.logs),
                last_payload=self._state.last,
                activation_args=list(self._state.activation_args),
            )

    # ─── Payload ─────────────────────────────────────────────────────────

    def store(self, payload: LaunchPayload) -> None:
        """Overwrite the last payload; the previous one is dropped."""
        with self._lock:
            self._state.last = payload
        self.log(f"stored payload kind={payload.context.kind} items={len(payload.context.paths)}")

    def last_payload(self) -> Optional[LaunchPayload]:
        with self._lock:
            return self._state.last

    def take_last(self) -> Optional[LaunchPayload]:
        """Return and clear the last payload (polling consumers)."""
        with self._lock:
            payload, self._state.last = self._state.last, None
        if payload is not None:
            self.log("pending payload taken")
        return payload

    # ─── Delivery ────────────────────────────────────────────────────────

    def push(self, surface: UiSurface, payload: LaunchPayload) -> None:
        """Position, show, focus and send load-context to a surface."""
        if payload.coords is not None:
            surface.set_position(payload.coords.x, payload.coords.y)
        surface.show()
        surface.focus()
        surface.emit(LOAD_CONTEXT_EVENT, payload.to_dict())
        self.log(f"emitted {LOAD_CONTEXT_EVENT}")

    def deliver_now(self, surface: Optional[UiSurface]) -> bool:
        """Push the last payload if a surface is already up."""
        payload = self.last_payload()
        if payload is None or surface is None:
            return False
        if not surface.is_ready_to_show():
            self.log("surface not available yet; waiting for ready signal")
            return False
        self.push(surface, payload)
        return True

    def open_session(self, surface: UiSurface, fallback_seconds: float) -> "UiSession":
        """Arm ready/fallback delivery for a freshly created surface."""
        session = UiSession(self, surface, fallback_seconds)
        session.start()
        return session


class UiSession:
    """
    One surface lifetime: the ready handler and the fallback timer race,
    the first one reveals the window and pushes the payload.
    """

    def __init__(self, store: HandoffStore, surface: UiSurface, fallback_seconds: float):
        self._store = store
        self._surface = surface
        self._fallback_seconds = fallback_seconds
        self._lock = threading.Lock()
        self._shown = False
        self._timer: Optional[threading.Timer] = None

    @property
    def shown(self) -> bool:
        with self._lock:
            return self._shown

    def start(self) -> None:
        self._timer = threading.Timer(self._fallback_seconds, self._on_fallback)
        self._timer.daemon = True
        self._timer.start()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()

    def on_ready(self) -> bool:
        """Handler for the surface's ready signal. True if it delivered."""
        self.cancel()
        return self._reveal("ready signal")

    def _on_fallback(self) -> None:
        self._reveal("fallback timer")

    def _reveal(self, source: str) -> bool:
        with self._lock:
            already_shown, self._shown = self._shown, True
        if already_shown:
            self._store.log(f"{source}: already shown, skipping")
            return False

        payload = self._store.last_payload()
        if payload is None:
            self._surface.show()
            self._surface.focus()
            self._store.log(f"{source}: window shown, no pending payload")
        else:
            self._store.push(self._surface, payload)
            self._store.log(f"{source}: delivered pending payload")
        return True


def status_event(msg: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Body of a ui-status breadcrumb."""
    return {"msg": msg, "data": data}
