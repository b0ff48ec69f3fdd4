"""
Courier — Companion (application service)

The single process-scoped owner of everything shared: configuration, the
handoff store, the analysis guard, the current UI surface and the
text-generation service. Built once at startup and passed to whoever
needs it (OS activation callback, UI command handlers, CLI).

Flows:
1. Activation: raw args → parse → store → push to the surface if it is up
2. Ingestion:  payload → extract (worker thread) → NormalizedPreview
3. Analysis:   guard → health probe → prepare (worker thread) → model → text

Blocking work always runs through asyncio.to_thread so an event loop
driving the UI keeps responding.
"""
import asyncio
from typing import Callable, List, Optional

from .errors import CourierError, ParseError, ServiceError, describe_error
from .llm_adapter import TextGenerator
from .prompts import ACTIONS, build_analysis_prompt, format_prompt
from .single_flight import SingleFlightGuard
from .types import (
    LaunchPayload, NormalizedPreview, HealthStatus, DiagnosticsSnapshot, ImageSource,
)
from ..indexing.preview import ingest, prepare_analysis
from ..launch.handoff import (
    HandoffStore, UiSession, UiSurface, UI_STATUS_EVENT, status_event,
)
from ..launch.payload_parser import parse
from ..utils.config import CourierConfig


class Companion:
    """
    Activation handling plus the commands the UI can invoke.

    Usage:
        companion = Companion(config, OllamaAdapter.from_config(config))
        session = companion.attach_surface(window)        # on window creation
        companion.on_activation(sys.argv[1:])              # first launch
        # single-instance callback → companion.on_activation(args, cwd)
        # window "frontend-ready" → session.on_ready()
    """

    def __init__(
        self,
        config: CourierConfig,
        generator: Optional[TextGenerator] = None,
        store: Optional[HandoffStore] = None,
        guard: Optional[SingleFlightGuard] = None,
        surface: Optional[UiSurface] = None,
    ):
        self.config = config
        self.generator = generator
        if store is None:
            echo = None
            if config.debug_mode:
                from ..utils.logging import echo_debug
                echo = echo_debug
            store = HandoffStore(log_capacity=config.handoff_log_capacity, echo=echo)
        self.store = store
        self.guard = guard or SingleFlightGuard("analysis")
        self.surface = surface
        self.session: Optional[UiSession] = None

    # ─── Activation ───────────────────────────────────────────────────────

    def on_activation(self, raw_args: List[str], cwd: str = "") -> Optional[LaunchPayload]:
        """
        Entry point for first launch and repeat-launch callbacks.
        Parse failures are logged and swallowed here; the process lives on.
        """
        try:
            return self.resolve(raw_args, cwd)
        except ParseError:
            return None

    def resolve(self, raw_args: List[str], cwd: str = "") -> LaunchPayload:
        """Like on_activation, but the ParseError reaches the caller (after logging)."""
        self.store.record_activation(raw_args)
        self.store.log(f"activation with {len(raw_args)} arg(s)" + (f" cwd={cwd}" if cwd else ""))
        try:
            payload = parse(raw_args)
        except ParseError as e:
            self.store.log(f"parse failed: {describe_error(e)}")
            raise
        self.store.store(payload)
        self.store.deliver_now(self.surface)
        return payload

    def attach_surface(self, surface: UiSurface) -> UiSession:
        """Register a new window and arm its ready/fallback delivery."""
        if self.session is not None:
            self.session.cancel()
        self.surface = surface
        self.session = self.store.open_session(surface, self.config.ready_fallback_seconds)
        self.store.log("surface attached")
        return self.session

    def take_last_payload(self) -> Optional[LaunchPayload]:
        """Pending payload for a UI that polls instead of listening."""
        return self.store.take_last()

    def reemit(self) -> bool:
        """Push the last payload to the surface again (debug action)."""
        self.store.log("re-emit requested")
        return self.store.deliver_now(self.surface)

    def snapshot(self) -> DiagnosticsSnapshot:
        return self.store.snapshot()

    # ─── Ingestion ────────────────────────────────────────────────────────

    async def ingest_payload(self, payload: LaunchPayload) -> NormalizedPreview:
        """Extract under ingestion caps and build the UI preview."""
        preview = await asyncio.to_thread(ingest, payload, self.config)
        self.store.log(
            f"ingested kind={preview.kind} files={preview.file_count} bytes={preview.total_bytes}"
        )
        return preview

    # ─── Analysis ─────────────────────────────────────────────────────────

    async def quick_analyze(
        self,
        payload: LaunchPayload,
        action: str = "analyze",
        on_chunk: Optional[Callable[[str], None]] = None,
    ) -> str:
        """
        One-shot analysis. Raises BusyError if another one is running.
        With on_chunk the reply is streamed; the full text is returned
        either way.
        """
        generator = self._require_generator()
        with self.guard.try_acquire():
            self.store.log(f"analysis started action={action}")
            await asyncio.to_thread(generator.health)
            source = await asyncio.to_thread(prepare_analysis, payload, self.config)
            prompt = build_analysis_prompt(source, action)
            images = source.images_b64 if isinstance(source, ImageSource) else None
            if on_chunk is not None:
                text = await asyncio.to_thread(generator.generate_stream, prompt, on_chunk, images)
            else:
                text = await asyncio.to_thread(generator.generate, prompt, images)
            self.store.log(f"analysis finished ({len(text)} chars)")
            return text

    async def run_action(self, action: str, text: str) -> str:
        """Free-form action on typed/pasted input."""
        if action.strip().lower() not in ACTIONS:
            self.store.log(f"non-standard action {action!r}")
        generator = self._require_generator()
        return await asyncio.to_thread(generator.generate, format_prompt(action, text))

    async def health_check(self) -> HealthStatus:
        generator = self._require_generator()
        return await asyncio.to_thread(generator.health)

    async def pull_model(self, model: Optional[str] = None) -> str:
        generator = self._require_generator()
        pull = getattr(generator, "pull_model", None)
        if pull is None:
            raise ServiceError("text generator does not support pulling models")
        return await asyncio.to_thread(pull, model)

    def _require_generator(self) -> TextGenerator:
        if self.generator is None:
            raise ServiceError("no text-generation service configured")
        return self.generator

    # ─── UI Pipeline ──────────────────────────────────────────────────────

    def ui_status(self, msg: str, data=None) -> None:
        """Breadcrumb for the debug surface."""
        self.store.log(f"ui-status {msg}" + (f" {data}" if data is not None else ""))
        if self.surface is not None:
            self.surface.emit(UI_STATUS_EVENT, status_event(msg, data))

    async def process_payload(self, payload: LaunchPayload, action: str = "analyze") -> Optional[str]:
        """
        Ingest then analyze, reporting progress to the surface.
        Any CourierError ends as an "error" status and a None result.
        """
        try:
            self.ui_status("ingest-start")
            preview = await self.ingest_payload(payload)
            self.ui_status("ingest-done", {"kind": preview.kind, "count": preview.file_count})
            self.ui_status("analyze-start")
            analysis = await self.quick_analyze(payload, action)
            self.ui_status("analyze-done")
            return analysis
        except CourierError as e:
            self.ui_status("error", describe_error(e))
            return None
