"""
Tests for the Companion application service.

A fake text generator stands in for Ollama so the activation, ingestion
and analysis flows run end to end without a server.
"""
import asyncio
import os
import shutil
import sys
import tempfile
import threading
import zipfile

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from courier.core.companion import Companion
from courier.core.errors import BusyError, ServiceError
from courier.core.types import FilesContext, HealthStatus, ImagesContext, LaunchPayload
from courier.launch.handoff import LOAD_CONTEXT_EVENT, UI_STATUS_EVENT, ChannelSurface
from courier.utils.config import CourierConfig


class FakeGenerator:
    def __init__(self, reply="fake reply", healthy=True):
        self.reply = reply
        self.healthy = healthy
        self.prompts = []
        self.images = []
        self.gate = None

    def health(self):
        if not self.healthy:
            raise ServiceError("Ollama not available")
        return HealthStatus(ok=True, message="fake reachable")

    def generate(self, prompt, images=None):
        if self.gate is not None:
            self.gate.wait(timeout=5)
        self.prompts.append(prompt)
        self.images.append(images)
        return self.reply

    def generate_stream(self, prompt, on_chunk, images=None):
        self.prompts.append(prompt)
        for word in self.reply.split(" "):
            on_chunk(word)
        return self.reply


test_dir = None


def setup_module(module):
    global test_dir
    test_dir = tempfile.mkdtemp(prefix="courier_companion_test_")


def teardown_module(module):
    if test_dir and os.path.exists(test_dir):
        shutil.rmtree(test_dir)


def _write(name, data: bytes) -> str:
    path = os.path.join(test_dir, name)
    with open(path, "wb") as f:
        f.write(data)
    return path


def _files_payload(*paths):
    return LaunchPayload(context=FilesContext(files=tuple(paths)))


# ─── Activation ──────────────────────────────────────────────────────────────

def test_activation_stores_and_pushes_to_live_surface():
    surface = ChannelSurface(available=True)
    companion = Companion(CourierConfig(), FakeGenerator(), surface=surface)
    payload = companion.on_activation(['{"kind":"files","files":["x.txt"]}'], cwd="/tmp")
    assert payload.context.files == ("x.txt",)
    emits = [c for c in surface.drain() if c.kind == "emit"]
    assert emits[0].event == LOAD_CONTEXT_EVENT
    assert emits[0].data["files"] == ["x.txt"]
    assert companion.take_last_payload() == payload
    assert companion.take_last_payload() is None
    print("  PASS: activation_stores_and_pushes_to_live_surface")


def test_activation_parse_failure_is_logged_not_raised():
    companion = Companion(CourierConfig())
    assert companion.on_activation(["no", "payload", "here"]) is None
    snap = companion.snapshot()
    assert snap.last_payload is None
    assert snap.activation_args == ["no", "payload", "here"]
    assert any("parse failed" in line for line in snap.logs)
    print("  PASS: activation_parse_failure_is_logged_not_raised")


def test_activation_with_deeply_nested_json_survives():
    companion = Companion(CourierConfig())
    deep = '{"kind":"files","files":' + "[" * 100000 + "]" * 100000 + "}"
    assert companion.on_activation([deep]) is None
    assert any("parse failed" in line for line in companion.snapshot().logs)
    print("  PASS: activation_with_deeply_nested_json_survives")


def test_attach_surface_delivers_on_ready():
    companion = Companion(CourierConfig(ready_fallback_seconds=30))
    companion.on_activation(['{"kind":"images","images":["a.png"],"coords":{"x":5,"y":6}}'])
    surface = ChannelSurface(available=False)
    session = companion.attach_surface(surface)
    assert session.on_ready()
    kinds = [c.kind for c in surface.drain()]
    assert kinds == ["position", "show", "focus", "emit"]
    session.cancel()
    print("  PASS: attach_surface_delivers_on_ready")


def test_reemit_pushes_again():
    surface = ChannelSurface(available=True)
    companion = Companion(CourierConfig(), surface=surface)
    companion.on_activation(['{"kind":"files","files":["r.txt"]}'])
    surface.drain()
    assert companion.reemit()
    assert any(c.event == LOAD_CONTEXT_EVENT for c in surface.drain())
    print("  PASS: reemit_pushes_again")


# ─── Ingestion ───────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_ingest_payload_preview():
    path = _write("notes.md", b"# Notes\nremember the milk")
    companion = Companion(CourierConfig())
    preview = await companion.ingest_payload(_files_payload(path))
    assert preview.kind == "text"
    assert preview.preview == "# Notes\nremember the milk"
    assert preview.names == ["notes.md"]
    print("  PASS: ingest_payload_preview")


# ─── Analysis ────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_quick_analyze_text():
    path = _write("report.txt", b"Revenue grew 12%.")
    generator = FakeGenerator(reply="Revenue is up.")
    companion = Companion(CourierConfig(), generator)
    text = await companion.quick_analyze(_files_payload(path), action="summarize")
    assert text == "Revenue is up."
    prompt = generator.prompts[0]
    assert prompt.startswith("Action: summarize")
    assert "report.txt" in prompt
    assert "Revenue grew 12%." in prompt
    assert generator.images == [None]
    assert not companion.guard.busy
    print("  PASS: quick_analyze_text")


@pytest.mark.asyncio
async def test_quick_analyze_images_sends_base64():
    paths = tuple(_write(f"pic{i}.png", b"\x89PNG" + bytes([i])) for i in range(5))
    generator = FakeGenerator()
    companion = Companion(CourierConfig(analysis_image_cap=3), generator)
    await companion.quick_analyze(LaunchPayload(context=ImagesContext(images=paths)))
    assert len(generator.images[0]) == 3
    print("  PASS: quick_analyze_images_sends_base64")


@pytest.mark.asyncio
async def test_quick_analyze_streams_chunks():
    path = _write("s.txt", b"stream me")
    chunks = []
    companion = Companion(CourierConfig(), FakeGenerator(reply="one two three"))
    text = await companion.quick_analyze(_files_payload(path), on_chunk=chunks.append)
    assert chunks == ["one", "two", "three"]
    assert text == "one two three"
    print("  PASS: quick_analyze_streams_chunks")


@pytest.mark.asyncio
async def test_concurrent_analysis_is_rejected():
    path = _write("busy.txt", b"slow")
    generator = FakeGenerator()
    generator.gate = threading.Event()
    companion = Companion(CourierConfig(), generator)

    first = asyncio.ensure_future(companion.quick_analyze(_files_payload(path)))
    while not companion.guard.busy:
        await asyncio.sleep(0.01)
    with pytest.raises(BusyError):
        await companion.quick_analyze(_files_payload(path))
    generator.gate.set()
    assert await first == "fake reply"
    assert not companion.guard.busy
    print("  PASS: concurrent_analysis_is_rejected")


@pytest.mark.asyncio
async def test_guard_released_after_failure():
    companion = Companion(CourierConfig(), FakeGenerator(healthy=False))
    with pytest.raises(ServiceError):
        await companion.quick_analyze(_files_payload(_write("h.txt", b"x")))
    assert not companion.guard.busy
    print("  PASS: guard_released_after_failure")


@pytest.mark.asyncio
async def test_run_action_and_health():
    generator = FakeGenerator(reply="done")
    companion = Companion(CourierConfig(), generator)
    assert await companion.run_action("rewrite", "  make it nicer  ") == "done"
    assert generator.prompts[-1] == "Action: rewrite\n\nmake it nicer"
    status = await companion.health_check()
    assert status.ok
    print("  PASS: run_action_and_health")


@pytest.mark.asyncio
async def test_missing_generator_is_service_error():
    companion = Companion(CourierConfig())
    with pytest.raises(ServiceError):
        await companion.run_action("summarize", "text")
    with pytest.raises(ServiceError):
        await companion.pull_model()
    print("  PASS: missing_generator_is_service_error")


# ─── UI Pipeline ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_process_payload_reports_progress():
    surface = ChannelSurface(available=True)
    companion = Companion(CourierConfig(), FakeGenerator(reply="ok"), surface=surface)
    result = await companion.process_payload(_files_payload(_write("p.txt", b"payload text")))
    assert result == "ok"
    statuses = [c.data["msg"] for c in surface.drain() if c.event == UI_STATUS_EVENT]
    assert statuses == ["ingest-start", "ingest-done", "analyze-start", "analyze-done"]
    print("  PASS: process_payload_reports_progress")


@pytest.mark.asyncio
async def test_process_payload_error_becomes_status():
    surface = ChannelSurface(available=True)
    companion = Companion(CourierConfig(), FakeGenerator(), surface=surface)
    missing = os.path.join(test_dir, "vanished.txt")
    assert await companion.process_payload(_files_payload(missing)) is None
    statuses = [c.data for c in surface.drain() if c.event == UI_STATUS_EVENT]
    assert statuses[-1]["msg"] == "error"
    assert "vanished.txt" in statuses[-1]["data"]
    print("  PASS: process_payload_error_becomes_status")


@pytest.mark.asyncio
async def test_process_payload_encrypted_docx_becomes_status():
    path = os.path.join(test_dir, "locked.docx")
    with zipfile.ZipFile(path, "w") as z:
        z.writestr("word/document.xml", "<w:t>secret</w:t>")
    with open(path, "rb") as f:
        data = bytearray(f.read())
    # Set the "encrypted" flag bit on the local and central headers
    data[data.find(b"PK\x03\x04") + 6] |= 0x01
    data[data.find(b"PK\x01\x02") + 8] |= 0x01
    with open(path, "wb") as f:
        f.write(data)

    surface = ChannelSurface(available=True)
    companion = Companion(CourierConfig(), FakeGenerator(), surface=surface)
    assert await companion.process_payload(_files_payload(path)) is None
    statuses = [c.data for c in surface.drain() if c.event == UI_STATUS_EVENT]
    assert statuses[-1]["msg"] == "error"
    assert "locked.docx" in statuses[-1]["data"]
    print("  PASS: process_payload_encrypted_docx_becomes_status")
