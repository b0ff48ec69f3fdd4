#!/usr/bin/env python3
"""
Courier — CLI

Thin wrapper around Companion for shell verbs, scripts and debugging.
Every command prints one JSON object on stdout; failures print
{"error": "..."} and exit 1.

Usage:
    python courier_cli.py parse <launch args...>           # Resolve the payload
    python courier_cli.py ingest <launch args...>          # Preview + counters
    python courier_cli.py analyze [--stream] [--action=X] <launch args...>
    python courier_cli.py run <action> "<text>"            # summarize|rewrite|translate|analyze
    python courier_cli.py health                           # Probe Ollama
    python courier_cli.py pull [model]                     # Pull a model
    python courier_cli.py debug <launch args...>           # Rich diagnostics view
    python courier_cli.py version

Launch args are passed through exactly as the OS handed them over, e.g.
    courier_cli.py ingest @C:\\Temp\\payload.json
    courier_cli.py ingest '{"kind":"files","files":["notes.md"]}'
"""
import asyncio
import json
import os
import sys

# Ensure UTF-8 output on all platforms (Windows defaults to cp1252)
if hasattr(sys.stdout, 'reconfigure'):
    sys.stdout.reconfigure(encoding='utf-8')
if hasattr(sys.stderr, 'reconfigure'):
    sys.stderr.reconfigure(encoding='utf-8')

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, SCRIPT_DIR)

from courier.__version__ import __version__
from courier.core.companion import Companion
from courier.core.errors import CourierError, describe_error
from courier.indexing.ollama_adapter import OllamaAdapter
from courier.utils.config import CourierConfig

USAGE = "Usage: courier_cli.py <parse|ingest|analyze|run|health|pull|debug|version> [args]"


def _make_companion():
    config = CourierConfig.from_env(os.environ.get("COURIER_ENV_FILE", ".env"))
    return Companion(config, OllamaAdapter.from_config(config))


def _resolve(companion, raw_args):
    """Activation path without a window."""
    return companion.resolve(raw_args, os.getcwd())


def _emit(obj):
    print(json.dumps(obj, indent=2, ensure_ascii=False))


async def cmd_parse(raw_args):
    """Print the resolved payload."""
    companion = _make_companion()
    payload = _resolve(companion, raw_args)
    _emit({"payload": payload.to_dict()})


async def cmd_ingest(raw_args):
    """Print the ingestion preview for the resolved payload."""
    companion = _make_companion()
    payload = _resolve(companion, raw_args)
    preview = await companion.ingest_payload(payload)
    _emit({"payload": payload.to_dict(), "preview": preview.to_dict()})


async def cmd_analyze(raw_args, action="analyze", stream=False):
    """Run a one-shot analysis. Streams tokens to stderr when asked."""
    companion = _make_companion()
    payload = _resolve(companion, raw_args)
    on_chunk = None
    if stream:
        def on_chunk(piece):
            sys.stderr.write(piece)
            sys.stderr.flush()
    text = await companion.quick_analyze(payload, action=action, on_chunk=on_chunk)
    if stream:
        sys.stderr.write("\n")
    _emit({"action": action, "analysis": text})


async def cmd_run(action, text):
    companion = _make_companion()
    _emit({"action": action, "result": await companion.run_action(action, text)})


async def cmd_health():
    companion = _make_companion()
    from courier.utils.logging import print_health

    status = await companion.health_check()
    print_health(status)
    _emit(status.to_dict())


async def cmd_pull(model=None):
    companion = _make_companion()
    _emit({"model": model or companion.config.model, "result": await companion.pull_model(model)})


async def cmd_debug(raw_args):
    """Resolve + ingest, then render the diagnostics snapshot with rich."""
    from courier.utils.logging import print_error, print_preview, print_snapshot

    companion = _make_companion()
    payload = companion.on_activation(raw_args, os.getcwd())
    if payload is not None:
        try:
            print_preview(await companion.ingest_payload(payload))
        except CourierError as e:
            companion.store.log(f"ingest failed: {describe_error(e)}")
            print_error(describe_error(e))
    snapshot = companion.snapshot()
    print_snapshot(snapshot)
    _emit(snapshot.to_dict())


async def main():
    if len(sys.argv) < 2:
        print(json.dumps({"error": USAGE}))
        sys.exit(1)

    cmd = sys.argv[1].lower()

    try:
        if cmd == "parse":
            await cmd_parse(sys.argv[2:])

        elif cmd == "ingest":
            await cmd_ingest(sys.argv[2:])

        elif cmd == "analyze":
            # Leading --flags belong to us; everything after is launch args
            action = "analyze"
            stream = False
            remaining = sys.argv[2:]
            while remaining and remaining[0].startswith("--"):
                flag = remaining.pop(0)
                if flag == "--stream":
                    stream = True
                elif flag.startswith("--action="):
                    action = flag.split("=", 1)[1] or action
                elif flag == "--":
                    break
                else:
                    raise ValueError(f"Unknown flag for analyze: {flag}")
            await cmd_analyze(remaining, action=action, stream=stream)

        elif cmd == "run":
            if len(sys.argv) < 4:
                print(json.dumps({"error": "Usage: courier_cli.py run <action> \"<text>\""}))
                sys.exit(1)
            await cmd_run(sys.argv[2], sys.argv[3])

        elif cmd == "health":
            await cmd_health()

        elif cmd == "pull":
            await cmd_pull(sys.argv[2] if len(sys.argv) > 2 else None)

        elif cmd == "debug":
            await cmd_debug(sys.argv[2:])

        elif cmd == "version":
            _emit({"version": __version__})

        else:
            print(json.dumps({"error": f"Unknown command: {cmd}. {USAGE}"}))
            sys.exit(1)

    except (CourierError, ValueError) as e:
        print(json.dumps({"error": describe_error(e)}))
        sys.exit(1)


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
