"""
Courier — Ollama Adapter

Concrete TextGenerator backed by a local Ollama server over HTTP (httpx).
Covers:
- Health probe (/api/version, then the `ollama` CLI as a fallback)
- One-shot generation (/api/generate, stream=false)
- Streaming generation (/api/generate, stream=true, JSON lines)
- Model pull (/api/pull, then `ollama pull` as a fallback)

Every call builds a short-lived client with its own timeouts so a dead
server can never hang the caller for longer than the configured budget.
"""
import json
import subprocess
from typing import Any, Callable, Dict, List, Optional

import httpx

from ..core.errors import ServiceError
from ..core.types import HealthStatus


UNAVAILABLE_MESSAGE = (
    "Ollama not available. Ensure Ollama is installed and the server is running (ollama serve)."
)


class OllamaAdapter:
    """
    TextGenerator implementation for Ollama's REST API.
    """

    def __init__(
        self,
        host: str = "http://127.0.0.1:11434",
        model: str = "gemma3:4b",
        max_tokens: int = 256,
        health_connect_timeout: float = 0.8,
        health_timeout: float = 2.0,
        generate_connect_timeout: float = 2.0,
        generate_timeout: float = 180.0,
        pull_timeout: float = 600.0,
        transport: Optional[httpx.BaseTransport] = None,
        cli: str = "ollama",
    ):
        self.host = host.rstrip("/")
        self.model = model
        self.max_tokens = max_tokens
        self.health_connect_timeout = health_connect_timeout
        self.health_timeout = health_timeout
        self.generate_connect_timeout = generate_connect_timeout
        self.generate_timeout = generate_timeout
        self.pull_timeout = pull_timeout
        self.cli = cli
        self._transport = transport

    @classmethod
    def from_config(cls, config, transport: Optional[httpx.BaseTransport] = None) -> "OllamaAdapter":
        return cls(
            host=config.ollama_host,
            model=config.model,
            max_tokens=config.max_tokens,
            health_connect_timeout=config.health_connect_timeout,
            health_timeout=config.health_timeout,
            generate_connect_timeout=config.generate_connect_timeout,
            generate_timeout=config.generate_timeout,
            pull_timeout=config.pull_timeout,
            transport=transport,
        )

    def _client(self, timeout: float, connect: float) -> httpx.Client:
        return httpx.Client(
            base_url=self.host,
            timeout=httpx.Timeout(timeout, connect=connect),
            transport=self._transport,
        )

    # ─── Health ────────────────────────────────────────────────────────────

    def health(self) -> HealthStatus:
        """
        Probe the server, then the CLI.
        Raises ServiceError when neither answers.
        """
        try:
            with self._client(self.health_timeout, self.health_connect_timeout) as client:
                res = client.get("/api/version")
            if res.is_success:
                try:
                    version = res.json().get("version")
                except (ValueError, AttributeError):
                    version = None
                if isinstance(version, str) and version:
                    return HealthStatus(ok=True, message=f"Ollama v{version} reachable")
                return HealthStatus(ok=True, message="Ollama reachable (version unavailable)")
            cause: Optional[BaseException] = ServiceError(
                f"/api/version returned {res.status_code}", status_code=res.status_code
            )
        except httpx.HTTPError as e:
            cause = e

        if self._cli_ok(["version"], timeout=self.health_timeout):
            return HealthStatus(ok=True, message="Ollama CLI available, server may not be running")
        raise ServiceError(UNAVAILABLE_MESSAGE) from cause

    def _cli_ok(self, args: List[str], timeout: float) -> bool:
        try:
            out = subprocess.run([self.cli] + args, capture_output=True, timeout=timeout)
        except (OSError, subprocess.TimeoutExpired):
            return False
        return out.returncode == 0

    # ─── Generation ────────────────────────────────────────────────────────

    def _body(self, prompt: str, stream: bool, images: Optional[List[str]]) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "max_tokens": self.max_tokens,
            "stream": stream,
        }
        if images:
            body["images"] = list(images)
        return body

    def generate(self, prompt: str, images: Optional[List[str]] = None) -> str:
        """
        Single JSON response. Returns its `response` field, or the raw body
        when the server answered with something else.
        """
        try:
            with self._client(self.generate_timeout, self.generate_connect_timeout) as client:
                res = client.post("/api/generate", json=self._body(prompt, False, images))
        except httpx.HTTPError as e:
            raise ServiceError(f"generate request to {self.host} failed") from e

        text = res.text
        if not res.is_success:
            raise ServiceError(
                f"generate returned {res.status_code}: {text[:200]}", status_code=res.status_code
            )
        try:
            data = json.loads(text)
        except ValueError:
            return text
        if isinstance(data, dict) and isinstance(data.get("response"), str):
            return data["response"]
        return text

    def generate_stream(
        self,
        prompt: str,
        on_chunk: Callable[[str], None],
        images: Optional[List[str]] = None,
    ) -> str:
        """
        Stream JSON lines, calling on_chunk for each non-empty `response`.
        Ends at {"done": true} or when the connection closes.
        Returns the concatenated text.
        """
        chunks: List[str] = []
        try:
            with self._client(self.generate_timeout, self.generate_connect_timeout) as client:
                with client.stream("POST", "/api/generate", json=self._body(prompt, True, images)) as res:
                    if not res.is_success:
                        body = res.read().decode("utf-8", errors="replace")
                        raise ServiceError(
                            f"generate (stream) returned {res.status_code}: {body[:200]}",
                            status_code=res.status_code,
                        )
                    for line in res.iter_lines():
                        line = line.strip()
                        if not line:
                            continue
                        try:
                            data = json.loads(line)
                        except ValueError:
                            continue
                        if not isinstance(data, dict):
                            continue
                        piece = data.get("response")
                        if isinstance(piece, str) and piece:
                            chunks.append(piece)
                            on_chunk(piece)
                        if data.get("done") is True:
                            break
        except httpx.HTTPError as e:
            raise ServiceError(f"streaming generate request to {self.host} failed") from e
        return "".join(chunks)

    # ─── Models ────────────────────────────────────────────────────────────

    def pull_model(self, model: Optional[str] = None) -> str:
        """Pull a model via REST; fall back to the CLI if the server is down."""
        model = model or self.model
        try:
            with self._client(self.pull_timeout, self.generate_connect_timeout) as client:
                res = client.post("/api/pull", json={"model": model})
            return f"pull via REST completed with status {res.status_code}\n{res.text}"
        except httpx.HTTPError as e:
            rest_error = e

        try:
            out = subprocess.run(
                [self.cli, "pull", model], capture_output=True, timeout=self.pull_timeout
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ServiceError(f"ollama pull failed: {e}") from rest_error
        if out.returncode == 0:
            return out.stdout.decode("utf-8", errors="replace")
        raise ServiceError(
            f"ollama pull failed: {out.stderr.decode('utf-8', errors='replace').strip()}"
        ) from rest_error
