"""
Courier — Configuration
Loads settings from environment variables / .env file.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple
@dataclass
class CourierConfig:
    """All configuration for Courier."""
    # Ollama service
    ollama_host: str = "http://127.0.0.1:11434"
    model: str = "gemma3:4b"
    max_tokens: int = 256
    health_connect_timeout: float = 0.8
    health_timeout: float = 2.0
    generate_connect_timeout: float = 2.0
    generate_timeout: float = 180.0
    pull_timeout: float = 600.0
    # Ingestion (preview path)
    max_text_bytes: int = 1_000_000            # ~1MB pre-ingest soft cap
    preview_chars: int = 800                   # Preview snippet length
    max_images: int = 6                        # Image cap per ingestion
    # Analysis path
    analysis_text_limit: int = 200_000         # 200KB of text for quick analysis
    analysis_image_cap: int = 3
    # Handoff
    handoff_log_capacity: int = 200
    ready_fallback_seconds: float = 1.5        # Reveal the window even if "ready" never fires
    # Debug
    debug_mode: bool = False
    @classmethod
    def from_env(cls, env_path: str = ".env") -> "CourierConfig":
        """Load configuration from environment variables."""
        env_file = Path(env_path)
        load_error = _load_dotenv(env_file) if env_file.exists() else None
        config = cls(
            ollama_host=os.getenv("OLLAMA_HOST", cls.ollama_host),
            model=os.getenv("COURIER_MODEL", cls.model),
            max_tokens=int(os.getenv("COURIER_MAX_TOKENS", str(cls.max_tokens))),
            generate_timeout=float(os.getenv("COURIER_GENERATE_TIMEOUT", str(cls.generate_timeout))),
            max_text_bytes=int(os.getenv("COURIER_MAX_TEXT_BYTES", str(cls.max_text_bytes))),
            preview_chars=int(os.getenv("COURIER_PREVIEW_CHARS", str(cls.preview_chars))),
            max_images=int(os.getenv("COURIER_MAX_IMAGES", str(cls.max_images))),
            analysis_text_limit=int(os.getenv("COURIER_ANALYSIS_TEXT_LIMIT", str(cls.analysis_text_limit))),
            analysis_image_cap=int(os.getenv("COURIER_ANALYSIS_IMAGE_CAP", str(cls.analysis_image_cap))),
            ready_fallback_seconds=float(os.getenv("COURIER_READY_FALLBACK_SECONDS", str(cls.ready_fallback_seconds))),
            debug_mode=os.getenv("DEBUG_MODE", "false").lower() == "true",
        )
        if load_error and config.debug_mode:
            from .logging import echo_debug
            echo_debug(f"[config] {load_error}; using environment and defaults")
        return config
    def validate(self) -> List[str]:
        """Return list of warnings (non-fatal). Empty if fully configured."""
        warnings = []
        for name in ("max_text_bytes", "preview_chars", "max_images",
                     "analysis_text_limit", "analysis_image_cap"):
            if getattr(self, name) <= 0:
                warnings.append(f"{name} is {getattr(self, name)} — nothing will be ingested on that path")
        if not self.ollama_host.startswith(("http://", "https://")):
            warnings.append(f"OLLAMA_HOST {self.ollama_host!r} has no http(s) scheme")
        if self.ready_fallback_seconds <= 0:
            warnings.append("ready_fallback_seconds <= 0 — the window is revealed before the UI is ready")
        return warnings
def _load_dotenv(path: Path) -> Optional[str]:
    """
    Export KEY=VALUE lines from a .env file. Variables already set win.
    Returns a description of the failure when the file cannot be read.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return f"could not read {path}: {e}"
    for raw in text.splitlines():
        entry = _parse_env_line(raw)
        if entry is None:
            continue
        key, value = entry
        if not os.environ.get(key):
            os.environ[key] = value
    return None
def _parse_env_line(raw: str) -> Optional[Tuple[str, str]]:
    line = raw.strip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    key, _, value = line.partition("=")
    key = key.strip()
    if not key:
        return None
    return key, value.strip().strip("'\"")
