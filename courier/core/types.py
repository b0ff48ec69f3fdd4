"""
Courier — Core Data Types
All shared dataclasses used across the system.
This is the contract between the launch parser, the extractors,
the handoff store and the UI.
"""
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple, Union
# ─── Launch Context ──────────────────────────────────────────────────────────
FILES_KIND = "files"
IMAGES_KIND = "images"
@dataclass(frozen=True)
class FilesContext:
    """Documents / text files to read."""
    files: Tuple[str, ...] = ()
    kind = FILES_KIND
    @property
    def paths(self) -> Tuple[str, ...]:
        return self.files
@dataclass(frozen=True)
class ImagesContext:
    """Raw images to forward as-is."""
    images: Tuple[str, ...] = ()
    kind = IMAGES_KIND
    @property
    def paths(self) -> Tuple[str, ...]:
        return self.images
LaunchContext = Union[FilesContext, ImagesContext]
@dataclass(frozen=True)
class Coords:
    """Screen-position hint for window placement."""
    x: int
    y: int
@dataclass(frozen=True)
class LaunchPayload:
    """
    What to act on plus an optional placement hint.
    Immutable; safe to share between the UI handoff and the extractors.
    """
    context: LaunchContext
    coords: Optional[Coords] = None
    @classmethod
    def from_dict(cls, data: Any) -> "LaunchPayload":
        """
        Build a payload from decoded JSON.

        Shape: {"kind": "files"|"images", "files"|"images": [str, ...],
        "coords": {"x": int, "y": int} | null}. Unknown keys are ignored.
        Raises ValueError when the shape does not match.
        """
        if not isinstance(data, dict):
            raise ValueError(f"payload must be a JSON object, got {type(data).__name__}")
        kind = data.get("kind")
        if kind == FILES_KIND:
            context: LaunchContext = FilesContext(files=_string_list(data, FILES_KIND))
        elif kind == IMAGES_KIND:
            context = ImagesContext(images=_string_list(data, IMAGES_KIND))
        elif kind is None:
            raise ValueError("payload is missing the 'kind' tag")
        else:
            raise ValueError(f"unknown payload kind: {kind!r}")
        coords = None
        raw_coords = data.get("coords")
        if raw_coords is not None:
            if not isinstance(raw_coords, dict):
                raise ValueError("'coords' must be an object with integer x and y")
            coords = Coords(x=_int_field(raw_coords, "x"), y=_int_field(raw_coords, "y"))
        return cls(context=context, coords=coords)
    def to_dict(self) -> Dict[str, Any]:
        """Serialized form pushed with the load-context event."""
        out: Dict[str, Any] = {"kind": self.context.kind, self.context.kind: list(self.context.paths)}
        out["coords"] = {"x": self.coords.x, "y": self.coords.y} if self.coords else None
        return out
def _string_list(data: Dict[str, Any], key: str) -> Tuple[str, ...]:
    if key not in data:
        raise ValueError(f"payload of kind {key!r} is missing '{key}'")
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"'{key}' must be a list of strings")
    return tuple(value)
def _int_field(data: Dict[str, Any], key: str) -> int:
    value = data.get(key)
    # bool is an int subclass; JSON true/false is not a coordinate
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"coords.{key} must be an integer")
    if not -(2 ** 31) <= value < 2 ** 31:
        raise ValueError(f"coords.{key} out of range: {value}")
    return value
# ─── Extraction Results ──────────────────────────────────────────────────────
@dataclass
class NormalizedPreview:
    """Small UI-facing summary of an ingestion pass."""
    kind: str                     # "text" | "images"
    preview: str                  # Snippet for the UI
    total_bytes: int = 0          # Pre-truncation text bytes or image file bytes
    file_count: int = 0
    names: List[str] = field(default_factory=list)
    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "preview": self.preview,
            "total_bytes": self.total_bytes,
            "file_count": self.file_count,
            "names": list(self.names),
        }
@dataclass
class TextSource:
    """Analysis input built from documents."""
    text: str
    names: List[str] = field(default_factory=list)
@dataclass
class ImageSource:
    """Analysis input built from images, base64-encoded."""
    images_b64: List[str] = field(default_factory=list)
    names: List[str] = field(default_factory=list)
AnalysisSource = Union[TextSource, ImageSource]
# ─── Service / Diagnostics ───────────────────────────────────────────────────
@dataclass
class HealthStatus:
    """Result of probing the text-generation service."""
    ok: bool
    message: str
    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "message": self.message}
@dataclass
class DiagnosticsSnapshot:
    """Point-in-time copy of the handoff state for a debug surface."""
    logs: List[str] = field(default_factory=list)
    last_payload: Optional[LaunchPayload] = None
    activation_args: List[str] = field(default_factory=list)
    def to_dict(self) -> Dict[str, Any]:
        return {
            "logs": list(self.logs),
            "last_payload": self.last_payload.to_dict() if self.last_payload else None,
            "activation_args": list(self.activation_args),
        }
