"""
Courier — Content Extractor

Reads the files or images named by a LaunchContext, file by file, in
input order, under two independent size regimes:

    Ingestion — feeds the UI preview. A file whose text would push the
                buffer past the ceiling is still counted (total_bytes,
                file_count) but not buffered.
    Analysis  — feeds the model. The last file that fits is cut to fill
                the remaining budget exactly.

Unsupported extensions are skipped without a trace. A supported file that
cannot be read aborts the whole batch with ExtractionError.
"""
import base64
import os
from dataclasses import dataclass, field
from typing import List

from ..core.errors import ExtractionError
from ..core.types import FilesContext, ImagesContext
from .doc_readers import is_supported, read_document


SEPARATOR = "\n\n---\n\n"
_SEPARATOR_BYTES = len(SEPARATOR.encode("utf-8"))


@dataclass
class TextExtraction:
    """Joined text plus the accounting for everything that was read."""
    text: str = ""
    total_bytes: int = 0
    file_count: int = 0
    names: List[str] = field(default_factory=list)


@dataclass
class ImageExtraction:
    """Names, sizes and (analysis path only) base64 bodies of images."""
    names: List[str] = field(default_factory=list)
    total_bytes: int = 0
    images_b64: List[str] = field(default_factory=list)


def display_name(path: str) -> str:
    """Basename of a path, or the raw string when there is none.

    Both separators count: Windows launch payloads are read on any OS.
    """
    name = path.rstrip("/\\").replace("\\", "/").rsplit("/", 1)[-1]
    if name in ("", ".", ".."):
        return path
    return name


def utf8_len(text: str) -> int:
    return len(text.encode("utf-8"))


def truncate_utf8(text: str, max_bytes: int) -> str:
    """Longest prefix of text whose UTF-8 form fits in max_bytes."""
    if max_bytes <= 0:
        return ""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    # A cut inside a multi-byte sequence leaves a partial tail; drop it
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


# ─── Text: Ingestion Regime ──────────────────────────────────────────────────

def extract_for_ingestion(context: FilesContext, max_bytes: int) -> TextExtraction:
    """Read every supported file; buffer whole files while they fit.

    Args:
        context: The files to read.
        max_bytes: Ceiling for the joined buffer, separators included.

    Raises:
        ExtractionError: A supported file could not be read.
    """
    result = TextExtraction()
    parts: List[str] = []
    used = 0

    for path in context.files:
        if not is_supported(path):
            continue
        text = read_document(path)
        size = utf8_len(text)
        result.total_bytes += size
        result.file_count += 1
        result.names.append(display_name(path))

        if not text:
            continue
        needed = size + (_SEPARATOR_BYTES if parts else 0)
        if used + needed <= max_bytes:
            parts.append(text)
            used += needed

    result.text = SEPARATOR.join(parts)
    return result


# ─── Text: Analysis Regime ───────────────────────────────────────────────────

def extract_for_analysis(context: FilesContext, limit_bytes: int) -> TextExtraction:
    """Read every supported file; fill the budget, cutting the last one.

    Files past the budget are still read so a broken file later in the
    batch is reported the same way regardless of order.

    Raises:
        ExtractionError: A supported file could not be read.
    """
    result = TextExtraction()
    parts: List[str] = []
    used = 0

    for path in context.files:
        if not is_supported(path):
            continue
        text = read_document(path)
        size = utf8_len(text)
        result.total_bytes += size
        result.file_count += 1
        result.names.append(display_name(path))

        if not text:
            continue
        separator = _SEPARATOR_BYTES if parts else 0
        remaining = limit_bytes - used - separator
        chunk = truncate_utf8(text, remaining)
        if not chunk:
            continue
        parts.append(chunk)
        used += separator + utf8_len(chunk)

    result.text = SEPARATOR.join(parts)
    return result


# ─── Images ──────────────────────────────────────────────────────────────────

def collect_images(context: ImagesContext, cap: int, with_data: bool = False) -> ImageExtraction:
    """Names and sizes of the first `cap` images; base64 bodies if asked.

    Without data, an image whose size cannot be read counts as 0 bytes.

    Raises:
        ExtractionError: With data, an image within the cap could not be read.
    """
    result = ImageExtraction()
    for path in context.images[:max(cap, 0)]:
        result.names.append(display_name(path))
        if with_data:
            try:
                with open(path, "rb") as f:
                    data = f.read()
            except OSError as e:
                raise ExtractionError(f"failed to read image {path}", path=path) from e
            result.total_bytes += len(data)
            result.images_b64.append(base64.b64encode(data).decode("ascii"))
        else:
            try:
                result.total_bytes += os.path.getsize(path)
            except OSError:
                pass  # size unknown; the name is still listed
    return result
