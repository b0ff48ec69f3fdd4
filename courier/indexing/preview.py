"""
Courier — Preview Builder / Analysis Preparer

Two views over the same extraction:
    ingest()            → NormalizedPreview for the UI (small, cheap)
    prepare_analysis()  → AnalysisSource for the model (bigger budget)
"""
from typing import List

from ..core.types import (
    LaunchPayload, FilesContext, ImagesContext,
    NormalizedPreview, AnalysisSource, TextSource, ImageSource,
)
from ..utils.config import CourierConfig
from .extractor import extract_for_ingestion, extract_for_analysis, collect_images


TRUNCATION_MARKER = "\n…"


def build_text_preview(text: str, total_bytes: int, file_count: int,
                       names: List[str], preview_chars: int) -> NormalizedPreview:
    """First `preview_chars` characters, marked when the buffer was longer."""
    preview = text[:preview_chars]
    if len(text) > preview_chars:
        preview += TRUNCATION_MARKER
    return NormalizedPreview(
        kind="text",
        preview=preview,
        total_bytes=total_bytes,
        file_count=file_count,
        names=list(names),
    )


def build_image_preview(names: List[str], total_bytes: int) -> NormalizedPreview:
    """One-line summary: "2 image(s): a.png, b.jpg"."""
    return NormalizedPreview(
        kind="images",
        preview=f"{len(names)} image(s): {', '.join(names)}",
        total_bytes=total_bytes,
        file_count=len(names),
        names=list(names),
    )


def ingest(payload: LaunchPayload, config: CourierConfig) -> NormalizedPreview:
    """Extract under the ingestion caps and summarize for the UI.

    Blocking (file I/O); call from a worker thread.
    """
    context = payload.context
    if isinstance(context, ImagesContext):
        images = collect_images(context, config.max_images)
        return build_image_preview(images.names, images.total_bytes)
    if isinstance(context, FilesContext):
        text = extract_for_ingestion(context, config.max_text_bytes)
        return build_text_preview(
            text.text, text.total_bytes, text.file_count, text.names, config.preview_chars
        )
    raise TypeError(f"unhandled launch context: {type(context).__name__}")


def prepare_analysis(payload: LaunchPayload, config: CourierConfig) -> AnalysisSource:
    """Extract under the analysis caps.

    Blocking (file I/O, base64 encoding); call from a worker thread.
    """
    context = payload.context
    if isinstance(context, FilesContext):
        text = extract_for_analysis(context, config.analysis_text_limit)
        return TextSource(text=text.text, names=text.names)
    if isinstance(context, ImagesContext):
        images = collect_images(context, config.analysis_image_cap, with_data=True)
        return ImageSource(images_b64=images.images_b64, names=images.names)
    raise TypeError(f"unhandled launch context: {type(context).__name__}")
