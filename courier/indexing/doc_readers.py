"""
Courier — Document Format Readers

Per-format text readers for files handed over at launch.
Coarse by intent: no OCR, no layout analysis.

Supported formats:
    - DOCX (.docx)  word/document.xml pulled from the zip, tags stripped
    - PDF  (.pdf)   text layer via PyMuPDF (fitz)
    - TXT  (.txt, .md, .log, .json, .csv, .toml, .yaml, .yml, .ini)

Every reader raises ExtractionError when a file it accepted cannot be
read. Deciding whether a file is supported at all is detect_file_type's
job; unsupported files never reach a reader.
"""
import os
import zipfile
import zlib

from ..core.errors import ExtractionError


# ─── Format Detection ────────────────────────────────────────────────────────

TEXT_EXTENSIONS = {
    ".txt", ".md", ".log", ".json", ".csv", ".toml", ".yaml", ".yml", ".ini",
}

DOCX_MAIN_PART = "word/document.xml"
UTF8_BOM = b"\xef\xbb\xbf"


def detect_file_type(file_path: str) -> str:
    """Detect document type from file extension (case-insensitive).

    Precedence: docx, then pdf, then text-like. Anything else is "unknown".
    """
    ext = os.path.splitext(file_path)[1].lower()
    if ext == ".docx":
        return "docx"
    if ext == ".pdf":
        return "pdf"
    if ext in TEXT_EXTENSIONS:
        return "txt"
    return "unknown"


def is_supported(file_path: str) -> bool:
    return detect_file_type(file_path) != "unknown"


# ─── DOCX Reader ─────────────────────────────────────────────────────────────

def _read_docx(file_path: str) -> str:
    """Read the main document part of a DOCX and strip its markup."""
    try:
        with zipfile.ZipFile(file_path) as archive:
            try:
                raw = archive.read(DOCX_MAIN_PART)
            except KeyError as e:
                raise ExtractionError(
                    f"DOCX missing {DOCX_MAIN_PART}: {file_path}", path=file_path
                ) from e
            except (RuntimeError, NotImplementedError) as e:
                # encrypted entry or unsupported compression method
                raise ExtractionError(f"unsupported DOCX {file_path}", path=file_path) from e
    except (OSError, zipfile.BadZipFile, zlib.error, EOFError) as e:
        raise ExtractionError(f"failed to open DOCX {file_path}", path=file_path) from e

    try:
        xml = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ExtractionError(f"DOCX {file_path} is not UTF-8", path=file_path) from e
    return strip_markup(xml)


def strip_markup(xml: str) -> str:
    """Drop everything between '<' and '>' one character at a time.

    Not an XML parser: entities stay escaped and no whitespace is added
    between runs.
    """
    out = []
    in_tag = False
    for ch in xml:
        if ch == "<":
            in_tag = True
        elif ch == ">":
            in_tag = False
        elif not in_tag:
            out.append(ch)
    return "".join(out)


# ─── PDF Reader ──────────────────────────────────────────────────────────────

def _read_pdf(file_path: str) -> str:
    """Read a PDF text layer using PyMuPDF (fitz)."""
    try:
        import fitz  # PyMuPDF
    except ImportError as e:
        raise ExtractionError(
            "PyMuPDF not installed. Install with: pip install PyMuPDF", path=file_path
        ) from e

    try:
        doc = fitz.open(file_path)
    except Exception as e:
        # fitz raises its own FileDataError / RuntimeError family
        raise ExtractionError(f"pdf extract failed: {file_path}", path=file_path) from e

    try:
        page_texts = [page.get_text("text") for page in doc]
    except Exception as e:
        raise ExtractionError(f"pdf extract failed: {file_path}", path=file_path) from e
    finally:
        doc.close()
    return "\n".join(page_texts)


# ─── Text Reader ─────────────────────────────────────────────────────────────

def _read_text(file_path: str) -> str:
    """Read a plain text file as strict UTF-8, dropping a leading BOM."""
    try:
        with open(file_path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise ExtractionError(f"failed to read {file_path}", path=file_path) from e

    if data.startswith(UTF8_BOM):
        data = data[len(UTF8_BOM):]
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ExtractionError(f"{file_path} is not valid UTF-8", path=file_path) from e


# ─── Unified Interface ───────────────────────────────────────────────────────

_READERS = {
    "docx": _read_docx,
    "pdf": _read_pdf,
    "txt": _read_text,
}


def read_document(file_path: str) -> str:
    """Read a document using the appropriate format handler.

    Raises:
        ExtractionError: Unsupported type, or the file could not be read.
    """
    file_type = detect_file_type(file_path)
    reader = _READERS.get(file_type)
    if reader is None:
        raise ExtractionError(
            f"Unsupported file type (extension: {os.path.splitext(file_path)[1]})",
            path=file_path,
        )
    return reader(file_path)
