"""
Courier — Prompt Construction
"""
from .types import AnalysisSource, TextSource, ImageSource


ACTIONS = ("summarize", "rewrite", "translate", "analyze")


def format_prompt(action: str, text: str) -> str:
    """'Action: <action>\\n\\n<text>', both sides trimmed."""
    return f"Action: {action.strip()}\n\n{text.strip()}"


def build_analysis_prompt(source: AnalysisSource, action: str = "analyze") -> str:
    """Prompt for a one-shot analysis of extracted content.

    Image bodies are not part of the prompt; they travel in the request's
    images list.
    """
    if isinstance(source, TextSource):
        header = f"Files: {', '.join(source.names)}" if source.names else "Files: (none readable)"
        return format_prompt(action, f"{header}\n\n{source.text}")
    if isinstance(source, ImageSource):
        return format_prompt(
            action,
            f"Describe the attached {len(source.names)} image(s) "
            f"({', '.join(source.names)}) and point out anything notable.",
        )
    raise TypeError(f"unhandled analysis source: {type(source).__name__}")
