"""
Courier — Text Generator Protocol

Defines what Courier needs from a text-generation service.
Uses structural typing (Protocol): any object with these methods works,
which is how tests swap in a fake for the Ollama adapter.

All methods are blocking; the Companion runs them on worker threads.
"""
from typing import Callable, List, Optional, runtime_checkable
from typing import Protocol

from .types import HealthStatus


@runtime_checkable
class TextGenerator(Protocol):
    """
    Protocol for the local model service.

    Implementors provide:
    - health(): Cheap reachability probe
    - generate(): One-shot completion
    - generate_stream(): Completion delivered piece by piece
    """

    def health(self) -> HealthStatus:
        """
        Probe the service.

        Returns:
            HealthStatus with ok=True and a human-readable message.

        Raises:
            ServiceError: The service is not reachable at all.
        """
        ...

    def generate(
        self,
        prompt: str,
        images: Optional[List[str]] = None,
    ) -> str:
        """
        Complete a prompt in one request.

        Args:
            prompt: Full prompt text
            images: Optional base64-encoded images sent alongside the prompt

        Returns:
            The generated text.
        """
        ...

    def generate_stream(
        self,
        prompt: str,
        on_chunk: Callable[[str], None],
        images: Optional[List[str]] = None,
    ) -> str:
        """
        Complete a prompt, calling on_chunk for each non-empty piece.

        Returns:
            The concatenated text, same as generate() would return.
        """
        ...
