"""Failure model - the stable shape the error classifier works on"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FailureInfo:
    """Textual information extracted from a failed operation"""

    message: str = ""  # Human-readable message
    code: str = ""  # Machine code or HTTP status, e.g. "ECONNRESET" or "503"

    @property
    def is_empty(self) -> bool:
        """Check if nothing could be extracted from the error"""
        return not self.message and not self.code
