"""Item outcome model - per-item result of a settled batch run"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class ItemOutcome:
    """Result or terminal error of a single batch item"""

    index: int  # Position of the item in the input sequence
    item: Any
    result: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        """Check if the item finished successfully"""
        return self.error is None
