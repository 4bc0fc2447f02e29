# textlasso/pipeline/parallel/types.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ParallelKind(str, Enum):
    SEARCH_UNIT = "search_unit"


@dataclass(frozen=True)
class ParallelOutcome:
    """
    Result of one dispatched item: either `result` or `error` is set.
    """
    item: Any
    result: Any = None
    error: Optional[BaseException] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None
