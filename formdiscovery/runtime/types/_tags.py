"""Selection key and generation tag types.

A generation tag pins a discovery run to the selection that started it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# Type alias: the identifier of the user-chosen resource (account name,
# template id). Only equality is meaningful.
SelectionKey = str


@dataclass(frozen=True)
class GenerationTag:
    """Selection key captured when a discovery run started.

    Attributes:
        key: Selection key the run was started for (None after teardown).
        generation: Session counter value at the time of selection. Two tags
            with the same key but different generations are different runs.
    """

    key: Optional[SelectionKey]
    generation: int

    def __str__(self) -> str:
        return f"{self.key}#{self.generation}"
