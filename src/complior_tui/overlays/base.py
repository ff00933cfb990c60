"""Common base for modal overlays.

// [LAW:one-source-of-truth] An overlay object owns all of its state.
// Closing an overlay (state.overlay = None) discards that state with it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from complior_tui.core.types import OverlayKind


@dataclass
class Overlay:
    kind: ClassVar[OverlayKind]

    def accepts_text(self) -> bool:
        """True while the overlay wants raw chars instead of j/k navigation."""
        return False


def move_cursor(cursor: int, delta: int, count: int) -> int:
    """Bounded cursor step; stays put on an empty list."""
    if count <= 0:
        return 0
    return max(0, min(cursor + delta, count - 1))
