from __future__ import annotations

from typing import Sequence

from prompt_evolution.core.types import Decision, Round

DEFAULT_WINDOW = 5


def is_diminishing(
    history: Sequence[Round], threshold: float, window_size: int = DEFAULT_WINDOW
) -> bool:
    """True when the trailing window of rounds is no longer paying off.

    The mean is taken over the whole window, with discarded rounds counting as
    zero improvement. Advisory only: the optimizer logs it and keeps going.
    """
    if window_size <= 0:
        raise ValueError(f"window_size must be positive, got {window_size}")
    if len(history) < window_size:
        return False

    recent = history[-window_size:]
    kept_gain = sum(r.improvement for r in recent if r.decision is Decision.KEEP)
    return kept_gain / window_size < threshold
