from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

DEFAULT_MAX_VIEWS = 256


@dataclass(frozen=True)
class BoardConfig:
    max_views: int  # open page views kept in memory; the least recently used is dropped first


@lru_cache(maxsize=1)
def load_board_config() -> BoardConfig:
    raw = (os.getenv("BOARD_MAX_VIEWS") or "").strip() or str(DEFAULT_MAX_VIEWS)
    try:
        max_views = int(raw)
    except Exception:
        max_views = DEFAULT_MAX_VIEWS
    return BoardConfig(max_views=max(1, max_views))
