from __future__ import annotations

import logging
import secrets
import threading
from collections import OrderedDict
from typing import Optional, Tuple

from taskboard.board.store import BoardStore

logger = logging.getLogger(__name__)


class BoardViews:
    """
    Boards for open page views, keyed by an unguessable view id.

    Rendering the dashboard opens a new view, so a reload always starts from the seed
    board. Nothing here outlives the process.
    """

    def __init__(self, max_views: int = 256):
        self._max_views = max(1, max_views)
        self._views: "OrderedDict[str, BoardStore]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._views)

    def open(self) -> Tuple[str, BoardStore]:
        view_id = secrets.token_urlsafe(16)
        board = BoardStore()
        with self._lock:
            self._views[view_id] = board
            while len(self._views) > self._max_views:
                dropped, _ = self._views.popitem(last=False)
                logger.debug("Dropped board view %s (capacity %d)", dropped[:8], self._max_views)
        return view_id, board

    def get(self, view_id: str) -> Optional[BoardStore]:
        with self._lock:
            board = self._views.get(view_id)
            if board is not None:
                self._views.move_to_end(view_id)
            return board
