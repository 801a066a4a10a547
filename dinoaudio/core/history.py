from __future__ import annotations
from typing import Optional

from dinoaudio.core.buffer import PcmBuffer
from dinoaudio.core.config import UNDO_CONFIG
from dinoaudio.utils.logger import logger


class HistoryManager:
    """
    Linear undo/redo history of buffer snapshots.

    Snapshots are immutable PcmBuffers, so undo and redo only move an index;
    committing after an undo discards the redo branch.
    """

    def __init__(self, max_depth: Optional[int] = UNDO_CONFIG.max_depth):
        self._entries: list[PcmBuffer] = []
        self._index = -1
        self.max_depth = max_depth

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> Optional[PcmBuffer]:
        if self._index < 0:
            return None
        return self._entries[self._index]

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def __len__(self) -> int:
        return len(self._entries)

    def commit(self, buffer: PcmBuffer) -> PcmBuffer:
        """Drops any redo entries, appends the buffer and makes it current."""
        del self._entries[self._index + 1:]
        self._entries.append(buffer)
        if self.max_depth is not None and len(self._entries) > self.max_depth:
            self._entries.pop(0)
        self._index = len(self._entries) - 1
        logger.debug(f"History commit: {len(self._entries)} snapshot(s)")
        return buffer

    def undo(self) -> Optional[PcmBuffer]:
        if not self.can_undo:
            logger.debug("Nothing to undo")
            return None
        self._index -= 1
        logger.info(f"Undo: now at snapshot {self._index}")
        return self.current

    def redo(self) -> Optional[PcmBuffer]:
        if not self.can_redo:
            logger.debug("Nothing to redo")
            return None
        self._index += 1
        logger.info(f"Redo: now at snapshot {self._index}")
        return self.current

    def clear(self):
        self._entries.clear()
        self._index = -1
        logger.debug("History cleared")
