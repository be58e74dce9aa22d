"""
Module: export.progress

Purpose:
    Progress reporting for a running export. Messages go to the caller's
    callback and the log; a failing callback never affects the export.

Key Classes:
    - ProgressTracker: Wraps an optional progress callback
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


class ProgressTracker:
    """
    Progress indicator for one export.

    Attributes:
        messages: Every message reported, in order
        active: True between the first update and clear()
    """

    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self._callback = callback
        self.messages: List[str] = []
        self.active = False

    def update(self, message: str) -> None:
        self.active = True
        self.messages.append(message)
        logger.info(message)
        self._emit(message)

    def clear(self) -> None:
        """Hide the progress indicator (callback receives an empty message)."""
        if self.active:
            self.active = False
            self._emit("")

    def _emit(self, message: str) -> None:
        if self._callback is None:
            return
        try:
            self._callback(message)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
