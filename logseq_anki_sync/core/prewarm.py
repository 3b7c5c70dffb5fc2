"""
Background warming of dependency hashes.
"""

from __future__ import annotations

import logging
import threading
from logging import Logger

from .hashing import EMPTY_PAYLOAD, NoteHashCalculator
from .note import SourceNote

__all__ = [
    "HashPrewarmer",
]


class HashPrewarmer:
    """
    Computes note dependency seeds in a background thread, e.g. while the
    user reviews the sync selection. Purely an optimization: whatever was
    cached before cancellation is kept, and nothing else is affected.

    Cancellation is cooperative; the token is checked between notes.
    """

    _calculator: NoteHashCalculator
    _notes: list[SourceNote]
    _delay: float
    _cancel_event: threading.Event
    _thread: threading.Thread | None = None
    _logger: Logger

    warmed: int = 0
    """
    Number of notes processed.
    """

    def __init__(
        self,
        calculator: NoteHashCalculator,
        notes: list[SourceNote],
        *,
        delay: float = 0.0,
        logger: Logger | None = None,
    ):
        """
        :param calculator: Calculator whose cache to warm
        :param notes: Notes to process, in order
        :param delay: Seconds to wait before starting
        :param logger: Logger to use, or `None` to use default logger
        """
        self._calculator = calculator
        self._notes = list(notes)
        self._delay = delay
        self._cancel_event = threading.Event()
        self._logger = logger or logging.getLogger()

    def __enter__(self) -> HashPrewarmer:
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, traceback):
        self.cancel()

    @property
    def is_canceled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        assert self._thread is None, "Prewarmer already started"

        self._thread = threading.Thread(
            target=self._run, name="hash-prewarm", daemon=True
        )
        self._thread.start()

    def cancel(self):
        """
        Request cancellation and wait for the background thread to stop.
        Safe to call multiple times or before starting.
        """
        self._cancel_event.set()

        if self._thread is not None:
            self._thread.join()

    def join(self, timeout: float | None = None):
        """
        Wait for completion without canceling.
        """
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self):
        # returns True if canceled during the delay
        if self._cancel_event.wait(self._delay):
            return

        for note in self._notes:
            if self._cancel_event.is_set():
                break

            try:
                self._calculator.get_hash(note, EMPTY_PAYLOAD)
            except Exception as e:
                # failures resurface when the note is actually processed
                self._logger.debug(f"Failed to prewarm hash of {note}: {e}")

            self.warmed += 1

        self._logger.debug(
            f"Prewarmed {self.warmed}/{len(self._notes)} dependency hashes"
        )
