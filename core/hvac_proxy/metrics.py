"""
Metrics Snapshot

Holds the most recent exposition text. One instance is created at startup and
shared by the capture path (writer) and the /metrics endpoint (reader).
"""

import logging
import os
import threading
from typing import Optional

from .models import TelemetryDocument

logger = logging.getLogger(__name__)

METRICS_FILENAME = "metrics_last.txt"


class MetricsSnapshot:
    """Latest rendered metrics, kept in memory and mirrored to disk."""

    def __init__(self, data_dir: str):
        """Initialize snapshot.

        Args:
            data_dir: Directory where metrics_last.txt is written
        """
        self.data_dir = data_dir
        self.path = os.path.join(data_dir, METRICS_FILENAME)

        self._text: Optional[str] = None
        self._document: Optional[TelemetryDocument] = None
        self.lock = threading.Lock()

    def update(self, document: TelemetryDocument, text: str) -> None:
        """Replace the snapshot and overwrite metrics_last.txt.

        A failed file write is logged; the in-memory snapshot is still
        replaced so /metrics keeps serving fresh values.
        """
        with self.lock:
            self._document = document
            self._text = text
            try:
                os.makedirs(self.data_dir, exist_ok=True)
                with open(self.path, "w", encoding="utf-8") as f:
                    f.write(text)
            except OSError as e:
                logger.error(f"Failed to save metrics to {self.path}: {e}")

    def read(self) -> Optional[str]:
        """Return the latest exposition text.

        Falls back to the file left by a previous run. Returns None when no
        metrics have been captured yet.
        """
        with self.lock:
            if self._text is not None:
                return self._text
            try:
                with open(self.path, encoding="utf-8") as f:
                    self._text = f.read()
            except FileNotFoundError:
                return None
            except OSError as e:
                logger.warning(f"Failed to read metrics file {self.path}: {e}")
                return None
            return self._text

    @property
    def document(self) -> Optional[TelemetryDocument]:
        with self.lock:
            return self._document
