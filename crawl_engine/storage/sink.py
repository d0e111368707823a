"""
Output sink for crawl results.

Successful fetches are written to a line-oriented file as
``[<ordinal>]: <url>``; connection failures go to a separate error channel as
``[<ordinal>] Connection failure: <url>``.
"""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, TextIO


class SinkError(Exception):
    """Raised when the result file cannot be opened or written."""
    pass


@dataclass(frozen=True)
class OutputRecord:
    """One processed fetch, numbered in completion order."""
    ordinal: int
    url: str
    status: Optional[int] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def format(self) -> str:
        if self.failed:
            return f"[{self.ordinal}] Connection failure: {self.url}"
        return f"[{self.ordinal}]: {self.url}"


class OutputSink:
    """
    Append-only result file owned by a single crawl run.

    Use as a context manager so the file is closed on every exit path. The
    file is truncated on open.
    """

    def __init__(self, path: str, error_stream: Optional[TextIO] = None):
        self.path = Path(path)
        self.error_stream = error_stream
        self.logger = logging.getLogger(__name__)
        self._file: Optional[TextIO] = None
        self._records: List[OutputRecord] = []

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def open(self):
        if self._file is not None:
            raise SinkError(f"Sink already open: {self.path}")

        try:
            if self.path.parent != Path('.'):
                self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.path, 'w', encoding='utf-8')
        except OSError as e:
            raise SinkError(f"Failed to open {self.path} for writing: {e}") from e

        self._records = []
        self.logger.debug(f"Output sink opened at {self.path}")

    def close(self):
        if self._file is None:
            return
        try:
            self._file.close()
        finally:
            self._file = None
        self.logger.debug(f"Output sink closed ({len(self._records)} records)")

    def write(self, record: OutputRecord):
        """Write one record; failures go to the error channel, not the file."""
        if self._file is None:
            raise SinkError("Cannot write to a closed sink")

        line = record.format() + '\n'
        try:
            if record.failed:
                stream = self.error_stream or sys.stderr
                stream.write(line)
                stream.flush()
            else:
                self._file.write(line)
                # Whole lines only, even if the run is interrupted
                self._file.flush()
        except OSError as e:
            raise SinkError(f"Failed to write to {self.path}: {e}") from e

        self._records.append(record)

    @property
    def records(self) -> List[OutputRecord]:
        return list(self._records)

    def read_contents(self) -> str:
        """Return the file's contents for display."""
        try:
            return self.path.read_text(encoding='utf-8')
        except OSError as e:
            raise SinkError(f"Failed to read {self.path}: {e}") from e
