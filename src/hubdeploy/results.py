"""Directory of saved deployment outputs."""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

RESULT_EXT = ".txt"
RESULTS_SEGMENT = "results"


class ResultsStore:
    """Write-once output files named ``<id>.txt``.

    A store without a directory is disabled: nothing is saved and nothing is
    found.
    """

    def __init__(self, results_dir: str | Path | None = None):
        self.results_dir: Optional[Path] = None
        if results_dir:
            path = Path(results_dir).expanduser().resolve()
            path.mkdir(mode=0o755, parents=True, exist_ok=True)
            self.results_dir = path

    @property
    def enabled(self) -> bool:
        return self.results_dir is not None

    @staticmethod
    def filename(result_id: uuid.UUID | str) -> str:
        return f"{result_id}{RESULT_EXT}"

    def save(self, result_id: uuid.UUID | str, output: bytes) -> Optional[Path]:
        if self.results_dir is None:
            return None
        file_path = self.results_dir / self.filename(result_id)
        try:
            fd = os.open(file_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "wb") as handle:
                handle.write(output or b"")
        except OSError as exc:
            logger.error("%s> unable to save output: %s", result_id, exc)
            return None
        return file_path

    def find(self, name: str) -> Optional[Path]:
        """Resolves a requested file name to a saved output, ignoring any directory part."""
        if self.results_dir is None:
            return None
        name = Path(name or "").name
        if not name:
            return None
        file_path = self.results_dir / name
        if not file_path.is_file():
            return None
        return file_path

    def results_url(self, server_url: str, result_id: uuid.UUID | str) -> str:
        """Public link to a saved output; empty when no link can be advertised."""
        if not server_url or self.results_dir is None:
            return ""
        if not server_url.endswith("/"):
            server_url += "/"
        return f"{server_url}{RESULTS_SEGMENT}/{self.filename(result_id)}"
