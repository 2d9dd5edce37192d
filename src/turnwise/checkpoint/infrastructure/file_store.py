"""FileCheckpointStore — one JSON file per checkpoint in a single directory."""

import os
import tempfile
from pathlib import Path

from turnwise.checkpoint.domain.errors import CheckpointWriteError

_SUFFIX = ".json"


class FileCheckpointStore:
    """Stores each checkpoint as one JSON file.

    Writes go to a temporary file in the same directory, are flushed to disk,
    and are then renamed over the target, so a document is either fully
    present or absent. Satisfies the CheckpointStore protocol structurally.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = directory

    @property
    def directory(self) -> Path:
        return self._directory

    def write(self, name: str, data: bytes) -> None:
        target = self._path(name)
        tmp_path: str | None = None
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self._directory, prefix=f".{name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, target)
            tmp_path = None
        except OSError as exc:
            raise CheckpointWriteError(name=name, reason=str(exc)) from exc
        finally:
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)

    def read(self, name: str) -> bytes | None:
        try:
            return self._path(name).read_bytes()
        except FileNotFoundError:
            return None

    def names(self) -> list[str]:
        if not self._directory.is_dir():
            return []
        return sorted(
            path.name.removesuffix(_SUFFIX)
            for path in self._directory.iterdir()
            if path.is_file()
            and path.name.endswith(_SUFFIX)
            and not path.name.startswith(".")
        )

    def _path(self, name: str) -> Path:
        return self._directory / f"{name}{_SUFFIX}"
