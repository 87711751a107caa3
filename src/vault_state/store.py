"""On-disk layout of the base snapshot and its delta records.

Layout inside the snapshot folder::

    base.json               full BaseSnapshot
    delta-YYYY-MM-DD.json   one DeltaRecord per UTC day with changes

The delta filename is both the period key and the replay order. Every write
puts the complete serialized record on disk in one step (temp file, fsync,
rename or link), so readers never see a half-written record.
"""

import json
import logging
import re
from pathlib import Path
from typing import Iterable, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .constants import BASE_FILE, DELTA_PREFIX, DELTA_SUFFIX
from .core import BaseSnapshot, DeltaHandle, DeltaRecord
from .errors import (
    CorruptStateError,
    MissingBaseError,
    NamingCollisionError,
    StorageWriteError,
)
from .utils import atomic_create_text, atomic_write_text

logger = logging.getLogger(__name__)

_DELTA_NAME = re.compile(
    rf"^{re.escape(DELTA_PREFIX)}(\d{{4}}-\d{{2}}-\d{{2}}){re.escape(DELTA_SUFFIX)}$"
)

ModelT = TypeVar("ModelT", bound=BaseModel)


class SnapshotStore:
    """Read/write access to one vault's base and delta files."""

    def __init__(self, folder: Path):
        """
        Args:
            folder: Absolute path of the snapshot folder
        """
        self.folder = Path(folder)

    @property
    def base_path(self) -> Path:
        return self.folder / BASE_FILE

    def delta_path(self, period: str) -> Path:
        return self.folder / f"{DELTA_PREFIX}{period}{DELTA_SUFFIX}"

    def ensure_folder(self) -> None:
        """Create the snapshot folder if needed. Existing folders are fine."""
        try:
            self.folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageWriteError(str(self.folder), str(e)) from e

    # ---- Base ----------------------------------------------------------------

    def has_base(self) -> bool:
        return self.base_path.is_file()

    def read_base(self) -> BaseSnapshot:
        """Load base.json.

        Raises:
            MissingBaseError: If no base has been written yet
            CorruptStateError: If the file can't be parsed
        """
        if not self.has_base():
            raise MissingBaseError(str(self.base_path))
        return self._read_model(self.base_path, BaseSnapshot)

    def write_base(self, base: BaseSnapshot) -> None:
        """Create or replace base.json atomically."""
        self.ensure_folder()
        try:
            atomic_write_text(self.base_path, base.to_json())
        except (OSError, UnicodeError) as e:
            raise StorageWriteError(str(self.base_path), str(e)) from e
        logger.debug("Wrote base snapshot %s (%d files)", self.base_path, len(base.files))

    # ---- Deltas --------------------------------------------------------------

    def has_delta_for(self, period: str) -> bool:
        return self.delta_path(period).exists()

    def list_deltas(self) -> List[DeltaHandle]:
        """List stored deltas in replay order (period, then filename)."""
        if not self.folder.is_dir():
            return []

        handles = []
        for path in self.folder.iterdir():
            if not path.name.startswith(DELTA_PREFIX):
                continue
            match = _DELTA_NAME.match(path.name)
            if match is None or not path.is_file():
                logger.warning("Ignoring unrecognized file in snapshot folder: %s", path.name)
                continue
            handles.append(DeltaHandle.for_path(match.group(1), path))
        return sorted(handles)

    def read_delta(self, handle: DeltaHandle) -> DeltaRecord:
        """Load one delta.

        Raises:
            CorruptStateError: If the file is missing or can't be parsed
        """
        return self._read_model(handle.path, DeltaRecord)

    def append_delta(self, delta: DeltaRecord, period: str) -> DeltaHandle:
        """Write a new delta for ``period``.

        Raises:
            NamingCollisionError: If a delta for this period already exists
            StorageWriteError: If the write fails
        """
        self.ensure_folder()
        path = self.delta_path(period)
        try:
            atomic_create_text(path, delta.to_json())
        except FileExistsError as e:
            raise NamingCollisionError(period, str(path)) from e
        except (OSError, UnicodeError) as e:
            raise StorageWriteError(str(path), str(e)) from e
        logger.debug("Wrote delta %s", path)
        return DeltaHandle.for_path(period, path)

    def delete_deltas(self, handles: Iterable[DeltaHandle]) -> int:
        """Delete the given delta files. Already-missing files are skipped.

        Returns:
            Number of files removed
        """
        removed = 0
        for handle in handles:
            try:
                if handle.path.exists():
                    handle.path.unlink()
                    removed += 1
            except OSError as e:
                raise StorageWriteError(str(handle.path), str(e)) from e
        return removed

    # ---- Helpers -------------------------------------------------------------

    def _read_model(self, path: Path, model: Type[ModelT]) -> ModelT:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CorruptStateError(str(path), str(e)) from e
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise CorruptStateError(str(path), f"{e.error_count()} validation error(s)") from e
