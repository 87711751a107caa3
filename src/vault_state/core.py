"""Core data models for vault-state.

Base/Delta Snapshot Model:
--------------------------
A vault's history is one full BaseSnapshot plus an ordered sequence of
DeltaRecords, at most one per UTC calendar day. The current known state is
never stored directly; it is reconstructed by replaying the deltas over the
base in period order. Consolidation folds the deltas back into a fresh base
once too many have accumulated.

Field names match the on-disk JSON format (``createdAt`` etc.) so records
round-trip through ``model_dump`` without aliasing.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional
import json
import posixpath

from pydantic import BaseModel, Field, field_validator

from .constants import CONSOLIDATION_THRESHOLD


# ============= Configuration =============

class HashPolicy(str, Enum):
    """How file content is prepared before hashing."""

    RAW = "raw"                # bytes exactly as read
    NORMALIZED = "normalized"  # line endings, BOM and Unicode form normalized


class VaultStateConfig(BaseModel):
    """Vault configuration (stored in .vault-state/config.yaml)."""

    snapshot_folder: str = ""   # vault-relative; empty disables snapshots
    ignored_folders: str = ""   # comma-separated, '*' wildcard, prefix-anchored
    consolidation_threshold: int = Field(default=CONSOLIDATION_THRESHOLD, ge=1)
    hash_policy: HashPolicy = HashPolicy.RAW
    max_workers: int = Field(default=1, ge=1)

    @field_validator("snapshot_folder")
    @classmethod
    def normalize_folder(cls, v: str) -> str:
        """Store the folder as a normalized vault-relative POSIX path.

        Empty stays empty (snapshots disabled). The vault root itself and
        paths that climb out of the vault are rejected.
        """
        raw = v.strip().replace("\\", "/").strip("/")
        if not raw:
            return ""
        folder = posixpath.normpath(raw)
        if folder in (".", "..") or folder.startswith("../"):
            raise ValueError(f"snapshot_folder must name a folder inside the vault, got {v!r}")
        return folder

    @property
    def enabled(self) -> bool:
        """Snapshots only run once a snapshot folder is configured."""
        return bool(self.snapshot_folder)


# ============= Snapshot Records =============

class FileState(BaseModel):
    """Recorded facts about one tracked file.

    ``hash`` is only present for hashable extensions whose content could be
    read. It is omitted from serialized output when absent.
    """

    path: str
    mtime: int
    size: int
    hash: Optional[str] = None

    def to_json_dict(self) -> dict:
        """Serialize with ``hash`` omitted rather than null."""
        return self.model_dump(exclude_none=True)


class BaseSnapshot(BaseModel):
    """Full materialized state of the vault (base.json)."""

    createdAt: str
    files: Dict[str, FileState] = Field(default_factory=dict)

    def to_json(self) -> str:
        """Canonical serialization: files sorted by path."""
        data = {
            "createdAt": self.createdAt,
            "files": {
                path: self.files[path].to_json_dict()
                for path in sorted(self.files)
            },
        }
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


class DeltaRecord(BaseModel):
    """Changes relative to the state reconstructed when it was created."""

    createdAt: str
    added: List[FileState] = Field(default_factory=list)
    modified: List[FileState] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """Check if the delta records no change at all."""
        return not (self.added or self.modified or self.removed)

    @property
    def summary(self) -> str:
        """Get compact change counts, e.g. '+2  ~1  -0'."""
        return f"+{len(self.added)}  ~{len(self.modified)}  -{len(self.removed)}"

    def to_json(self) -> str:
        """Canonical serialization: every list sorted by path."""
        data = {
            "createdAt": self.createdAt,
            "added": [f.to_json_dict() for f in sorted(self.added, key=lambda f: f.path)],
            "modified": [f.to_json_dict() for f in sorted(self.modified, key=lambda f: f.path)],
            "removed": sorted(self.removed),
        }
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


@dataclass(frozen=True, order=True)
class DeltaHandle:
    """Reference to a stored delta file.

    Ordering is by period, then filename, so replay order is total and
    deterministic even if two files somehow carry the same period.
    """

    period: str   # YYYY-MM-DD
    path: Path = field(compare=False)
    name: str = ""

    @classmethod
    def for_path(cls, period: str, path: Path) -> "DeltaHandle":
        return cls(period=period, path=path, name=path.name)


# ============= Run Results =============

class RunOutcome(str, Enum):
    """What a controller invocation did."""

    DISABLED = "disabled"                # no snapshot folder configured
    BASE_CREATED = "base_created"
    DELTA_CREATED = "delta_created"
    NO_CHANGES = "no_changes"            # delta would be empty; nothing written
    SKIPPED_ALREADY_RAN = "skipped_already_ran"
    SKIPPED_BUSY = "skipped_busy"
    FAILED = "failed"


class ConsolidationResult(BaseModel):
    """Result of folding deltas into a new base."""

    deltas_folded: int = 0
    files: int = 0
    createdAt: Optional[str] = None

    @property
    def consolidated(self) -> bool:
        return self.deltas_folded > 0


class RunResult(BaseModel):
    """Result of a single SnapshotController run."""

    outcome: RunOutcome
    period: str
    added: int = 0
    modified: int = 0
    removed: int = 0
    files: int = 0
    consolidated: bool = False
    message: str = ""

    @property
    def ok(self) -> bool:
        """Check if the run finished without error."""
        return self.outcome != RunOutcome.FAILED

    def summary(self) -> str:
        """Get human-readable summary."""
        if self.outcome == RunOutcome.BASE_CREATED:
            return f"Base snapshot created ({self.files} files)."
        if self.outcome == RunOutcome.DELTA_CREATED:
            text = f"Delta created  +{self.added}  ~{self.modified}  -{self.removed}"
        elif self.outcome == RunOutcome.NO_CHANGES:
            text = "No changes since last snapshot."
        elif self.outcome == RunOutcome.SKIPPED_ALREADY_RAN:
            text = f"Delta for {self.period} already recorded."
        elif self.outcome == RunOutcome.SKIPPED_BUSY:
            text = "Another snapshot run is in progress."
        elif self.outcome == RunOutcome.DISABLED:
            text = "No snapshot folder configured."
        else:
            text = f"Snapshot failed: {self.message}"
        if self.consolidated:
            text += " Snapshots consolidated into new base."
        return text
