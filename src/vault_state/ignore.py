"""Prefix-anchored ignore pattern matching for vault-state."""

import re
from typing import Iterable, List, Tuple

from pathspec import PathSpec
from pathspec.pattern import RegexPattern

from .constants import VAULT_STATE_DIR


def split_patterns(ignored_folders: str) -> List[str]:
    """Split a comma-separated pattern string, dropping blanks."""
    return [p.strip() for p in ignored_folders.split(",") if p.strip()]


def pattern_to_regex(pattern: str) -> str:
    """Translate a user pattern into an anchored regex.

    Everything is literal except ``*``, which matches any run of
    characters (including ``/``). The regex is anchored at the start only,
    so a pattern matches every path it is a prefix of.
    """
    return "^" + ".*".join(re.escape(part) for part in pattern.split("*"))


class IgnoreMatcher:
    """Decides whether a vault-relative path participates in snapshots.

    Always ignored:
        - the ``.vault-state`` control directory
        - the snapshot folder itself (literal prefix, no wildcards)

    Patterns are compiled once; build a new matcher when the configuration
    changes rather than per file.
    """

    def __init__(self, snapshot_folder: str = "", patterns: Iterable[str] = ()):
        self.snapshot_folder = snapshot_folder
        self.patterns: Tuple[str, ...] = tuple(patterns)

        regexes = [pattern_to_regex(f"{VAULT_STATE_DIR}/")]
        if snapshot_folder:
            regexes.append("^" + re.escape(snapshot_folder))
        regexes.extend(pattern_to_regex(p) for p in self.patterns)

        self.spec = PathSpec([RegexPattern(r) for r in regexes])

    @classmethod
    def compile(cls, snapshot_folder: str, ignored_folders: str) -> "IgnoreMatcher":
        """Build a matcher from the snapshot folder and a comma-separated pattern string."""
        return cls(snapshot_folder, split_patterns(ignored_folders))

    @property
    def key(self) -> Tuple[str, Tuple[str, ...]]:
        """Configuration this matcher was compiled from."""
        return self.snapshot_folder, self.patterns

    def is_ignored(self, path: str) -> bool:
        """Check if a vault-relative POSIX path should be ignored.

        Args:
            path: Vault-relative path in POSIX format (forward slashes)

        Returns:
            True if any pattern is a prefix match for the path
        """
        return self.spec.match_file(path)

    def filter(self, paths: Iterable[str]) -> List[str]:
        """Return the paths that are not ignored, in input order."""
        return [p for p in paths if not self.is_ignored(p)]
