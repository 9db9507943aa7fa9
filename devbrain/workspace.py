"""Workspace layout and settings for DevBrain.

A workspace is the directory holding ``tickets/`` and ``docs/``. Nothing
here creates corpus directories: a missing ``docs/decisions`` means
"no ADRs", not an error.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

from .ticketpath import ARCHIVED_DIR, TICKETS_DIR

HOME_ENV = "DEVBRAIN_HOME"
MIN_KEYWORD_LENGTH_ENV = "DEVBRAIN_CONFLICT_MIN_KEYWORD_LENGTH"
MIN_SHARED_KEYWORDS_ENV = "DEVBRAIN_CONFLICT_MIN_SHARED_KEYWORDS"

DEFAULT_MIN_KEYWORD_LENGTH = 4
DEFAULT_MIN_SHARED_KEYWORDS = 2

DEFAULT_STOP_WORDS: FrozenSet[str] = frozenset({
    "that", "this", "with", "from", "will", "have", "been", "were",
    "they", "them", "then", "than", "what", "when", "where", "which",
    "would", "could", "should", "shall", "about", "after", "before", "between",
    "into", "through", "during", "each", "also", "some", "other", "more",
    "there", "their", "these", "those", "being", "does", "done", "make",
    "made", "just", "only", "such", "like", "over", "under", "because",
    "must", "need", "needs", "using", "used",
})


class Workspace:
    """Directory layout of a DevBrain workspace."""

    DESIGN_DOC_NAME = "design.md"

    def __init__(self, root: Path | str):
        self.root = Path(root).expanduser().resolve()
        self.tickets_dir = self.root / TICKETS_DIR
        self.archived_dir = self.tickets_dir / ARCHIVED_DIR
        self.docs_dir = self.root / "docs"
        self.decisions_dir = self.docs_dir / "decisions"
        self.wiki_dir = self.docs_dir / "wiki"

    @classmethod
    def from_env(cls, root: Optional[Path | str] = None) -> "Workspace":
        """Use ``root``, else ``$DEVBRAIN_HOME``, else the current directory."""
        if root:
            resolved = Path(root).expanduser()
            if not resolved.exists():
                raise ValueError(f"Provided root '{root}' does not exist.")
            return cls(resolved)

        env_root = os.getenv(HOME_ENV)
        if env_root:
            env_path = Path(env_root).expanduser()
            if not env_path.exists():
                raise ValueError(
                    f"Environment variable {HOME_ENV} points to '{env_root}', which does not exist."
                )
            return cls(env_path)

        return cls(Path.cwd())

    def __repr__(self) -> str:
        return f"Workspace({str(self.root)!r})"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got '{raw}'.") from None


@dataclass(slots=True, frozen=True)
class ConflictSettings:
    """Tuning for lexical overlap scoring.

    A candidate is flagged once it shares ``min_shared_keywords`` keywords
    with the proposal; a keyword is a lowercase alphanumeric run of at
    least ``min_keyword_length`` characters that is not a stop word.
    """

    min_keyword_length: int = DEFAULT_MIN_KEYWORD_LENGTH
    min_shared_keywords: int = DEFAULT_MIN_SHARED_KEYWORDS
    stop_words: FrozenSet[str] = field(default=DEFAULT_STOP_WORDS)

    def __post_init__(self) -> None:
        if self.min_shared_keywords < 1:
            raise ValueError("min_shared_keywords must be at least 1")
        if self.min_keyword_length < 1:
            raise ValueError("min_keyword_length must be at least 1")

    @classmethod
    def from_env(cls) -> "ConflictSettings":
        return cls(
            min_keyword_length=_env_int(MIN_KEYWORD_LENGTH_ENV, DEFAULT_MIN_KEYWORD_LENGTH),
            min_shared_keywords=_env_int(MIN_SHARED_KEYWORDS_ENV, DEFAULT_MIN_SHARED_KEYWORDS),
        )
