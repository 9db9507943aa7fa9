"""Architecture decision records in ``docs/decisions``.

ADRs are markdown files shaped like::

    # ADR-0001: Use JWT tokens for authentication

    **Status:** Accepted
    **Date:** 2026-01-15
    **Source:** TASK-00010

    ## Context
    ...
    ## Decision
    ...

This module reads them and finds the ones that came out of a given task.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from .codec import extract_metadata_field, extract_section, extract_title

logger = logging.getLogger("devbrain.adr")

INACTIVE_STATUSES = frozenset({"rejected", "superseded", "deprecated"})

_ADR_ID = re.compile(r"^(ADR-\d+)", re.IGNORECASE)


@dataclass(slots=True)
class AdrRecord:
    """The parts of an ADR that other documents refer to."""

    adr_id: str
    path: Path
    title: str = ""
    status: str = ""
    source: str = ""
    decision: str = ""

    @property
    def is_active(self) -> bool:
        return self.status.strip().lower() not in INACTIVE_STATUSES


def adr_id_from_filename(filename: str) -> str:
    """``ADR-0003`` for ``ADR-0003-use-jwt.md``, else the bare stem."""
    stem = Path(filename).stem
    match = _ADR_ID.match(stem)
    return match.group(1).upper() if match else stem


def parse_adr(path: Path, content: str) -> AdrRecord:
    title = extract_title(content)
    adr_id = adr_id_from_filename(path.name)
    prefix = f"{adr_id}:"
    if title.upper().startswith(prefix):
        title = title[len(prefix):].strip()
    return AdrRecord(
        adr_id=adr_id,
        path=path,
        title=title,
        status=extract_metadata_field(content, "**Status:**"),
        source=extract_metadata_field(content, "**Source:**"),
        decision=extract_section(content, "Decision"),
    )


def list_markdown_files(directory: Path) -> List[Path]:
    """Markdown files directly under ``directory``, sorted by name.

    A missing directory has none. Listing errors on an existing directory
    propagate as ``OSError``.
    """
    if not directory.exists():
        return []
    return sorted(
        (entry for entry in directory.iterdir() if entry.suffix == ".md" and not entry.is_dir()),
        key=lambda p: p.name,
    )


def iter_adrs(decisions_dir: Path, *, skip_unreadable: bool = True) -> Iterator[AdrRecord]:
    """Parse every ADR in ``decisions_dir``.

    With ``skip_unreadable`` an ADR that cannot be read is logged and
    skipped; otherwise the ``OSError`` propagates.
    """
    for path in list_markdown_files(decisions_dir):
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            if not skip_unreadable:
                raise
            logger.warning(f"Skipping unreadable ADR {path}: {e}")
            continue
        yield parse_adr(path, content)


def adr_link(record: AdrRecord, relative_to: Optional[Path] = None) -> str:
    """Markdown link to ``record``, relative to ``relative_to`` when given."""
    target = record.path
    if relative_to is not None:
        target = Path(os.path.relpath(record.path, relative_to))
    return f"[{record.adr_id}]({target.as_posix()})"


def find_related_adrs(decisions_dir: Path, task_id: str, *, link_from: Optional[Path] = None) -> List[str]:
    """Links to every ADR whose ``**Source:**`` is exactly ``task_id``."""
    related = [
        adr_link(record, link_from)
        for record in iter_adrs(decisions_dir)
        if record.source == task_id
    ]
    logger.debug(f"Found {len(related)} ADRs sourced from {task_id}")
    return related
