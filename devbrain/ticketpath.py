"""Ticket directory resolution.

Active tasks live in ``tickets/{task_id}``; archived tasks are moved to
``tickets/_archived/{task_id}``. Everything that reads or writes a
task's files goes through :func:`resolve_ticket_dir` so archived tasks
stay reachable.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, Tuple

TICKETS_DIR = "tickets"
ARCHIVED_DIR = "_archived"


def active_ticket_dir(root: Path, task_id: str) -> Path:
    return Path(root) / TICKETS_DIR / task_id


def archived_ticket_dir(root: Path, task_id: str) -> Path:
    return Path(root) / TICKETS_DIR / ARCHIVED_DIR / task_id


def resolve_ticket_dir(root: Path, task_id: str) -> Path:
    """Return the active dir if it exists, else the archived one, else the active path."""
    active = active_ticket_dir(root, task_id)
    if active.exists():
        return active
    archived = archived_ticket_dir(root, task_id)
    if archived.exists():
        return archived
    return active


def iter_ticket_dirs(root: Path) -> Iterator[Tuple[str, Path]]:
    """Yield ``(task_id, directory)`` for every active then archived ticket.

    A missing ``tickets`` directory yields nothing. ``OSError`` from
    listing an existing directory propagates.
    """
    tickets = Path(root) / TICKETS_DIR
    for base, skip_archive in ((tickets, True), (tickets / ARCHIVED_DIR, False)):
        if not base.is_dir():
            continue
        for entry in sorted(base.iterdir(), key=lambda p: p.name):
            if skip_archive and entry.name == ARCHIVED_DIR:
                continue
            if entry.is_dir():
                yield entry.name, entry
