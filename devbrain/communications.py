"""Stakeholder communications stored as markdown files.

Each communication lives in ``tickets/{task_id}/communications/`` as
``YYYY-MM-DD-source-contact-topic.md``. The design document store only
needs :class:`CommunicationStore`; :class:`FileCommunicationStore` is the
on-disk implementation.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import List, Protocol

from .codec import extract_metadata_field, extract_section, parse_bullets
from .errors import CommunicationStoreError
from .models import Communication
from .ticketpath import resolve_ticket_dir

logger = logging.getLogger("devbrain.communications")

COMMUNICATIONS_DIR = "communications"
MAX_TOPIC_SLUG = 50

_NON_SLUG = re.compile(r"[^a-zA-Z0-9]+")


class CommunicationStore(Protocol):
    def get_all_communications(self, task_id: str) -> List[Communication]:
        ...


def _slugify(value: str) -> str:
    return _NON_SLUG.sub("-", value or "").strip("-").lower()


def communication_filename(comm: Communication) -> str:
    date_part = comm.date.isoformat() if comm.date else "undated"
    topic = _slugify(comm.topic)[:MAX_TOPIC_SLUG]
    parts = [date_part, _slugify(comm.source), _slugify(comm.contact), topic]
    return "-".join(part for part in parts if part) + ".md"


def format_communication(comm: Communication) -> str:
    lines = [
        f"# {communication_filename(comm)[:-3]}",
        "",
        f"**Date:** {comm.date.isoformat() if comm.date else ''}".rstrip(),
        f"**Source:** {comm.source}".rstrip(),
        f"**Contact:** {comm.contact}".rstrip(),
        f"**Topic:** {comm.topic}".rstrip(),
        "",
        "## Content",
        "",
        comm.content.strip(),
        "",
        "## Tags",
        "",
    ]
    lines += [f"- {getattr(tag, 'value', tag)}" for tag in comm.tags]
    return "\n".join(lines) + "\n"


def parse_communication(content: str) -> Communication:
    """Parse a communication file. Unparsable dates become ``None``."""
    raw_date = extract_metadata_field(content, "**Date:**")
    try:
        comm_date = datetime.strptime(raw_date, "%Y-%m-%d").date() if raw_date else None
    except ValueError:
        comm_date = None

    return Communication(
        content=extract_section(content, "Content"),
        source=extract_metadata_field(content, "**Source:**"),
        contact=extract_metadata_field(content, "**Contact:**"),
        topic=extract_metadata_field(content, "**Topic:**"),
        date=comm_date,
        tags=parse_bullets(extract_section(content, "Tags")),
    )


class FileCommunicationStore:
    """Manage communications under each task's ticket directory."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def communications_dir(self, task_id: str) -> Path:
        return resolve_ticket_dir(self.root, task_id) / COMMUNICATIONS_DIR

    def add_communication(self, task_id: str, comm: Communication) -> Path:
        """Write ``comm`` and return its path. Name clashes get a ``-2``, ``-3`` ... suffix."""
        directory = self.communications_dir(task_id)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            filename = communication_filename(comm)
            path = directory / filename
            counter = 2
            while path.exists():
                path = directory / f"{filename[:-3]}-{counter}.md"
                counter += 1
            path.write_text(format_communication(comm), encoding="utf-8")
        except OSError as e:
            raise CommunicationStoreError("adding communication", str(e), task_id) from e

        logger.info(f"Recorded communication {path.name} for task {task_id}")
        return path

    def get_all_communications(self, task_id: str) -> List[Communication]:
        """Every communication for the task, ordered by filename.

        A task without a communications directory has none; a single
        unreadable file is skipped.
        """
        directory = self.communications_dir(task_id)
        if not directory.exists():
            return []
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise CommunicationStoreError("reading communications", str(e), task_id) from e

        comms: List[Communication] = []
        for entry in entries:
            if entry.suffix != ".md" or not entry.is_file():
                continue
            try:
                content = entry.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Skipping unreadable communication {entry}: {e}")
                continue
            comms.append(parse_communication(content))
        return comms

    def search_communications(self, task_id: str, query: str) -> List[Communication]:
        """Case-insensitive substring search over content, source, contact, topic and date."""
        needle = query.lower()
        results = []
        for comm in self.get_all_communications(task_id):
            haystack = [comm.content, comm.source, comm.contact, comm.topic]
            if comm.date:
                haystack.append(comm.date.isoformat())
            if any(needle in value.lower() for value in haystack):
                results.append(comm)
        return results
