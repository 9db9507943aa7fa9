"""Per-task technical design documents.

:class:`DesignDocStore` owns ``tickets/{task_id}/design.md`` (or the
archived location) and keeps it in sync with the task's communications
and the ADRs that came out of it. Every write re-renders the whole
document through :mod:`devbrain.codec` and replaces the file in one step.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import List, Optional, Union

from . import codec
from .adr import find_related_adrs
from .communications import CommunicationStore, FileCommunicationStore
from .devbrain_logging import (
    log_design_doc_event,
    log_error_with_context,
    log_operation,
    log_performance,
)
from .errors import CommunicationStoreError, DesignDocIOError, DesignDocNotFoundError
from .models import (
    ArchitectureUpdate,
    CommunicationTag,
    ComponentAppend,
    DecisionAppend,
    DesignUpdate,
    OverviewUpdate,
    TaskDesignDocument,
    TechnicalDecision,
    design_update,
)
from .ticketpath import resolve_ticket_dir
from .workspace import Workspace

logger = logging.getLogger("devbrain.designdoc")

_UPDATE_TYPES = (OverviewUpdate, ArchitectureUpdate, DecisionAppend, ComponentAppend)


def validate_task_id(task_id: str) -> str:
    """Reject empty ids and ids that would escape the tickets directory."""
    if not task_id or not task_id.strip():
        raise ValueError("Task ID cannot be empty")
    parts = PurePosixPath(task_id.replace("\\", "/")).parts
    if task_id.startswith(("/", "\\")) or ".." in parts:
        raise ValueError(f"Task ID '{task_id}' must be a relative path inside tickets/")
    return task_id


def requirement_from(comm) -> str:
    """One-line stakeholder requirement with attribution."""
    content = " ".join(comm.content.split())
    return f"[From {comm.contact or 'unknown'} via {comm.source or 'unknown'}] {content}"


class DesignDocStore:
    """Create, read and update task design documents."""

    def __init__(
        self,
        root: Union[Workspace, Path, str],
        communications: Optional[CommunicationStore] = None,
    ):
        self.workspace = root if isinstance(root, Workspace) else Workspace(root)
        self.communications = communications or FileCommunicationStore(self.workspace.root)

    # ------------------------------------------------------------------
    # Paths and persistence
    # ------------------------------------------------------------------

    def design_doc_path(self, task_id: str) -> Path:
        return resolve_ticket_dir(self.workspace.root, task_id) / Workspace.DESIGN_DOC_NAME

    def _read_design_doc(self, task_id: str) -> TaskDesignDocument:
        path = self.design_doc_path(task_id)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise DesignDocNotFoundError("reading design doc", f"{path} does not exist", task_id) from e
        except (OSError, UnicodeDecodeError) as e:
            raise DesignDocIOError("reading design doc", f"{path}: {e}", task_id) from e
        return codec.parse_design_doc(task_id, content)

    def _write_design_doc(self, doc: TaskDesignDocument) -> Path:
        """Render ``doc`` and replace ``design.md`` with it."""
        path = self.design_doc_path(doc.task_id)
        temp_path = path.with_name(f".{path.name}.tmp")
        try:
            temp_path.write_text(codec.format_design_doc(doc), encoding="utf-8")
            os.replace(temp_path, path)
        except OSError as e:
            try:
                temp_path.unlink(missing_ok=True)
            except OSError:
                logger.warning(f"Could not remove temporary file {temp_path}")
            raise DesignDocIOError("writing design doc", f"{path}: {e}", doc.task_id) from e
        return path

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @log_performance("initialize_design_doc")
    def initialize_design_doc(self, task_id: str) -> Path:
        """Write a scaffold design.md for ``task_id``, creating its directory."""
        validate_task_id(task_id)
        try:
            with log_operation("initialize_design_doc", task_id=task_id):
                directory = self.design_doc_path(task_id).parent
                try:
                    directory.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise DesignDocIOError(
                        "initializing design doc", f"creating directory {directory}: {e}", task_id
                    ) from e

                path = self._write_design_doc(codec.scaffold_design_doc(task_id))
                log_design_doc_event("initialized", task_id, path=str(path))
                return path
        except Exception as e:
            log_error_with_context(e, {"operation": "initialize_design_doc", "task_id": task_id})
            raise

    def get_design_doc(self, task_id: str) -> TaskDesignDocument:
        """Load and parse the task's design.md."""
        validate_task_id(task_id)
        return self._read_design_doc(task_id)

    @log_performance("update_design_doc")
    def update_design_doc(self, task_id: str, update: DesignUpdate) -> TaskDesignDocument:
        """Apply one section update and persist the document."""
        validate_task_id(task_id)
        if not isinstance(update, _UPDATE_TYPES):
            raise TypeError(f"Unsupported design update: {type(update).__name__}")

        try:
            with log_operation("update_design_doc", task_id=task_id, update=type(update).__name__):
                doc = self._read_design_doc(task_id)
                update.apply(doc)
                doc.touch()
                self._write_design_doc(doc)
                log_design_doc_event("updated", task_id, update=type(update).__name__)
                return doc
        except Exception as e:
            log_error_with_context(e, {
                "operation": "update_design_doc",
                "task_id": task_id,
                "update": type(update).__name__,
            })
            raise

    def update_section(self, task_id: str, section: str, content: str) -> TaskDesignDocument:
        """``update_design_doc`` keyed by section name.

        Raises:
            UnknownSectionError: before anything is read or written.
            EmptyUpdateError: blank decision or component text, also before any I/O.
        """
        return self.update_design_doc(task_id, design_update(section, content, task_id=task_id))

    def extract_from_communications(self, task_id: str) -> List[TechnicalDecision]:
        """Decision-tagged communications as ADR-candidate decisions."""
        validate_task_id(task_id)
        try:
            comms = self.communications.get_all_communications(task_id)
        except OSError as e:
            raise CommunicationStoreError("extracting decisions", str(e), task_id) from e

        decisions = [
            TechnicalDecision(
                decision=comm.content,
                rationale=comm.topic,
                source=comm.attribution(),
                date=comm.date,
                adr_candidate=True,
            )
            for comm in comms
            if comm.has_tag(CommunicationTag.DECISION)
        ]
        logger.debug(f"Extracted {len(decisions)} decisions from {len(comms)} communications for {task_id}")
        return decisions

    def find_related_adrs(self, task_id: str) -> List[str]:
        """ADR links for ADRs sourced from ``task_id``, relative to its design.md."""
        validate_task_id(task_id)
        try:
            return find_related_adrs(
                self.workspace.decisions_dir,
                task_id,
                link_from=self.design_doc_path(task_id).parent,
            )
        except OSError as e:
            raise DesignDocIOError("scanning ADRs", str(e), task_id) from e

    @log_performance("populate_design_doc")
    def populate_from_context(self, task_id: str) -> TaskDesignDocument:
        """Merge requirements, decisions and related ADRs into the document.

        Entries already present are not added twice.
        """
        validate_task_id(task_id)
        try:
            with log_operation("populate_from_context", task_id=task_id):
                doc = self._read_design_doc(task_id)

                decisions = self.extract_from_communications(task_id)
                try:
                    comms = self.communications.get_all_communications(task_id)
                except OSError as e:
                    raise CommunicationStoreError("loading requirements", str(e), task_id) from e
                requirements = [
                    requirement_from(comm) for comm in comms if comm.has_tag(CommunicationTag.REQUIREMENT)
                ]
                adrs = self.find_related_adrs(task_id)

                known_decisions = {(d.decision, d.source) for d in doc.technical_decisions}
                added_decisions = 0
                for decision in decisions:
                    key = (decision.decision, decision.source)
                    if key not in known_decisions:
                        doc.technical_decisions.append(decision)
                        known_decisions.add(key)
                        added_decisions += 1

                added_requirements = _extend_unique(doc.stakeholder_requirements, requirements)
                added_adrs = _extend_unique(doc.related_adrs, adrs)

                doc.touch()
                self._write_design_doc(doc)
                log_design_doc_event(
                    "populated",
                    task_id,
                    decisions_added=added_decisions,
                    requirements_added=added_requirements,
                    adrs_added=added_adrs,
                )
                return doc
        except Exception as e:
            log_error_with_context(e, {"operation": "populate_from_context", "task_id": task_id})
            raise

    def generate_architecture_diagram(self, task_id: str) -> str:
        """Mermaid diagram built from the document's components."""
        return codec.generate_architecture_diagram(self.get_design_doc(task_id))


def _extend_unique(target: List[str], items: List[str]) -> int:
    added = 0
    for item in items:
        if item not in target:
            target.append(item)
            added += 1
    return added
