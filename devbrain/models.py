"""Data models for DevBrain design documents and conflict detection.

This module contains the typed values that flow between the document
codec, the design document store and the conflict detector: the per-task
design document, its components and decisions, section updates,
stakeholder communications and conflict records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .errors import EmptyUpdateError, UnknownSectionError


@dataclass(slots=True)
class ComponentDescription:
    """One component listed in a design document."""

    name: str
    purpose: str = ""
    interfaces: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "purpose": self.purpose,
            "interfaces": list(self.interfaces),
            "dependencies": list(self.dependencies),
        }


@dataclass(slots=True)
class TechnicalDecision:
    """A row of the Technical Decisions table.

    ``date`` is ``None`` when the decision carries no date or the stored
    value could not be parsed. ``adr_candidate`` is not persisted.
    """

    decision: str
    rationale: str = ""
    source: str = ""
    date: Optional[date] = None
    adr_candidate: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "decision": self.decision,
            "rationale": self.rationale,
            "source": self.source,
            "date": self.date.isoformat() if self.date else None,
            "adr_candidate": self.adr_candidate,
        }

    def validate(self) -> List[str]:
        """Validate the decision and return any issues."""
        issues = []

        if not self.decision or not self.decision.strip():
            issues.append("Decision text is required")
        if self.adr_candidate and not self.source:
            issues.append("ADR candidates must carry a source")

        return issues


@dataclass(slots=True)
class TaskDesignDocument:
    """Structured contents of ``tickets/{task_id}/design.md``."""

    task_id: str
    title: str = ""
    overview: str = ""
    architecture: str = ""
    components: List[ComponentDescription] = field(default_factory=list)
    technical_decisions: List[TechnicalDecision] = field(default_factory=list)
    related_adrs: List[str] = field(default_factory=list)
    stakeholder_requirements: List[str] = field(default_factory=list)
    last_updated: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.title:
            self.title = self.task_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "task_id": self.task_id,
            "title": self.title,
            "overview": self.overview,
            "architecture": self.architecture,
            "components": [component.to_dict() for component in self.components],
            "technical_decisions": [decision.to_dict() for decision in self.technical_decisions],
            "related_adrs": list(self.related_adrs),
            "stakeholder_requirements": list(self.stakeholder_requirements),
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }

    def validate(self) -> List[str]:
        """Validate the document and return any issues."""
        issues = []

        if not self.task_id:
            issues.append("Task ID is required")
        for component in self.components:
            if not component.name.strip():
                issues.append("Component name is required")
        for index, decision in enumerate(self.technical_decisions, 1):
            issues.extend(f"Decision {index}: {issue}" for issue in decision.validate())

        return issues

    def touch(self, when: Optional[datetime] = None) -> None:
        """Bump ``last_updated`` to ``when`` or now, second precision."""
        self.last_updated = (when or datetime.now().astimezone()).replace(microsecond=0)


# ---------------------------------------------------------------------------
# Section updates
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class OverviewUpdate:
    """Replace the overview text."""

    content: str

    def apply(self, doc: TaskDesignDocument) -> None:
        doc.overview = self.content


@dataclass(slots=True, frozen=True)
class ArchitectureUpdate:
    """Replace the architecture diagram source."""

    content: str

    def apply(self, doc: TaskDesignDocument) -> None:
        doc.architecture = self.content


@dataclass(slots=True, frozen=True)
class DecisionAppend:
    """Append one technical decision."""

    content: str

    def __post_init__(self):
        if not self.content.strip():
            raise EmptyUpdateError("decisions")

    def apply(self, doc: TaskDesignDocument) -> None:
        doc.technical_decisions.append(TechnicalDecision(decision=self.content, date=date.today()))


@dataclass(slots=True, frozen=True)
class ComponentAppend:
    """Append one component by name."""

    content: str

    def __post_init__(self):
        if not self.content.strip():
            raise EmptyUpdateError("components")

    def apply(self, doc: TaskDesignDocument) -> None:
        doc.components.append(ComponentDescription(name=self.content))


DesignUpdate = Union[OverviewUpdate, ArchitectureUpdate, DecisionAppend, ComponentAppend]

UPDATE_SECTIONS: Dict[str, type] = {
    "overview": OverviewUpdate,
    "architecture": ArchitectureUpdate,
    "decisions": DecisionAppend,
    "components": ComponentAppend,
}

APPEND_UPDATES = (DecisionAppend, ComponentAppend)


def design_update(section: str, content: str, *, task_id: Optional[str] = None) -> DesignUpdate:
    """Build the update variant for a section name.

    Raises:
        UnknownSectionError: ``section`` is not one of ``UPDATE_SECTIONS``.
        EmptyUpdateError: an append section was given blank ``content``.
    """
    update_cls = UPDATE_SECTIONS.get(section)
    if update_cls is None:
        raise UnknownSectionError(section, task_id)
    if update_cls in APPEND_UPDATES and not content.strip():
        raise EmptyUpdateError(section, task_id)
    return update_cls(content)


# ---------------------------------------------------------------------------
# Communications
# ---------------------------------------------------------------------------


class CommunicationTag(str, Enum):
    REQUIREMENT = "requirement"
    DECISION = "decision"
    BLOCKER = "blocker"
    QUESTION = "question"
    ACTION_ITEM = "action_item"


def _tag_value(tag: Union[CommunicationTag, str]) -> str:
    return tag.value if isinstance(tag, CommunicationTag) else str(tag)


@dataclass(slots=True)
class Communication:
    """A stakeholder communication recorded against a task."""

    content: str
    source: str = ""
    contact: str = ""
    topic: str = ""
    date: Optional[date] = None
    tags: List[str] = field(default_factory=list)

    def has_tag(self, tag: Union[CommunicationTag, str]) -> bool:
        value = tag.value if isinstance(tag, CommunicationTag) else tag
        return any(_tag_value(t).strip().lower() == value for t in self.tags)

    def attribution(self) -> str:
        """``source-contact`` with empty parts dropped, never empty."""
        parts = [part.strip() for part in (self.source, self.contact) if part and part.strip()]
        return "-".join(parts) if parts else "communication"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "content": self.content,
            "source": self.source,
            "contact": self.contact,
            "topic": self.topic,
            "date": self.date.isoformat() if self.date else None,
            "tags": [_tag_value(t) for t in self.tags],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Communication":
        """Create from dictionary representation."""
        raw_date = data.get("date")
        parsed_date: Optional[date] = None
        if isinstance(raw_date, date):
            parsed_date = raw_date
        elif raw_date:
            parsed_date = date.fromisoformat(str(raw_date))
        return cls(
            content=data["content"],
            source=data.get("source", ""),
            contact=data.get("contact", ""),
            topic=data.get("topic", ""),
            date=parsed_date,
            tags=list(data.get("tags", [])),
        )


# ---------------------------------------------------------------------------
# Conflict detection
# ---------------------------------------------------------------------------


class ConflictType(str, Enum):
    ADR_VIOLATION = "adr_violation"
    PREVIOUS_DECISION = "previous_decision"
    STAKEHOLDER_REQUIREMENT = "stakeholder_requirement"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


SEVERITY_BY_TYPE: Dict[ConflictType, Severity] = {
    ConflictType.ADR_VIOLATION: Severity.HIGH,
    ConflictType.PREVIOUS_DECISION: Severity.MEDIUM,
    ConflictType.STAKEHOLDER_REQUIREMENT: Severity.LOW,
}


@dataclass(slots=True)
class ConflictContext:
    """What a caller intends to change."""

    task_id: str
    proposed_changes: str
    affected_files: List[str] = field(default_factory=list)


@dataclass(slots=True)
class Conflict:
    """A piece of recorded knowledge the proposed change may contradict."""

    type: ConflictType
    source: str
    description: str
    recommendation: str
    severity: Severity
    shared_terms: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "type": self.type.value,
            "source": self.source,
            "description": self.description,
            "recommendation": self.recommendation,
            "severity": self.severity.value,
            "shared_terms": list(self.shared_terms),
        }

    def validate(self) -> List[str]:
        """Validate the record and return any issues."""
        issues = []

        if not isinstance(self.type, ConflictType):
            issues.append(f"Invalid conflict type: {self.type}")
        if not self.source:
            issues.append("Source is required")
        if not self.description:
            issues.append("Description is required")
        if not self.recommendation:
            issues.append("Recommendation is required")
        if not isinstance(self.severity, Severity):
            issues.append(f"Invalid severity: {self.severity}")

        return issues
