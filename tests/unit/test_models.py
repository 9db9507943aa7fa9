"""Unit tests for DevBrain models.

This module tests the core data structures, their validation and
serialization, and the section update variants.
"""

from datetime import date, datetime, timezone

import pytest

from devbrain.errors import EmptyUpdateError, UnknownSectionError
from devbrain.models import (
    SEVERITY_BY_TYPE,
    UPDATE_SECTIONS,
    ArchitectureUpdate,
    Communication,
    CommunicationTag,
    ComponentAppend,
    ComponentDescription,
    Conflict,
    ConflictType,
    DecisionAppend,
    OverviewUpdate,
    Severity,
    TaskDesignDocument,
    TechnicalDecision,
    design_update,
)


class TestTaskDesignDocument:
    """Test cases for TaskDesignDocument."""

    def test_title_defaults_to_task_id(self):
        """Test that an untitled document takes its task id as title."""
        doc = TaskDesignDocument(task_id="TASK-00001")

        assert doc.title == "TASK-00001"
        assert doc.components == []
        assert doc.technical_decisions == []
        assert doc.last_updated is None

    def test_to_dict(self):
        """Test dictionary conversion."""
        doc = TaskDesignDocument(
            task_id="TASK-00001",
            overview="Adds login",
            components=[ComponentDescription(name="Auth", purpose="Issue tokens")],
            technical_decisions=[TechnicalDecision(decision="Use JWT", date=date(2026, 1, 15))],
            last_updated=datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc),
        )

        data = doc.to_dict()

        assert data["task_id"] == "TASK-00001"
        assert data["components"][0]["name"] == "Auth"
        assert data["technical_decisions"][0]["date"] == "2026-01-15"
        assert data["last_updated"] == "2026-01-15T10:00:00+00:00"

    def test_touch_drops_microseconds(self):
        """Test that touch records a second-precision timestamp."""
        doc = TaskDesignDocument(task_id="TASK-00001")
        doc.touch(datetime(2026, 1, 15, 10, 0, 0, 123456, tzinfo=timezone.utc))

        assert doc.last_updated == datetime(2026, 1, 15, 10, 0, 0, tzinfo=timezone.utc)

    def test_validate(self):
        """Test document validation."""
        doc = TaskDesignDocument(
            task_id="TASK-00001",
            components=[ComponentDescription(name=" ")],
            technical_decisions=[TechnicalDecision(decision=""), TechnicalDecision(decision="ok")],
        )

        issues = doc.validate()

        assert "Component name is required" in issues
        assert "Decision 1: Decision text is required" in issues
        assert len(issues) == 2

    def test_adr_candidate_requires_source(self):
        """Test that ADR candidates must be attributed."""
        decision = TechnicalDecision(decision="Use JWT", adr_candidate=True)
        assert decision.validate() == ["ADR candidates must carry a source"]


class TestDesignUpdates:
    """Test cases for the section update variants."""

    def test_replace_updates(self):
        """Test overview and architecture replacement."""
        doc = TaskDesignDocument(task_id="T", overview="old", architecture="old")

        OverviewUpdate("new overview").apply(doc)
        ArchitectureUpdate("graph LR\n    A --> B").apply(doc)

        assert doc.overview == "new overview"
        assert doc.architecture == "graph LR\n    A --> B"

    def test_append_updates(self):
        """Test decision and component appends."""
        doc = TaskDesignDocument(task_id="T")

        DecisionAppend("Use JWT").apply(doc)
        ComponentAppend("Auth Service").apply(doc)

        assert doc.technical_decisions[0].decision == "Use JWT"
        assert doc.technical_decisions[0].date == date.today()
        assert doc.technical_decisions[0].adr_candidate is False
        assert doc.components[0].name == "Auth Service"
        assert doc.components[0].purpose == ""

    @pytest.mark.parametrize("section", sorted(UPDATE_SECTIONS))
    def test_design_update_dispatch(self, section):
        """Test building updates by section name."""
        update = design_update(section, "content")
        assert isinstance(update, UPDATE_SECTIONS[section])
        assert update.content == "content"

    def test_unknown_section(self):
        """Test that an unknown section is rejected."""
        with pytest.raises(UnknownSectionError) as exc_info:
            design_update("summary", "content", task_id="TASK-00001")

        assert exc_info.value.section == "summary"
        assert exc_info.value.task_id == "TASK-00001"
        assert isinstance(exc_info.value, ValueError)
        assert "summary" in str(exc_info.value)

    def test_section_names_are_case_sensitive(self):
        """Test that section names must match exactly."""
        with pytest.raises(UnknownSectionError):
            design_update("Overview", "content")

    def test_blank_appends_are_rejected(self):
        """Test that decisions and components need text."""
        with pytest.raises(EmptyUpdateError) as exc_info:
            design_update("components", "  ", task_id="TASK-00001")

        assert exc_info.value.section == "components"
        assert exc_info.value.task_id == "TASK-00001"
        assert isinstance(exc_info.value, ValueError)

        with pytest.raises(EmptyUpdateError):
            DecisionAppend("")
        with pytest.raises(EmptyUpdateError):
            ComponentAppend("\t")

    def test_blank_replacements_are_allowed(self):
        """Test that overview and architecture may be cleared."""
        assert design_update("overview", "").content == ""
        assert design_update("architecture", " ").content == " "


class TestCommunication:
    """Test cases for Communication."""

    def test_has_tag_is_case_insensitive(self):
        """Test tag matching."""
        comm = Communication(content="x", tags=["Decision", "blocker"])

        assert comm.has_tag(CommunicationTag.DECISION)
        assert comm.has_tag("blocker")
        assert not comm.has_tag(CommunicationTag.REQUIREMENT)

    def test_has_tag_with_enum_members(self):
        """Test tag matching when tags are CommunicationTag members."""
        comm = Communication(content="x", tags=[CommunicationTag.DECISION, "Requirement"])

        assert comm.has_tag(CommunicationTag.DECISION)
        assert comm.has_tag("decision")
        assert comm.has_tag(CommunicationTag.REQUIREMENT)
        assert not comm.has_tag(CommunicationTag.BLOCKER)
        assert comm.to_dict()["tags"] == ["decision", "Requirement"]

    @pytest.mark.parametrize(
        "source, contact, expected",
        [
            ("slack", "john", "slack-john"),
            ("slack", "", "slack"),
            ("", "john", "john"),
            ("", "", "communication"),
        ],
    )
    def test_attribution(self, source, contact, expected):
        """Test decision attribution from source and contact."""
        assert Communication(content="x", source=source, contact=contact).attribution() == expected

    def test_from_dict(self):
        """Test creating from a dictionary."""
        comm = Communication.from_dict({
            "content": "Use JWT",
            "source": "slack",
            "contact": "john",
            "topic": "Auth",
            "date": "2026-01-15",
            "tags": ["decision"],
        })

        assert comm.date == date(2026, 1, 15)
        assert comm.to_dict()["tags"] == ["decision"]
        assert Communication.from_dict({"content": "x"}).date is None


class TestConflict:
    """Test cases for Conflict and the severity mapping."""

    def test_severity_mapping_is_total(self):
        """Test that every conflict type has a severity."""
        assert set(SEVERITY_BY_TYPE) == set(ConflictType)
        assert SEVERITY_BY_TYPE[ConflictType.ADR_VIOLATION] is Severity.HIGH
        assert SEVERITY_BY_TYPE[ConflictType.PREVIOUS_DECISION] is Severity.MEDIUM
        assert SEVERITY_BY_TYPE[ConflictType.STAKEHOLDER_REQUIREMENT] is Severity.LOW

    def test_valid_conflict(self):
        """Test a complete conflict record."""
        conflict = Conflict(
            type=ConflictType.ADR_VIOLATION,
            source="ADR-0001",
            description="Shares terms",
            recommendation="Review ADR-0001",
            severity=Severity.HIGH,
        )

        assert conflict.validate() == []
        assert conflict.to_dict()["type"] == "adr_violation"
        assert conflict.to_dict()["severity"] == "high"

    def test_invalid_conflict(self):
        """Test that missing fields are reported."""
        conflict = Conflict(
            type="other",
            source="",
            description="",
            recommendation="",
            severity="urgent",
        )

        issues = conflict.validate()

        assert len(issues) == 5
