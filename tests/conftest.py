"""Shared fixtures for DevBrain tests."""

from datetime import date

import pytest

from devbrain import codec
from devbrain.adr import adr_id_from_filename
from devbrain.devbrain_logging import observability_hooks, performance_monitor
from devbrain.models import TaskDesignDocument, TechnicalDecision


@pytest.fixture
def workspace_root(tmp_path):
    """An empty workspace directory."""
    return tmp_path


@pytest.fixture
def write_adr(workspace_root):
    """Write an ADR into docs/decisions and return its path."""

    def _write(filename, title, decision, source="", status="Accepted"):
        decisions_dir = workspace_root / "docs" / "decisions"
        decisions_dir.mkdir(parents=True, exist_ok=True)
        adr_id = adr_id_from_filename(filename)
        content = (
            f"# {adr_id}: {title}\n"
            "\n"
            f"**Status:** {status}\n"
            "**Date:** 2026-01-15\n"
            f"**Source:** {source}\n"
            "\n"
            "## Context\n"
            "\n"
            "Recorded while working on the task.\n"
            "\n"
            "## Decision\n"
            "\n"
            f"{decision}\n"
            "\n"
            "## Consequences\n"
            "\n"
            "- Follow-up work may be needed.\n"
        )
        path = decisions_dir / filename
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_design_doc(workspace_root):
    """Write a design.md with the given decisions for a task."""

    def _write(task_id, decisions, archived=False):
        base = workspace_root / "tickets"
        if archived:
            base = base / "_archived"
        directory = base / task_id
        directory.mkdir(parents=True, exist_ok=True)
        doc = TaskDesignDocument(
            task_id=task_id,
            overview=f"Work for {task_id}",
            technical_decisions=[
                TechnicalDecision(
                    decision=decision,
                    rationale=rationale,
                    source="slack-john",
                    date=date(2026, 1, 15),
                )
                for decision, rationale in decisions
            ],
        )
        path = directory / "design.md"
        path.write_text(codec.format_design_doc(doc), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_wiki(workspace_root):
    """Write a wiki page into docs/wiki and return its path."""

    def _write(filename, content):
        wiki_dir = workspace_root / "docs" / "wiki"
        wiki_dir.mkdir(parents=True, exist_ok=True)
        path = wiki_dir / filename
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def captured_events():
    """Record observability events fired during a test."""
    events = []
    registered = []

    def _capture(*event_types):
        for event_type in event_types:
            def hook(_event_type=event_type, **data):
                events.append((_event_type, data))
            observability_hooks.register_hook(event_type, hook)
            registered.append((event_type, hook))
        return events

    yield _capture

    for event_type, hook in registered:
        observability_hooks.unregister_hook(event_type, hook)


@pytest.fixture(autouse=True)
def reset_performance_metrics():
    performance_monitor.clear()
    yield
    performance_monitor.clear()
