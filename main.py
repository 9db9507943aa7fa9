"""MCP server exposing DevBrain design document and conflict detection tools."""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from devbrain import (
    Communication,
    ConflictContext,
    ConflictDetector,
    ConflictSettings,
    DesignDocStore,
    FileCommunicationStore,
    Workspace,
    extract_design_knowledge,
)
from devbrain.adr import iter_adrs
from devbrain.devbrain_logging import setup_logging

LOG_LEVEL_ENV = "DEVBRAIN_LOG_LEVEL"
LOG_FILE_ENV = "DEVBRAIN_LOG_FILE"

mcp = FastMCP("devbrain")


def _workspace(root: Optional[str]) -> Workspace:
    return Workspace.from_env(root)


def _store(root: Optional[str]) -> DesignDocStore:
    return DesignDocStore(_workspace(root))


@mcp.tool()
def initialize_design_doc(task_id: str, root: Optional[str] = None) -> Dict[str, Any]:
    """STEP 1: Create tickets/{task_id}/design.md from the standard template.
    Overwrites an existing design document for the task."""

    store = _store(root)
    path = store.initialize_design_doc(task_id)
    return {
        "task_id": task_id,
        "design_doc_path": str(path),
        "next_suggested_step": "populate_design_doc",
        "workflow_tip": "Next: record stakeholder communications, then pull them in with populate_design_doc",
    }


@mcp.tool()
def get_design_doc(task_id: str, root: Optional[str] = None) -> Dict[str, Any]:
    """Return the parsed design document for a task, with the knowledge it records."""

    store = _store(root)
    doc = store.get_design_doc(task_id)
    return {
        "task_id": task_id,
        "design_doc_path": str(store.design_doc_path(task_id)),
        "document": doc.to_dict(),
        "knowledge": extract_design_knowledge(doc).to_dict(),
        "issues": doc.validate(),
    }


@mcp.tool()
def update_design_doc(task_id: str, section: str, content: str, root: Optional[str] = None) -> Dict[str, Any]:
    """Update one section of a design document.

    section: overview or architecture (replace), decisions or components (append one entry)."""

    store = _store(root)
    doc = store.update_section(task_id, section, content)
    return {
        "task_id": task_id,
        "section": section,
        "document": doc.to_dict(),
        "message": f"Design document section '{section}' updated.",
    }


@mcp.tool()
def populate_design_doc(task_id: str, root: Optional[str] = None) -> Dict[str, Any]:
    """STEP 2: Merge decision and requirement communications and related ADRs into the design document."""

    store = _store(root)
    doc = store.populate_from_context(task_id)
    return {
        "task_id": task_id,
        "document": doc.to_dict(),
        "decisions": len(doc.technical_decisions),
        "requirements": len(doc.stakeholder_requirements),
        "related_adrs": list(doc.related_adrs),
        "next_suggested_step": "check_for_conflicts",
    }


@mcp.tool()
def extract_decisions(task_id: str, root: Optional[str] = None) -> Dict[str, Any]:
    """List decision-tagged communications for a task as ADR candidates."""

    store = _store(root)
    decisions = store.extract_from_communications(task_id)
    return {
        "task_id": task_id,
        "decisions": [decision.to_dict() for decision in decisions],
        "count": len(decisions),
    }


@mcp.tool()
def generate_architecture_diagram(task_id: str, root: Optional[str] = None) -> Dict[str, str]:
    """Build a Mermaid diagram from the components listed in a design document."""

    store = _store(root)
    return {"task_id": task_id, "diagram": store.generate_architecture_diagram(task_id)}


@mcp.tool()
def find_related_adrs(task_id: str, root: Optional[str] = None) -> Dict[str, Any]:
    """Links to ADRs whose Source is the given task."""

    store = _store(root)
    return {"task_id": task_id, "related_adrs": store.find_related_adrs(task_id)}


@mcp.tool()
def add_communication(
    task_id: str,
    content: str,
    source: str = "",
    contact: str = "",
    topic: str = "",
    communication_date: Optional[str] = None,
    tags: Optional[List[str]] = None,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """Record a stakeholder communication against a task.

    Tag with "decision" or "requirement" so populate_design_doc picks it up.
    communication_date is YYYY-MM-DD and defaults to today."""

    workspace = _workspace(root)
    comm = Communication.from_dict({
        "content": content,
        "source": source,
        "contact": contact,
        "topic": topic,
        "date": communication_date or date.today(),
        "tags": tags or [],
    })
    path = FileCommunicationStore(workspace.root).add_communication(task_id, comm)
    return {"task_id": task_id, "communication_path": str(path), "communication": comm.to_dict()}


@mcp.tool()
def check_for_conflicts(
    task_id: str,
    proposed_changes: str,
    affected_files: Optional[List[str]] = None,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """STEP 3: Check proposed changes against ADRs, other tasks' decisions and wiki requirements."""

    detector = ConflictDetector(_workspace(root), settings=ConflictSettings.from_env())
    context = ConflictContext(
        task_id=task_id,
        proposed_changes=proposed_changes,
        affected_files=list(affected_files or []),
    )
    conflicts = detector.check_for_conflicts(context)
    return {
        "task_id": task_id,
        "conflicts": [conflict.to_dict() for conflict in conflicts],
        "count": len(conflicts),
        "message": (
            f"Found {len(conflicts)} potential conflicts; review them before proceeding."
            if conflicts
            else "No conflicts found."
        ),
    }


@mcp.resource("devbrain://decisions")
def resource_decisions() -> str:
    """Resource view listing the workspace's ADRs and their status."""

    workspace = _workspace(None)
    records = list(iter_adrs(workspace.decisions_dir))
    if not records:
        return "No ADRs have been recorded yet."

    lines = ["DevBrain ADRs"]
    for record in records:
        lines.append("")
        lines.append(f"- {record.adr_id}: {record.title}")
        if record.status:
            lines.append(f"  Status: {record.status}")
        if record.source:
            lines.append(f"  Source: {record.source}")
    return "\n".join(lines)


def main() -> None:
    log_file = os.getenv(LOG_FILE_ENV)
    setup_logging(
        log_level=os.getenv(LOG_LEVEL_ENV, "INFO").upper(),
        log_file=Path(log_file) if log_file else None,
    )
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
