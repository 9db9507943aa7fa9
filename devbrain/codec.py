"""Markdown codec for task design documents.

``format_design_doc`` renders a :class:`TaskDesignDocument` as markdown and
``parse_design_doc`` reads it back. Parsing happens in two passes: the text
is first split into ``(header, body)`` sections on level-two headings, then
each section body goes through a typed extractor (bullet list, component
list, decision table). Nothing in this module touches the filesystem.

Parsing is forgiving. Rows that are too short are dropped, dates that fail
to parse become ``None`` and missing sections yield empty values, so a
hand-edited document never raises.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .models import ComponentDescription, TaskDesignDocument, TechnicalDecision

TITLE_HEADING = "Technical Design:"
TITLE_PREFIX = f"# {TITLE_HEADING}"
TASK_FIELD = "**Task:**"
LAST_UPDATED_FIELD = "**Last Updated:**"

OVERVIEW_HEADER = "Overview"
ARCHITECTURE_HEADER = "Architecture"
COMPONENTS_HEADER = "Components"
DECISIONS_HEADER = "Technical Decisions"
RELATED_ADRS_HEADER = "Related ADRs"
REQUIREMENTS_HEADER = "Stakeholder Requirements"

OVERVIEW_PLACEHOLDER = "[Brief description of what this task accomplishes technically]"
DEFAULT_ARCHITECTURE = "graph TB\n    A[Component A] --> B[Component B]"
NO_COMPONENTS_DIAGRAM = "graph TB\n    Note[No components defined yet]"
DIAGRAM_LANGUAGE = "mermaid"

PURPOSE_FIELD = "- **Purpose:**"
INTERFACES_FIELD = "- **Interfaces:**"
DEPENDENCIES_FIELD = "- **Dependencies:**"

DECISION_COLUMNS = ("Decision", "Rationale", "Source", "Date")
MIN_DECISION_CELLS = len(DECISION_COLUMNS)
DATE_FORMAT = "%Y-%m-%d"

FOOTER = "---\n*This document is maintained by DevBrain and updated as work progresses.*\n"

_UNESCAPED_PIPE = re.compile(r"(?<!\\)\|")
_SEPARATOR_CELL = re.compile(r"^:?-+:?$")
_NON_IDENTIFIER = re.compile(r"[^A-Za-z0-9]+")


def is_placeholder(text: str) -> bool:
    """True for bracketed template text such as ``[To be filled]``."""
    stripped = (text or "").strip()
    return stripped.startswith("[") and stripped.endswith("]")


# ---------------------------------------------------------------------------
# Section tokenizer
# ---------------------------------------------------------------------------


def split_sections(content: str) -> Tuple[str, List[Tuple[str, str]]]:
    """Split markdown into a preamble and ``(header, body)`` pairs.

    A section starts at a ``## `` line and runs to the next one or the end
    of the text. Lines inside fenced code blocks never start a section.
    """
    preamble: List[str] = []
    sections: List[Tuple[str, List[str]]] = []
    in_fence = False

    for line in content.splitlines():
        if line.lstrip().startswith("```"):
            in_fence = not in_fence
        elif not in_fence and line.startswith("## "):
            sections.append((line[3:].strip(), []))
            continue

        if sections:
            sections[-1][1].append(line)
        else:
            preamble.append(line)

    return "\n".join(preamble), [(header, "\n".join(body).strip()) for header, body in sections]


def _section_map(sections: List[Tuple[str, str]]) -> Dict[str, str]:
    mapped: Dict[str, str] = {}
    for header, body in sections:
        mapped.setdefault(header, body)
    return mapped


def extract_section(content: str, header: str) -> str:
    """Body of the first ``## {header}`` section, or ``""``."""
    _, sections = split_sections(content)
    return _section_map(sections).get(header, "")


def extract_metadata_field(content: str, prefix: str) -> str:
    """Value after the first line starting with ``prefix`` (e.g. ``**Task:**``)."""
    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith(prefix):
            return stripped[len(prefix):].strip()
    return ""


def extract_title(content: str) -> str:
    """Text of the first level-one heading."""
    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("# "):
            return stripped[2:].strip()
    return ""


# ---------------------------------------------------------------------------
# Typed extractors
# ---------------------------------------------------------------------------


def parse_bullets(body: str) -> List[str]:
    items = []
    for line in body.splitlines():
        stripped = line.strip()
        if stripped.startswith("- "):
            item = stripped[2:].strip()
            if item:
                items.append(item)
    return items


def parse_fenced_block(body: str) -> str:
    """Contents of the first fenced block in ``body``.

    An unfenced body is returned as is; an unterminated fence yields ``""``.
    """
    lines = body.splitlines()
    for start, line in enumerate(lines):
        if line.strip().startswith("```"):
            for end in range(start + 1, len(lines)):
                if lines[end].strip().startswith("```"):
                    return "\n".join(lines[start + 1:end]).strip()
            return ""
    return body.strip()


def _split_list_field(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_components(body: str) -> List[ComponentDescription]:
    components: List[ComponentDescription] = []
    current: Optional[ComponentDescription] = None

    for line in body.splitlines():
        stripped = line.strip()
        if stripped.startswith("### "):
            current = ComponentDescription(name=stripped[4:].strip())
            components.append(current)
        elif current is None:
            continue
        elif stripped.startswith(PURPOSE_FIELD):
            current.purpose = stripped[len(PURPOSE_FIELD):].strip()
        elif stripped.startswith(INTERFACES_FIELD):
            current.interfaces = _split_list_field(stripped[len(INTERFACES_FIELD):])
        elif stripped.startswith(DEPENDENCIES_FIELD):
            current.dependencies = _split_list_field(stripped[len(DEPENDENCIES_FIELD):])

    return components


def escape_cell(value: str) -> str:
    """Make ``value`` safe for a single markdown table cell."""
    text = (value or "").replace("\r\n", "\n").replace("|", "\\|")
    return text.replace("\n", "<br>")


def unescape_cell(value: str) -> str:
    return value.replace("<br>", "\n").replace("\\|", "|")


def split_table_row(line: str) -> List[str]:
    inner = line.strip()
    if inner.startswith("|"):
        inner = inner[1:]
    if inner.endswith("|") and not inner.endswith("\\|"):
        inner = inner[:-1]
    return [unescape_cell(cell.strip()) for cell in _UNESCAPED_PIPE.split(inner)]


def _is_separator_row(cells: List[str]) -> bool:
    return all(_SEPARATOR_CELL.match(cell) for cell in cells if cell) and any(cells)


def _is_header_row(cells: List[str]) -> bool:
    return tuple(cell.lower() for cell in cells[:MIN_DECISION_CELLS]) == tuple(
        column.lower() for column in DECISION_COLUMNS
    )


def parse_decision_date(value: str):
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        return None


def parse_decision_table(body: str) -> List[TechnicalDecision]:
    """Rows of the Technical Decisions table.

    Header and separator rows are skipped, as are rows with fewer than four
    cells or a blank decision cell.
    """
    decisions: List[TechnicalDecision] = []
    for line in body.splitlines():
        if not line.strip().startswith("|"):
            continue
        cells = split_table_row(line)
        if len(cells) < MIN_DECISION_CELLS or _is_separator_row(cells) or _is_header_row(cells):
            continue
        decision, rationale, source, date_cell = cells[:MIN_DECISION_CELLS]
        if not decision.strip():
            continue
        decisions.append(
            TechnicalDecision(
                decision=decision,
                rationale=rationale,
                source=source,
                date=parse_decision_date(date_cell),
            )
        )
    return decisions


# ---------------------------------------------------------------------------
# Document level
# ---------------------------------------------------------------------------


def parse_design_doc(task_id: str, content: str) -> TaskDesignDocument:
    """Parse ``content`` into a design document owned by ``task_id``.

    The task id is taken from the caller; any ``**Task:**`` line in the
    text is informational only.
    """
    preamble, sections = split_sections(content)
    bodies = _section_map(sections)

    title = extract_title(preamble)
    if title.startswith(TITLE_HEADING):
        title = title[len(TITLE_HEADING):].strip()

    last_updated = None
    raw_updated = extract_metadata_field(preamble, LAST_UPDATED_FIELD)
    if raw_updated:
        try:
            last_updated = datetime.fromisoformat(raw_updated)
        except ValueError:
            last_updated = None

    return TaskDesignDocument(
        task_id=task_id,
        title=title or task_id,
        overview=bodies.get(OVERVIEW_HEADER, ""),
        architecture=parse_fenced_block(bodies.get(ARCHITECTURE_HEADER, "")),
        components=parse_components(bodies.get(COMPONENTS_HEADER, "")),
        technical_decisions=parse_decision_table(bodies.get(DECISIONS_HEADER, "")),
        related_adrs=parse_bullets(bodies.get(RELATED_ADRS_HEADER, "")),
        stakeholder_requirements=parse_bullets(bodies.get(REQUIREMENTS_HEADER, "")),
        last_updated=last_updated,
    )


def _format_decision_row(decision: TechnicalDecision) -> str:
    date_cell = decision.date.strftime(DATE_FORMAT) if decision.date else ""
    cells = [decision.decision, decision.rationale, decision.source, date_cell]
    return "| " + " | ".join(escape_cell(cell) for cell in cells) + " |"


def format_design_doc(doc: TaskDesignDocument) -> str:
    """Render ``doc`` as deterministic markdown."""
    lines: List[str] = [f"{TITLE_PREFIX} {doc.title or doc.task_id}", ""]
    lines.append(f"{TASK_FIELD} {doc.task_id}")
    if doc.last_updated:
        lines.append(f"{LAST_UPDATED_FIELD} {doc.last_updated.isoformat(timespec='seconds')}")
    lines.append("")

    lines += [f"## {OVERVIEW_HEADER}", "", doc.overview or OVERVIEW_PLACEHOLDER, ""]

    lines += [
        f"## {ARCHITECTURE_HEADER}",
        "",
        f"```{DIAGRAM_LANGUAGE}",
        doc.architecture or DEFAULT_ARCHITECTURE,
        "```",
        "",
    ]

    lines += [f"## {COMPONENTS_HEADER}", ""]
    for component in doc.components:
        lines.append(f"### {component.name}")
        lines.append(f"{PURPOSE_FIELD} {component.purpose}".rstrip())
        if component.interfaces:
            lines.append(f"{INTERFACES_FIELD} {', '.join(component.interfaces)}")
        if component.dependencies:
            lines.append(f"{DEPENDENCIES_FIELD} {', '.join(component.dependencies)}")
        lines.append("")

    lines += [
        f"## {DECISIONS_HEADER}",
        "",
        "| " + " | ".join(DECISION_COLUMNS) + " |",
        "|----------|-----------|--------|------|",
    ]
    lines += [_format_decision_row(decision) for decision in doc.technical_decisions]
    lines.append("")

    lines += [f"## {RELATED_ADRS_HEADER}", ""]
    lines += [f"- {adr}" for adr in doc.related_adrs]
    lines.append("")

    lines += [f"## {REQUIREMENTS_HEADER}", ""]
    lines += [f"- {requirement}" for requirement in doc.stakeholder_requirements]
    lines.append("")

    return "\n".join(lines) + "\n" + FOOTER


def scaffold_design_doc(task_id: str) -> TaskDesignDocument:
    """A fresh document: placeholder overview and diagram, empty lists."""
    doc = TaskDesignDocument(
        task_id=task_id,
        overview=OVERVIEW_PLACEHOLDER,
        architecture=DEFAULT_ARCHITECTURE,
    )
    doc.touch()
    return doc


# ---------------------------------------------------------------------------
# Diagrams
# ---------------------------------------------------------------------------


def sanitize_for_mermaid(name: str) -> str:
    """Mermaid node id for ``name``: runs of non-alphanumerics become ``_``."""
    return _NON_IDENTIFIER.sub("_", name).strip("_")


def generate_architecture_diagram(doc: TaskDesignDocument) -> str:
    """Mermaid ``graph TB`` source with one node per component and one edge per dependency."""
    if not doc.components:
        return NO_COMPONENTS_DIAGRAM

    lines = ["graph TB"]
    seen = set()
    for component in doc.components:
        node = sanitize_for_mermaid(component.name)
        if not node or node in seen:
            continue
        seen.add(node)
        label = component.name.replace('"', "'")
        lines.append(f'    {node}["{label}"]')

    for component in doc.components:
        node = sanitize_for_mermaid(component.name)
        if not node:
            continue
        for dependency in component.dependencies:
            target = sanitize_for_mermaid(dependency)
            if target:
                lines.append(f"    {node} --> {target}")

    return "\n".join(lines) + "\n"
