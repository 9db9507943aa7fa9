"""Detect proposed changes that contradict recorded knowledge.

Candidate knowledge comes from three corpora, each behind a
:class:`CandidateSource`:

* ADRs in ``docs/decisions`` (``ADR_VIOLATION``, high severity)
* other tasks' Technical Decisions tables (``PREVIOUS_DECISION``, medium)
* wiki pages in ``docs/wiki`` (``STAKEHOLDER_REQUIREMENT``, low)

A candidate is flagged when it shares enough keywords with the proposal.
Overlap is purely lexical: lowercase alphanumeric runs, minus short words
and stop words. Sources are scanned on every call; a missing corpus
directory contributes nothing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Protocol, Sequence, Set, Union

from . import codec
from .adr import list_markdown_files, parse_adr
from .devbrain_logging import log_conflict_check, log_error_with_context, log_operation
from .errors import ConflictCheckError
from .models import SEVERITY_BY_TYPE, Conflict, ConflictContext, ConflictType
from .ticketpath import iter_ticket_dirs
from .workspace import ConflictSettings, Workspace

logger = logging.getLogger("devbrain.conflicts")

SNIPPET_LENGTH = 200

_TOKEN = re.compile(r"[a-z0-9]+")


def tokenize(text: str) -> List[str]:
    return _TOKEN.findall((text or "").lower())


def extract_keywords(text: str, settings: Optional[ConflictSettings] = None) -> Set[str]:
    """Significant tokens of ``text`` as a set."""
    settings = settings or ConflictSettings()
    return {
        token
        for token in tokenize(text)
        if len(token) >= settings.min_keyword_length and token not in settings.stop_words
    }


def truncate(text: str, limit: int = SNIPPET_LENGTH) -> str:
    flat = " ".join(text.split())
    if len(flat) <= limit:
        return flat
    return flat[:limit].rstrip() + "..."


@dataclass(slots=True)
class Candidate:
    """One unit of prior knowledge to score against a proposal."""

    type: ConflictType
    source: str
    text: str
    title: str = ""
    location: str = ""


class CandidateSource(Protocol):
    def candidates(self, context: ConflictContext) -> Iterator[Candidate]:
        ...


def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def _read_corpus_file(path: Path, operation: str, task_id: str) -> Optional[str]:
    """File contents, or ``None`` when the file is absent or not a file.

    Any other ``OSError`` is raised as :class:`ConflictCheckError`.
    """
    try:
        return path.read_text(encoding="utf-8")
    except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
        return None
    except UnicodeDecodeError as e:
        logger.warning(f"Skipping {path}: not valid UTF-8 ({e})")
        return None
    except OSError as e:
        raise ConflictCheckError(operation, f"{path}: {e}", task_id) from e


class AdrCandidateSource:
    """Title and Decision section of every ADR still in force."""

    operation = "checking ADR conflicts"

    def __init__(self, decisions_dir: Path, root: Path):
        self.decisions_dir = decisions_dir
        self.root = root

    def candidates(self, context: ConflictContext) -> Iterator[Candidate]:
        try:
            paths = list_markdown_files(self.decisions_dir)
        except OSError as e:
            raise ConflictCheckError(self.operation, f"{self.decisions_dir}: {e}", context.task_id) from e

        for path in paths:
            content = _read_corpus_file(path, self.operation, context.task_id)
            if content is None:
                continue
            record = parse_adr(path, content)
            if not record.is_active:
                logger.debug(f"Ignoring {record.adr_id} with status {record.status}")
                continue
            text = "\n".join(part for part in (record.title, record.decision) if part)
            if not text:
                continue
            yield Candidate(
                type=ConflictType.ADR_VIOLATION,
                source=record.adr_id,
                text=text,
                title=record.title or record.adr_id,
                location=_relative(path, self.root),
            )


class DesignDecisionCandidateSource:
    """Technical Decisions rows from every other task's design.md."""

    operation = "checking previous decisions"

    def __init__(self, root: Path):
        self.root = root

    def candidates(self, context: ConflictContext) -> Iterator[Candidate]:
        try:
            tickets = list(iter_ticket_dirs(self.root))
        except OSError as e:
            raise ConflictCheckError(self.operation, str(e), context.task_id) from e

        for task_id, directory in tickets:
            if task_id == context.task_id:
                continue
            path = directory / Workspace.DESIGN_DOC_NAME
            content = _read_corpus_file(path, self.operation, context.task_id)
            if content is None:
                continue
            for decision in codec.parse_design_doc(task_id, content).technical_decisions:
                text = decision.decision
                if decision.rationale:
                    text = f"{text}\n{decision.rationale}"
                yield Candidate(
                    type=ConflictType.PREVIOUS_DECISION,
                    source=task_id,
                    text=text,
                    title=decision.decision,
                    location=_relative(path, self.root),
                )


def requirement_text(content: str) -> str:
    """Requirement sections of a wiki page, or the whole page if it has none."""
    _, sections = codec.split_sections(content)
    bodies = [body for header, body in sections if "requirement" in header.lower()]
    if bodies:
        return "\n".join(bodies)
    return content


class WikiCandidateSource:
    """Requirement-bearing text of each wiki page."""

    operation = "checking stakeholder requirements"

    def __init__(self, wiki_dir: Path, root: Path):
        self.wiki_dir = wiki_dir
        self.root = root

    def candidates(self, context: ConflictContext) -> Iterator[Candidate]:
        try:
            paths = list_markdown_files(self.wiki_dir)
        except OSError as e:
            raise ConflictCheckError(self.operation, f"{self.wiki_dir}: {e}", context.task_id) from e

        for path in paths:
            content = _read_corpus_file(path, self.operation, context.task_id)
            if content is None:
                continue
            text = requirement_text(content)
            if not text.strip():
                continue
            location = _relative(path, self.root)
            yield Candidate(
                type=ConflictType.STAKEHOLDER_REQUIREMENT,
                source=location,
                text=text,
                title=codec.extract_title(content) or path.name,
                location=location,
            )


def default_sources(workspace: Workspace) -> List[CandidateSource]:
    return [
        AdrCandidateSource(workspace.decisions_dir, workspace.root),
        DesignDecisionCandidateSource(workspace.root),
        WikiCandidateSource(workspace.wiki_dir, workspace.root),
    ]


def build_conflict(candidate: Candidate, shared: Sequence[str]) -> Conflict:
    """Describe a flagged candidate."""
    terms = ", ".join(shared)
    if candidate.type is ConflictType.ADR_VIOLATION:
        description = (
            f"Proposed changes may conflict with {candidate.source} \"{candidate.title}\" "
            f"(shared terms: {terms}): {truncate(candidate.text)}"
        )
        recommendation = (
            f"Review {candidate.source} ({candidate.location}) and confirm the change aligns with "
            f"the accepted decision, or record a new ADR that supersedes it."
        )
    elif candidate.type is ConflictType.PREVIOUS_DECISION:
        description = (
            f"Proposed changes may conflict with a decision recorded in task {candidate.source} "
            f"(shared terms: {terms}): {truncate(candidate.text)}"
        )
        recommendation = (
            f"Review the Technical Decisions in {candidate.location} before proceeding, "
            f"and coordinate with the owner of {candidate.source} if the decision must change."
        )
    else:
        description = (
            f"Proposed changes may conflict with stakeholder requirements in {candidate.source} "
            f"\"{candidate.title}\" (shared terms: {terms})"
        )
        recommendation = (
            f"Review {candidate.source} and confirm the proposed changes still satisfy "
            f"the documented requirements."
        )

    return Conflict(
        type=candidate.type,
        source=candidate.source,
        description=description,
        recommendation=recommendation,
        severity=SEVERITY_BY_TYPE[candidate.type],
        shared_terms=list(shared),
    )


class ConflictDetector:
    """Check proposed changes against ADRs, other tasks' decisions and the wiki."""

    def __init__(
        self,
        root: Union[Workspace, Path, str],
        settings: Optional[ConflictSettings] = None,
        sources: Optional[Iterable[CandidateSource]] = None,
    ):
        self.workspace = root if isinstance(root, Workspace) else Workspace(root)
        self.settings = settings or ConflictSettings()
        self.sources = list(sources) if sources is not None else default_sources(self.workspace)

    def score(self, proposal_keywords: Set[str], candidate: Candidate) -> List[str]:
        """Keywords shared by the proposal and ``candidate``, sorted."""
        return sorted(proposal_keywords & extract_keywords(candidate.text, self.settings))

    def check_for_conflicts(self, context: ConflictContext) -> List[Conflict]:
        """Conflicts between ``context.proposed_changes`` and recorded knowledge.

        The requesting task's own decisions are never reported. Missing
        corpora yield nothing.

        Raises:
            ConflictCheckError: an existing corpus entry could not be read.
        """
        proposal_keywords = extract_keywords(context.proposed_changes, self.settings)
        conflicts: List[Conflict] = []
        scanned = 0

        try:
            with log_operation(
                "check_for_conflicts",
                task_id=context.task_id,
                affected_files=len(context.affected_files),
            ):
                if len(proposal_keywords) >= self.settings.min_shared_keywords:
                    for source in self.sources:
                        for candidate in source.candidates(context):
                            scanned += 1
                            if (
                                candidate.type is ConflictType.PREVIOUS_DECISION
                                and candidate.source == context.task_id
                            ):
                                continue
                            shared = self.score(proposal_keywords, candidate)
                            if len(shared) >= self.settings.min_shared_keywords:
                                conflicts.append(build_conflict(candidate, shared))
        except Exception as e:
            log_error_with_context(e, {"operation": "check_for_conflicts", "task_id": context.task_id})
            raise

        log_conflict_check(context.task_id, len(conflicts), candidates_scanned=scanned)
        return conflicts
