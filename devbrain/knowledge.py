"""Knowledge a finished task leaves behind in its design document."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .codec import is_placeholder
from .models import TaskDesignDocument


@dataclass(slots=True)
class DesignKnowledge:
    """Decision texts and learnings worth carrying into the wiki or new ADRs."""

    decisions: List[str] = field(default_factory=list)
    learnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {"decisions": list(self.decisions), "learnings": list(self.learnings)}


def extract_design_knowledge(doc: TaskDesignDocument) -> DesignKnowledge:
    """Collect decisions and learnings from ``doc``.

    Template text such as the scaffold overview or a ``[TBD]`` purpose is
    not a learning.
    """
    knowledge = DesignKnowledge()
    knowledge.decisions = [d.decision for d in doc.technical_decisions if d.decision.strip()]

    overview = doc.overview.strip()
    if overview and not is_placeholder(overview):
        knowledge.learnings.append(overview)

    for component in doc.components:
        purpose = component.purpose.strip()
        if purpose and not is_placeholder(purpose):
            knowledge.learnings.append(f"{component.name}: {purpose}")

    return knowledge
