"""DevBrain - design documents, ADR cross-references and conflict detection."""

from .communications import CommunicationStore, FileCommunicationStore
from .conflicts import ConflictDetector
from .designdoc import DesignDocStore
from .errors import (
    CommunicationStoreError,
    ConflictCheckError,
    DesignDocIOError,
    DesignDocNotFoundError,
    DevBrainError,
    EmptyUpdateError,
    UnknownSectionError,
)
from .knowledge import DesignKnowledge, extract_design_knowledge
from .models import (
    ArchitectureUpdate,
    Communication,
    CommunicationTag,
    ComponentAppend,
    ComponentDescription,
    Conflict,
    ConflictContext,
    ConflictType,
    DecisionAppend,
    OverviewUpdate,
    Severity,
    TaskDesignDocument,
    TechnicalDecision,
)
from .workspace import ConflictSettings, Workspace

__all__ = [
    "ArchitectureUpdate",
    "Communication",
    "CommunicationStore",
    "CommunicationStoreError",
    "CommunicationTag",
    "ComponentAppend",
    "ComponentDescription",
    "Conflict",
    "ConflictCheckError",
    "ConflictContext",
    "ConflictDetector",
    "ConflictSettings",
    "ConflictType",
    "DecisionAppend",
    "DesignDocIOError",
    "DesignDocNotFoundError",
    "DesignDocStore",
    "DesignKnowledge",
    "DevBrainError",
    "OverviewUpdate",
    "Severity",
    "TaskDesignDocument",
    "TechnicalDecision",
    "EmptyUpdateError",
    "UnknownSectionError",
    "Workspace",
    "extract_design_knowledge",
]
