"""Exceptions raised by DevBrain services."""

from __future__ import annotations

from typing import Optional


class DevBrainError(Exception):
    """Base error carrying the failing operation and task id."""

    def __init__(self, operation: str, message: str, task_id: Optional[str] = None):
        self.operation = operation
        self.task_id = task_id
        self.message = message
        prefix = f"{operation} for {task_id}" if task_id else operation
        super().__init__(f"{prefix}: {message}")


class DesignDocNotFoundError(DevBrainError):
    """The task has no design.md."""


class DesignDocIOError(DevBrainError):
    """Creating, reading or writing a design document failed."""


class UnknownSectionError(DevBrainError, ValueError):
    """An update named a section that cannot be edited."""

    def __init__(self, section: str, task_id: Optional[str] = None):
        self.section = section
        super().__init__("updating design doc", f"unknown section {section!r}", task_id)


class CommunicationStoreError(DevBrainError):
    """Reading or writing task communications failed."""


class ConflictCheckError(DevBrainError):
    """A corpus that exists could not be scanned."""


class EmptyUpdateError(DevBrainError, ValueError):
    """An append update carried no text."""

    def __init__(self, section: str, task_id: Optional[str] = None):
        self.section = section
        super().__init__("updating design doc", f"{section} entry cannot be blank", task_id)
