"""Exception types. Most runtime inconsistencies are logged and skipped, not raised."""

from __future__ import annotations


class ColonyError(Exception):
    """Base class for engine errors."""


class UnknownTaskTypeError(ColonyError, ValueError):
    """A task was requested for a type with no defaults or FSM table.

    This is a programming defect in the caller, not a runtime condition.
    """


class StateLoadError(ColonyError):
    """A persisted state file could not be decoded."""
