"""State persistence — writes ColonyState to JSON and reads it back."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from colony.core.colony_state import STATE_VERSION, ColonyState
from colony.core.errors import StateLoadError

logger = logging.getLogger(__name__)


def save_state(state: ColonyState, path: str | Path) -> Path:
    """Write *state* to *path* (parents created as needed)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(state.to_dict(), indent=2), encoding="utf-8")
    stats = state.registry.stats()
    logger.info("State saved to %s (tick %d, %d tasks)", path, state.tick, stats["total"])
    return path


def load_state(path: str | Path) -> ColonyState:
    """Read a state file written by :func:`save_state`.

    Raises StateLoadError when the file is missing, not JSON, from another
    format version, or structurally broken.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise StateLoadError(f"No state file at {path}") from exc
    except json.JSONDecodeError as exc:
        raise StateLoadError(f"{path} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise StateLoadError(f"{path} does not hold a state object")
    version = data.get("version")
    if version != STATE_VERSION:
        raise StateLoadError(f"{path} has state version {version!r}, expected {STATE_VERSION}")

    try:
        state = ColonyState.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise StateLoadError(f"{path} is malformed: {exc}") from exc

    logger.info("State loaded from %s (tick %d)", path, state.tick)
    return state
