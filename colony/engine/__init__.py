"""Engine layer: colony loop and inbound message queue."""

from colony.engine.colony_loop import ColonyLoop
from colony.engine.messages import MessageQueue

__all__ = ["ColonyLoop", "MessageQueue"]
