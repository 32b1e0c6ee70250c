"""State management modules."""

from bingsu.state.manager import StateManager, get_state_manager
from bingsu.state.workflow import OrderTransitions

__all__ = ["StateManager", "OrderTransitions", "get_state_manager"]
