"""状态定义与管理。"""

from deeplife.state.npc_status import (
    KeywordStatusClassifier,
    StatusClassifier,
    apply_status_transition,
)
from deeplife.state.turn_state import TurnState

__all__ = [
    "KeywordStatusClassifier",
    "StatusClassifier",
    "TurnState",
    "apply_status_transition",
]
