"""LangGraph 回合图定义。"""

from deeplife.graph.turn_graph import (
    TurnResult,
    TurnRunner,
    build_skip_graph,
    build_year_graph,
)

__all__ = [
    "TurnResult",
    "TurnRunner",
    "build_skip_graph",
    "build_year_graph",
]
