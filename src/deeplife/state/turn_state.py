"""单回合状态定义（LangGraph StateGraph 状态）。"""

from __future__ import annotations

from operator import add
from typing import Annotated

from typing_extensions import TypedDict

from deeplife.models.profile import Profile


class TurnState(TypedDict, total=False):
    """回合图的状态。

    profile 在各节点间以副本形式传递，图跑完之前不会写回存储。
    """

    # ── 输入 ──
    profile: Profile
    choice: str
    years: int

    # ── 中间结果 ──
    year: int
    macro_event: str
    destiny_type: str
    destiny_roll: float
    outcome: str
    narrative_text: str

    # ── 副作用日志 ──
    log: Annotated[list[str], add]
