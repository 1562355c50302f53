"""记忆压缩 Agent：把本回合叙事并入滚动的长期记忆。

只保留婚恋、失业、丧亲、重大成就这类长期影响事件，
失败时一律保留旧记忆，不影响回合本身。
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from deeplife.agents.oracle import OracleClient, OracleRole, is_oracle_failure
from deeplife.agents.prompt_builder import build_memory_prompt
from deeplife.models.profile import Profile
from deeplife.state.turn_state import TurnState

logger = logging.getLogger(__name__)


class MemoryConsolidator:
    def __init__(self, oracle: OracleClient, target_chars: int = 500) -> None:
        self.oracle = oracle
        self.target_chars = target_chars

    def consolidate(self, profile: Profile, narrative: str) -> str:
        """返回新的长期记忆；任何失败都返回原记忆。"""
        previous = profile.long_term_memory
        try:
            text = self.oracle.call(
                OracleRole.BIOGRAPHER,
                build_memory_prompt(profile, narrative, self.target_chars),
                operation="memory_consolidate",
            )
        except Exception as e:  # noqa: BLE001
            logger.warning("记忆压缩异常，保留旧记忆: %s", e)
            return previous

        if not text or is_oracle_failure(text):
            logger.warning("记忆压缩失败，保留旧记忆")
            return previous
        merged = text.replace("```", "").strip()
        if not merged:
            return previous
        if len(merged) > self.target_chars * 2:
            logger.info("长期记忆 %d 字，超出目标 %d 字", len(merged), self.target_chars)
        return merged


def create_memory_node(
    consolidator: MemoryConsolidator,
) -> Callable[[TurnState], dict[str, Any]]:
    """创建记忆压缩节点。"""

    def memory_node(state: TurnState) -> dict[str, Any]:
        profile = state["profile"]
        memory = consolidator.consolidate(profile, state.get("narrative_text", ""))
        return {
            "profile": profile.model_copy(update={"long_term_memory": memory}),
            "log": ["长期记忆已更新" if memory != profile.long_term_memory else "长期记忆未变"],
        }

    return memory_node
