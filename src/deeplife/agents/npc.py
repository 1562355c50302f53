"""NPC 演化 Agent：每回合为所有配角长一岁并更新近况。"""

from __future__ import annotations

import logging
from typing import Any, Callable

from deeplife.agents.oracle import OracleClient, OracleRole, is_oracle_failure
from deeplife.agents.prompt_builder import build_npc_prompt
from deeplife.models.npc import NPC
from deeplife.models.profile import Profile
from deeplife.state.npc_status import (
    KeywordStatusClassifier,
    StatusClassifier,
    apply_status_transition,
)
from deeplife.state.turn_state import TurnState

logger = logging.getLogger(__name__)


class NPCEvolution:
    def __init__(
        self,
        oracle: OracleClient,
        classifier: StatusClassifier | None = None,
        max_chars: int = 20,
    ) -> None:
        self.oracle = oracle
        self.classifier = classifier or KeywordStatusClassifier()
        self.max_chars = max_chars

    def evolve_npc(self, npc: NPC, profile: Profile) -> NPC:
        """返回演化后的新 NPC，不修改传入对象。"""
        aged = npc.model_copy(update={"age": npc.age + 1})
        update = self.oracle.call(
            OracleRole.NPC_ENGINE,
            build_npc_prompt(aged, profile, self.max_chars),
            operation=f"npc_evolve[{npc.name}]",
        ).strip()
        if not update or is_oracle_failure(update):
            logger.warning("NPC %s 近况生成失败，保留原状态", npc.name)
            return aged

        status = apply_status_transition(aged.status, self.classifier.classify(update))
        if status != aged.status:
            logger.info("NPC %s 状态变化: %s -> %s", npc.name, aged.status.value, status.value)
        return aged.model_copy(update={"current_situation": update, "status": status})

    def evolve(self, profile: Profile) -> Profile:
        """对档案的所有 NPC 依次演化，返回新档案。"""
        npcs = [self.evolve_npc(npc, profile) for npc in profile.npcs]
        return profile.model_copy(update={"npcs": npcs})


def create_evolve_npcs_node(
    evolution: NPCEvolution,
) -> Callable[[TurnState], dict[str, Any]]:
    """创建 NPC 演化节点。"""

    def evolve_npcs_node(state: TurnState) -> dict[str, Any]:
        profile = evolution.evolve(state["profile"])
        return {
            "profile": profile,
            "log": [f"NPC 演化: {len(profile.npcs)} 人"],
        }

    return evolve_npcs_node
