"""SimulationOrchestrator：档案生命周期与回合状态机。

阶段：DRAFTING -> ANSWERING_PROBES -> ACTIVE -> CONCLUDED

每个回合在档案副本上运行回合图，结束后整体写回一次，再自动存档；
同一档案的回合由按 id 划分的互斥锁串行化，不同档案互不影响。
"""

from __future__ import annotations

import logging
import random
import threading
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from deeplife.agents.memory import MemoryConsolidator
from deeplife.agents.narrator import Narrator
from deeplife.agents.npc import NPCEvolution
from deeplife.agents.oracle import OracleClient
from deeplife.agents.psychologist import Psychologist
from deeplife.config.settings import SimulationConfig
from deeplife.engine.destiny import DestinyEngine
from deeplife.engine.world_context import WorldContext
from deeplife.errors import InvalidStageError
from deeplife.graph.turn_graph import TurnResult, TurnRunner
from deeplife.models.checkpoint import Checkpoint
from deeplife.models.npc import NPC, NPCRelation, NPCStatus
from deeplife.models.profile import (
    BasicInfo,
    EconomicStatus,
    Profile,
    ProfileStage,
)
from deeplife.state.npc_status import StatusClassifier
from deeplife.storage.checkpoint_store import CheckpointStore
from deeplife.storage.repository import ProfileRepository

logger = logging.getLogger(__name__)

LEGACY_SAVINGS_RATIO = 0.8


class KeyedLock:
    """按 key 分配的互斥锁。

    每个 key 记录持有与等待者数量，归零时删除，锁表不会随档案数增长。
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, tuple[threading.Lock, list[int]]] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.setdefault(key, (threading.Lock(), [0]))
            users[0] += 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                users[0] -= 1
                if users[0] == 0:
                    del self._locks[key]


def default_parents(profile: Profile) -> list[NPC]:
    """开局默认的父母。"""
    return [
        NPC(
            name="父亲",
            relation=NPCRelation.FATHER,
            age=profile.current_age + 25,
            status=NPCStatus.HEALTHY,
            intimacy=80,
            current_situation="依然在为家庭操劳，偶尔抱怨腰疼。",
        ),
        NPC(
            name="母亲",
            relation=NPCRelation.MOTHER,
            age=profile.current_age + 24,
            status=NPCStatus.HEALTHY,
            intimacy=85,
            current_situation="每天操持家务，最担心你的终身大事。",
        ),
    ]


def build_legacy_child(parent: Profile) -> Profile:
    """传承：由上一代档案派生出处于 DRAFTING 的下一代。"""
    basic = BasicInfo(
        name=f"{parent.basic_info.name}的孩子",
        start_age=0,
        location=parent.basic_info.location,
    )
    economic = EconomicStatus(savings=round(parent.economic_status.savings * LEGACY_SAVINGS_RATIO))
    parent_npc = NPC(
        name=parent.basic_info.name,
        relation=NPCRelation.PARENT,
        age=parent.current_age,
        status=NPCStatus.RETIRED,
        intimacy=80,
        current_situation="已经退休，看着你长大。",
    )
    return Profile(
        id=uuid.uuid4().hex,
        difficulty=parent.difficulty,
        stage=ProfileStage.DRAFTING,
        basic_info=basic,
        economic_status=economic,
        current_age=0,
        generation=parent.generation + 1,
        parent_profile_id=parent.id,
        npcs=[parent_npc],
    )


class SimulationOrchestrator:
    def __init__(
        self,
        oracle: OracleClient,
        profiles: ProfileRepository,
        checkpoints: CheckpointStore,
        config: SimulationConfig | None = None,
        rng: random.Random | None = None,
        classifier: StatusClassifier | None = None,
    ) -> None:
        self.config = config or SimulationConfig()
        self.profiles = profiles
        self.checkpoints = checkpoints
        self.rng = rng or random.Random(self.config.random_seed)

        self.world = WorldContext(oracle)
        self.destiny = DestinyEngine(oracle, self.rng)
        self.npc_evolution = NPCEvolution(
            oracle, classifier, max_chars=self.config.npc_situation_max_chars
        )
        self.narrator = Narrator(oracle)
        self.psychologist = Psychologist(oracle)
        self.consolidator = MemoryConsolidator(oracle, self.config.memory_target_chars)
        self.runner = TurnRunner(
            self.world,
            self.destiny,
            self.npc_evolution,
            self.narrator,
            self.consolidator,
            base_year=self.config.base_year,
        )
        self._locks = KeyedLock()

    # ────────────────────────────────────────────
    # 内部工具
    # ────────────────────────────────────────────

    @staticmethod
    def _require_stage(profile: Profile, operation: str, *stages: ProfileStage) -> None:
        if profile.stage not in stages:
            raise InvalidStageError(profile.id, profile.stage.value, operation)

    def _commit(self, profile: Profile) -> None:
        """整体写回一次，然后按策略自动存档。"""
        self.profiles.save(profile)
        if self.config.checkpoint.auto_checkpoint:
            self.checkpoints.create_checkpoint(profile)

    # ────────────────────────────────────────────
    # 开局
    # ────────────────────────────────────────────

    def create_profile(self, profile: Profile) -> Profile:
        """保存为 DRAFTING 草稿。未显式给出精力值时使用配置中的 default_energy。"""
        update: dict[str, Any] = {
            "id": profile.id or uuid.uuid4().hex,
            "stage": ProfileStage.DRAFTING,
            "current_age": profile.basic_info.start_age,
        }
        health = profile.health_status
        if "energy_level" not in health.model_fields_set:
            update["health_status"] = health.model_copy(
                update={"energy_level": self.config.default_energy}
            )
        draft = profile.model_copy(deep=True, update=update)
        self.profiles.save(draft)
        logger.info("新档案 %s (%s, %d 岁)", draft.id, draft.name, draft.current_age)
        return draft

    def get_profile(self, profile_id: str) -> Profile:
        return self.profiles.get(profile_id)

    def generate_probes(self, profile_id: str) -> list[str]:
        with self._locks.hold(profile_id):
            profile = self.profiles.get(profile_id)
            self._require_stage(
                profile, "generate_probes", ProfileStage.DRAFTING, ProfileStage.ANSWERING_PROBES
            )
            probes = self.psychologist.generate_probes(profile)
            updated = profile.model_copy(
                update={"probes": probes, "stage": ProfileStage.ANSWERING_PROBES}
            )
            self.profiles.save(updated)
            return probes

    def start(self, profile_id: str, answers: dict[str, str]) -> Profile:
        """DRAFTING / ANSWERING_PROBES -> ACTIVE。"""
        with self._locks.hold(profile_id):
            profile = self.profiles.get(profile_id)
            self._require_stage(
                profile, "start", ProfileStage.DRAFTING, ProfileStage.ANSWERING_PROBES
            )
            analysis = self.psychologist.analyze(profile, answers)
            profile = profile.model_copy(
                deep=True,
                update={
                    "personality_traits": analysis.personality_traits,
                    "core_values": analysis.core_values,
                },
            )

            scenario = self.narrator.generate_opening(profile)
            npcs = profile.npcs or default_parents(profile)
            profile = profile.model_copy(update={"current_scenario": scenario, "npcs": npcs})
            choices = self.narrator.generate_choices(profile, scenario.to_json())
            profile = profile.model_copy(
                update={"available_choices": choices, "stage": ProfileStage.ACTIVE}
            )

            self._commit(profile)
            logger.info("档案 %s 开局完成", profile.id)
            return profile

    # ────────────────────────────────────────────
    # 回合
    # ────────────────────────────────────────────

    def simulate_year(self, profile_id: str, choice: str) -> TurnResult:
        with self._locks.hold(profile_id):
            profile = self.profiles.get(profile_id)
            self._require_stage(profile, "simulate_year", ProfileStage.ACTIVE)
            result = self.runner.run_year(profile, choice)
            self._commit(result.profile)
            logger.info("档案 %s 推进到 %d 岁", profile_id, result.profile.current_age)
            return result

    def skip_years(self, profile_id: str, years: int) -> TurnResult:
        if years < 0:
            raise ValueError(f"跳过年数不能为负: {years}")
        with self._locks.hold(profile_id):
            profile = self.profiles.get(profile_id)
            self._require_stage(profile, "skip_years", ProfileStage.ACTIVE)
            if years == 0:
                return TurnResult(profile=profile, log=[])
            result = self.runner.run_skip(profile, years)
            self._commit(result.profile)
            logger.info("档案 %s 跳过 %d 年，现年 %d 岁", profile_id, years, result.profile.current_age)
            return result

    # ────────────────────────────────────────────
    # 传承 / 存档
    # ────────────────────────────────────────────

    def create_legacy(self, parent_id: str) -> Profile:
        """ACTIVE -> CONCLUDED，同时生成处于 DRAFTING 的下一代。"""
        with self._locks.hold(parent_id):
            parent = self.profiles.get(parent_id)
            self._require_stage(parent, "create_legacy", ProfileStage.ACTIVE)
            child = build_legacy_child(parent)
            self.profiles.save(child)
            self.profiles.save(parent.model_copy(update={"stage": ProfileStage.CONCLUDED}))
            logger.info("档案 %s 传承给第 %d 代 %s", parent_id, child.generation, child.id)
            return child

    def rollback(self, profile_id: str, target_age: int) -> Profile:
        with self._locks.hold(profile_id):
            return self.checkpoints.rollback(profile_id, target_age)

    def get_history(self, profile_id: str) -> list[Checkpoint]:
        return self.checkpoints.get_history(profile_id)
