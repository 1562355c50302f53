"""测试共用的假模型与夹具。"""

from __future__ import annotations

import json
import random
from typing import Any, Callable, Optional

import pytest
from langchain_core.callbacks import CallbackManagerForLLMRun
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, SystemMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import Field

from deeplife.agents.oracle import OracleClient, OracleRole
from deeplife.config.settings import SimulationConfig
from deeplife.engine.orchestrator import SimulationOrchestrator
from deeplife.models.profile import BasicInfo, EconomicStatus, Profile
from deeplife.storage.checkpoint_store import CheckpointStore
from deeplife.storage.repository import InMemoryCheckpointRepository, InMemoryProfileRepository


class ScriptedChatModel(BaseChatModel):
    """按脚本依次返回文本或抛出异常。"""

    script: list[Any] = Field(default_factory=list)
    calls: list[list[BaseMessage]] = Field(default_factory=list)

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: Optional[list[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> ChatResult:
        self.calls.append(list(messages))
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=item))])


class RoutingChatModel(BaseChatModel):
    """根据系统消息（角色）路由到响应函数。"""

    responder: Callable[[str, str], Any]
    calls: list[tuple[str, str]] = Field(default_factory=list)

    @property
    def _llm_type(self) -> str:
        return "routing"

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: Optional[list[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> ChatResult:
        role = next((str(m.content) for m in messages if isinstance(m, SystemMessage)), "")
        prompt = str(messages[1].content) if len(messages) > 1 else ""
        self.calls.append((role, prompt))
        item = self.responder(role, prompt)
        if isinstance(item, Exception):
            raise item
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=item))])

    def roles(self) -> list[str]:
        return [role for role, _ in self.calls]


SCENARIO_REPLY = json.dumps(
    {"event": "雨夜里，你在高架桥下做出了选择。", "status_change": "疲惫", "relationship_change": "和父亲通了电话"},
    ensure_ascii=False,
)


def default_responder(role: str, prompt: str) -> str:
    if role == OracleRole.PSYCHOLOGIST.value:
        if "用户回答" in prompt:
            return '{"personalityTraits": {"Resilience": 80, "Ambition": 90}, "coreValues": ["自由", "金钱"]}'
        return '["问题一？", "问题二？", "问题三？"]'
    if role == OracleRole.NARRATOR.value:
        return SCENARIO_REPLY
    if role == OracleRole.GAME_DESIGNER.value:
        return '["辞职创业", "继续加班", "回家看看"]'
    if role == OracleRole.HISTORIAN.value:
        return "全球经济缓慢复苏。"
    if role == OracleRole.JUDGE.value:
        return "判定：成功。理由：准备充分。"
    if role == OracleRole.NPC_ENGINE.value:
        return "身体硬朗，常去公园下棋。"
    if role == OracleRole.BIOGRAPHER.value:
        return "他在二十多岁时离开家乡，独自打拼。"
    return ""


@pytest.fixture(autouse=True)
def disable_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("time.sleep", lambda *_args, **_kwargs: None)


@pytest.fixture
def sample_profile() -> Profile:
    return Profile(
        basic_info=BasicInfo(
            name="林远",
            start_age=22,
            gender="男",
            location="杭州",
            education_level="本科",
            profession="程序员",
            life_experiences="小镇做题家，第一次离开家乡。",
        ),
        economic_status=EconomicStatus(savings=20000, debt=5000),
    )


@pytest.fixture
def routing_model() -> RoutingChatModel:
    return RoutingChatModel(responder=default_responder)


@pytest.fixture
def orchestrator(routing_model: RoutingChatModel) -> SimulationOrchestrator:
    profiles = InMemoryProfileRepository()
    checkpoints = CheckpointStore(profiles, InMemoryCheckpointRepository())
    return SimulationOrchestrator(
        OracleClient(routing_model),
        profiles,
        checkpoints,
        SimulationConfig(),
        rng=random.Random(7),
    )
