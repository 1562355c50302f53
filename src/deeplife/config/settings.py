"""全局配置。"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

DEFAULT_API_URL = "https://api.deepseek.com/chat/completions"


class ModelConfig(BaseModel):
    """LLM 模型配置。"""

    provider: str = Field(
        default="deepseek",
        description="模型提供商: 'deepseek', 'openai'",
    )
    model_name: str = Field(default="deepseek-chat", description="模型名称")
    api_url: str = Field(default=DEFAULT_API_URL, description="DeepSeek 兼容端点")
    temperature: float = Field(default=1.0, description="生成温度")
    timeout: float = Field(default=60.0, description="单次请求超时（秒）")
    api_key: str = Field(
        default="",
        description="模型 API key（可选，优先使用环境变量）",
    )


class OracleConfig(BaseModel):
    """神谕调用的重试策略。"""

    max_attempts: int = Field(default=3, ge=1, description="每次调用的最大尝试次数")
    backoff_base: float = Field(
        default=2.0,
        description="指数退避底数，第 n 次失败后休眠 backoff_base ** n 秒",
    )


class CheckpointPolicy(BaseModel):
    """检查点保留策略。"""

    retention: Literal["keep_all", "latest_per_age"] = Field(
        default="keep_all",
        description="keep_all: 同一年龄允许多份快照; latest_per_age: 新快照替换同龄旧快照",
    )
    max_per_profile: int | None = Field(
        default=None,
        ge=1,
        description="每个档案最多保留的快照数，超出时淘汰最早的快照；None 表示不限",
    )
    auto_checkpoint: bool = Field(default=True, description="每回合结束后自动存档")


class SimulationConfig(BaseModel):
    """人生模拟全局配置。"""

    model: ModelConfig = Field(default_factory=ModelConfig, description="神谕使用的模型")
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    checkpoint: CheckpointPolicy = Field(default_factory=CheckpointPolicy)

    base_year: int = Field(default=2024, description="起始年龄对应的公历年份")
    memory_target_chars: int = Field(default=500, description="长期记忆的软上限（字）")
    npc_situation_max_chars: int = Field(default=20, description="NPC 近况的字数限制")
    default_energy: int = Field(default=100, ge=0, le=100, description="新档案默认精力值")
    random_seed: int | None = Field(default=None, description="命运骰子的随机种子，None 为不固定")
    data_dir: str = Field(default="output", description="JSON 存储目录")


def load_config(path: str | Path | None = None) -> SimulationConfig:
    """从 YAML 加载配置，API key 优先取环境变量 DEEPSEEK_API_KEY。"""
    data: dict = {}
    if path:
        p = Path(path)
        if p.exists():
            data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    config = SimulationConfig.model_validate(data)
    env_key = os.environ.get("DEEPSEEK_API_KEY", "")
    if env_key:
        config.model.api_key = env_key
    return config
