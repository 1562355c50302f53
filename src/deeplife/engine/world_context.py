"""世界背景：每年一句宏观大事件。"""

from __future__ import annotations

import logging

from deeplife.agents.oracle import OracleClient, OracleRole, is_oracle_failure
from deeplife.agents.prompt_builder import build_macro_event_prompt

logger = logging.getLogger(__name__)

NEUTRAL_MACRO_EVENT = "这一年宏观环境相对平稳。"


class WorldContext:
    def __init__(self, oracle: OracleClient) -> None:
        self.oracle = oracle

    def get_macro_event(self, year: int) -> str:
        """宏观叙事永不中断回合：任何失败都返回固定的中性描述。"""
        try:
            text = self.oracle.call(
                OracleRole.HISTORIAN, build_macro_event_prompt(year), operation="macro_event"
            )
        except Exception as e:  # noqa: BLE001
            logger.warning("宏观事件生成异常 (%d 年): %s", year, e)
            return NEUTRAL_MACRO_EVENT
        if not text or not text.strip() or is_oracle_failure(text):
            logger.warning("宏观事件生成失败 (%d 年)，使用中性描述", year)
            return NEUTRAL_MACRO_EVENT
        return text.strip()
