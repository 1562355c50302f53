"""DeepSeek 对话模型的 LangChain ChatModel 封装。

线上协议（OpenAI 风格的非流式补全）：
- POST 端点，Bearer 鉴权
- 请求体: {model, stream: false, messages: [{role, content}, ...]}
- 成功: HTTP 200, {choices: [{message: {content}}]}
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from langchain_core.callbacks import CallbackManagerForLLMRun
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import ConfigDict

logger = logging.getLogger(__name__)

_DEEPSEEK_API_URL = "https://api.deepseek.com/chat/completions"


class ChatDeepSeek(BaseChatModel):
    """DeepSeek Chat 模型。

    非 2xx 响应以 httpx.HTTPStatusError 抛出，由上层 OracleClient
    根据状态码决定是否重试；响应体结构不合法时抛出 ValueError。
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    api_key: str = ""
    model: str = "deepseek-chat"
    api_url: str = _DEEPSEEK_API_URL
    temperature: Optional[float] = None

    # ── httpx ──
    timeout: float = 60.0
    transport: Optional[Any] = None  # httpx.BaseTransport，测试时注入 MockTransport

    @property
    def _llm_type(self) -> str:
        return "deepseek-chat"

    @property
    def _identifying_params(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "api_url": self.api_url,
            "temperature": self.temperature,
        }

    # ------------------------------------------------------------------
    # Message 转换
    # ------------------------------------------------------------------

    @staticmethod
    def _convert_messages(messages: list[BaseMessage]) -> list[dict[str, str]]:
        converted: list[dict[str, str]] = []
        for msg in messages:
            if isinstance(msg, SystemMessage):
                role = "system"
            elif isinstance(msg, AIMessage):
                role = "assistant"
            elif isinstance(msg, HumanMessage):
                role = "user"
            else:
                role = "user"
            converted.append({"role": role, "content": str(msg.content)})
        return converted

    def build_payload(self, messages: list[BaseMessage]) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "stream": False,
            "messages": self._convert_messages(messages),
        }
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        return payload

    # ------------------------------------------------------------------
    # 核心调用
    # ------------------------------------------------------------------

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: Optional[list[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> ChatResult:
        """调用 DeepSeek API 生成回复。"""
        payload = self.build_payload(messages)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        client_kwargs: dict[str, Any] = {"timeout": self.timeout}
        if self.transport is not None:
            client_kwargs["transport"] = self.transport

        try:
            with httpx.Client(**client_kwargs) as client:
                resp = client.post(self.api_url, json=payload, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("DeepSeek API HTTP error: %s - %s", e.response.status_code, e.response.text)
            raise
        except httpx.HTTPError as e:
            logger.error("DeepSeek API call failed: %s", e)
            raise

        if not isinstance(data, dict):
            raise ValueError("DeepSeek API returned non-object body")
        choices = data.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            raise ValueError("DeepSeek API returned empty choices")
        message = choices[0].get("message") or {}
        content = message.get("content")
        if not isinstance(content, str):
            raise ValueError("DeepSeek API returned no message content")

        usage = data.get("usage", {})
        generation = ChatGeneration(
            message=AIMessage(content=content),
            generation_info={
                "finish_reason": choices[0].get("finish_reason", ""),
                "usage": usage,
            },
        )
        return ChatResult(
            generations=[generation],
            llm_output={"model": data.get("model", self.model), "usage": usage},
        )
