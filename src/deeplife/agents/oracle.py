"""OracleClient：对外部文本生成服务的弹性调用层。

调用约定：
- 最多 max_attempts 次尝试；传输失败、HTTP 429、HTTP >= 500、响应体异常
  以及（仅结构化调用）输出不是 JSON 数组/对象时重试。
- 每次失败后休眠 backoff_base ** attempt 秒（默认 2/4/8）。
- 从第二次尝试起，在对话末尾追加一条纠正指令。
- 其他 HTTP 状态（400/401 等）不重试，立即以内联错误文本返回。
- 重试耗尽后返回失败描述文本，绝不抛出异常。
- keep_invalid=True 时，若校验始终失败，返回最后一次的原始输出，交给调用方做尽力修复。
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Callable

import httpx
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from deeplife.agents.utils import extract_response_text, is_structured_json, strip_code_fence
from deeplife.errors import (
    OracleError,
    PermanentOracleError,
    SchemaValidationError,
    TransientOracleError,
)

logger = logging.getLogger(__name__)

ORACLE_ERROR_PREFIX = "[ORACLE_ERROR]"
ORACLE_FAILURE_PREFIX = "[ORACLE_FAILURE]"

CORRECTIVE_NUDGE = (
    "Previous response was invalid. Please strictly follow the JSON format requirements."
)

_RETRYABLE_TRANSPORT = (httpx.TransportError, ConnectionError, TimeoutError)


class OracleRole(str, Enum):
    """系统消息中的角色设定。"""
    PSYCHOLOGIST = "You are a psychologist."
    NARRATOR = "You are a narrator."
    GAME_DESIGNER = "You are a game designer."
    BIOGRAPHER = "You are a biographer."
    HISTORIAN = "You are a historian."
    JUDGE = "You are a judge."
    NPC_ENGINE = "You are a NPC engine."


def is_oracle_failure(text: str | None) -> bool:
    """是否为客户端返回的降级文本（内联错误或重试耗尽）。"""
    if not text:
        return False
    stripped = text.lstrip()
    return stripped.startswith(ORACLE_ERROR_PREFIX) or stripped.startswith(ORACLE_FAILURE_PREFIX)


def _status_code_of(exc: BaseException) -> int | None:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    code = getattr(exc, "status_code", None)
    return code if isinstance(code, int) else None


def _response_text_of(exc: BaseException) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.text
    body = getattr(exc, "body", None)
    return str(body) if body is not None else str(exc)


def classify_exception(exc: Exception) -> OracleError:
    """把底层异常归类为可重试 / 不可重试。"""
    if isinstance(exc, OracleError):
        return exc
    status = _status_code_of(exc)
    if status is not None:
        if status == 429 or status >= 500:
            return TransientOracleError(f"HTTP {status}", status_code=status)
        return PermanentOracleError(f"HTTP {status} - {_response_text_of(exc)}", status_code=status)
    if isinstance(exc, _RETRYABLE_TRANSPORT):
        return TransientOracleError(f"{type(exc).__name__}: {exc}")
    # 响应体结构异常等：按瞬时故障处理
    return TransientOracleError(f"{type(exc).__name__}: {exc}")


class OracleClient:
    """包装任意 LangChain ChatModel，提供重试、退避与输出校验。"""

    def __init__(
        self,
        model: BaseChatModel,
        max_attempts: int = 3,
        backoff_base: float = 2.0,
        sleep: Callable[[float], Any] | None = None,
    ) -> None:
        self.model = model
        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self._sleep = sleep or time.sleep

    # ────────────────────────────────────────────
    # 公开接口
    # ────────────────────────────────────────────

    def call(self, role: OracleRole | str, prompt: str, operation: str = "call") -> str:
        """自由文本调用。"""
        return self._call(role, prompt, structured=False, operation=operation)

    def call_structured(
        self,
        role: OracleRole | str,
        prompt: str,
        operation: str = "call_structured",
        keep_invalid: bool = False,
    ) -> str:
        """结构化调用：成功时返回值一定能解析为 JSON 数组或对象。

        keep_invalid 为 True 且重试耗尽时，只要有过一次非 JSON 的输出，
        就返回最后一次这样的输出，而不是失败描述文本。
        """
        return self._call(
            role, prompt, structured=True, operation=operation, keep_invalid=keep_invalid
        )

    # ────────────────────────────────────────────
    # 内部实现
    # ────────────────────────────────────────────

    def _build_messages(self, role: str, prompt: str, attempt: int) -> list[BaseMessage]:
        messages: list[BaseMessage] = [SystemMessage(content=role), HumanMessage(content=prompt)]
        if attempt > 1:
            messages.append(HumanMessage(content=CORRECTIVE_NUDGE))
        return messages

    def _attempt(self, role: str, prompt: str, attempt: int, structured: bool) -> str:
        try:
            response = self.model.invoke(self._build_messages(role, prompt, attempt))
        except Exception as e:  # noqa: BLE001 - 交给 classify_exception 归类
            raise classify_exception(e) from e
        text = strip_code_fence(extract_response_text(response))
        if structured and not is_structured_json(text):
            raise SchemaValidationError(
                f"输出不是合法的 JSON 数组/对象: {text[:80]!r}", raw_text=text
            )
        return text

    def _call(
        self,
        role: OracleRole | str,
        prompt: str,
        structured: bool,
        operation: str,
        keep_invalid: bool = False,
    ) -> str:
        role_text = role.value if isinstance(role, OracleRole) else str(role)
        last_error: OracleError | None = None
        last_invalid: str | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                text = self._attempt(role_text, prompt, attempt, structured)
                if attempt > 1:
                    logger.info("%s 第 %d 次尝试成功", operation, attempt)
                return text
            except PermanentOracleError as e:
                logger.error("%s 不可重试的错误: %s", operation, e)
                return f"{ORACLE_ERROR_PREFIX} {e}"
            except (TransientOracleError, SchemaValidationError) as e:
                last_error = e
                if isinstance(e, SchemaValidationError) and e.raw_text.strip():
                    last_invalid = e.raw_text
                delay = self.backoff_base**attempt
                logger.warning(
                    "%s 第 %d/%d 次失败 (%s)，%s 秒后重试",
                    operation,
                    attempt,
                    self.max_attempts,
                    e,
                    delay,
                )
                self._sleep(delay)

        if keep_invalid and last_invalid is not None:
            logger.warning("%s 结构化校验始终失败，返回最后一次原始输出", operation)
            return last_invalid
        logger.error("%s 重试 %d 次后仍失败: %s", operation, self.max_attempts, last_error)
        return f"{ORACLE_FAILURE_PREFIX} Failed after {self.max_attempts} attempts. Last error: {last_error}"
