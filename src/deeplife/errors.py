"""人生模拟引擎的异常体系。

神谕（大模型）侧的异常只在 OracleClient 内部流转，驱动重试循环，
永远不会越过客户端边界；存储与状态机异常则直接抛给调用方。
"""

from __future__ import annotations


class DeepLifeError(RuntimeError):
    """所有引擎异常的基类。"""


# ────────────────────────────────────────────
# 神谕侧（仅在客户端内部使用）
# ────────────────────────────────────────────


class OracleError(DeepLifeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientOracleError(OracleError):
    """限流、服务端错误、超时等可重试故障。"""


class PermanentOracleError(OracleError):
    """其他 4xx：不重试，以内联错误文本返回。"""


class SchemaValidationError(OracleError):
    """结构化输出无法解析为 JSON 数组或对象。"""

    def __init__(self, message: str, *, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


# ────────────────────────────────────────────
# 存储 / 状态机
# ────────────────────────────────────────────


class NotFoundError(DeepLifeError):
    """档案或检查点不存在。"""


class InvalidStageError(DeepLifeError):
    """档案当前所处阶段不允许该操作。"""

    def __init__(self, profile_id: str, stage: str, operation: str) -> None:
        super().__init__(f"档案 {profile_id} 处于 {stage} 阶段，无法执行 {operation}")
        self.profile_id = profile_id
        self.stage = stage
        self.operation = operation
