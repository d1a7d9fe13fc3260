"""
异常定义

- CalcError：所有异常的基类
- UnsupportedBackendError：配置阶段选择了当前环境不可用的后端
- ExpressionError 及其子类：单次求值失败，直接抛给赋值操作的调用方
"""


class CalcError(Exception):
    """texcalc 异常基类。"""


class UnsupportedBackendError(CalcError):
    """请求的后端不存在，或其底层算术引擎在当前环境中不可用。"""

    def __init__(self, backend: str, reason: str = "") -> None:
        message = f"不支持的后端: {backend}"
        if reason:
            message = f"{message}（{reason}）"
        super().__init__(message)
        self.backend = backend


class ExpressionError(CalcError):
    """表达式求值相关错误。"""

    def __init__(self, message: str, expression: str | None = None) -> None:
        if expression is not None:
            message = f"{message}: {expression!r}"
        super().__init__(message)
        self.expression = expression


class ParseError(ExpressionError):
    """表达式格式错误（语法错误、缺少单位、当前后端不支持的写法等）。"""


class UndefinedReferenceError(ExpressionError):
    """表达式引用了不存在的长度或计数器。"""

    def __init__(self, name: str, expression: str | None = None) -> None:
        super().__init__(f"未定义的寄存器 \\{name}", expression)
        self.name = name


class EngineUnavailableError(ExpressionError):
    """后端已被选中，但其底层算术引擎不可用。"""


class CalcArithmeticError(ExpressionError):
    """除零、尺寸超限（Dimension too large）或计数器溢出。"""
