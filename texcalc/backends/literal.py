"""
宿主原生赋值

\\setlength / \\addtolength / \\setcounter / \\addtocounter 的原始实现：
只接受单个字面量（尺寸、胶、寄存器、\\value{...}），不支持任何算术。
覆盖管理器卸载后恢复的就是这套语义。
"""

from __future__ import annotations

import ast
from typing import Any

from .base import EvalContext
from .native import NativeEvaluator


class LiteralEvaluator(NativeEvaluator):
    """只接受字面量的求值器（任何环境都可用）。"""

    name = "literal"
    engine = None

    def _binop(self, op: ast.operator, left: Any, right: Any, ctx: EvalContext) -> Any:
        raise ctx.error("宿主原生赋值只接受字面量，不支持算术表达式")

    def _scale(self, value: Any, factor: int, divisor: int, ctx: EvalContext) -> Any:
        raise ctx.error("宿主原生赋值只接受字面量，不支持算术表达式")
