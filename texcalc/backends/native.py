"""
e-TeX 原生算术后端

对应 \\glueexpr / \\numexpr：
- 支持嵌套括号与四则运算，长度可以带 plus/minus 伸缩分量
- 乘除的因子必须是写在长度之后的整数（`1pt*(2+3)` 合法，`2*3pt`、`2pt*1.5` 非法）
- 整数除法四舍五入，.5 远离零（`7/2` = 4，`-7/2` = -4）
- `x*n/d` 作为一次缩放计算，中间结果不做范围检查，只检查最终结果
- 计数器表达式中出现的长度寄存器按 sp 数值参与运算
"""

from __future__ import annotations

import ast
from typing import Any, Union

from texcalc.core.errors import CalcArithmeticError
from texcalc.core.registers import TargetKind
from texcalc.core.units import Length, check_count, round_quotient

from .base import EvalContext, Evaluator


class NativeEvaluator(Evaluator):
    """e-TeX 扩展算术（需要 etex 引擎）。"""

    name = "native"
    engine = "etex"
    rounded_division = True

    def _eval(self, node: ast.AST, ctx: EvalContext) -> Any:
        if (
            isinstance(node, ast.BinOp)
            and isinstance(node.op, ast.Div)
            and isinstance(node.left, ast.BinOp)
            and isinstance(node.left.op, ast.Mult)
        ):
            value = self._eval(node.left.left, ctx)
            factor = self._eval(node.left.right, ctx)
            divisor = self._eval(node.right, ctx)
            if isinstance(factor, int) and isinstance(divisor, int) and isinstance(value, (int, Length)):
                return self._scale(value, factor, divisor, ctx)
            product = self._binop(node.left.op, value, factor, ctx)
            return self._binop(node.op, product, divisor, ctx)
        return super()._eval(node, ctx)

    def _scale(self, value: Union[int, Length], factor: int, divisor: int, ctx: EvalContext) -> Any:
        """按 e-TeX 的缩放规则计算 value*factor/divisor，四舍五入。"""
        if divisor == 0:
            raise CalcArithmeticError("除数为零", ctx.expression)
        if isinstance(value, int):
            return check_count(round_quotient(value * factor, divisor), ctx.expression)
        return Length(
            round_quotient(value.sp * factor, divisor),
            round_quotient(value.stretch * factor, divisor),
            value.stretch_order,
            round_quotient(value.shrink * factor, divisor),
            value.shrink_order,
        ).check_range(ctx.expression)

    def _register_value(self, value: Any, ctx: EvalContext) -> Any:
        if ctx.kind is TargetKind.COUNTER and isinstance(value, Length):
            return value.sp
        return value
