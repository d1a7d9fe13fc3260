"""
calc 宏包兼容后端

任何环境都可用，语法比 e-TeX 受限：
- 长度只能加减长度、乘除写在其后的整数或 \\real{} / \\ratio{} 因子
- 不支持 plus/minus 伸缩分量与 \\stretch
- 整数除法向零截断（与 \\divide 一致）
- 支持 \\maxof{A}{B} / \\minof{A}{B}
- 计数器表达式只能包含整数与计数器
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import Any, Callable, List

from texcalc.core.errors import CalcArithmeticError
from texcalc.core.registers import TargetKind
from texcalc.core.units import UNITY, Length, apply_factor, to_factor, truncate_quotient

from .base import EvalContext, Evaluator


@dataclass(frozen=True)
class Factor:
    """\\real / \\ratio 产生的实数因子（16.16 定点数）。"""

    value: int

    def __neg__(self) -> "Factor":
        return Factor(-self.value)


class CompatEvaluator(Evaluator):
    """calc 宏包算术（总是可用）。"""

    name = "compat"
    engine = None
    rounded_division = False

    def _register_value(self, value: Any, ctx: EvalContext) -> Any:
        if ctx.kind is TargetKind.COUNTER and isinstance(value, Length):
            raise ctx.error("calc 的计数器表达式中不能使用长度")
        return value

    def _binop(self, op: ast.operator, left: Any, right: Any, ctx: EvalContext) -> Any:
        if isinstance(left, Factor):
            raise ctx.error("\\real / \\ratio 因子必须写在长度之后")
        if isinstance(right, Factor):
            if not isinstance(left, Length):
                raise ctx.error("\\real / \\ratio 只能作用于长度")
            if isinstance(op, ast.Mult):
                return Length(sp=apply_factor(left.sp, right.value)).check_range(ctx.expression)
            if isinstance(op, ast.Div):
                if right.value == 0:
                    raise CalcArithmeticError("除数为零", ctx.expression)
                return Length(sp=truncate_quotient(left.sp * UNITY, right.value)).check_range(
                    ctx.expression
                )
            raise ctx.error("\\real / \\ratio 只能用于乘除")
        return super()._binop(op, left, right, ctx)

    # ---- calc 不支持胶 -------------------------------------------------
    def _prim_glue(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        raise ctx.error("calc 不支持 plus/minus 伸缩分量")

    def _prim_stretch(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        raise ctx.error("calc 不支持 \\stretch")

    # ---- calc 的宏 -----------------------------------------------------
    def _prim_real(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        self._require_length(ctx, "real")
        return Factor(to_factor(self._literal_number(args[0], ctx)))

    def _prim_ratio(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        self._require_length(ctx, "ratio")
        numerator = self._eval(args[0], ctx)
        denominator = self._eval(args[1], ctx)
        if not isinstance(numerator, Length) or not isinstance(denominator, Length):
            raise ctx.error("\\ratio 的两个参数都必须是长度")
        if denominator.sp == 0:
            raise CalcArithmeticError("\\ratio 的分母为零", ctx.expression)
        return Factor(truncate_quotient(numerator.sp * UNITY, denominator.sp))

    def _prim_maxof(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        return self._extremum(args, ctx, max, "maxof")

    def _prim_minof(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        return self._extremum(args, ctx, min, "minof")

    def _extremum(
        self,
        args: List[ast.AST],
        ctx: EvalContext,
        pick: Callable[..., Any],
        macro: str,
    ) -> Any:
        first = self._eval(args[0], ctx)
        second = self._eval(args[1], ctx)
        if isinstance(first, int) and isinstance(second, int):
            return pick(first, second)
        if isinstance(first, Length) and isinstance(second, Length):
            return pick(first, second, key=lambda length: length.sp)
        raise ctx.error(f"\\{macro} 的两个参数类型必须相同")

    @staticmethod
    def _require_length(ctx: EvalContext, macro: str) -> None:
        if ctx.kind is TargetKind.COUNTER:
            raise ctx.error(f"计数器表达式中不能使用 \\{macro}")
