"""
表达式解析后端（pgfmath）

通用数值表达式求值器，原本用于图形坐标计算，这里用来计算长度与计数器：
- 全部按浮点数运算，尺寸先换算为 pt 并把结果标记为「有量纲」
- 支持函数库中的函数（三角函数按角度制）、常量 pi / e、乘方 `^`、比较运算
- 不支持 plus/minus 伸缩分量
- 长度结果无量纲时按默认单位换算（默认单位为 "none" 时按 pt），
  因此不经过单位默认层
- 计数器结果向零截断
"""

from __future__ import annotations

import ast
import math
import operator
from typing import Any, List

import texcalc.functions  # noqa: F401  注册函数库

from texcalc.core.defaulting import defaulting_enabled
from texcalc.core.errors import CalcArithmeticError
from texcalc.core.registers import TargetKind
from texcalc.core.registry import BackendRegistry
from texcalc.core.units import UNITY, Length, check_count, scan_dimen

from .base import EvalContext, Evaluator, Result


# pgfmath 定点数的表示上限
MAX_VALUE = 16383.99999

_COMPARISONS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}


class ParserEvaluator(Evaluator):
    """pgfmath 表达式解析（需要 pgfmath 引擎）。"""

    name = "parser"
    engine = "pgfmath"
    applies_default_unit = False

    binary_ops = (ast.Add, ast.Sub, ast.Mult, ast.Div, ast.Pow)
    allow_calls = True
    allow_compare = True

    def _finish(self, value: Any, ctx: EvalContext) -> Result:
        value = float(value)
        if abs(value) > MAX_VALUE:
            raise CalcArithmeticError("Dimension too large", ctx.expression)
        if ctx.kind is TargetKind.COUNTER:
            return check_count(int(value), ctx.expression)
        if ctx.has_units:
            return Length.from_points(value)
        unit = ctx.default_unit if defaulting_enabled(ctx.default_unit) else "pt"
        return Length.from_unit(value, unit).check_range(ctx.expression)

    # ---- 常量与运算 ----------------------------------------------------
    def _constant(self, value: Any, ctx: EvalContext) -> Any:
        if isinstance(value, str):
            raise ctx.error(f"不允许的常量 {value!r}")
        return float(value)

    def _binop(self, op: ast.operator, left: Any, right: Any, ctx: EvalContext) -> Any:
        if isinstance(op, ast.Add):
            return left + right
        if isinstance(op, ast.Sub):
            return left - right
        if isinstance(op, ast.Mult):
            return left * right
        if isinstance(op, ast.Div):
            if right == 0:
                raise CalcArithmeticError("除数为零", ctx.expression)
            return left / right
        if isinstance(op, ast.Pow):
            return math.pow(left, right)
        raise ctx.error(f"不支持的运算符 {type(op).__name__}")

    def _call(self, name: str, args: List[Any], ctx: EvalContext) -> Any:
        func = BackendRegistry.get_function(name)
        if func is None:
            raise ctx.error(f"未知函数 {name}")
        try:
            return float(func(*args))
        except TypeError as exc:
            label = BackendRegistry.get_function_label(name)
            raise ctx.error(f"函数 {name}（{label}）的参数个数不正确") from exc

    def _name(self, name: str, ctx: EvalContext) -> Any:
        value = BackendRegistry.get_constant(name)
        if value is None:
            raise ctx.error(f"未知的常量 {name}")
        return value

    def _compare(self, node: ast.Compare, ctx: EvalContext) -> Any:
        left = self._eval(node.left, ctx)
        for op, comparator in zip(node.ops, node.comparators):
            right = self._eval(comparator, ctx)
            if not _COMPARISONS[type(op)](left, right):
                return 0.0
            left = right
        return 1.0

    # ---- 寄存器与尺寸 --------------------------------------------------
    def _register_value(self, value: Any, ctx: EvalContext) -> Any:
        if isinstance(value, Length):
            ctx.has_units = True
            return value.sp / UNITY
        return float(value)

    def _prim_q(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        ctx.has_units = True
        return scan_dimen(args[0].value, args[1].value) / UNITY

    def _prim_scaled(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        return float(args[0].value) * self._eval(args[1], ctx)

    def _prim_glue(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        raise ctx.error("pgfmath 不支持 plus/minus 伸缩分量")

    def _prim_stretch(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        raise ctx.error("pgfmath 不支持 \\stretch")

    # ---- calc 风格的宏在这里按普通数值处理 ----------------------------
    def _prim_real(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        return self._eval(args[0], ctx)

    def _prim_ratio(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        numerator = self._eval(args[0], ctx)
        denominator = self._eval(args[1], ctx)
        if denominator == 0:
            raise CalcArithmeticError("\\ratio 的分母为零", ctx.expression)
        return numerator / denominator

    def _prim_maxof(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        return max(self._eval(args[0], ctx), self._eval(args[1], ctx))

    def _prim_minof(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        return min(self._eval(args[0], ctx), self._eval(args[1], ctx))
