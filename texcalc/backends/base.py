"""
后端基类

所有后端共用同一条求值流水线：
1. `lexer.translate` 把 TeX 风格表达式转换为 Python 表达式源码
2. `ast.parse` 解析，`_validate_ast` 按后端允许的语法校验
3. `_eval` 递归求值，具体的算术规则由子类通过钩子方法决定

基类实现的是 TeX 寄存器算术（长度与整数），子类按各自引擎的语义覆盖。
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Optional, Tuple, Union

from texcalc.core.errors import (
    CalcArithmeticError,
    EngineUnavailableError,
    ExpressionError,
    ParseError,
    UndefinedReferenceError,
)
from texcalc.core.lexer import PRIMITIVES, translate
from texcalc.core.registers import Register, RegisterKind, TargetKind
from texcalc.core.units import (
    Length,
    apply_factor,
    check_count,
    round_quotient,
    scan_fil,
    to_factor,
    truncate_quotient,
)

if TYPE_CHECKING:
    from texcalc.core.host import HostEnvironment


Result = Union[Length, int]


@dataclass
class EvalContext:
    """
    单次求值的上下文。

    Attributes:
        kind: 目标类型（长度/计数器）。
        expression: 原始表达式，用于错误信息。
        default_unit: 当前默认单位（仅自行完成单位换算的后端使用）。
        has_units: 求值过程中是否出现过尺寸。
    """

    kind: TargetKind
    expression: str
    default_unit: Optional[str] = None
    has_units: bool = False

    def error(self, message: str) -> ParseError:
        return ParseError(message, self.expression)


class Evaluator:
    """
    后端基类。

    子类需要声明：
    - name：后端名称
    - engine：依赖的宿主算术引擎（None 表示任何环境都可用）
    - applies_default_unit：是否由单位默认层处理裸数值；
      为 False 的后端自行把无量纲结果换算到默认单位
    """

    name: str = ""
    engine: Optional[str] = None
    applies_default_unit: bool = True

    #: 允许的二元运算符
    binary_ops: Tuple[type, ...] = (ast.Add, ast.Sub, ast.Mult, ast.Div)
    #: 是否允许调用函数库中的函数、引用常量
    allow_calls: bool = False
    #: 是否允许比较运算
    allow_compare: bool = False
    #: 整数除法是否四舍五入（否则向零截断）
    rounded_division: bool = True

    def __init__(self, host: "HostEnvironment") -> None:
        self._host = host

    @property
    def available(self) -> bool:
        """底层引擎在宿主环境中是否可用。"""
        return self.engine is None or self._host.has_engine(self.engine)

    def evaluate(
        self,
        expression: str,
        kind: TargetKind,
        default_unit: Optional[str] = None,
    ) -> Result:
        """
        求值表达式。

        Args:
            expression: 表达式字符串。
            kind: 目标类型，长度返回 Length，计数器返回 int。
            default_unit: 当前默认单位。

        Raises:
            EngineUnavailableError: 底层引擎不可用。
            ParseError: 表达式格式错误。
            UndefinedReferenceError: 引用了不存在的寄存器。
            CalcArithmeticError: 除零或数值溢出。
        """
        if not self.available:
            raise EngineUnavailableError(
                f"后端 {self.name} 所需的 {self.engine} 引擎不可用", expression
            )
        tree = self.parse(expression)
        ctx = EvalContext(kind=kind, expression=expression, default_unit=default_unit)
        try:
            return self._finish(self._eval(tree.body, ctx), ctx)
        except ExpressionError:
            raise
        except ZeroDivisionError as exc:
            raise CalcArithmeticError("除零错误", expression) from exc
        except (ValueError, OverflowError) as exc:
            raise CalcArithmeticError(f"数值错误（{exc}）", expression) from exc

    def parse(self, expression: str) -> ast.Expression:
        """转换并解析表达式，返回校验过的 AST。"""
        source = translate(expression)
        try:
            tree = ast.parse(source, mode="eval")
        except SyntaxError as exc:
            raise ParseError("表达式语法错误", expression) from exc
        self._validate_ast(tree.body, expression)
        return tree

    # ------------------------------------------------------------------#
    # AST 校验
    # ------------------------------------------------------------------#
    def _validate_ast(self, node: ast.AST, expression: str) -> None:
        """
        校验 AST 节点是否允许。

        允许的节点类型：
        - BinOp（binary_ops 中的运算符）、UnaryOp（正负号）
        - Call（内部原语；allow_calls 时还包括函数库中的函数）
        - Name（仅 allow_calls 时，作为常量）
        - Compare（仅 allow_compare 时）
        - Constant（数值与原语的字符串参数）
        """
        if isinstance(node, ast.BinOp):
            if not isinstance(node.op, self.binary_ops):
                raise ParseError(f"{self.name} 后端不支持运算符 {type(node.op).__name__}", expression)
            self._validate_ast(node.left, expression)
            self._validate_ast(node.right, expression)
        elif isinstance(node, ast.UnaryOp):
            if not isinstance(node.op, (ast.USub, ast.UAdd)):
                raise ParseError(f"不允许的一元运算符 {type(node.op).__name__}", expression)
            self._validate_ast(node.operand, expression)
        elif isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.keywords:
                raise ParseError("不允许的函数调用形式", expression)
            name = node.func.id
            if name not in PRIMITIVES and not self.allow_calls:
                raise ParseError(f"{self.name} 后端不支持函数调用 {name}", expression)
            for arg in node.args:
                # 胶的缺省分量以 None 占位
                if name == "_glue" and isinstance(arg, ast.Constant) and arg.value is None:
                    continue
                self._validate_ast(arg, expression)
        elif isinstance(node, ast.Compare):
            if not self.allow_compare:
                raise ParseError(f"{self.name} 后端不支持比较运算", expression)
            for op in node.ops:
                if not isinstance(op, (ast.Eq, ast.NotEq, ast.Lt, ast.LtE, ast.Gt, ast.GtE)):
                    raise ParseError(f"不允许的比较运算符 {type(op).__name__}", expression)
            self._validate_ast(node.left, expression)
            for comparator in node.comparators:
                self._validate_ast(comparator, expression)
        elif isinstance(node, ast.Name):
            if not self.allow_calls:
                raise ParseError(f"未知的标识符 {node.id}", expression)
        elif isinstance(node, ast.Constant):
            if isinstance(node.value, bool) or not isinstance(node.value, (int, float, str)):
                raise ParseError(f"不允许的常量 {node.value!r}", expression)
        else:
            raise ParseError(f"不允许的语法 {type(node).__name__}", expression)

    # ------------------------------------------------------------------#
    # 递归求值
    # ------------------------------------------------------------------#
    def _eval(self, node: ast.AST, ctx: EvalContext) -> Any:
        if isinstance(node, ast.Constant):
            return self._constant(node.value, ctx)
        if isinstance(node, ast.UnaryOp):
            value = self._eval(node.operand, ctx)
            return self._negate(value, ctx) if isinstance(node.op, ast.USub) else value
        if isinstance(node, ast.BinOp):
            left = self._eval(node.left, ctx)
            right = self._eval(node.right, ctx)
            return self._binop(node.op, left, right, ctx)
        if isinstance(node, ast.Call):
            name = node.func.id
            if name in PRIMITIVES:
                handler = getattr(self, f"_prim{name}")
                return handler(node.args, ctx)
            return self._call(name, [self._eval(arg, ctx) for arg in node.args], ctx)
        if isinstance(node, ast.Name):
            return self._name(node.id, ctx)
        if isinstance(node, ast.Compare):
            return self._compare(node, ctx)
        raise ctx.error(f"不允许的语法 {type(node).__name__}")

    def _finish(self, value: Any, ctx: EvalContext) -> Result:
        """检查最终结果的类型与取值范围。"""
        if ctx.kind is TargetKind.LENGTH:
            if not isinstance(value, Length):
                raise ctx.error("缺少单位")
            return value.check_range(ctx.expression)
        if not isinstance(value, int):
            raise ctx.error("计数器表达式的结果必须是整数")
        return check_count(value, ctx.expression)

    # ---- 常量与运算 ----------------------------------------------------
    def _constant(self, value: Any, ctx: EvalContext) -> Any:
        if isinstance(value, int):
            return value
        raise ctx.error(f"{self.name} 后端的因子必须是整数，不能是 {value!r}")

    def _negate(self, value: Any, ctx: EvalContext) -> Any:
        return -value

    def _binop(self, op: ast.operator, left: Any, right: Any, ctx: EvalContext) -> Any:
        """TeX 寄存器算术：长度加减长度，长度乘除整数，整数之间四则运算。"""
        if isinstance(left, int) and isinstance(right, int):
            return check_count(self._int_op(op, left, right, ctx), ctx.expression)
        if isinstance(left, Length) and isinstance(right, Length):
            if isinstance(op, ast.Add):
                return (left + right).check_range(ctx.expression)
            if isinstance(op, ast.Sub):
                return (left - right).check_range(ctx.expression)
            raise ctx.error("长度之间只能相加或相减")
        if isinstance(left, Length) and isinstance(right, int):
            if isinstance(op, ast.Mult):
                return left.multiply(right).check_range(ctx.expression)
            if isinstance(op, ast.Div):
                if right == 0:
                    raise CalcArithmeticError("除数为零", ctx.expression)
                return left.divide(right, rounded=self.rounded_division)
            raise ctx.error("长度不能与整数相加减")
        if isinstance(left, int) and isinstance(right, Length):
            if isinstance(op, ast.Mult):
                raise ctx.error("因子必须写在长度之后")
            raise ctx.error("整数不能与长度相加减")
        raise ctx.error("运算对象类型不匹配")

    def _int_op(self, op: ast.operator, left: int, right: int, ctx: EvalContext) -> int:
        if isinstance(op, ast.Add):
            return left + right
        if isinstance(op, ast.Sub):
            return left - right
        if isinstance(op, ast.Mult):
            return left * right
        if isinstance(op, ast.Div):
            if right == 0:
                raise CalcArithmeticError("除数为零", ctx.expression)
            if self.rounded_division:
                return round_quotient(left, right)
            return truncate_quotient(left, right)
        raise ctx.error(f"不支持的运算符 {type(op).__name__}")

    def _call(self, name: str, args: List[Any], ctx: EvalContext) -> Any:
        raise ctx.error(f"{self.name} 后端不支持函数调用 {name}")

    def _name(self, name: str, ctx: EvalContext) -> Any:
        raise ctx.error(f"未知的标识符 {name}")

    def _compare(self, node: ast.Compare, ctx: EvalContext) -> Any:
        raise ctx.error(f"{self.name} 后端不支持比较运算")

    # ---- 寄存器 --------------------------------------------------------
    def _lookup(self, name: str, ctx: EvalContext) -> Register:
        try:
            register = self._host.registers.lookup(name)
        except UndefinedReferenceError as exc:
            raise UndefinedReferenceError(exc.name, ctx.expression) from exc
        if register.kind is RegisterKind.MACRO:
            raise ctx.error(f"\\{name} 不是长度或计数器")
        return register

    def _register_value(self, value: Any, ctx: EvalContext) -> Any:
        """寄存器值进入表达式时的转换钩子。"""
        return value

    @staticmethod
    def _literal_number(node: ast.AST, ctx: EvalContext) -> str:
        """读取字面数值参数（可带负号），返回其十进制文本。"""
        negative = False
        if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.USub, ast.UAdd)):
            negative = isinstance(node.op, ast.USub)
            node = node.operand
        if not isinstance(node, ast.Constant) or isinstance(node.value, (bool, str)):
            raise ctx.error("参数必须是数值")
        text = repr(node.value)
        return f"-{text}" if negative else text

    # ------------------------------------------------------------------#
    # 内部原语（由 lexer 生成）
    # ------------------------------------------------------------------#
    def _prim_q(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        if ctx.kind is TargetKind.COUNTER:
            raise ctx.error("计数器表达式中不能出现尺寸")
        return Length.from_unit(args[0].value, args[1].value)

    def _prim_fil(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        raise ctx.error("fil/fill/filll 只能用于 plus/minus 分量")

    def _prim_ref(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        register = self._lookup(args[0].value, ctx)
        return self._register_value(register.value, ctx)

    def _prim_value(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        name = args[0].value
        if not self._host.registers.has(name, RegisterKind.COUNTER):
            raise UndefinedReferenceError(name, ctx.expression)
        return self._register_value(self._host.registers.get(name), ctx)

    def _prim_scaled(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        base = self._eval(args[1], ctx)
        if not isinstance(base, Length):
            raise ctx.error("系数之后必须是长度寄存器")
        return Length(sp=apply_factor(base.sp, to_factor(args[0].value))).check_range(ctx.expression)

    def _prim_glue(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        base = self._eval(args[0], ctx)
        if not isinstance(base, Length):
            raise ctx.error("胶的自然宽度必须是尺寸")
        result = base.rigid()
        stretch, shrink = args[1], args[2]
        if not (isinstance(stretch, ast.Constant) and stretch.value is None):
            result = result.with_stretch(*self._glue_component(stretch, ctx))
        if not (isinstance(shrink, ast.Constant) and shrink.value is None):
            result = result.with_shrink(*self._glue_component(shrink, ctx))
        return result.check_range(ctx.expression)

    def _glue_component(self, node: ast.AST, ctx: EvalContext) -> Tuple[int, int]:
        if isinstance(node, ast.Call) and node.func.id == "_fil":
            return scan_fil(node.args[0].value, node.args[1].value)
        value = self._eval(node, ctx)
        if not isinstance(value, Length):
            raise ctx.error("伸缩分量必须是尺寸")
        return value.sp, 0

    def _prim_stretch(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        if ctx.kind is TargetKind.COUNTER:
            raise ctx.error("计数器表达式中不能使用 \\stretch")
        # \stretch{n} = 0pt plus n fill
        return Length(stretch=to_factor(self._literal_number(args[0], ctx)), stretch_order=2)

    def _prim_real(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        raise ctx.error(f"{self.name} 后端不支持 \\real")

    def _prim_ratio(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        raise ctx.error(f"{self.name} 后端不支持 \\ratio")

    def _prim_maxof(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        raise ctx.error(f"{self.name} 后端不支持 \\maxof")

    def _prim_minof(self, args: List[ast.AST], ctx: EvalContext) -> Any:
        raise ctx.error(f"{self.name} 后端不支持 \\minof")
