"""
长度与单位

所有长度都以 TeX 的 scaled point（sp，1pt = 65536sp）为整数存储，
单位换算与输出格式按 TeX 的定点算法实现，保证与宿主环境的结果逐位一致：
- 小数读入：round_decimals + xn_over_d
- 数值输出：print_scaled（即 \\the 与 \\strip@pt 的格式）

Length 同时承载胶（glue）的伸展/收缩分量，阶数 0 为普通长度，1/2/3 对应 fil/fill/filll。
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Tuple, Union

from .errors import CalcArithmeticError, ParseError


UNITY = 0x10000  # 1pt
MAX_DIMEN = 0x3FFFFFFF  # \maxdimen = 16383.99998pt
MAX_COUNT = 0x7FFFFFFF  # 计数器上限

# 单位 -> (分子, 分母)，以 pt 为基准，与 TeX 的换算表一致
UNIT_RATIOS = {
    "pt": (1, 1),
    "in": (7227, 100),
    "pc": (12, 1),
    "cm": (7227, 254),
    "mm": (7227, 2540),
    "bp": (7227, 7200),
    "px": (7227, 7200),  # pdfTeX 默认 \pdfpxdimen = 1bp
    "dd": (1238, 1157),
    "cc": (14856, 1157),
}

# 字体相关单位，取 Computer Modern 10pt 的 quad 与 x-height（sp）
FONT_UNITS = {
    "em": 655360,
    "ex": 282168,
}

FIL_ORDERS = {"fil": 1, "fill": 2, "filll": 3}
ORDER_NAMES = {value: key for key, value in FIL_ORDERS.items()}

KNOWN_UNITS = frozenset(UNIT_RATIOS) | frozenset(FONT_UNITS) | {"sp"}

_DECIMAL = re.compile(r"^\s*([+-]?)\s*(\d*)(?:\.(\d*))?\s*$")

Number = Union[int, float, str]


def _split_decimal(value: Number) -> Tuple[bool, int, str]:
    """把数值拆成 (是否为负, 整数部分, 小数位字符串)。"""
    if isinstance(value, float):
        text = format(value, ".10f")
    else:
        text = str(value)
    match = _DECIMAL.match(text)
    if match is None or not (match.group(2) or match.group(3)):
        raise ParseError("无法识别的数值", text)
    sign, integer, digits = match.groups()
    return sign == "-", int(integer or 0), digits or ""


def round_decimals(digits: str) -> int:
    """把小数位（最多 17 位）换算成 1/65536 的整数倍，TeX §102。"""
    accumulator = 0
    for char in reversed(digits[:17]):
        accumulator = (accumulator + int(char) * 2 * UNITY) // 10
    return (accumulator + 1) // 2


def xn_over_d(x: int, n: int, d: int) -> int:
    """计算 x*n/d，向零截断。"""
    quotient = abs(x) * n // d
    return quotient if x >= 0 else -quotient


def round_quotient(x: int, n: int) -> int:
    """e-TeX 的整数除法：四舍五入，.5 远离零。"""
    if n == 0:
        raise CalcArithmeticError("除数为零")
    negative = (x < 0) != (n < 0)
    quotient, remainder = divmod(abs(x), abs(n))
    if 2 * remainder >= abs(n):
        quotient += 1
    return -quotient if negative else quotient


def truncate_quotient(x: int, n: int) -> int:
    """TeX \\divide 的整数除法：向零截断。"""
    if n == 0:
        raise CalcArithmeticError("除数为零")
    quotient = abs(x) // abs(n)
    return -quotient if (x < 0) != (n < 0) else quotient


def to_factor(value: Number) -> int:
    """把系数（如 0.5、-1.25）换算为 16.16 定点数。"""
    negative, integer, digits = _split_decimal(value)
    factor = integer * UNITY + round_decimals(digits)
    return -factor if negative else factor


def apply_factor(sp: int, factor: int) -> int:
    """按 TeX 读 `<系数><尺寸>` 的方式相乘，factor 为 16.16 定点数。"""
    integer, fraction = divmod(abs(factor), UNITY)
    result = sp * integer + xn_over_d(sp, fraction, UNITY)
    return -result if factor < 0 else result


def scan_dimen(value: Number, unit: str) -> int:
    """
    把 `<数值><单位>` 换算为 sp，TeX §453-§461。

    Args:
        value: 数值（字符串保留原始小数位，浮点数按 10 位小数处理）。
        unit: 单位，见 KNOWN_UNITS。

    Raises:
        ParseError: 未知单位。
        CalcArithmeticError: 结果超过 \\maxdimen。
    """
    negative, integer, digits = _split_decimal(value)

    if unit == "sp":
        sp = integer
    elif unit in FONT_UNITS:
        quad = FONT_UNITS[unit]
        sp = integer * quad + xn_over_d(quad, round_decimals(digits), UNITY)
    elif unit in UNIT_RATIOS:
        fraction = round_decimals(digits)
        num, denom = UNIT_RATIOS[unit]
        if (num, denom) != (1, 1):
            integer, remainder = divmod(integer * num, denom)
            fraction = (num * fraction + UNITY * remainder) // denom
            integer += fraction // UNITY
            fraction %= UNITY
        if integer >= 0x4000:
            raise CalcArithmeticError("Dimension too large", f"{value}{unit}")
        sp = integer * UNITY + fraction
    else:
        raise ParseError("未知单位", unit)

    if sp > MAX_DIMEN:
        raise CalcArithmeticError("Dimension too large", f"{value}{unit}")
    return -sp if negative else sp


def scan_fil(value: Number, unit: str) -> Tuple[int, int]:
    """把 `<数值>fil` 换算为 (伸缩量, 阶数)。"""
    order = FIL_ORDERS.get(unit)
    if order is None:
        raise ParseError("未知的无限伸缩单位", unit)
    negative, integer, digits = _split_decimal(value)
    if integer >= 0x4000:
        raise CalcArithmeticError("Dimension too large", f"{value}{unit}")
    amount = integer * UNITY + round_decimals(digits)
    return (-amount if negative else amount), order


def unit_size(unit: str) -> float:
    """返回 1<unit> 对应的 sp 数（浮点）。"""
    if unit == "sp":
        return 1.0
    if unit in FONT_UNITS:
        return float(FONT_UNITS[unit])
    if unit in UNIT_RATIOS:
        num, denom = UNIT_RATIOS[unit]
        return UNITY * num / denom
    raise ParseError("未知单位", unit)


def format_scaled(sp: int) -> str:
    """按 TeX print_scaled 输出 sp 数值（不带单位），例如 65536 -> "1.0"。"""
    sign = ""
    if sp < 0:
        sign = "-"
        sp = -sp
    digits = [str(sp // UNITY), "."]
    sp = 10 * (sp % UNITY) + 5
    delta = 10
    while True:
        if delta > UNITY:
            sp = sp + 0x8000 - 50000  # 末位舍入
        digits.append(str(sp // UNITY))
        sp = 10 * (sp % UNITY)
        delta *= 10
        if sp <= delta:
            break
    return sign + "".join(digits)


def _add_component(a: int, a_order: int, b: int, b_order: int) -> Tuple[int, int]:
    """胶分量相加：阶数相同时相加，否则高阶的非零分量胜出。"""
    if a_order == b_order:
        total, order = a + b, a_order
    elif a_order < b_order and b != 0:
        total, order = b, b_order
    else:
        total, order = a, a_order
    if total == 0:
        order = 0
    return total, order


@dataclass(frozen=True)
class Length:
    """
    长度（胶）值。

    Attributes:
        sp: 自然宽度（sp）。
        stretch: 伸展量；stretch_order 为 0 时单位是 sp，否则是 fil 的 1/65536。
        stretch_order: 伸展阶数（0 普通，1 fil，2 fill，3 filll）。
        shrink: 收缩量。
        shrink_order: 收缩阶数。
    """

    sp: int = 0
    stretch: int = 0
    stretch_order: int = 0
    shrink: int = 0
    shrink_order: int = 0

    @classmethod
    def from_unit(cls, value: Number, unit: str = "pt") -> "Length":
        """由 `<数值><单位>` 构造普通长度，例如 Length.from_unit("12", "bp")。"""
        return cls(sp=scan_dimen(value, unit))

    @classmethod
    def from_points(cls, points: float) -> "Length":
        """由 pt 浮点数构造（四舍五入到 sp）。"""
        sp = round(points * UNITY)
        if abs(sp) > MAX_DIMEN:
            raise CalcArithmeticError("Dimension too large", f"{points}pt")
        return cls(sp=sp)

    @property
    def is_rigid(self) -> bool:
        """没有伸缩分量。"""
        return self.stretch == 0 and self.shrink == 0

    @property
    def points(self) -> float:
        return self.sp / UNITY

    def to_unit(self, unit: str) -> float:
        """自然宽度换算到指定单位。"""
        return self.sp / unit_size(unit)

    def rigid(self) -> "Length":
        """去掉伸缩分量（TeX 把胶强制转换为尺寸）。"""
        return Length(sp=self.sp)

    def with_stretch(self, amount: int, order: int = 0) -> "Length":
        return replace(self, stretch=amount, stretch_order=order if amount else 0)

    def with_shrink(self, amount: int, order: int = 0) -> "Length":
        return replace(self, shrink=amount, shrink_order=order if amount else 0)

    def __add__(self, other: "Length") -> "Length":
        if not isinstance(other, Length):
            return NotImplemented
        stretch, stretch_order = _add_component(
            self.stretch, self.stretch_order, other.stretch, other.stretch_order
        )
        shrink, shrink_order = _add_component(
            self.shrink, self.shrink_order, other.shrink, other.shrink_order
        )
        return Length(self.sp + other.sp, stretch, stretch_order, shrink, shrink_order)

    def __neg__(self) -> "Length":
        return Length(-self.sp, -self.stretch, self.stretch_order, -self.shrink, self.shrink_order)

    def __sub__(self, other: "Length") -> "Length":
        if not isinstance(other, Length):
            return NotImplemented
        return self + (-other)

    def multiply(self, factor: int) -> "Length":
        """各分量乘以整数。"""
        return Length(
            self.sp * factor,
            self.stretch * factor,
            self.stretch_order,
            self.shrink * factor,
            self.shrink_order,
        )

    def divide(self, divisor: int, rounded: bool = True) -> "Length":
        """各分量除以整数；rounded 为 False 时向零截断。"""
        div = round_quotient if rounded else truncate_quotient
        return Length(
            div(self.sp, divisor),
            div(self.stretch, divisor),
            self.stretch_order,
            div(self.shrink, divisor),
            self.shrink_order,
        )

    def check_range(self, expression: str | None = None) -> "Length":
        """任一分量超过 \\maxdimen 时抛出 CalcArithmeticError。"""
        for amount in (self.sp, self.stretch, self.shrink):
            if abs(amount) > MAX_DIMEN:
                raise CalcArithmeticError("Dimension too large", expression)
        return self

    def __str__(self) -> str:
        text = format_scaled(self.sp) + "pt"
        if self.stretch:
            text += " plus " + _format_component(self.stretch, self.stretch_order)
        if self.shrink:
            text += " minus " + _format_component(self.shrink, self.shrink_order)
        return text


def _format_component(amount: int, order: int) -> str:
    return format_scaled(amount) + ORDER_NAMES.get(order, "pt")


def check_count(value: int, expression: str | None = None) -> int:
    """计数器取值范围检查。"""
    if abs(value) > MAX_COUNT:
        raise CalcArithmeticError("Arithmetic overflow", expression)
    return value
