"""
数学函数库

提供表达式解析后端（pgfmath）中可以直接调用的数学函数。
所有函数都是无状态的，只接受参数并返回计算结果。
三角函数与反三角函数按角度制计算，与 pgfmath 一致。
"""

import math
from typing import Union

Number = Union[int, float]


# ---- 三角函数（角度制） ------------------------------------------------
def sin_func(x: Number) -> float:
    """
    计算角度的正弦值。

    Examples:
        sin_func(30) -> 0.5
        sin_func(90) -> 1.0
    """
    return math.sin(math.radians(float(x)))


def cos_func(x: Number) -> float:
    return math.cos(math.radians(float(x)))


def tan_func(x: Number) -> float:
    return math.tan(math.radians(float(x)))


def sec_func(x: Number) -> float:
    return 1.0 / cos_func(x)


def cosec_func(x: Number) -> float:
    return 1.0 / sin_func(x)


def cot_func(x: Number) -> float:
    return 1.0 / tan_func(x)


def asin_func(x: Number) -> float:
    """反正弦，结果为角度。"""
    return math.degrees(math.asin(float(x)))


def acos_func(x: Number) -> float:
    return math.degrees(math.acos(float(x)))


def atan_func(x: Number) -> float:
    return math.degrees(math.atan(float(x)))


def atan2_func(y: Number, x: Number) -> float:
    """
    计算点 (x, y) 的方位角（角度制）。

    注意参数顺序为 (y, x)，与 pgfmath 的 atan2 相同。
    """
    return math.degrees(math.atan2(float(y), float(x)))


def deg_func(x: Number) -> float:
    """弧度转角度。"""
    return math.degrees(float(x))


def rad_func(x: Number) -> float:
    """角度转弧度。"""
    return math.radians(float(x))


# ---- 代数函数 ----------------------------------------------------------
def abs_func(x: Number) -> float:
    """
    计算绝对值。

    Args:
        x: 输入数值

    Returns:
        绝对值（浮点数）

    Examples:
        abs_func(-5) -> 5.0
        abs_func(3.14) -> 3.14
    """
    return float(abs(x))


def sqrt_func(x: Number) -> float:
    """
    计算平方根。

    Args:
        x: 输入数值（必须 >= 0）

    Returns:
        平方根（浮点数）

    Raises:
        ValueError: 如果 x < 0

    Examples:
        sqrt_func(4) -> 2.0
        sqrt_func(9.0) -> 3.0
    """
    x_float = float(x)
    if x_float < 0:
        raise ValueError(f"sqrt 函数不能接受负数: {x_float}")
    return float(math.sqrt(x_float))


def veclen_func(x: Number, y: Number) -> float:
    """向量 (x, y) 的长度。"""
    return math.hypot(float(x), float(y))


def pow_func(x: Number, y: Number) -> float:
    return math.pow(float(x), float(y))


def ln_func(x: Number) -> float:
    """
    自然对数。

    Raises:
        ValueError: 如果 x <= 0
    """
    x_float = float(x)
    if x_float <= 0:
        raise ValueError(f"ln 函数只接受正数: {x_float}")
    return math.log(x_float)


def log10_func(x: Number) -> float:
    return ln_func(x) / math.log(10)


def log2_func(x: Number) -> float:
    return ln_func(x) / math.log(2)


def exp_func(x: Number) -> float:
    return math.exp(float(x))


# ---- 取整与取余 --------------------------------------------------------
def round_func(x: Number) -> float:
    """
    四舍五入到整数，.5 远离零。

    Examples:
        round_func(2.5) -> 3.0
        round_func(-2.5) -> -3.0
    """
    x_float = float(x)
    return math.copysign(math.floor(abs(x_float) + 0.5), x_float)


def int_func(x: Number) -> float:
    """向零截断。"""
    return float(math.trunc(float(x)))


def frac_func(x: Number) -> float:
    """小数部分，frac(-1.25) = 0.75。"""
    x_float = float(x)
    return x_float - math.floor(x_float)


def floor_func(x: Number) -> float:
    return float(math.floor(float(x)))


def ceil_func(x: Number) -> float:
    return float(math.ceil(float(x)))


def mod_func(x: Number, y: Number) -> float:
    """
    取余，结果与被除数同号（mod(-7, 3) = -1）。

    Raises:
        ValueError: 如果 y == 0
    """
    if float(y) == 0:
        raise ValueError("mod 函数的除数不能为零")
    return math.fmod(float(x), float(y))


def Mod_func(x: Number, y: Number) -> float:
    """取余，结果非负（Mod(-7, 3) = 2）。"""
    if float(y) == 0:
        raise ValueError("Mod 函数的除数不能为零")
    return float(x) - float(y) * math.floor(float(x) / float(y))


def sign_func(x: Number) -> float:
    x_float = float(x)
    if x_float > 0:
        return 1.0
    if x_float < 0:
        return -1.0
    return 0.0


def factorial_func(x: Number) -> float:
    """
    阶乘，参数按整数截断。

    Raises:
        ValueError: 如果 x < 0
    """
    n = math.trunc(float(x))
    if n < 0:
        raise ValueError(f"factorial 函数不能接受负数: {n}")
    return float(math.factorial(n))


def min_func(*args: Number) -> float:
    """
    取最小值，至少需要一个参数。

    Raises:
        TypeError: 没有参数时。
    """
    if not args:
        raise TypeError("min 至少需要一个参数")
    return float(min(args))


def max_func(*args: Number) -> float:
    if not args:
        raise TypeError("max 至少需要一个参数")
    return float(max(args))


# 函数名 -> (实现, 中文名)
FUNCTIONS = {
    "sin": (sin_func, "正弦"),
    "cos": (cos_func, "余弦"),
    "tan": (tan_func, "正切"),
    "sec": (sec_func, "正割"),
    "cosec": (cosec_func, "余割"),
    "cot": (cot_func, "余切"),
    "asin": (asin_func, "反正弦"),
    "acos": (acos_func, "反余弦"),
    "atan": (atan_func, "反正切"),
    "atan2": (atan2_func, "方位角"),
    "deg": (deg_func, "弧度转角度"),
    "rad": (rad_func, "角度转弧度"),
    "abs": (abs_func, "绝对值"),
    "sqrt": (sqrt_func, "平方根"),
    "veclen": (veclen_func, "向量长度"),
    "pow": (pow_func, "乘方"),
    "ln": (ln_func, "自然对数"),
    "log10": (log10_func, "常用对数"),
    "log2": (log2_func, "以 2 为底的对数"),
    "exp": (exp_func, "指数"),
    "round": (round_func, "四舍五入"),
    "int": (int_func, "取整"),
    "frac": (frac_func, "小数部分"),
    "floor": (floor_func, "向下取整"),
    "ceil": (ceil_func, "向上取整"),
    "mod": (mod_func, "取余"),
    "Mod": (Mod_func, "非负取余"),
    "sign": (sign_func, "符号"),
    "factorial": (factorial_func, "阶乘"),
    "min": (min_func, "最小值"),
    "max": (max_func, "最大值"),
}

CONSTANTS = {
    "pi": math.pi,
    "e": math.e,
}
