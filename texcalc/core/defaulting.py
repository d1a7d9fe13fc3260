"""
单位默认层

长度表达式如果只是一个裸数值（可带符号的十进制数，没有单位也没有运算符），
在交给后端之前追加默认单位，例如 "12" + "bp" -> "12bp"；其他表达式原样透传。
默认单位设为 "none" 时整个默认层关闭。
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Optional, Union

from .registers import TargetKind
from .units import Length

if TYPE_CHECKING:
    from texcalc.backends.base import Evaluator


NO_DEFAULT_UNIT = "none"

_BARE_NUMERAL = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")


def is_bare_numeral(expression: str) -> bool:
    """判断表达式是否为裸数值。"""
    return _BARE_NUMERAL.fullmatch(expression.strip()) is not None


def defaulting_enabled(unit: Optional[str]) -> bool:
    return unit is not None and unit != NO_DEFAULT_UNIT


def apply_default_unit(expression: str, unit: Optional[str]) -> str:
    """
    为裸数值追加默认单位。

    Args:
        expression: 原始表达式。
        unit: 默认单位；None 或 "none" 表示关闭默认层。

    Returns:
        裸数值返回 "<数值><单位>"，其他情况返回原表达式本身。
    """
    if not defaulting_enabled(unit) or not is_bare_numeral(expression):
        return expression
    return expression.strip() + unit


class UnitDefaulting:
    """包装一个后端，使长度目标的裸数值按默认单位解释。"""

    def __init__(self, evaluator: "Evaluator", unit: Optional[str]) -> None:
        self._evaluator = evaluator
        self.unit = unit

    @property
    def evaluator(self) -> "Evaluator":
        return self._evaluator

    def prepare(self, expression: str, kind: TargetKind) -> str:
        """
        返回实际交给后端的表达式。

        只有长度目标、且后端不自行做单位换算时才追加默认单位。
        """
        if kind is TargetKind.LENGTH and self._evaluator.applies_default_unit:
            return apply_default_unit(expression, self.unit)
        return expression

    def evaluate(self, expression: str, kind: TargetKind) -> Union[Length, int]:
        return self._evaluator.evaluate(self.prepare(expression, kind), kind, default_unit=self.unit)
