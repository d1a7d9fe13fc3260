"""
无状态函数库

包含可以在 pgfmath 表达式中直接调用的数学函数，例如：
- sin, cos, tan（角度制）, sqrt, veclen, mod, round 等
- 常量 pi, e

所有函数通过 BackendRegistry 注册，导入本包即完成注册。
"""

from texcalc.core.registry import BackendRegistry

from .math_functions import CONSTANTS, FUNCTIONS

for _name, (_func, _label) in FUNCTIONS.items():
    BackendRegistry.register_function(_name, _func, _label)

for _name, _value in CONSTANTS.items():
    BackendRegistry.register_constant(_name, _value)

__all__ = []
