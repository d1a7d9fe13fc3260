"""
计算后端

- native：e-TeX 原生算术（\\glueexpr / \\numexpr），需要 etex 引擎
- compat：calc 宏包算术，任何环境都可用
- parser：pgfmath 表达式解析，需要 pgfmath 引擎

导入本包即把三个后端注册到 BackendRegistry。
"""

from texcalc.core.registry import BackendRegistry

from .compat import CompatEvaluator
from .mathparser import ParserEvaluator
from .native import NativeEvaluator

BackendRegistry.register_backend(NativeEvaluator.name, NativeEvaluator)
BackendRegistry.register_backend(CompatEvaluator.name, CompatEvaluator)
BackendRegistry.register_backend(ParserEvaluator.name, ParserEvaluator)

__all__ = ["NativeEvaluator", "CompatEvaluator", "ParserEvaluator"]
