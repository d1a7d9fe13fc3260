"""
texcalc

TeX 风格长度/计数器的表达式计算层：
- 三个可切换的计算后端（native / compat / parser）
- 裸数值的默认单位
- 可选地覆盖宿主的原生赋值原语，使其接受任意表达式

常用入口：
- `texcalc.core.service.CalcService`：可注入配置的计算服务
- `texcalc.api`：进程级默认实例上的模块级函数
"""

from texcalc.core.config import Backend, CalcConfig
from texcalc.core.errors import (
    CalcArithmeticError,
    CalcError,
    EngineUnavailableError,
    ExpressionError,
    ParseError,
    UndefinedReferenceError,
    UnsupportedBackendError,
)
from texcalc.core.host import EngineCapabilities, HostEnvironment
from texcalc.core.service import CalcService
from texcalc.core.units import Length

__all__ = [
    "Backend",
    "CalcConfig",
    "CalcService",
    "EngineCapabilities",
    "HostEnvironment",
    "Length",
    "CalcError",
    "UnsupportedBackendError",
    "ExpressionError",
    "ParseError",
    "UndefinedReferenceError",
    "EngineUnavailableError",
    "CalcArithmeticError",
]
