"""
进程级默认实例

模块级函数都作用于同一个延迟创建的 CalcService，便于脚本直接使用：

    from texcalc import api

    width = api.new_length("mywidth")
    api.assign_length(width, "(\\textwidth - 2cm)/3")

测试或需要隔离的调用方应自行创建 CalcService，而不是使用这里的默认实例。
"""

from __future__ import annotations

import threading
from typing import Any, Mapping, Optional, Union

from texcalc.core.config import Backend, ConfigSnapshot
from texcalc.core.host import Target
from texcalc.core.registers import CounterRef, LengthRef, MacroRef
from texcalc.core.service import CalcService
from texcalc.core.units import Length


_service: Optional[CalcService] = None
_service_lock = threading.Lock()


def get_service() -> CalcService:
    """返回默认实例，首次调用时创建。"""
    global _service
    with _service_lock:
        if _service is None:
            _service = CalcService()
        return _service


def reset_service(service: Optional[CalcService] = None) -> None:
    """替换（或丢弃）默认实例。"""
    global _service
    with _service_lock:
        _service = service


# ---- 配置 --------------------------------------------------------------
def select_backend(choice: Union[Backend, str]) -> Backend:
    return get_service().select_backend(choice)


def set_default_unit(unit: str) -> None:
    get_service().set_default_unit(unit)


def enable_override() -> None:
    get_service().enable_override()


def disable_override() -> None:
    get_service().disable_override()


def configure(options: Union[Mapping[str, Any], str]) -> ConfigSnapshot:
    return get_service().configure(options)


# ---- 寄存器 ------------------------------------------------------------
def new_length(name: str, text: Optional[str] = None) -> LengthRef:
    return get_service().host.new_length(name, text)


def new_counter(name: str, value: int = 0) -> CounterRef:
    return get_service().host.new_counter(name, value)


def new_macro(name: str, text: str = "") -> MacroRef:
    return get_service().host.new_macro(name, text)


# ---- 赋值与求值 --------------------------------------------------------
def assign_length(target: Target, expression: str) -> None:
    get_service().assign_length(target, expression)


def add_length(target: Target, expression: str) -> None:
    get_service().add_length(target, expression)


def assign_counter(target: Target, expression: str) -> None:
    get_service().assign_counter(target, expression)


def add_counter(target: Target, expression: str) -> None:
    get_service().add_counter(target, expression)


def scale_to_unit(target: Target, expression: str, unit: str) -> str:
    return get_service().scale_to_unit(target, expression, unit)


def evaluate_length(expression: str) -> Length:
    return get_service().evaluate_length(expression)


def evaluate_counter(expression: str) -> int:
    return get_service().evaluate_counter(expression)


def the(target: Target) -> str:
    return get_service().the(target)
