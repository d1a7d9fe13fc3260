"""
后端与函数注册表

本模块只负责「注册」，不承载求值逻辑：
- backends：{后端名 -> Evaluator 子类}
- functions：表达式解析后端可调用的数学函数（sin、sqrt 等）
- constants：表达式中可直接使用的常量（pi、e）

具体的后端实现在 texcalc.backends 包中，函数库在 texcalc.functions 包中，
两者在导入时通过 BackendRegistry 完成注册。
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Type


class BackendRegistry:
    """
    后端与函数注册表。

    所有注册/获取都通过类方法完成，便于在不同模块中统一使用。
    """

    _backends: Dict[str, Type[Any]] = {}
    _functions: Dict[str, Callable[..., float]] = {}
    _function_labels: Dict[str, str] = {}
    _constants: Dict[str, float] = {}

    # ---- 后端注册/获取 -------------------------------------------------
    @classmethod
    def register_backend(cls, name: str, evaluator_class: Type[Any]) -> None:
        """
        注册后端。

        Args:
            name: 后端名称（不区分大小写），例如 "native"。
            evaluator_class: 继承自 Evaluator 的类。
        """
        cls._backends[name.lower()] = evaluator_class

    @classmethod
    def get_backend(cls, name: str) -> Optional[Type[Any]]:
        """根据名称获取后端类，找不到时返回 None。"""
        return cls._backends.get(name.lower())

    @classmethod
    def list_backends(cls) -> List[str]:
        return sorted(cls._backends.keys())

    # ---- 函数注册/获取 -------------------------------------------------
    @classmethod
    def register_function(cls, name: str, func: Callable[..., float], label: Optional[str] = None) -> None:
        """
        注册可在表达式中调用的函数。

        Args:
            name: 表达式中使用的函数名。
            func: 函数实现。
            label: 中文名，用于错误信息；不传时使用函数名。
        """
        cls._functions[name] = func
        cls._function_labels[name] = label or name

    @classmethod
    def get_function(cls, name: str) -> Optional[Callable[..., float]]:
        return cls._functions.get(name)

    @classmethod
    def get_function_label(cls, name: str) -> str:
        return cls._function_labels.get(name, name)

    @classmethod
    def list_functions(cls) -> List[str]:
        return sorted(cls._functions.keys())

    # ---- 常量注册/获取 -------------------------------------------------
    @classmethod
    def register_constant(cls, name: str, value: float) -> None:
        cls._constants[name] = value

    @classmethod
    def get_constant(cls, name: str) -> Optional[float]:
        return cls._constants.get(name)

    @classmethod
    def list_constants(cls) -> List[str]:
        return sorted(cls._constants.keys())
