"""
寄存器存储

宿主环境中由调用方拥有的长度、计数器和宏（文本）寄存器。
核心只通过目标引用（LengthRef / CounterRef / MacroRef）读写，不持有寄存器本身。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union

from .errors import UndefinedReferenceError
from .units import Length


class RegisterKind(Enum):
    """寄存器类型。"""

    LENGTH = "length"
    COUNTER = "counter"
    MACRO = "macro"


class TargetKind(Enum):
    """赋值目标的类型：长度或计数器。"""

    LENGTH = "length"
    COUNTER = "counter"


RegisterValue = Union[Length, int, str]

_INITIAL_VALUES = {
    RegisterKind.LENGTH: Length(),
    RegisterKind.COUNTER: 0,
    RegisterKind.MACRO: "",
}


def normalize_name(name: str) -> str:
    """去掉控制序列前缀，例如 "\\parindent" -> "parindent"。"""
    return name.strip().lstrip("\\")


@dataclass
class Register:
    """
    单个寄存器。

    Attributes:
        name: 寄存器名称（不带反斜杠）。
        kind: 寄存器类型。
        value: 当前值。
    """

    name: str
    kind: RegisterKind
    value: RegisterValue


class RegisterStore:
    """
    寄存器容器。

    - 长度、计数器、宏共用一个命名空间（与 TeX 的控制序列一致）。
    - 计数器另外可以按 LaTeX 计数器名（\\value{page}）访问。
    """

    def __init__(self) -> None:
        self._registers: Dict[str, Register] = {}

    # ---- 声明 ------------------------------------------------------------
    def declare(self, name: str, kind: RegisterKind, initial: RegisterValue | None = None) -> Register:
        """
        声明寄存器；已存在且类型相同时直接返回。

        Raises:
            ValueError: 同名寄存器已以其他类型声明。
        """
        key = normalize_name(name)
        register = self._registers.get(key)
        if register is not None:
            if register.kind is not kind:
                raise ValueError(f"寄存器 \\{key} 已声明为 {register.kind.value}")
            return register
        value = _INITIAL_VALUES[kind] if initial is None else initial
        register = Register(name=key, kind=kind, value=value)
        self._registers[key] = register
        return register

    def new_length(self, name: str, initial: Length | None = None) -> "LengthRef":
        self.declare(name, RegisterKind.LENGTH, initial)
        return LengthRef(self, normalize_name(name))

    def new_counter(self, name: str, initial: int = 0) -> "CounterRef":
        self.declare(name, RegisterKind.COUNTER, initial)
        return CounterRef(self, normalize_name(name))

    def new_macro(self, name: str, text: str = "") -> "MacroRef":
        self.declare(name, RegisterKind.MACRO, text)
        return MacroRef(self, normalize_name(name))

    # ---- 读写 ------------------------------------------------------------
    def lookup(self, name: str) -> Register:
        """按名称查找寄存器，不存在时抛出 UndefinedReferenceError。"""
        register = self._registers.get(normalize_name(name))
        if register is None:
            raise UndefinedReferenceError(normalize_name(name))
        return register

    def has(self, name: str, kind: RegisterKind | None = None) -> bool:
        register = self._registers.get(normalize_name(name))
        if register is None:
            return False
        return kind is None or register.kind is kind

    def get(self, name: str) -> RegisterValue:
        return self.lookup(name).value

    def set(self, name: str, value: RegisterValue) -> None:
        self.lookup(name).value = value

    def ref(self, name: str) -> "RegisterRef":
        """返回已声明寄存器的目标引用。"""
        register = self.lookup(name)
        ref_class = _REF_CLASSES[register.kind]
        return ref_class(self, register.name)

    def snapshot(self) -> Dict[str, Any]:
        """导出所有寄存器的当前值；长度按 \\the 格式输出。"""
        return {
            name: str(reg.value) if reg.kind is RegisterKind.LENGTH else reg.value
            for name, reg in self._registers.items()
        }


class RegisterRef:
    """目标引用：指向某个存储中的某个寄存器。"""

    kind: RegisterKind

    def __init__(self, store: RegisterStore, name: str) -> None:
        self._store = store
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def store(self) -> RegisterStore:
        return self._store

    def get(self) -> Any:
        return self._store.get(self._name)

    def set(self, value: Any) -> None:
        self._store.set(self._name, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RegisterRef):
            return NotImplemented
        return self._store is other._store and self._name == other._name

    def __hash__(self) -> int:
        return hash((id(self._store), self._name))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} \\{self._name}>"


class LengthRef(RegisterRef):
    kind = RegisterKind.LENGTH

    def get(self) -> Length:
        return self._store.get(self._name)


class CounterRef(RegisterRef):
    kind = RegisterKind.COUNTER

    def get(self) -> int:
        return self._store.get(self._name)


class MacroRef(RegisterRef):
    kind = RegisterKind.MACRO

    def get(self) -> str:
        return self._store.get(self._name)


_REF_CLASSES = {
    RegisterKind.LENGTH: LengthRef,
    RegisterKind.COUNTER: CounterRef,
    RegisterKind.MACRO: MacroRef,
}
