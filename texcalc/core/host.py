"""
宿主环境

模拟排版宿主一侧的外部协作者：
- 寄存器存储（由调用方拥有，核心只通过目标引用读写）
- 可用的算术引擎（etex、pgfmath）
- 原生赋值原语 \\setlength / \\addtolength / \\setcounter / \\addtocounter，
  只接受字面量，保存在可重新绑定的原语表中，覆盖管理器通过 rebind 替换
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Callable, Dict, List, Optional, Union

from texcalc.backends.literal import LiteralEvaluator

from .errors import UndefinedReferenceError
from .registers import (
    CounterRef,
    LengthRef,
    MacroRef,
    RegisterKind,
    RegisterRef,
    RegisterStore,
    TargetKind,
    normalize_name,
)
from .units import Length, check_count


PRIMITIVE_NAMES = ("setlength", "addtolength", "setcounter", "addtocounter")

Target = Union[RegisterRef, str]
Primitive = Callable[[Target, str], None]

_TARGET_REGISTER_KINDS = {
    TargetKind.LENGTH: RegisterKind.LENGTH,
    TargetKind.COUNTER: RegisterKind.COUNTER,
}


@dataclass
class EngineCapabilities:
    """
    宿主提供的算术引擎。

    Attributes:
        etex: 是否提供 e-TeX 扩展（\\glueexpr / \\numexpr）。
        pgfmath: 是否加载了 pgfmath 表达式解析器。
    """

    etex: bool = True
    pgfmath: bool = True

    def has(self, engine: str) -> bool:
        return bool(getattr(self, engine, False))

    def available(self) -> List[str]:
        return [item.name for item in fields(self) if getattr(self, item.name)]


class HostEnvironment:
    """
    宿主环境。

    Attributes:
        registers: 寄存器存储。
        capabilities: 可用的算术引擎。
    """

    def __init__(
        self,
        registers: Optional[RegisterStore] = None,
        capabilities: Optional[EngineCapabilities] = None,
    ) -> None:
        self.registers = registers if registers is not None else RegisterStore()
        self.capabilities = capabilities if capabilities is not None else EngineCapabilities()
        self._literal = LiteralEvaluator(self)
        self._primitives: Dict[str, Primitive] = {
            "setlength": self._native_setlength,
            "addtolength": self._native_addtolength,
            "setcounter": self._native_setcounter,
            "addtocounter": self._native_addtocounter,
        }

    # ------------------------------------------------------------------#
    # 引擎探测
    # ------------------------------------------------------------------#
    def has_engine(self, engine: str) -> bool:
        return self.capabilities.has(engine)

    def detect_engines(self) -> List[str]:
        """返回当前可用的算术引擎名称列表。"""
        return self.capabilities.available()

    # ------------------------------------------------------------------#
    # 原语表
    # ------------------------------------------------------------------#
    def primitive(self, name: str) -> Primitive:
        """
        获取当前绑定的原语。

        Raises:
            KeyError: 未知原语名。
        """
        if name not in self._primitives:
            raise KeyError(f"未知的宿主原语: {name}")
        return self._primitives[name]

    def rebind(self, name: str, func: Primitive) -> Primitive:
        """重新绑定原语，返回之前的绑定。"""
        previous = self.primitive(name)
        self._primitives[name] = func
        return previous

    def setlength(self, target: Target, expression: str) -> None:
        self.primitive("setlength")(target, expression)

    def addtolength(self, target: Target, expression: str) -> None:
        self.primitive("addtolength")(target, expression)

    def setcounter(self, target: Target, expression: str) -> None:
        self.primitive("setcounter")(target, expression)

    def addtocounter(self, target: Target, expression: str) -> None:
        self.primitive("addtocounter")(target, expression)

    # ------------------------------------------------------------------#
    # 原生实现（只接受字面量）
    # ------------------------------------------------------------------#
    def literal(self, text: str, kind: TargetKind) -> Union[Length, int]:
        """按宿主原生语义读取字面量。"""
        return self._literal.evaluate(text, kind)

    def _native_setlength(self, target: Target, expression: str) -> None:
        ref = self.resolve_target(target, TargetKind.LENGTH)
        ref.set(self.literal(expression, TargetKind.LENGTH))

    def _native_addtolength(self, target: Target, expression: str) -> None:
        ref = self.resolve_target(target, TargetKind.LENGTH)
        value = self.literal(expression, TargetKind.LENGTH)
        ref.set((ref.get() + value).check_range(expression))

    def _native_setcounter(self, target: Target, expression: str) -> None:
        ref = self.resolve_target(target, TargetKind.COUNTER)
        ref.set(self.literal(expression, TargetKind.COUNTER))

    def _native_addtocounter(self, target: Target, expression: str) -> None:
        ref = self.resolve_target(target, TargetKind.COUNTER)
        value = self.literal(expression, TargetKind.COUNTER)
        ref.set(check_count(ref.get() + value, expression))

    # ------------------------------------------------------------------#
    # 寄存器
    # ------------------------------------------------------------------#
    def resolve_target(self, target: Target, kind: Union[TargetKind, RegisterKind]) -> RegisterRef:
        """
        把目标（引用或寄存器名）解析为指定类型的引用。

        Raises:
            UndefinedReferenceError: 寄存器不存在或类型不符。
        """
        register_kind = _TARGET_REGISTER_KINDS.get(kind, kind)
        if isinstance(target, RegisterRef):
            if target.store is not self.registers:
                raise UndefinedReferenceError(target.name)
            name = target.name
        else:
            name = target
        if not self.registers.has(name, register_kind):
            raise UndefinedReferenceError(normalize_name(name))
        return self.registers.ref(name)

    def new_length(self, name: str, text: Optional[str] = None) -> LengthRef:
        """声明长度寄存器，可选地按字面量设置初值。"""
        initial = self.literal(text, TargetKind.LENGTH) if text is not None else None
        return self.registers.new_length(name, initial)

    def new_counter(self, name: str, value: int = 0) -> CounterRef:
        return self.registers.new_counter(name, check_count(int(value)))

    def new_macro(self, name: str, text: str = "") -> MacroRef:
        return self.registers.new_macro(name, text)

    def the(self, target: Target) -> str:
        """寄存器的 \\the 文本。"""
        value = target.get() if isinstance(target, RegisterRef) else self.registers.get(target)
        return str(value)
