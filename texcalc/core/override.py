"""
全局覆盖管理

把宿主的四个原生赋值原语（只接受字面量）包装为支持任意表达式的版本：
- setlength    -> CalcService.assign_length
- addtolength  -> CalcService.add_length
- setcounter   -> CalcService.assign_counter
- addtocounter -> CalcService.add_counter

install() 把包装后的原语绑定到宿主的原语表中，重复调用不产生任何变化；
uninstall() 恢复原始原语。也可以不安装，直接通过 primitives 取得包装后的原语使用。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict

from texcalc.utils.logger import get_logger

from .host import PRIMITIVE_NAMES, Primitive, Target

if TYPE_CHECKING:
    from .service import CalcService


logger = get_logger()

# 原语名 -> 服务方法名
_DELEGATES = {
    "setlength": "assign_length",
    "addtolength": "add_length",
    "setcounter": "assign_counter",
    "addtocounter": "add_counter",
}


class ExpressionPrimitive:
    """
    支持表达式的宿主原语。

    Attributes:
        name: 原语名称，例如 "setlength"。
        original: 被包装的原生原语。
    """

    def __init__(self, name: str, original: Primitive, delegate: Callable[[Target, str], None]) -> None:
        self.name = name
        self.original = original
        self._delegate = delegate

    def __call__(self, target: Target, expression: str) -> None:
        self._delegate(target, expression)

    def __repr__(self) -> str:
        return f"<ExpressionPrimitive {self.name}>"


class OverrideManager:
    """宿主原语覆盖管理器。"""

    def __init__(self, service: "CalcService") -> None:
        self._service = service
        self._installed: Dict[str, ExpressionPrimitive] = {}

    @property
    def installed(self) -> bool:
        return bool(self._installed)

    def wrap(self, name: str) -> ExpressionPrimitive:
        """包装宿主当前绑定的原语（不修改原语表）。"""
        if name not in _DELEGATES:
            raise KeyError(f"未知的宿主原语: {name}")
        original = self._service.host.primitive(name)
        if isinstance(original, ExpressionPrimitive):
            return original
        return ExpressionPrimitive(name, original, getattr(self._service, _DELEGATES[name]))

    @property
    def primitives(self) -> Dict[str, ExpressionPrimitive]:
        """四个支持表达式的原语，供显式注入使用。"""
        if self._installed:
            return dict(self._installed)
        return {name: self.wrap(name) for name in PRIMITIVE_NAMES}

    def install(self) -> None:
        """把支持表达式的原语绑定到宿主原语表。"""
        if self._installed:
            return
        host = self._service.host
        for name in PRIMITIVE_NAMES:
            wrapped = self.wrap(name)
            host.rebind(name, wrapped)
            self._installed[name] = wrapped
        logger.warning(
            "Host assignment primitives overridden: %s now accept arithmetic expressions",
            ", ".join(PRIMITIVE_NAMES),
        )

    def uninstall(self) -> None:
        """恢复宿主的原生原语。"""
        if not self._installed:
            return
        host = self._service.host
        for name, wrapped in self._installed.items():
            host.rebind(name, wrapped.original)
        self._installed.clear()
        logger.warning("Host assignment primitives restored to literal-only behaviour")
