"""
求值调度服务

CalcService 是唯一的调度入口：
1. 在配置锁内取得后端与默认单位的快照
2. 经单位默认层预处理表达式，交给选中的后端求值
3. 求值与范围检查全部成功后才写入目标，失败时目标保持原值

配置对象（ConfigRegistry）由服务持有，可通过构造参数注入；
进程级的默认实例只在 texcalc.api 中创建。
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Union

import texcalc.backends  # noqa: F401  注册后端
import texcalc.functions  # noqa: F401  注册函数库

from texcalc.backends.base import Evaluator
from texcalc.utils.logger import get_logger

from .config import Backend, CalcConfig, ConfigRegistry, ConfigSnapshot, LoadedConfig
from .defaulting import UnitDefaulting
from .host import EngineCapabilities, HostEnvironment, Target
from .override import OverrideManager
from .registers import RegisterKind, TargetKind
from .registry import BackendRegistry
from .units import UNITY, Length, check_count, format_scaled, unit_size


logger = get_logger()

# pt -> bp 的固定换算系数，只用于 bp；其他单位按 TeX 的精确比例换算
SCALE_CORRECTION = 0.99626

# scale_to_unit 中裸数值一律按 pt 读取，与当前默认单位无关
SCALE_SOURCE_UNIT = "pt"


class CalcService:
    """
    长度/计数器计算服务。

    Args:
        host: 宿主环境；不传时创建一个全新的环境（两个引擎都可用）。
        config: 初始配置；config.overwrite 为真时构造后立即安装覆盖。
    """

    def __init__(
        self,
        host: Optional[HostEnvironment] = None,
        config: Optional[CalcConfig] = None,
    ) -> None:
        self.host = host if host is not None else HostEnvironment()
        self._evaluators: Dict[Backend, Evaluator] = {}
        for backend in Backend:
            evaluator_class = BackendRegistry.get_backend(backend.value)
            if evaluator_class is None:
                raise RuntimeError(f"后端 {backend.value} 未注册")
            self._evaluators[backend] = evaluator_class(self.host)

        self.config = ConfigRegistry(self.host.detect_engines(), config)
        self.override = OverrideManager(self)
        if self.config.snapshot().overwrite:
            self.override.install()

    # ------------------------------------------------------------------#
    # 配置
    # ------------------------------------------------------------------#
    def select_backend(self, choice: Union[Backend, str]) -> Backend:
        return self.config.select_backend(choice)

    def set_default_unit(self, unit: str) -> None:
        self.config.set_default_unit(unit)

    def enable_override(self) -> None:
        """开启覆盖：宿主的四个原生赋值原语从此接受任意表达式。"""
        self.config.enable_override()
        self.override.install()

    def disable_override(self) -> None:
        """关闭覆盖并恢复宿主的原生原语。"""
        self.config.disable_override()
        self.override.uninstall()

    def configure(self, options: Union[Mapping[str, Any], str]) -> ConfigSnapshot:
        """按键值对批量配置，overwrite 的变化同步到覆盖管理器。"""
        snap = self.config.apply_options(options)
        if snap.overwrite:
            self.override.install()
        else:
            self.override.uninstall()
        return snap

    @property
    def backend(self) -> Backend:
        return self.config.snapshot().backend

    def evaluator(self, backend: Union[Backend, str]) -> Evaluator:
        return self._evaluators[Backend.parse(backend)]

    # ------------------------------------------------------------------#
    # 求值
    # ------------------------------------------------------------------#
    def _compute(
        self,
        kind: TargetKind,
        expression: str,
        snap: ConfigSnapshot,
        default_unit: Optional[str] = None,
    ) -> Union[Length, int]:
        unit = snap.default_unit if default_unit is None else default_unit
        layer = UnitDefaulting(self._evaluators[snap.backend], unit)
        return layer.evaluate(expression, kind)

    def evaluate_length(self, expression: str) -> Length:
        """按当前配置求值长度表达式（不写入任何寄存器）。"""
        with self.config.transaction() as snap:
            return self._compute(TargetKind.LENGTH, expression, snap)

    def evaluate_counter(self, expression: str) -> int:
        with self.config.transaction() as snap:
            return self._compute(TargetKind.COUNTER, expression, snap)

    # ------------------------------------------------------------------#
    # 赋值操作
    # ------------------------------------------------------------------#
    def assign_length(self, target: Target, expression: str) -> None:
        """target := expression"""
        ref = self.host.resolve_target(target, TargetKind.LENGTH)
        with self.config.transaction() as snap:
            value = self._compute(TargetKind.LENGTH, expression, snap)
            ref.set(value)
        logger.debug("assign_length \\%s = %s (%s via %s)", ref.name, value, expression, snap.backend.value)

    def add_length(self, target: Target, expression: str) -> None:
        """target := target + expression"""
        ref = self.host.resolve_target(target, TargetKind.LENGTH)
        with self.config.transaction() as snap:
            value = self._compute(TargetKind.LENGTH, expression, snap)
            result = (ref.get() + value).check_range(expression)
            ref.set(result)
        logger.debug("add_length \\%s += %s -> %s", ref.name, value, result)

    def assign_counter(self, target: Target, expression: str) -> None:
        ref = self.host.resolve_target(target, TargetKind.COUNTER)
        with self.config.transaction() as snap:
            value = self._compute(TargetKind.COUNTER, expression, snap)
            ref.set(value)
        logger.debug("assign_counter %s = %d (%s via %s)", ref.name, value, expression, snap.backend.value)

    def add_counter(self, target: Target, expression: str) -> None:
        ref = self.host.resolve_target(target, TargetKind.COUNTER)
        with self.config.transaction() as snap:
            value = self._compute(TargetKind.COUNTER, expression, snap)
            result = check_count(ref.get() + value, expression)
            ref.set(result)
        logger.debug("add_counter %s += %d -> %d", ref.name, value, result)

    def scale_to_unit(self, target: Target, expression: str, unit: str) -> str:
        """
        把长度表达式换算到 unit 并输出不带单位的数值文本。

        表达式中的裸数值按 pt 读取，不受默认单位影响。
        bp 使用固定系数 0.99626（10pt -> 9.9626），其他单位按 TeX 换算比例。
        结果按 sp 精度舍入，以 \\the 的格式写入宏目标并返回。

        Raises:
            ParseError: 未知单位或表达式错误。
        """
        ref = self.host.resolve_target(target, RegisterKind.MACRO)
        unit = unit.strip()
        factor = SCALE_CORRECTION if unit == "bp" else UNITY / unit_size(unit)
        with self.config.transaction() as snap:
            length = self._compute(TargetKind.LENGTH, expression, snap, default_unit=SCALE_SOURCE_UNIT)
            text = format_scaled(round(length.sp * factor))
            ref.set(text)
        logger.debug("scale_to_unit \\%s = %s (%s in %s)", ref.name, text, expression, unit)
        return text

    def the(self, target: Target) -> str:
        return self.host.the(target)

    # ------------------------------------------------------------------#
    # 由配置文件构造
    # ------------------------------------------------------------------#
    @classmethod
    def from_loaded_config(cls, loaded: LoadedConfig) -> "CalcService":
        """按配置文件创建宿主环境、声明寄存器并应用配置项。"""
        capabilities = EngineCapabilities(**loaded.engines)
        host = HostEnvironment(capabilities=capabilities)
        for name, text in loaded.registers.lengths.items():
            host.new_length(name, text)
        for name, value in loaded.registers.counters.items():
            host.new_counter(name, value)
        for name, text in loaded.registers.macros.items():
            host.new_macro(name, text)

        service = cls(host)
        if loaded.options:
            service.configure(loaded.options)
        return service


__all__ = ["CalcService", "SCALE_CORRECTION"]
