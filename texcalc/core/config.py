"""
后端选择与配置注册表

负责：
- 保存当前配置（后端、默认单位、是否覆盖宿主原语），用一把 RLock 保护
- 后端选择：检查底层引擎是否可用，不可用时抛出 UnsupportedBackendError 并保持原配置
- 未显式选择后端时，首次使用时确定默认后端：有 e-TeX 用 native，否则用 compat
- 解析 LaTeX 风格的选项字符串（"backend=parser, defaultunit=bp, overwrite"）
- 从 YAML 文件读取配置、寄存器初值与赋值列表（run_calc 使用）
"""

from __future__ import annotations

import pathlib
import re
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

import yaml

from texcalc.utils.logger import get_logger

from .errors import UnsupportedBackendError


logger = get_logger()

DEFAULT_UNIT = "pt"


class Backend(str, Enum):
    """可选的计算后端。"""

    NATIVE = "native"
    COMPAT = "compat"
    PARSER = "parser"

    @property
    def engine(self) -> Optional[str]:
        """后端依赖的宿主算术引擎，None 表示任何环境都可用。"""
        return _BACKEND_ENGINES[self]

    @classmethod
    def parse(cls, value: Union["Backend", str]) -> "Backend":
        """
        解析后端名称（不区分大小写，接受引擎名作为别名）。

        Raises:
            UnsupportedBackendError: 未知的后端名称。
        """
        if isinstance(value, Backend):
            return value
        key = str(value).strip().lower()
        key = _BACKEND_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError as exc:
            raise UnsupportedBackendError(str(value), "未知的后端名称") from exc


_BACKEND_ENGINES = {
    Backend.NATIVE: "etex",
    Backend.COMPAT: None,
    Backend.PARSER: "pgfmath",
}

_BACKEND_ALIASES = {
    "etex": "native",
    "calc": "compat",
    "pgfmath": "parser",
}


@dataclass
class CalcConfig:
    """
    计算配置。

    Attributes:
        backend: 当前后端；None 表示尚未确定，首次使用时按引擎可用性选择。
        default_unit: 裸数值的默认单位，"none" 表示关闭默认单位。
        overwrite: 是否覆盖宿主的原生赋值原语。
    """

    backend: Optional[Backend] = None
    default_unit: str = DEFAULT_UNIT
    overwrite: bool = False


@dataclass(frozen=True)
class ConfigSnapshot:
    """某一时刻的配置快照（后端与默认单位总是成对读取）。"""

    backend: Backend
    default_unit: str
    overwrite: bool


class ConfigRegistry:
    """
    配置注册表。

    Args:
        engines: 宿主中可用的算术引擎名称（只在构造时探测一次）。
        config: 初始配置；不传时使用默认配置。
    """

    def __init__(self, engines: Iterable[str], config: Optional[CalcConfig] = None) -> None:
        self._engines = frozenset(engines)
        self._config = config if config is not None else CalcConfig()
        self._lock = threading.RLock()

    @property
    def engines(self) -> frozenset:
        return self._engines

    def is_available(self, backend: Union[Backend, str]) -> bool:
        engine = Backend.parse(backend).engine
        return engine is None or engine in self._engines

    def available_backends(self) -> List[Backend]:
        return [backend for backend in Backend if self.is_available(backend)]

    # ------------------------------------------------------------------#
    # 配置修改
    # ------------------------------------------------------------------#
    def select_backend(self, choice: Union[Backend, str]) -> Backend:
        """
        选择后端。重复选择同一后端不产生任何变化。

        Raises:
            UnsupportedBackendError: 后端未知或其引擎不可用，此时保持原后端。
        """
        backend = self._checked_backend(choice)
        with self._lock:
            previous = self._config.backend
            if previous is backend:
                return backend
            self._config.backend = backend
        logger.info(
            "Backend switched: %s -> %s",
            previous.value if previous else "<unset>",
            backend.value,
        )
        return backend

    def set_default_unit(self, unit: str) -> None:
        """设置默认单位，不做校验（非法单位在求值时报 ParseError）。"""
        unit = str(unit).strip()
        with self._lock:
            if self._config.default_unit == unit:
                return
            self._config.default_unit = unit
        logger.info("Default unit set to %s", unit)

    def enable_override(self) -> None:
        with self._lock:
            self._config.overwrite = True

    def disable_override(self) -> None:
        with self._lock:
            self._config.overwrite = False

    def apply_options(self, options: Union[Mapping[str, Any], str]) -> ConfigSnapshot:
        """
        按键值对批量修改配置。

        所有选项先全部校验，再在同一把锁内一次性写入；
        任一选项非法时配置保持不变。

        Args:
            options: 映射，或 "backend=parser, defaultunit=bp, overwrite" 形式的字符串。

        Returns:
            修改后的配置快照。

        Raises:
            ValueError: 未知的配置项或非法取值。
            UnsupportedBackendError: 后端未知或不可用。
        """
        parsed = parse_options(options) if isinstance(options, str) else normalize_options(options)
        backend = self._checked_backend(parsed["backend"]) if "backend" in parsed else None
        with self._lock:
            if backend is not None:
                self.select_backend(backend)
            if "default_unit" in parsed:
                self.set_default_unit(parsed["default_unit"])
            if "overwrite" in parsed:
                self._config.overwrite = parsed["overwrite"]
            return self.snapshot()

    def _checked_backend(self, choice: Union[Backend, str]) -> Backend:
        backend = Backend.parse(choice)
        if not self.is_available(backend):
            raise UnsupportedBackendError(backend.value, f"{backend.engine} 引擎不可用")
        return backend

    # ------------------------------------------------------------------#
    # 配置读取
    # ------------------------------------------------------------------#
    def _resolve_backend(self) -> Backend:
        """返回当前后端；尚未确定时按引擎可用性选择并固定下来。"""
        if self._config.backend is None:
            if self.is_available(Backend.NATIVE):
                self._config.backend = Backend.NATIVE
            else:
                self._config.backend = Backend.COMPAT
            logger.info("Default backend resolved to %s", self._config.backend.value)
        return self._config.backend

    def snapshot(self) -> ConfigSnapshot:
        with self._lock:
            return ConfigSnapshot(
                backend=self._resolve_backend(),
                default_unit=self._config.default_unit,
                overwrite=self._config.overwrite,
            )

    @contextmanager
    def transaction(self) -> Iterator[ConfigSnapshot]:
        """持有配置锁，在整个 with 块内使用同一份配置。"""
        with self._lock:
            yield self.snapshot()


# ---------------------------------------------------------------------------
# 选项解析
# ---------------------------------------------------------------------------

_OPTION_KEYS = {
    "backend": "backend",
    "defaultunit": "default_unit",
    "default_unit": "default_unit",
    "overwrite": "overwrite",
    "override": "overwrite",
}

_TRUE_WORDS = {"true", "yes", "on", "1"}
_FALSE_WORDS = {"false", "no", "off", "0"}

_OPTION_SEPARATOR = re.compile(r"\s*,\s*")


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    word = str(value).strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"配置项 {key} 的取值必须是布尔值: {value!r}")


def normalize_options(options: Mapping[str, Any]) -> Dict[str, Any]:
    """
    规范化配置项的键与值。

    Raises:
        ValueError: 未知的配置项或非法取值。
    """
    result: Dict[str, Any] = {}
    for raw_key, value in options.items():
        key = _OPTION_KEYS.get(str(raw_key).strip().lower())
        if key is None:
            raise ValueError(f"未知的配置项: {raw_key}")
        if key == "overwrite":
            result[key] = _parse_bool(key, value)
        elif value is None:
            raise ValueError(f"配置项 {raw_key} 缺少取值")
        else:
            result[key] = str(value).strip()
    return result


def parse_options(text: str) -> Dict[str, Any]:
    """
    解析 LaTeX 风格的选项字符串。

    Examples:
        parse_options("backend=parser, defaultunit=bp, overwrite")
        -> {"backend": "parser", "default_unit": "bp", "overwrite": True}
    """
    options: Dict[str, Any] = {}
    for item in _OPTION_SEPARATOR.split(text.strip()):
        if not item:
            continue
        key, sep, value = item.partition("=")
        options[key.strip()] = value.strip() if sep else True
    return normalize_options(options)


# ---------------------------------------------------------------------------
# YAML 配置文件
# ---------------------------------------------------------------------------

ASSIGNMENT_OPS = frozenset(
    {
        "assign_length",
        "add_length",
        "assign_counter",
        "add_counter",
        "scale_to_unit",
        "setlength",
        "addtolength",
        "setcounter",
        "addtocounter",
    }
)


@dataclass
class AssignmentItem:
    """
    单条赋值。

    Attributes:
        op: 操作名（服务操作如 assign_length，或宿主原语如 setlength）。
        target: 目标寄存器名。
        expression: 表达式字符串。
        unit: 仅 scale_to_unit 使用的目标单位。
    """

    op: str
    target: str
    expression: str
    unit: Optional[str] = None


@dataclass
class RegisterTable:
    """寄存器初值：长度为字面量文本，计数器为整数，宏为文本。"""

    lengths: Dict[str, str] = field(default_factory=dict)
    counters: Dict[str, int] = field(default_factory=dict)
    macros: Dict[str, str] = field(default_factory=dict)


@dataclass
class LoadedConfig:
    """
    配置文件内容。

    Attributes:
        options: 规范化后的配置项（backend / default_unit / overwrite）。
        engines: 宿主引擎开关，例如 {"etex": True, "pgfmath": False}。
        registers: 寄存器初值。
        assignments: 依次执行的赋值列表。
    """

    options: Dict[str, Any]
    engines: Dict[str, bool]
    registers: RegisterTable
    assignments: List[AssignmentItem]


class ConfigLoader:
    """
    YAML 配置解析器。

    支持的顶层键：
    - backend, defaultunit（或 default_unit）, overwrite
    - engines: {etex: bool, pgfmath: bool}
    - registers: {lengths: {...}, counters: {...}, macros: {...}}
    - assignments: 列表，每项包含 op, target, expression, unit(可选)
    """

    def parse_file(self, path: str | pathlib.Path) -> LoadedConfig:
        """
        从 YAML 文件解析配置。

        Args:
            path: 配置文件路径。
        """
        path_obj = pathlib.Path(path)
        with path_obj.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return self.parse_data(data)

    def parse_data(self, data: Dict[str, Any]) -> LoadedConfig:
        options = normalize_options({key: data[key] for key in data if key.lower() in _OPTION_KEYS})
        return LoadedConfig(
            options=options,
            engines=self._parse_engines(data),
            registers=self._parse_registers(data),
            assignments=self._parse_assignments(data),
        )

    # ------------------------------------------------------------------#
    # 内部解析工具
    # ------------------------------------------------------------------#
    def _parse_engines(self, data: Dict[str, Any]) -> Dict[str, bool]:
        engines_raw = data.get("engines", {}) or {}
        known = {backend.engine for backend in Backend if backend.engine}
        engines: Dict[str, bool] = {}
        for name, value in engines_raw.items():
            name = str(name).strip().lower()
            if name not in known:
                raise ValueError(f"未知的引擎: {name}（可选: {', '.join(sorted(known))}）")
            engines[name] = _parse_bool(f"engines.{name}", value)
        return engines

    def _parse_registers(self, data: Dict[str, Any]) -> RegisterTable:
        registers_raw = data.get("registers", {}) or {}
        return RegisterTable(
            lengths={str(k): str(v) for k, v in (registers_raw.get("lengths") or {}).items()},
            counters={str(k): int(v) for k, v in (registers_raw.get("counters") or {}).items()},
            macros={str(k): "" if v is None else str(v) for k, v in (registers_raw.get("macros") or {}).items()},
        )

    def _parse_assignments(self, data: Dict[str, Any]) -> List[AssignmentItem]:
        """解析 assignments 列表。"""
        items_raw = data.get("assignments", []) or []
        items: List[AssignmentItem] = []

        for item in items_raw:
            op = str(item["op"]).strip()
            if op not in ASSIGNMENT_OPS:
                raise ValueError(f"未知的赋值操作: {op}")
            unit = item.get("unit")
            if op == "scale_to_unit" and not unit:
                raise ValueError("scale_to_unit 需要指定 unit")
            items.append(
                AssignmentItem(
                    op=op,
                    target=str(item["target"]),
                    expression=str(item.get("expression", "")).strip(),
                    unit=str(unit) if unit else None,
                )
            )

        return items
