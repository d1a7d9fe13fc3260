"""
按配置文件执行一组赋值

运行方式：
    python -m texcalc.run_calc config/demo.yaml
"""

from __future__ import annotations

import pathlib
import sys
from typing import Any, Dict

from texcalc.core.config import AssignmentItem, ConfigLoader
from texcalc.core.host import PRIMITIVE_NAMES
from texcalc.core.service import CalcService
from texcalc.utils.logger import get_logger


logger = get_logger()

DEFAULT_CONFIG = pathlib.Path(__file__).resolve().parent.parent / "config" / "demo.yaml"


def run_assignment(service: CalcService, item: AssignmentItem) -> None:
    """执行单条赋值：宿主原语走原语表（受覆盖影响），其余走服务。"""
    if item.op in PRIMITIVE_NAMES:
        service.host.primitive(item.op)(item.target, item.expression)
    elif item.op == "scale_to_unit":
        service.scale_to_unit(item.target, item.expression, item.unit)
    else:
        getattr(service, item.op)(item.target, item.expression)


def run_calc(config_path: str | pathlib.Path = DEFAULT_CONFIG) -> Dict[str, Any]:
    """
    解析配置文件，依次执行赋值并返回寄存器快照。

    任一赋值失败时异常直接抛出，之前的赋值结果保留。
    """
    loaded = ConfigLoader().parse_file(config_path)
    service = CalcService.from_loaded_config(loaded)
    logger.info(
        "Loaded %s: backend=%s, %d assignment(s)",
        config_path,
        service.backend.value,
        len(loaded.assignments),
    )

    for item in loaded.assignments:
        run_assignment(service, item)

    snapshot = service.host.registers.snapshot()
    for name, value in snapshot.items():
        logger.info("\\%s = %s", name, value)
    return snapshot


def main() -> None:
    config_path = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_CONFIG
    print("=" * 60)
    print(f"texcalc: {config_path}")
    print("=" * 60)
    for name, value in run_calc(config_path).items():
        print(f"\\{name} = {value}")


if __name__ == "__main__":
    main()
