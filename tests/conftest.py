"""
测试公共夹具

- 把项目根目录加入 sys.path
- 日志写到临时目录，避免在工作目录下生成 logs/
"""

import os
import pathlib
import sys
import tempfile

# 添加项目根目录到路径
project_root = pathlib.Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

os.environ.setdefault("TEXCALC_LOG_DIR", tempfile.mkdtemp(prefix="texcalc_logs_"))

import pytest  # noqa: E402

from texcalc.core.host import EngineCapabilities, HostEnvironment  # noqa: E402
from texcalc.core.service import CalcService  # noqa: E402


def populate(host: HostEnvironment) -> HostEnvironment:
    """声明测试中使用的寄存器。"""
    host.new_length("parindent", "15pt")
    host.new_length("textwidth", "345pt")
    host.new_length("skip")
    host.new_length("other")
    host.new_counter("page", 3)
    host.new_counter("n")
    host.new_macro("result")
    return host


@pytest.fixture
def project_dir() -> pathlib.Path:
    return project_root


@pytest.fixture
def host() -> HostEnvironment:
    """两个引擎都可用的宿主环境。"""
    return populate(HostEnvironment())


@pytest.fixture
def service(host: HostEnvironment) -> CalcService:
    return CalcService(host)


@pytest.fixture
def plain_host() -> HostEnvironment:
    """既没有 e-TeX 也没有 pgfmath 的宿主环境。"""
    return populate(HostEnvironment(capabilities=EngineCapabilities(etex=False, pgfmath=False)))


@pytest.fixture
def no_pgfmath_host() -> HostEnvironment:
    return populate(HostEnvironment(capabilities=EngineCapabilities(etex=True, pgfmath=False)))
