"""
YAML 配置加载与 run_calc 测试
"""

import textwrap

import pytest

from texcalc.core.config import Backend, ConfigLoader
from texcalc.core.errors import UnsupportedBackendError
from texcalc.core.service import CalcService
from texcalc.run_calc import run_calc

CONFIG = textwrap.dedent(
    r"""
    backend: parser
    defaultunit: pt
    overwrite: no

    engines:
      etex: false
      pgfmath: true

    registers:
      lengths:
        textwidth: 345pt
        half: 0pt
      counters:
        page: 3
      macros:
        scaled:

    assignments:
      - op: assign_length
        target: half
        expression: '\textwidth/2'
      - op: add_counter
        target: page
        expression: 2^3
      - op: scale_to_unit
        target: scaled
        expression: 10
        unit: bp
    """
)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "calc.yaml"
    path.write_text(CONFIG, encoding="utf-8")
    return path


def test_parse_file(config_file):
    loaded = ConfigLoader().parse_file(config_file)
    assert loaded.options == {"backend": "parser", "default_unit": "pt", "overwrite": False}
    assert loaded.engines == {"etex": False, "pgfmath": True}
    assert loaded.registers.lengths == {"textwidth": "345pt", "half": "0pt"}
    assert loaded.registers.counters == {"page": 3}
    assert loaded.registers.macros == {"scaled": ""}
    assert [item.op for item in loaded.assignments] == ["assign_length", "add_counter", "scale_to_unit"]
    assert loaded.assignments[0].expression == r"\textwidth/2"
    assert loaded.assignments[2].expression == "10"
    assert loaded.assignments[2].unit == "bp"


def test_service_from_loaded_config(config_file):
    service = CalcService.from_loaded_config(ConfigLoader().parse_file(config_file))
    assert service.backend is Backend.PARSER
    assert service.config.snapshot().default_unit == "pt"
    assert service.host.detect_engines() == ["pgfmath"]
    assert service.the("textwidth") == "345.0pt"


def test_run_calc(config_file):
    snapshot = run_calc(config_file)
    assert snapshot == {
        "textwidth": "345.0pt",
        "half": "172.5pt",
        "page": 11,
        "scaled": "9.9626",
    }


def test_run_demo_config(project_dir):
    snapshot = run_calc(project_dir / "config" / "demo.yaml")
    assert snapshot["columnwidth"] == "105.0pt"
    assert snapshot["gap"] == "10.5pt plus 1.0fil"
    assert snapshot["chapter"] == 7
    assert snapshot["scaled"] == "9.9626"


def test_invalid_assignments():
    loader = ConfigLoader()
    with pytest.raises(ValueError):
        loader.parse_data({"assignments": [{"op": "settowidth", "target": "x", "expression": "1pt"}]})
    with pytest.raises(ValueError):
        loader.parse_data({"assignments": [{"op": "scale_to_unit", "target": "x", "expression": "1"}]})
    with pytest.raises(ValueError):
        loader.parse_data({"overwrite": "maybe"})
    with pytest.raises(ValueError):
        loader.parse_data({"engines": {"luatex": True}})
    assert loader.parse_data({"engines": {"eTeX": "no"}}).engines == {"etex": False}
    assert loader.parse_data({}).assignments == []


def test_unavailable_backend_in_config():
    loaded = ConfigLoader().parse_data({"backend": "native", "engines": {"etex": False}})
    with pytest.raises(UnsupportedBackendError):
        CalcService.from_loaded_config(loaded)
