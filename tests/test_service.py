"""
计算服务测试
"""

import logging

import pytest

from texcalc import api
from texcalc.core.config import Backend, CalcConfig
from texcalc.core.errors import (
    CalcArithmeticError,
    EngineUnavailableError,
    ParseError,
    UndefinedReferenceError,
    UnsupportedBackendError,
)
from texcalc.core.service import SCALE_CORRECTION, CalcService
from texcalc.core.units import scan_dimen


def test_assign_length_by_reference(service, host):
    skip = host.registers.ref("skip")
    service.assign_length(skip, r"(\textwidth - 2\parindent)/3")
    assert service.the(skip) == "105.0pt"


def test_assign_length_by_name(service):
    service.assign_length("\\skip", "2em")
    assert service.the("skip") == "20.0pt"


def test_add_length(service):
    service.add_length("skip", "1pt")
    service.add_length("skip", "1pt plus 1fil")
    assert service.the("skip") == "2.0pt plus 1.0fil"


def test_counters(service):
    service.assign_counter("n", r"\value{page}*2 + 1")
    assert service.the("n") == "7"
    service.add_counter("n", "-10")
    assert service.the("n") == "-3"


def test_default_unit_applies_to_assignments(service):
    service.set_default_unit("bp")
    service.assign_length("skip", "10")
    assert service.host.registers.get("skip").sp == scan_dimen("10", "bp")
    service.assign_counter("n", "10")
    assert service.the("n") == "10"


def test_native_multiply_divide_intermediate_may_exceed_range(service):
    assert str(service.evaluate_length(r"\textwidth*100/200")) == "172.5pt"
    assert service.evaluate_counter("100000*100000/100000") == 100000


def test_evaluate_without_writing(service):
    assert str(service.evaluate_length(r"\parindent*2")) == "30.0pt"
    assert service.evaluate_counter("7/2") == 4
    assert service.the("skip") == "0.0pt"


@pytest.mark.parametrize("backend", list(Backend))
def test_scale_to_unit_reference_value(service, backend):
    assert SCALE_CORRECTION == 0.99626
    service.select_backend(backend)
    assert service.scale_to_unit("result", "10", "bp") == "9.9626"
    assert service.the("result") == "9.9626"


@pytest.mark.parametrize("backend", list(Backend))
@pytest.mark.parametrize("unit", ["bp", "cm", "none"])
def test_scale_to_unit_ignores_default_unit(service, backend, unit):
    service.select_backend(backend)
    service.set_default_unit(unit)
    assert service.scale_to_unit("result", "10", "bp") == "9.9626"
    assert service.config.snapshot().default_unit == unit


def test_scale_to_unit_other_units(service):
    assert service.scale_to_unit("result", "1in", "pt") == "72.26999"
    assert service.scale_to_unit("result", "1in", "in") == "1.0"
    assert service.scale_to_unit("result", r"\parindent", "pt") == "15.0"


def test_scale_to_unit_errors_leave_target_unchanged(service):
    service.scale_to_unit("result", "10", "bp")
    with pytest.raises(ParseError):
        service.scale_to_unit("result", "10", "furlong")
    with pytest.raises(UndefinedReferenceError):
        service.scale_to_unit("skip", "10", "bp")
    assert service.the("result") == "9.9626"


def test_failed_assignment_leaves_target_unchanged(service):
    service.assign_length("skip", "3pt")
    with pytest.raises(UndefinedReferenceError):
        service.assign_length("skip", r"1pt + \undefined")
    with pytest.raises(ParseError):
        service.assign_length("skip", "1pt +")
    assert service.the("skip") == "3.0pt"

    service.assign_length("skip", "16000pt")
    with pytest.raises(CalcArithmeticError):
        service.add_length("skip", "1000pt")
    assert service.the("skip") == "16000.0pt"

    service.assign_counter("n", "2147483647")
    with pytest.raises(CalcArithmeticError):
        service.add_counter("n", "1")
    assert service.the("n") == "2147483647"


def test_invalid_targets(service):
    with pytest.raises(UndefinedReferenceError):
        service.assign_length("nosuchlength", "1pt")
    with pytest.raises(UndefinedReferenceError):
        service.assign_length("page", "1pt")
    with pytest.raises(UndefinedReferenceError):
        service.assign_counter("skip", "1")


def test_selected_engine_missing_at_evaluation(no_pgfmath_host):
    service = CalcService(no_pgfmath_host, CalcConfig(backend=Backend.PARSER))
    with pytest.raises(EngineUnavailableError):
        service.assign_length("skip", "1pt")
    assert service.the("skip") == "0.0pt"


def test_default_backend_without_etex(plain_host):
    service = CalcService(plain_host)
    assert service.backend is Backend.COMPAT
    with pytest.raises(UnsupportedBackendError):
        service.select_backend("native")
    assert service.backend is Backend.COMPAT
    service.assign_length("skip", r"\textwidth*\real{0.5}")
    assert service.the("skip") == "172.5pt"


def test_switching_backend_changes_semantics(service):
    service.assign_length("skip", "3sp/2")
    assert service.host.registers.get("skip").sp == 2
    service.select_backend("compat")
    service.assign_length("skip", "3sp/2")
    assert service.host.registers.get("skip").sp == 1
    service.select_backend("parser")
    service.assign_length("skip", "sqrt(2)^2*1pt")
    assert service.the("skip") == "2.0pt"


def test_configure(service):
    snap = service.configure("backend=compat, defaultunit=cm, overwrite")
    assert (snap.backend, snap.default_unit, snap.overwrite) == (Backend.COMPAT, "cm", True)
    assert service.override.installed
    service.configure({"overwrite": False})
    assert not service.override.installed


def test_assignments_are_logged(service, caplog):
    with caplog.at_level(logging.DEBUG, logger="texcalc"):
        service.assign_length("skip", "1pt")
    assert any("assign_length" in record.getMessage() for record in caplog.records)


def test_api_uses_process_default(host):
    api.reset_service(CalcService(host))
    try:
        width = api.new_length("apiwidth")
        api.assign_length(width, r"\textwidth/3")
        assert api.the(width) == "115.0pt"
        api.select_backend("parser")
        assert api.evaluate_counter("round(2.5)") == 3
        assert api.scale_to_unit("result", "10", "bp") == "9.9626"
        assert api.get_service().host is host
    finally:
        api.reset_service()
