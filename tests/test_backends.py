"""
三个计算后端的语法与语义测试
"""

import math

import pytest

from texcalc.backends.compat import CompatEvaluator
from texcalc.backends.literal import LiteralEvaluator
from texcalc.backends.mathparser import ParserEvaluator
from texcalc.backends.native import NativeEvaluator
from texcalc.core.errors import (
    CalcArithmeticError,
    EngineUnavailableError,
    ParseError,
    UndefinedReferenceError,
)
from texcalc.core.registers import TargetKind
from texcalc.core.units import UNITY

LENGTH = TargetKind.LENGTH
COUNTER = TargetKind.COUNTER


@pytest.fixture
def native(host):
    return NativeEvaluator(host)


@pytest.fixture
def compat(host):
    return CompatEvaluator(host)


@pytest.fixture
def parser(host):
    return ParserEvaluator(host)


# ---------------------------------------------------------------------------
# native（e-TeX）
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "expression, expected",
    [
        (r"(\textwidth - 2\parindent)/3", "105.0pt"),
        ("7pt/2", "3.5pt"),
        (r"\parindent*2 - 1pt", "29.0pt"),
        ("-(1pt + 2pt)", "-3.0pt"),
        ("1pt*(2+3)", "5.0pt"),
        ("1pt plus 2fil minus 1pt", "1.0pt plus 2.0fil minus 1.0pt"),
        ("(1pt plus 1fil)*2", "2.0pt plus 2.0fil"),
        ("1pt plus 1fil + 2pt plus 3pt", "3.0pt plus 1.0fil"),
        (r"\stretch{2}", "0.0pt plus 2.0fill"),
        ("2em", "20.0pt"),
    ],
)
def test_native_lengths(native, expression, expected):
    assert str(native.evaluate(expression, LENGTH)) == expected


def test_native_division_rounds(native):
    assert native.evaluate("3sp/2", LENGTH).sp == 2
    assert native.evaluate("-3sp/2", LENGTH).sp == -2
    assert native.evaluate("7/2", COUNTER) == 4
    assert native.evaluate("-7/2", COUNTER) == -4


def test_native_scales_multiply_divide_in_one_step(native):
    # x*n/d 的中间结果可以超出范围，只检查最终结果
    assert str(native.evaluate(r"\textwidth*100/200", LENGTH)) == "172.5pt"
    assert str(native.evaluate("(1pt plus 1fil)*3/2", LENGTH)) == "1.5pt plus 1.5fil"
    assert native.evaluate("100000*100000/100000", COUNTER) == 100000
    assert native.evaluate("7*3/2", COUNTER) == 11
    assert native.evaluate("-7*3/2", COUNTER) == -11
    assert native.evaluate(r"\value{page}*2/4", COUNTER) == 2
    with pytest.raises(CalcArithmeticError):
        native.evaluate("16383pt*4/2", LENGTH)
    with pytest.raises(CalcArithmeticError):
        native.evaluate("2147483647*4/2", COUNTER)
    with pytest.raises(CalcArithmeticError):
        native.evaluate("1pt*2/0", LENGTH)
    with pytest.raises(ParseError):
        native.evaluate("2*3pt/2", LENGTH)


def test_native_counters(native):
    assert native.evaluate(r"\value{page}*2 + 1", COUNTER) == 7
    assert native.evaluate(r"\page - 1", COUNTER) == 2
    # 长度在计数器表达式中按 sp 参与运算
    assert native.evaluate(r"\parindent", COUNTER) == 15 * UNITY


@pytest.mark.parametrize(
    "expression",
    [
        "2*3pt",
        "2pt*1.5",
        "1pt + 2",
        "1pt*2pt",
        "3",
        r"\real{1.5}",
        r"\maxof{1pt}{2pt}",
        "sin(30)",
        "2pt^2",
        "1pt < 2pt",
        r"\result",
    ],
)
def test_native_rejects(native, expression):
    with pytest.raises(ParseError):
        native.evaluate(expression, LENGTH)


def test_native_counter_rejects_dimensions(native):
    with pytest.raises(ParseError):
        native.evaluate("1pt", COUNTER)
    with pytest.raises(ParseError):
        native.evaluate(r"\stretch{1}", COUNTER)


def test_native_errors(native):
    with pytest.raises(UndefinedReferenceError):
        native.evaluate(r"\nosuchlength + 1pt", LENGTH)
    with pytest.raises(UndefinedReferenceError):
        native.evaluate(r"\value{parindent}", COUNTER)
    with pytest.raises(CalcArithmeticError):
        native.evaluate("1pt/0", LENGTH)
    with pytest.raises(CalcArithmeticError):
        native.evaluate("16383pt*2", LENGTH)
    with pytest.raises(CalcArithmeticError):
        native.evaluate("2147483647 + 1", COUNTER)


def test_native_requires_etex(plain_host):
    evaluator = NativeEvaluator(plain_host)
    assert not evaluator.available
    with pytest.raises(EngineUnavailableError):
        evaluator.evaluate("1pt", LENGTH)


# ---------------------------------------------------------------------------
# compat（calc）
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "expression, expected",
    [
        (r"(\textwidth - 2\parindent)/3", "105.0pt"),
        (r"\textwidth*\real{0.5}", "172.5pt"),
        (r"10pt*\ratio{1pt}{2pt}", "5.0pt"),
        (r"10pt/\real{2}", "5.0pt"),
        (r"\maxof{\parindent}{10pt}", "15.0pt"),
        (r"\minof{\parindent}{10pt} + 1pt", "11.0pt"),
        (r"-\parindent*\real{-1}", "15.0pt"),
    ],
)
def test_compat_lengths(compat, expression, expected):
    assert str(compat.evaluate(expression, LENGTH)) == expected


def test_compat_division_truncates(compat):
    assert compat.evaluate("3sp/2", LENGTH).sp == 1
    assert compat.evaluate("-3sp/2", LENGTH).sp == -1
    assert compat.evaluate("7/2", COUNTER) == 3
    assert compat.evaluate("-7/2", COUNTER) == -3


def test_compat_counters(compat):
    assert compat.evaluate(r"\value{page}*(2 + 1)", COUNTER) == 9
    assert compat.evaluate(r"\maxof{3}{\value{page}*2}", COUNTER) == 6


@pytest.mark.parametrize(
    "expression",
    [
        "1pt plus 1fil",
        r"\stretch{1}",
        r"\real{1.5}*2pt",
        r"2*\real{1.5}",
        r"1pt + \real{1.5}",
        r"\maxof{1pt}{2}",
        r"\ratio{1}{2}",
        "max(1pt, 2pt)",
    ],
)
def test_compat_rejects(compat, expression):
    with pytest.raises(ParseError):
        compat.evaluate(expression, LENGTH)


def test_compat_counter_is_integer_only(compat):
    with pytest.raises(ParseError):
        compat.evaluate(r"\parindent", COUNTER)
    with pytest.raises(ParseError):
        compat.evaluate(r"\real{2}", COUNTER)


def test_compat_arithmetic_errors(compat):
    with pytest.raises(CalcArithmeticError):
        compat.evaluate(r"1pt*\ratio{1pt}{0pt}", LENGTH)
    with pytest.raises(CalcArithmeticError):
        compat.evaluate(r"1pt/\real{0}", LENGTH)


def test_compat_is_always_available(plain_host):
    assert str(CompatEvaluator(plain_host).evaluate("1pt + 1pt", LENGTH)) == "2.0pt"


# ---------------------------------------------------------------------------
# parser（pgfmath）
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("2*3pt", "6.0pt"),
        ("sin(30)*10pt", "5.0pt"),
        ("sqrt(16)", "4.0pt"),
        ("2^3*1pt", "8.0pt"),
        ("max(1pt, 3pt)", "3.0pt"),
        ("(1pt < 2pt)*5pt", "5.0pt"),
        ("(2pt < 1pt)*5pt", "0.0pt"),
        ("veclen(3, 4)*1pt", "5.0pt"),
        (r"\textwidth/2", "172.5pt"),
        (r"0.5\textwidth", "172.5pt"),
        (r"\real{1.5}*2pt", "3.0pt"),
        (r"\ratio{1pt}{4pt}*\parindent", "3.75pt"),
        (r"\minof{\parindent}{10pt}", "10.0pt"),
    ],
)
def test_parser_lengths(parser, expression, expected):
    assert str(parser.evaluate(expression, LENGTH, default_unit="pt")) == expected


def test_parser_constants(parser):
    assert parser.evaluate("pi*1pt", LENGTH).sp == round(math.pi * UNITY)
    assert parser.evaluate("e", COUNTER) == 2


def test_parser_dimensionless_result_uses_default_unit(parser):
    assert parser.evaluate("2+3", LENGTH, default_unit="cm") == parser.evaluate("5cm", LENGTH)
    assert str(parser.evaluate("2+3", LENGTH, default_unit="none")) == "5.0pt"
    assert str(parser.evaluate("2+3", LENGTH)) == "5.0pt"


def test_parser_counters_truncate(parser):
    assert parser.evaluate("7/2", COUNTER) == 3
    assert parser.evaluate("-7/2", COUNTER) == -3
    assert parser.evaluate(r"\value{page}^2", COUNTER) == 9
    assert parser.evaluate("round(2.5)", COUNTER) == 3


@pytest.mark.parametrize(
    "expression",
    [
        "1pt plus 2pt",
        r"\stretch{1}",
        "foo(1)",
        "sqrt(1, 2)",
        "nosuchconstant*1pt",
    ],
)
def test_parser_rejects(parser, expression):
    with pytest.raises(ParseError):
        parser.evaluate(expression, LENGTH)


def test_parser_arithmetic_errors(parser):
    with pytest.raises(CalcArithmeticError):
        parser.evaluate("1pt/0", LENGTH)
    with pytest.raises(CalcArithmeticError):
        parser.evaluate("sqrt(-1)", LENGTH)
    with pytest.raises(CalcArithmeticError):
        parser.evaluate("10000pt*2", LENGTH)
    with pytest.raises(CalcArithmeticError):
        parser.evaluate("20000pt", LENGTH)


def test_parser_requires_pgfmath(no_pgfmath_host):
    with pytest.raises(EngineUnavailableError):
        ParserEvaluator(no_pgfmath_host).evaluate("1pt", LENGTH)


# ---------------------------------------------------------------------------
# 宿主原生赋值（只接受字面量）
# ---------------------------------------------------------------------------


def test_literal_accepts_single_values(host):
    literal = LiteralEvaluator(host)
    assert str(literal.evaluate("12pt plus 1fil", LENGTH)) == "12.0pt plus 1.0fil"
    assert str(literal.evaluate(r"-\parindent", LENGTH)) == "-15.0pt"
    assert str(literal.evaluate(r"2\parindent", LENGTH)) == "30.0pt"
    assert literal.evaluate(r"\value{page}", COUNTER) == 3


def test_literal_rejects_arithmetic(host):
    literal = LiteralEvaluator(host)
    with pytest.raises(ParseError):
        literal.evaluate("1pt + 2pt", LENGTH)
    with pytest.raises(ParseError):
        literal.evaluate("1 + 2", COUNTER)
    with pytest.raises(ParseError):
        literal.evaluate("1pt*2/3", LENGTH)
