"""
尺寸换算与胶运算测试
"""

import pytest

from texcalc.core.errors import CalcArithmeticError, ParseError
from texcalc.core.units import (
    MAX_DIMEN,
    UNITY,
    Length,
    apply_factor,
    check_count,
    format_scaled,
    round_decimals,
    round_quotient,
    scan_dimen,
    scan_fil,
    to_factor,
    truncate_quotient,
    unit_size,
)


def test_scan_dimen_matches_tex_rounding():
    assert scan_dimen("1", "pt") == UNITY
    assert scan_dimen("10", "bp") == 657817
    assert scan_dimen("1", "cm") == 1864679
    assert scan_dimen("1", "in") == 4736286
    assert scan_dimen("-2.5", "pt") == -163840
    assert scan_dimen("3", "sp") == 3


def test_scan_dimen_font_units():
    assert scan_dimen("1", "em") == 655360
    assert scan_dimen("0.5", "em") == 327680
    assert scan_dimen("1", "ex") == 282168


def test_scan_dimen_float_and_string_agree():
    assert scan_dimen(-3.25, "bp") == scan_dimen("-3.25", "bp")
    assert scan_dimen(12.0, "cm") == scan_dimen("12", "cm")


def test_scan_dimen_errors():
    with pytest.raises(ParseError):
        scan_dimen("1", "furlong")
    with pytest.raises(CalcArithmeticError):
        scan_dimen("16384", "pt")
    with pytest.raises(CalcArithmeticError):
        scan_dimen("600", "cm")


def test_round_decimals():
    assert round_decimals("5") == 32768
    assert round_decimals("") == 0
    assert round_decimals("25") == round_decimals("2500000000")


def test_format_scaled():
    assert format_scaled(0) == "0.0"
    assert format_scaled(UNITY) == "1.0"
    assert format_scaled(-98304) == "-1.5"
    assert format_scaled(652909) == "9.9626"
    assert format_scaled(4736286) == "72.26999"
    assert format_scaled(MAX_DIMEN) == "16383.99998"


def test_integer_division_modes():
    assert round_quotient(7, 2) == 4
    assert round_quotient(-7, 2) == -4
    assert round_quotient(5, 3) == 2
    assert truncate_quotient(7, 2) == 3
    assert truncate_quotient(-7, 2) == -3
    with pytest.raises(CalcArithmeticError):
        round_quotient(1, 0)
    with pytest.raises(CalcArithmeticError):
        truncate_quotient(1, 0)


def test_factor_arithmetic():
    assert to_factor("1.5") == 98304
    assert to_factor("-0.5") == -32768
    assert apply_factor(10 * UNITY, to_factor("0.5")) == 5 * UNITY
    assert apply_factor(10 * UNITY, to_factor("-2")) == -20 * UNITY


def test_unit_size():
    assert unit_size("pt") == UNITY
    assert unit_size("sp") == 1.0
    assert unit_size("bp") == pytest.approx(UNITY * 7227 / 7200)


def test_length_str_with_glue():
    stretch, order = scan_fil("2", "fil")
    glue = Length.from_unit("1").with_stretch(stretch, order).with_shrink(UNITY)
    assert str(glue) == "1.0pt plus 2.0fil minus 1.0pt"
    assert not glue.is_rigid
    assert glue.rigid() == Length(sp=UNITY)


def test_glue_addition_keeps_higher_order():
    fil = Length(sp=UNITY, stretch=UNITY, stretch_order=1)
    finite = Length(sp=2 * UNITY, stretch=3 * UNITY)
    assert str(fil + finite) == "3.0pt plus 1.0fil"
    assert str(finite + fil) == "3.0pt plus 1.0fil"


def test_glue_addition_cancels_to_finite():
    plus = Length(stretch=UNITY, stretch_order=2)
    minus = Length(stretch=-UNITY, stretch_order=2)
    result = plus + minus
    assert result.stretch == 0
    assert result.stretch_order == 0
    assert str(result) == "0.0pt"


def test_length_multiply_and_divide():
    glue = Length(sp=7 * UNITY, stretch=UNITY, stretch_order=1)
    assert str(glue.multiply(2)) == "14.0pt plus 2.0fil"
    assert Length(sp=3).divide(2).sp == 2
    assert Length(sp=3).divide(2, rounded=False).sp == 1
    assert Length(sp=-3).divide(2, rounded=False).sp == -1


def test_length_conversions():
    length = Length.from_unit("72.27", "pt")
    assert length.points == pytest.approx(72.27)
    assert length.to_unit("in") == pytest.approx(1.0, abs=1e-5)
    assert Length.from_points(1.5).sp == 98304


def test_range_checks():
    with pytest.raises(CalcArithmeticError):
        Length(sp=MAX_DIMEN + 1).check_range()
    with pytest.raises(CalcArithmeticError):
        Length.from_points(20000.0)
    assert check_count(2**31 - 1) == 2**31 - 1
    with pytest.raises(CalcArithmeticError):
        check_count(2**31)
