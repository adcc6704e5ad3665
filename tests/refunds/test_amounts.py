import pytest

from domain.charge import to_base_units
from domain.common.exceptions import AmountConversionError


@pytest.mark.parametrize(
    "amount,decimals,expected",
    [
        ("1.5", 6, 1_500_000),
        ("0.000001", 6, 1),
        ("10", 6, 10_000_000),
        ("1.50", 6, 1_500_000),
        (" 2.25 ", 2, 225),
        ("1", 0, 1),
        ("123456789.123456789012345678", 18, 123456789123456789012345678),
    ],
)
def test_exact_scaling(amount, decimals, expected):
    assert to_base_units(amount, decimals) == expected


@pytest.mark.parametrize(
    "amount",
    ["", "abc", "-1", "0", "0.0", "NaN", "Infinity", "1.0000001", None, 1.5, True],
)
def test_rejects_bad_amounts(amount):
    with pytest.raises(AmountConversionError):
        to_base_units(amount, 6)


def test_rejects_bad_decimals():
    with pytest.raises(AmountConversionError):
        to_base_units("1", -1)


def test_error_is_a_validation_failure():
    with pytest.raises(AmountConversionError) as exc_info:
        to_base_units("1.2345678", 6)
    assert exc_info.value.error_type == "ConversionError"
    assert exc_info.value.details == {"amount": "1.2345678", "decimals": 6}
