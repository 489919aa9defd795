from decimal import Decimal

import pytest

from flockledger.utils.numbers import AmountParseError, coerce_amount, parse_decimal, round_to


class TestParseDecimal:
    @pytest.mark.parametrize(
        "raw, expected",
        [(12, 12.0), (12.5, 12.5), ("  99.90 ", 99.9), ("1e3", 1000.0), (Decimal("0.10"), 0.1), ("-4", -4.0)],
    )
    def test_accepts_numbers_and_numeric_strings(self, raw, expected):
        assert parse_decimal(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "12,50", "nan", "inf", float("nan"), True, [1]])
    def test_rejects_unreadable_values(self, raw):
        with pytest.raises(AmountParseError):
            parse_decimal(raw)

    def test_negative_rejected_on_request(self):
        with pytest.raises(AmountParseError):
            parse_decimal("-1", allow_negative=False)


def test_coerce_amount_zeroes_bad_values():
    assert coerce_amount("not a number") == 0.0
    assert coerce_amount(None) == 0.0
    assert coerce_amount("250.75") == 250.75


@pytest.mark.parametrize(
    "value, decimals, expected",
    [(2.675, 2, 2.68), (0.125, 2, 0.13), (1.00005, 4, 1.0001), (99.5, 0, 100.0), (-0.004, 2, -0.0)],
)
def test_round_to_rounds_half_up(value, decimals, expected):
    assert round_to(value, decimals) == expected


def test_coerce_amount_can_refuse_negatives():
    assert coerce_amount("-12.5") == -12.5
    assert coerce_amount("-12.5", allow_negative=False) == 0.0
