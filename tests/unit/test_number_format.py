"""
Unit tests for till number parsing and display formatting.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from pos.exceptions import ValidationError
from pos.utils.formatters import datetime_short, money, quantity, round_money
from pos.utils.number_format import parse_amount, parse_decimal, parse_quantity


class TestParseDecimal:

    @pytest.mark.parametrize('raw, expected', [
        ('25', Decimal('25')),
        ('1,234.50', Decimal('1234.50')),
        ('  12.5 ', Decimal('12.5')),
        ('0', Decimal('0')),
        (7, Decimal('7')),
        (Decimal('3.333'), Decimal('3.333')),
    ])
    def test_valid(self, raw, expected):
        assert parse_decimal(raw) == expected

    @pytest.mark.parametrize('raw', [None, '', '   ', '-5', 'abc', '1,23', '12.5.1', 'NaN', True, -3])
    def test_invalid(self, raw):
        with pytest.raises(ValidationError):
            parse_decimal(raw, 'price')

    def test_field_is_reported(self):
        with pytest.raises(ValidationError) as exc:
            parse_decimal('x', 'discount')

        assert exc.value.to_dict()['field'] == 'discount'


class TestParseAmount:

    @pytest.mark.parametrize('raw, expected', [
        ('10', Decimal('10.00')),
        ('1.115', Decimal('1.12')),
        ('2.004', Decimal('2.00')),
        (Decimal('7.77'), Decimal('7.77')),
    ])
    def test_rounds_half_up_to_cents(self, raw, expected):
        assert parse_amount(raw) == expected

    def test_still_rejects_negatives(self):
        with pytest.raises(ValidationError):
            parse_amount('-0.01', 'discount')


class TestParseQuantity:

    def test_whole_numbers(self):
        assert parse_quantity('3') == 3
        assert parse_quantity(1) == 1

    @pytest.mark.parametrize('raw', ['0', '1.5', '-1', ''])
    def test_rejects_non_positive_or_fractional(self, raw):
        with pytest.raises(ValidationError):
            parse_quantity(raw)


class TestFormatters:

    def test_round_money_half_up(self):
        assert round_money(Decimal('27.005')) == Decimal('27.01')
        assert round_money(Decimal('4.16625')) == Decimal('4.17')
        assert round_money('junk') is None

    def test_money(self):
        assert money(1500) == '1,500.00'
        assert money(Decimal('27.005'), 'Rs.') == 'Rs.27.01'
        assert money(None) == '-'

    def test_quantity(self):
        assert quantity(3) == '3'
        assert quantity(Decimal('2.5')) == '2.50'

    def test_datetime_short(self):
        assert datetime_short(datetime(2024, 3, 9, 14, 5)) == '09/03/2024 14:05'
        assert datetime_short(date(2024, 3, 9)) == '09/03/2024'
