"""Tests for record normalization and peso helpers"""
from datetime import date
from decimal import Decimal

import pytest

from app.utils.datetime_utils import parse_calendar_date, parse_timestamp, timestamp_ms
from app.utils.entities import (
    can_delete,
    is_archived,
    line_total,
    normalize_provider,
    normalize_reservation,
    normalize_topup,
    normalize_user,
    pickup_rank,
    pretty_pickup_window,
    reservation_total,
    student_name,
)
from app.utils.money import format_peso, parse_amount, round_currency


class TestReservationTotals:

    def test_total_is_price_times_quantity(self):
        reservation = {'items': [{'name': 'Chicken Adobo', 'price': 60, 'qty': 2}]}
        assert reservation_total(reservation) == Decimal('120')

    def test_quantity_defaults_to_one(self):
        assert line_total({'price': '45.50'}) == Decimal('45.50')

    def test_alternate_field_names(self):
        reservation = {'order': [
            {'unitPrice': '₱15.00', 'quantity': 3},
            {'amount': 10},
        ]}
        assert reservation_total(reservation) == Decimal('55.00')

    def test_missing_items(self):
        assert reservation_total({}) == Decimal('0')


class TestReservationFields:

    def test_student_name_fallbacks(self):
        assert student_name({'studentName': 'Juan'}) == 'Juan'
        assert student_name({'user': {'fullName': 'Maria Santos'}}) == 'Maria Santos'
        assert student_name({'payerName': 'Pedro'}) == 'Pedro'
        assert student_name({}) == 'Student'

    @pytest.mark.parametrize('raw, label', [
        ('lunch 11:30', 'Lunch'),
        ('RECESS', 'Recess'),
        ('After class pickup', 'After Class'),
        ('Recess or lunch', 'Recess'),
        ('Period 3', 'Period 3'),
        ('', ''),
    ])
    def test_pretty_pickup_window(self, raw, label):
        assert pretty_pickup_window(raw) == label

    def test_pickup_rank(self):
        assert pickup_rank('Breakfast') < pickup_rank('Recess') < pickup_rank('Lunch')
        assert pickup_rank('Period 3') == 999

    def test_normalize_reservation_fills_display_fields(self):
        raw = {
            'id': 'r1', 'studentName': 'Juan', 'gradeLevel': 'Grade 5', 'classSection': 'Rizal',
            'slot': 'Lunch', 'claimDate': '2026-10-20', 'status': 'approve',
            'items': [{'price': 60, 'qty': 2}], 'createdAt': '1970-01-01T00:00:01Z',
        }
        normalized = normalize_reservation(raw)
        assert normalized['student'] == 'Juan'
        assert normalized['grade'] == 'Grade 5'
        assert normalized['section'] == 'Rizal'
        assert normalized['when'] == 'Lunch'
        assert normalized['pickupDate'] == '2026-10-20'
        assert normalized['status'] == 'Approved'
        assert normalized['total'] == Decimal('120')
        assert normalized['createdNum'] == 1000
        assert raw['status'] == 'approve'


class TestTopupsAndUsers:

    def test_normalize_provider(self):
        assert normalize_provider('PayMaya') == 'maya'
        assert normalize_provider('GCash ') == 'gcash'
        assert normalize_provider(None) == ''

    def test_normalize_topup(self):
        topup = normalize_topup({'id': 't1', 'payerName': 'Juan', 'method': 'GCash',
                                 'amount': '₱1,200.00', 'ref': 'GC-1', 'status': 'submitted'})
        assert topup['student'] == 'Juan'
        assert topup['provider'] == 'gcash'
        assert topup['amount'] == Decimal('1200.00')
        assert topup['reference'] == 'GC-1'
        assert topup['status'] == 'Pending'

    def test_normalize_user(self):
        user = normalize_user({'id': 'u1', 'balance': '12.5'})
        assert user['status'] == 'approved'
        assert user['balance'] == Decimal('12.5')

    def test_archive_markers(self):
        assert is_archived({'deletedAt': '2026-09-01'})
        assert is_archived({'isArchived': True})
        assert not is_archived({'id': 'u1'})

    def test_can_delete(self):
        assert can_delete({'balance': 0, 'status': 'approved'})
        assert not can_delete({'balance': 5})
        assert not can_delete({'balance': 0, 'role': 'admin'})
        assert not can_delete({'balance': 0, 'status': 'pending'})


class TestMoney:

    def test_parse_amount(self):
        assert parse_amount('₱1,234.50') == Decimal('1234.50')
        assert parse_amount(60) == Decimal('60')
        assert parse_amount('abc') is None
        assert parse_amount('nan') is None
        assert parse_amount(True) is None
        assert parse_amount(None, Decimal('0')) == Decimal('0')

    def test_round_currency_half_up(self):
        assert round_currency('2.005') == Decimal('2.01')
        assert round_currency(None) == Decimal('0.00')

    def test_format_peso(self):
        assert format_peso(1234.5) == '₱1,234.50'
        assert format_peso(-5) == '-₱5.00'
        assert format_peso(None) == '₱0.00'


class TestDates:

    def test_parse_timestamp_variants(self):
        assert timestamp_ms('1970-01-01T00:00:01Z') == 1000
        assert timestamp_ms(1500) == 1500
        assert timestamp_ms(date(1970, 1, 2)) == 86400000
        assert parse_timestamp('yesterday') is None
        assert timestamp_ms(None) == 0

    def test_parse_calendar_date(self):
        assert parse_calendar_date('2026-10-20T08:00:00Z') == date(2026, 10, 20)
        assert parse_calendar_date('20/10/2026') is None
        assert parse_calendar_date('') is None
