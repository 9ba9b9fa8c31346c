"""
Helper and tenancy tests.
"""

from datetime import date, datetime
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest
from django.core.exceptions import ValidationError
from django.http import HttpResponse
from django.test import RequestFactory

from qwikker_loyalty.tenancy import CityTenantMiddleware, resolve_city
from qwikker_loyalty.utils import (
    SHORT_CODE_ALPHABET,
    calculate_progress,
    client_ip,
    generate_counter_qr_token,
    generate_public_id,
    hash_ip,
    local_date,
    next_local_midnight,
    parse_since_days,
    pass_field_values,
    proximity_message,
    validate_timezone,
)

UTC = ZoneInfo("UTC")


class TestCodes:
    def test_public_id(self):
        code = generate_public_id()
        assert len(code) == 10
        assert set(code) <= set(SHORT_CODE_ALPHABET)

    def test_counter_token(self):
        assert len(generate_counter_qr_token()) == 32
        assert generate_counter_qr_token() != generate_counter_qr_token()

    def test_hash_ip(self):
        assert hash_ip("10.0.0.1") == hash_ip("10.0.0.1")
        assert hash_ip("10.0.0.1") != hash_ip("10.0.0.2")
        assert len(hash_ip("10.0.0.1")) == 64

    def test_client_ip_prefers_forwarded_for(self):
        request = RequestFactory().get("/", HTTP_X_FORWARDED_FOR="203.0.113.9, 10.0.0.1")
        assert client_ip(request) == "203.0.113.9"

    def test_client_ip_remote_addr(self):
        request = RequestFactory().get("/", REMOTE_ADDR="198.51.100.2")
        assert client_ip(request) == "198.51.100.2"


class TestLocalTime:
    def test_local_date(self):
        now = datetime(2026, 3, 10, 23, 30, tzinfo=UTC)
        assert local_date(now, "Australia/Sydney") == date(2026, 3, 11)
        assert local_date(now, "America/Edmonton") == date(2026, 3, 10)

    def test_next_local_midnight(self):
        now = datetime(2026, 3, 10, 23, 30, tzinfo=UTC)
        midnight = next_local_midnight(now, "Europe/London")
        assert midnight == datetime(2026, 3, 11, tzinfo=UTC)

    def test_next_midnight_in_utc_minus_7(self):
        now = datetime(2026, 1, 15, 20, 0, tzinfo=UTC)  # 13:00 in Edmonton
        midnight = next_local_midnight(now, "America/Edmonton")
        assert midnight == datetime(2026, 1, 16, 7, 0, tzinfo=UTC)

    def test_validate_timezone(self):
        validate_timezone("Europe/London")
        with pytest.raises(ValidationError):
            validate_timezone("Atlantis/Capital")


class TestDisplay:
    @pytest.mark.parametrize(
        "balance,threshold,expected",
        [(0, 10, 0), (1, 3, 33), (2, 3, 67), (1, 8, 13), (12, 10, 100), (5, 0, 0)],
    )
    def test_progress(self, balance, threshold, expected):
        assert calculate_progress(balance, threshold) == expected

    @pytest.mark.parametrize(
        "balance,expected",
        [
            (10, "Reward available!"),
            (9, "Just 1 more visit!"),
            (8, "Only 2 more to go!"),
            (7, "Almost there — 3 more!"),
            (5, "You're over halfway!"),
            (2, None),
        ],
    )
    def test_proximity(self, balance, expected):
        assert proximity_message(balance, 10) == expected

    def test_pass_fields(self):
        program = SimpleNamespace(reward_threshold=10, stamp_label="Beans", reward_description="Free latte")
        assert pass_field_values(program, 7) == {
            "Points": "7",
            "Threshold": "10",
            "Status": "7/10 Beans",
            "Reward": "Free latte",
        }

    @pytest.mark.parametrize(
        "value,expected",
        [("30d", 30), ("7", 7), ("0d", None), ("soon", None), ("", None), (None, None)],
    )
    def test_since(self, value, expected):
        assert parse_since_days(value) == expected


class TestResolveCity:
    @pytest.mark.parametrize(
        "host,expected",
        [
            ("bournemouth.qwikker.com", "bournemouth"),
            ("Calgary.Qwikker.com:443", "calgary"),
            ("preview.bournemouth.qwikker.com", "bournemouth"),
            ("calgary.localhost:3000", "calgary"),
            ("paris.qwikker.com", None),
            ("www.qwikker.com", None),
            ("qwikker.com", None),
            ("localhost:8000", None),
        ],
    )
    def test_hosts(self, host, expected):
        assert resolve_city(host) == expected

    def test_default_city_for_bare_hosts(self, loyalty_config):
        loyalty_config(DEFAULT_CITY="bournemouth")
        assert resolve_city("localhost:8000") == "bournemouth"
        assert resolve_city("www.qwikker.com") == "bournemouth"
        assert resolve_city("paris.localhost") == "bournemouth"
        assert resolve_city("paris.qwikker.com") is None

    def test_any_city_when_unrestricted(self, loyalty_config):
        loyalty_config(ALLOWED_CITIES=[])
        assert resolve_city("paris.qwikker.com") == "paris"

    def test_middleware_sets_city(self):
        seen = {}

        def view(request):
            seen["city"] = request.city
            return HttpResponse()

        request = RequestFactory().get("/", HTTP_HOST="calgary.qwikker.com")
        CityTenantMiddleware(view)(request)
        assert seen["city"] == "calgary"
