"""
Tests for context coercion (make_valid), apply_defaults and apply_type_convert.
"""

import logging
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from service_contracts.errors import ContractDefinitionError, TypeConversionFailure
from service_contracts.normalize import (
    MakeValidOptions,
    apply_defaults,
    apply_type_convert,
    coerce,
    make_valid,
    prefixed_name,
)
from service_contracts.registry import ServiceContract
from service_contracts.semantic_types import Locale
from service_contracts.validate import validate


@pytest.fixture
def contract(make_param):
    return ServiceContract(
        name="createOrder",
        params=[
            make_param("customerId"),
            make_param("qty", type="Long"),
            make_param("amount", type="BigDecimal", optional=True),
            make_param("placedAt", type="Timestamp", optional=True),
            make_param("auditTag", optional=True, internal=True),
            make_param("orderId", mode="OUT"),
            make_param("status", mode="INOUT", optional=True),
        ],
    )


class TestGrouping:
    """string_map_prefix / string_list_suffix"""

    def test_prefix_map(self, make_param):
        contract = ServiceContract(name="svc", params=[make_param("address", type="Map", string_map_prefix="addr_")])
        result = make_valid(contract, "IN", {"addr_street": "1 Main St", "addr_city": "Springfield", "other": 1})
        assert result == {"address": {"street": "1 Main St", "city": "Springfield"}}

    def test_prefix_map_empty_not_attached(self, make_param):
        contract = ServiceContract(name="svc", params=[make_param("address", type="Map", string_map_prefix="addr_")])
        assert make_valid(contract, "IN", {"other": 1}) == {}

    def test_direct_key_wins_over_prefix(self, make_param):
        contract = ServiceContract(name="svc", params=[make_param("address", type="Map", string_map_prefix="addr_")])
        result = make_valid(contract, "IN", {"address": {"zip": "1"}, "addr_city": "x"})
        assert result == {"address": {"zip": "1"}}

    def test_suffix_list(self, make_param):
        contract = ServiceContract(name="svc", params=[make_param("items", type="List", string_list_suffix="_item")])
        result = make_valid(contract, "IN", {"a_item": "apple", "note": "x", "b_item": "pear"})
        assert result == {"items": ["apple", "pear"]}

    def test_suffix_list_empty_not_attached(self, make_param):
        contract = ServiceContract(name="svc", params=[make_param("items", type="List", string_list_suffix="_item")])
        assert make_valid(contract, "IN", {}) == {}

    def test_prefix_map_with_name_prefix(self, make_param):
        contract = ServiceContract(name="svc", params=[make_param("address", type="Map", string_map_prefix="addr_")])
        result = make_valid(contract, "IN", {"shipAddr_city": "x"}, MakeValidOptions(name_prefix="ship"))
        assert result == {"address": {"city": "x"}}


class TestConversion:
    """Type conversion during make_valid"""

    def test_values_converted(self, contract):
        result = make_valid(contract, "IN", {"customerId": "c1", "qty": "5", "amount": "12.50"})
        assert result == {"customerId": "c1", "qty": 5, "amount": Decimal("12.50")}

    def test_locale_from_source(self, contract):
        result = make_valid(contract, "IN", {"locale": "de_DE", "qty": "1.000", "amount": "1.234,5"})
        assert result["qty"] == 1000
        assert result["amount"] == Decimal("1234.5")
        assert "locale" not in result

    def test_locale_option_wins(self, contract):
        options = MakeValidOptions(locale=Locale('en', 'US'))
        result = make_valid(contract, "IN", {"locale": "de_DE", "amount": "1,234.5"}, options)
        assert result["amount"] == Decimal("1234.5")

    def test_timezone_from_source(self, contract):
        result = make_valid(contract, "IN", {"timeZone": "Europe/Berlin", "placedAt": "2024-01-15T10:30:00"})
        assert result["placedAt"] == datetime(2024, 1, 15, 10, 30, tzinfo=ZoneInfo("Europe/Berlin"))

    def test_failure_recorded_and_passed_through(self, contract, caplog):
        errors = []
        with caplog.at_level(logging.WARNING, logger="service_contracts.normalize"):
            result = make_valid(contract, "IN", {"qty": "abc"}, MakeValidOptions(error_messages=errors))
        assert result == {"qty": "abc"}
        assert len(errors) == 1
        assert isinstance(errors[0], TypeConversionFailure)
        assert errors[0].field == "qty"
        assert "createOrder" in caplog.text

    def test_failure_without_sink(self, contract):
        assert make_valid(contract, "IN", {"qty": "abc"}) == {"qty": "abc"}

    @pytest.mark.parametrize("value", [float("inf"), float("nan"), Decimal("NaN"), Decimal("Infinity")])
    def test_non_finite_number_recorded(self, contract, value):
        """A non-finite number for a Long is a conversion failure, not a crash"""
        errors = []
        result = make_valid(contract, "IN", {"qty": value}, MakeValidOptions(error_messages=errors))
        assert result["qty"] is value
        assert [e.field for e in errors] == ["qty"]

    def test_bad_locale_recorded(self, contract):
        errors = []
        result = make_valid(contract, "IN", {"locale": "123", "amount": "1,234.5"}, MakeValidOptions(error_messages=errors))
        assert result["amount"] == Decimal("1234.5")
        assert [e.field for e in errors] == ["locale"]

    @pytest.mark.parametrize("zone", ["Mars/Olympus", "America"])
    def test_bad_timezone_recorded(self, contract, zone):
        errors = []
        make_valid(contract, "IN", {"timeZone": zone}, MakeValidOptions(error_messages=errors))
        assert [e.field for e in errors] == ["timeZone"]


class TestSelection:
    """Which parameters make it into the target"""

    def test_direction(self, contract):
        source = {"customerId": "c1", "orderId": "o1", "status": "new"}
        assert make_valid(contract, "IN", source) == {"customerId": "c1", "status": "new"}
        assert make_valid(contract, "OUT", source) == {"orderId": "o1", "status": "new"}

    def test_inout_mode(self, contract):
        assert make_valid(contract, "INOUT", {"customerId": "c1", "status": "new"}) == {"status": "new"}

    def test_internal_excluded(self, contract):
        source = {"customerId": "c1", "auditTag": "t"}
        assert "auditTag" in make_valid(contract, "IN", source)
        assert "auditTag" not in make_valid(contract, "IN", source, MakeValidOptions(include_internal=False))

    def test_name_prefixes(self, contract):
        options = MakeValidOptions(name_prefix="order", to_name_prefix="ship")
        result = make_valid(contract, "IN", {"orderCustomerId": "c1", "customerId": "ignored"}, options)
        assert result == {"shipCustomerId": "c1"}

    def test_target_filled_in_place(self, contract):
        target = {"existing": True}
        result = make_valid(contract, "IN", {"customerId": "c1"}, MakeValidOptions(target=target))
        assert result is target
        assert target == {"existing": True, "customerId": "c1"}

    def test_sys_mode(self, make_param):
        contract = ServiceContract(
            name="svc",
            params=[make_param("qty", type="Long"), make_param("locale", type="Locale", mode="IN-SYS")],
        )
        result = make_valid(contract, "IN-SYS", {"locale": "en_US", "qty": "3"})
        assert result == {"locale": Locale('en', 'US')}

    def test_invalid_mode(self, contract):
        with pytest.raises(ContractDefinitionError):
            make_valid(contract, "SIDEWAYS", {})

    def test_coerce_alias(self, contract):
        assert coerce(contract, "IN", {"qty": "2"}) == {"qty": 2}

    def test_prefixed_name(self):
        assert prefixed_name("ship", "city") == "shipCity"
        assert prefixed_name(None, "city") == "city"
        assert prefixed_name("", "city") == "city"


class TestProperties:
    """Idempotence and the coerce/validate round trip"""

    def test_idempotent(self, contract):
        source = {
            "timeZone": "UTC",
            "customerId": "c1",
            "qty": "5",
            "amount": "3.5",
            "placedAt": "2024-01-15T10:30:00",
        }
        first = make_valid(contract, "IN", source)
        second = make_valid(contract, "IN", first)
        assert second == first

    def test_round_trip(self, contract):
        source = {"customerId": "c1", "qty": "7", "amount": "9.99", "placedAt": "2024-01-15", "junk": "dropped"}
        validate(contract, make_valid(contract, "IN", source), "IN")


class TestApplyDefaults:

    def test_fills_null_only(self, make_param):
        contract = ServiceContract(
            name="svc",
            params=[
                make_param("currency", default_value="USD"),
                make_param("qty", type="Long", default_value=1),
                make_param("orderId", mode="OUT", default_value="none"),
            ],
        )
        context = {"currency": None, "qty": 5}
        apply_defaults(contract, context, "IN")
        assert context == {"currency": "USD", "qty": 5}

    def test_callable_default(self, make_param):
        contract = ServiceContract(name="svc", params=[make_param("tags", type="List", default_value=list)])
        first, second = {}, {}
        apply_defaults(contract, first, "IN")
        apply_defaults(contract, second, "IN")
        assert first == {"tags": []}
        assert first["tags"] is not second["tags"]

    def test_logged_for_debug_contract(self, make_param, caplog):
        contract = ServiceContract(name="svc", debug=True, params=[make_param("currency", default_value="USD")])
        with caplog.at_level(logging.INFO, logger="service_contracts.normalize"):
            apply_defaults(contract, {}, "IN")
        assert "svc.currency" in caplog.text

    def test_quiet_contract_not_logged(self, make_param, caplog, monkeypatch):
        monkeypatch.setenv("SERVICE_CONTRACTS_LOG_DEFAULTS", "true")
        contract = ServiceContract(name="svc", log_level="quiet", params=[make_param("currency", default_value="USD")])
        with caplog.at_level(logging.INFO, logger="service_contracts.normalize"):
            apply_defaults(contract, {}, "IN")
        assert caplog.text == ""


class TestApplyTypeConvert:

    def test_only_flagged_params(self, make_param):
        contract = ServiceContract(
            name="svc",
            params=[
                make_param("qty", type="Long", type_convert=True),
                make_param("count", type="Long"),
            ],
        )
        context = {"qty": "4", "count": "4"}
        apply_type_convert(contract, context, "IN")
        assert context == {"qty": 4, "count": "4"}

    def test_failure_recorded(self, make_param):
        contract = ServiceContract(name="svc", params=[make_param("qty", type="Long", type_convert=True)])
        context = {"qty": "four"}
        errors = []
        apply_type_convert(contract, context, "IN", error_messages=errors)
        assert context == {"qty": "four"}
        assert [e.field for e in errors] == ["qty"]

    def test_non_finite_recorded(self, make_param):
        contract = ServiceContract(name="svc", params=[make_param("qty", type="Long", type_convert=True)])
        infinity = float("inf")
        context = {"qty": infinity}
        errors = []
        apply_type_convert(contract, context, "IN", error_messages=errors)
        assert context["qty"] is infinity
        assert [e.field for e in errors] == ["qty"]

    def test_locale_from_context(self, make_param):
        contract = ServiceContract(name="svc", params=[make_param("price", type="Double", type_convert=True)])
        context = {"locale": "fr_FR", "price": "2,5"}
        apply_type_convert(contract, context, "IN")
        assert context["price"] == 2.5

    def test_direction_respected(self, make_param):
        contract = ServiceContract(name="svc", params=[make_param("total", type="Long", mode="OUT", type_convert=True)])
        context = {"total": "9"}
        apply_type_convert(contract, context, "IN")
        assert context == {"total": "9"}
        apply_type_convert(contract, context, "OUT")
        assert context == {"total": 9}
