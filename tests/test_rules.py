"""Tests for pricing rule validation."""

import pytest
from pydantic import ValidationError

from cejquote.business import FALLBACK_PRICING_RULES
from cejquote.exceptions import PricingRulesValidationError
from cejquote.rules import (
    SERVICE_TYPES,
    parse_pricing_rules,
    validate_pricing_rules,
)


def test_valid_payload_parses(rules_payload):
    result = validate_pricing_rules(rules_payload)

    assert result.ok
    assert result.errors == ()
    assert result.rules.version == 7
    assert result.rules.vat_rate == 0.16
    assert result.rules.minimum_for("pumped") == 3.0
    assert [t.price_per_m3_cents for t in result.rules.tiers_for("direct", "200")] == [
        273100,
        248100,
    ]


def test_snake_case_keys_are_accepted(test_rules):
    payload = test_rules.model_dump()
    result = validate_pricing_rules(payload)
    assert result.ok
    assert result.rules == test_rules


def test_payload_round_trips_through_camel_case(test_rules):
    payload = test_rules.to_payload()
    assert "minOrderQuantity" in payload
    assert payload["base"]["direct"]["200"][0] == {"minM3": 2.0, "pricePerM3Cents": 273100}
    assert parse_pricing_rules(payload) == test_rules


def test_fallback_rules_are_valid():
    result = validate_pricing_rules(FALLBACK_PRICING_RULES.to_payload())
    assert result.ok
    for service_type in SERVICE_TYPES:
        assert FALLBACK_PRICING_RULES.minimum_for(service_type) > 0


@pytest.mark.parametrize("payload", [None, [], "rules", 42])
def test_non_object_payload_fails(payload):
    result = validate_pricing_rules(payload)
    assert not result.ok
    assert result.rules is None
    assert "must be a JSON object" in result.errors[0]


def test_unsorted_tiers_reported_with_path(rules_payload):
    rules_payload["base"]["direct"]["200"].reverse()

    result = validate_pricing_rules(rules_payload)

    assert not result.ok
    assert "base.direct.200: tiers must be sorted ascending by minM3" in result.errors


def test_duplicate_tier_min_rejected(rules_payload):
    tiers = rules_payload["base"]["pumped"]["250"]
    tiers[1]["minM3"] = tiers[0]["minM3"]

    result = validate_pricing_rules(rules_payload)

    assert any("duplicate tier minM3 3" in e for e in result.errors)


def test_empty_tier_sequence_rejected(rules_payload):
    rules_payload["base"]["direct"]["250"] = []

    result = validate_pricing_rules(rules_payload)

    assert any(e.startswith("base.direct.250") for e in result.errors)


def test_negative_price_is_rejected_not_clamped(rules_payload):
    rules_payload["base"]["direct"]["200"][1]["pricePerM3Cents"] = -1

    result = validate_pricing_rules(rules_payload)

    assert not result.ok
    assert any("pricePerM3Cents" in e for e in result.errors)


def test_float_price_is_rejected(rules_payload):
    rules_payload["base"]["direct"]["200"][1]["pricePerM3Cents"] = 2481.5

    assert not validate_pricing_rules(rules_payload).ok


@pytest.mark.parametrize("vat_rate", [0, -0.16, 1.5])
def test_vat_rate_out_of_range(rules_payload, vat_rate):
    rules_payload["vatRate"] = vat_rate

    result = validate_pricing_rules(rules_payload)

    assert any(e.startswith("vatRate") for e in result.errors)


@pytest.mark.parametrize("version", [0, -3, "7"])
def test_version_must_be_positive_int(rules_payload, version):
    rules_payload["version"] = version

    assert not validate_pricing_rules(rules_payload).ok


def test_missing_minimum_for_service_type(rules_payload):
    del rules_payload["minOrderQuantity"]["pumped"]

    result = validate_pricing_rules(rules_payload)

    assert any("missing minimum order for: pumped" in e for e in result.errors)


def test_zero_minimum_rejected(rules_payload):
    rules_payload["minOrderQuantity"]["direct"] = 0

    result = validate_pricing_rules(rules_payload)

    assert any(e.startswith("minOrderQuantity.direct") for e in result.errors)


def test_first_tier_must_cover_minimum(rules_payload):
    rules_payload["base"]["pumped"]["200"][0]["minM3"] = 4

    result = validate_pricing_rules(rules_payload)

    assert not result.ok
    assert any("base.pumped.200 starts at 4 m3" in e for e in result.errors)


def test_duplicate_additive_ids_rejected(rules_payload):
    rules_payload["additives"].append(dict(rules_payload["additives"][0]))

    result = validate_pricing_rules(rules_payload)

    assert any("duplicate additive id: fiber" in e for e in result.errors)


def test_unknown_pricing_model_rejected(rules_payload):
    rules_payload["additives"][0]["pricingModel"] = "per_kg"

    assert not validate_pricing_rules(rules_payload).ok


def test_legacy_fixed_per_load_model_is_normalized(rules_payload):
    rules_payload["additives"][1]["pricingModel"] = "fixed_per_load"

    rules = parse_pricing_rules(rules_payload)

    assert rules.active_additive("express").pricing_model == "fixed"


def test_unknown_strength_key_rejected(rules_payload):
    rules_payload["base"]["direct"]["350"] = [{"minM3": 2, "pricePerM3Cents": 1}]

    assert not validate_pricing_rules(rules_payload).ok


def test_lookups(test_rules):
    assert test_rules.tiers_for("direct", "300") == ()
    assert test_rules.tiers_for("mixer", "200") == ()
    assert test_rules.active_additive("fiber").price_cents == 35000
    assert test_rules.active_additive("waterproof") is None
    assert test_rules.active_additive("nope") is None


def test_rules_are_immutable(test_rules):
    with pytest.raises(ValidationError):
        test_rules.vat_rate = 0.5


def test_rule_tables_are_read_only(test_rules):
    with pytest.raises(TypeError):
        test_rules.min_order_quantity["direct"] = 99.0
    with pytest.raises(TypeError):
        test_rules.base["direct"]["200"] = ()
    with pytest.raises(TypeError):
        test_rules.base["pumped"] = {}

    assert test_rules.minimum_for("direct") == 2.0
    assert len(test_rules.tiers_for("direct", "200")) == 2


def test_deep_copy_keeps_rule_tables_read_only():
    rules = FALLBACK_PRICING_RULES.model_copy(deep=True)

    assert rules.to_payload() == FALLBACK_PRICING_RULES.to_payload()
    with pytest.raises(TypeError):
        rules.min_order_quantity["direct"] = 99.0
    assert FALLBACK_PRICING_RULES.minimum_for("direct") == 2.0


@pytest.mark.parametrize("currency", ["ZZZ", "usd", "EURO"])
def test_unknown_currency_rejected(rules_payload, currency):
    rules_payload["currency"] = currency

    result = validate_pricing_rules(rules_payload)

    assert any(e.startswith("currency") for e in result.errors)


def test_known_currency_accepted(rules_payload):
    rules_payload["currency"] = "USD"
    assert parse_pricing_rules(rules_payload).currency == "USD"


def test_vat_rate_string_is_rejected(rules_payload):
    rules_payload["vatRate"] = "0.16"

    result = validate_pricing_rules(rules_payload)

    assert not result.ok
    assert any(e.startswith("vatRate") for e in result.errors)


def test_parse_raises_with_all_reasons(rules_payload):
    rules_payload["vatRate"] = 2
    rules_payload["version"] = 0

    with pytest.raises(PricingRulesValidationError) as exc_info:
        parse_pricing_rules(rules_payload)

    assert exc_info.value.code == "INVALID_PRICING_RULES"
    assert len(exc_info.value.reasons) == 2
    assert "Pricing rules validation failed" in exc_info.value.message
