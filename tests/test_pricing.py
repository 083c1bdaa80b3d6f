from __future__ import annotations

import allure
import pytest

from hybrid_agent.orchestrator.pricing import (
    DEFAULT_PRICING,
    ModelPricing,
    PricingTable,
    estimate_cost_usd,
    parse_pricing_mapping,
)

pytestmark = [
    allure.epic("Cost Tracking"),
    allure.feature("Pricing"),
]


def test_estimate_cost_usd_uses_input_and_output_tokens() -> None:
    table = PricingTable.with_overrides("claude:claude-test:1.0:3.0")

    cost = estimate_cost_usd(
        table=table,
        agent="claude",
        model="claude-test",
        input_tokens=1_000_000,
        output_tokens=500_000,
    )

    assert cost == pytest.approx(2.5)


def test_builtin_table_prices_known_models() -> None:
    table = PricingTable()

    assert table.lookup(agent="gemini", model="gemini-2.5-flash") == ModelPricing(0.075, 0.30)
    assert table.lookup(agent="Claude", model="claude-opus-4-5-20250514").output_per_1m == 75.0


def test_unknown_model_falls_back_to_wildcards_then_default() -> None:
    assert PricingTable().lookup(agent="gemini", model="gemini-9") == DEFAULT_PRICING

    agent_wildcard = PricingTable.with_overrides("gemini:*:2.0:4.0")
    assert agent_wildcard.lookup(agent="gemini", model="gemini-9") == ModelPricing(2.0, 4.0)
    # Agent wildcard does not shadow a built-in direct entry.
    assert agent_wildcard.lookup(agent="gemini", model="gemini-2.5-pro") == ModelPricing(1.25, 5.0)

    global_wildcard = PricingTable.with_overrides("*:*:9.0:9.0")
    assert global_wildcard.lookup(agent="claude", model="claude-x") == ModelPricing(9.0, 9.0)


def test_subscription_auth_costs_nothing() -> None:
    cost = estimate_cost_usd(
        table=PricingTable(),
        agent="gemini",
        model="gemini-2.5-pro",
        input_tokens=10_000,
        output_tokens=10_000,
        auth_method="oauth",
    )

    assert cost == 0.0


def test_estimate_cost_rejects_negative_tokens() -> None:
    with pytest.raises(ValueError, match=">= 0"):
        estimate_cost_usd(
            table=PricingTable(),
            agent="gemini",
            model="gemini-2.5-pro",
            input_tokens=-1,
            output_tokens=0,
        )


def test_parse_pricing_mapping_skips_malformed_rows() -> None:
    parsed = parse_pricing_mapping(
        "claude:m1:1:2, broken, gemini:m2:x:1, gemini:m3:-1:1, ,GEMINI:m4:0.5:0.5",
    )

    assert parsed == {
        ("claude", "m1"): ModelPricing(1.0, 2.0),
        ("gemini", "m4"): ModelPricing(0.5, 0.5),
    }
    assert parse_pricing_mapping("  ") == {}
