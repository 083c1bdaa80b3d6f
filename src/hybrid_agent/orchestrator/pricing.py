"""Token cost estimation for agent steps."""

from __future__ import annotations

from dataclasses import dataclass, field

SUBSCRIPTION_AUTH_METHODS = frozenset({"oauth"})


@dataclass(slots=True, frozen=True)
class ModelPricing:
    """Per-model input/output pricing in USD per 1M tokens."""

    input_per_1m: float
    output_per_1m: float


DEFAULT_PRICING = ModelPricing(input_per_1m=0.5, output_per_1m=1.5)

BUILTIN_PRICING: dict[tuple[str, str], ModelPricing] = {
    ("gemini", "gemini-2.5-flash"): ModelPricing(0.075, 0.30),
    ("gemini", "gemini-2.5-flash-lite"): ModelPricing(0.075, 0.30),
    ("gemini", "gemini-2.5-pro"): ModelPricing(1.25, 5.0),
    ("gemini", "gemini-3-flash-preview"): ModelPricing(0.10, 0.40),
    ("gemini", "gemini-3-pro-preview"): ModelPricing(1.25, 5.0),
    ("claude", "claude-sonnet-4-5-20250514"): ModelPricing(3.0, 15.0),
    ("claude", "claude-opus-4-5-20250514"): ModelPricing(15.0, 75.0),
    ("claude", "claude-sonnet-4-20250514"): ModelPricing(3.0, 15.0),
    ("claude", "claude-opus-4-20250514"): ModelPricing(15.0, 75.0),
    ("claude", "claude-3-5-sonnet-20241022"): ModelPricing(3.0, 15.0),
    ("claude", "claude-3-opus-20240229"): ModelPricing(15.0, 75.0),
    ("claude", "claude-3-haiku-20240307"): ModelPricing(0.25, 1.25),
}


@dataclass(slots=True, frozen=True)
class PricingTable:
    """Read-only pricing lookup with `agent`/`model` wildcard fallbacks."""

    entries: dict[tuple[str, str], ModelPricing] = field(
        default_factory=lambda: dict(BUILTIN_PRICING),
    )
    default: ModelPricing = DEFAULT_PRICING

    @classmethod
    def with_overrides(cls, raw: str) -> PricingTable:
        """Layer a `HYBRID_AGENT_LLM_PRICING` string over the built-in table."""

        entries = dict(BUILTIN_PRICING)
        entries.update(parse_pricing_mapping(raw))
        return cls(entries=entries)

    def lookup(self, *, agent: str, model: str) -> ModelPricing:
        agent_key = agent.strip().lower()
        direct = self.entries.get((agent_key, model.strip()))
        if direct is not None:
            return direct

        wildcard_model = self.entries.get((agent_key, "*"))
        if wildcard_model is not None:
            return wildcard_model

        global_default = self.entries.get(("*", "*"))
        if global_default is not None:
            return global_default
        return self.default


def estimate_cost_usd(  # noqa: PLR0913
    *,
    table: PricingTable,
    agent: str,
    model: str,
    input_tokens: int,
    output_tokens: int,
    auth_method: str | None = None,
) -> float:
    """Estimate one call's cost in USD; subscription channels cost nothing."""

    if input_tokens < 0 or output_tokens < 0:
        raise ValueError(
            f"Token counts must be >= 0, got input={input_tokens}, output={output_tokens}",
        )
    if auth_method in SUBSCRIPTION_AUTH_METHODS:
        return 0.0

    pricing = table.lookup(agent=agent, model=model)
    return (input_tokens / 1_000_000) * pricing.input_per_1m + (
        output_tokens / 1_000_000
    ) * pricing.output_per_1m


def parse_pricing_mapping(raw: str) -> dict[tuple[str, str], ModelPricing]:
    """Parse `HYBRID_AGENT_LLM_PRICING` mapping.

    Format:
    - `agent:model:input_per_1m:output_per_1m`
    - multiple entries separated by `,`
    - supports wildcards in agent/model (`*`)
    - rows with malformed or negative prices are ignored
    """

    parsed: dict[tuple[str, str], ModelPricing] = {}
    if not raw.strip():
        return parsed

    for entry in raw.split(","):
        value = entry.strip()
        if not value:
            continue
        parts = [part.strip() for part in value.split(":")]
        if len(parts) != 4:
            continue
        agent, model, input_price, output_price = parts
        try:
            input_per_1m = float(input_price)
            output_per_1m = float(output_price)
        except ValueError:
            continue
        if input_per_1m < 0 or output_per_1m < 0:
            continue
        parsed[(agent.lower(), model)] = ModelPricing(
            input_per_1m=input_per_1m,
            output_per_1m=output_per_1m,
        )
    return parsed
