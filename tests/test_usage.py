from __future__ import annotations

import allure

from hybrid_agent.orchestrator.usage import estimate_tokens, extract_usage

pytestmark = [
    allure.epic("Cost Tracking"),
    allure.feature("Usage Extraction"),
]


def test_extract_usage_prefers_structured_json() -> None:
    usage = extract_usage(
        prompt="hello",
        stdout='{"result": "ok", "usage": {"input_tokens": 1200, "output_tokens": 340}}',
        stderr="input_tokens: 1",
    )

    assert (usage.input_tokens, usage.output_tokens) == (1200, 340)
    assert usage.usage_status == "reported"
    assert usage.usage_source == "agent_stdout"


def test_extract_usage_reads_gemini_style_counts() -> None:
    usage = extract_usage(
        prompt="hello",
        stdout='{"stats": {"promptTokenCount": 10, "candidatesTokenCount": 4}}',
        stderr="",
    )

    assert (usage.input_tokens, usage.output_tokens) == (10, 4)


def test_extract_usage_falls_back_to_text_lines() -> None:
    usage = extract_usage(
        prompt="hello",
        stdout="answer",
        stderr="input tokens: 1,024\ncompletion_tokens = 12",
    )

    assert (usage.input_tokens, usage.output_tokens) == (1024, 12)
    assert usage.usage_source == "agent_stderr"


def test_extract_usage_marks_partial_reports() -> None:
    usage = extract_usage(prompt="hello", stdout="output_tokens: 7", stderr="")

    assert (usage.input_tokens, usage.output_tokens) == (0, 7)
    assert usage.usage_status == "partial"


def test_extract_usage_estimates_when_nothing_reported() -> None:
    usage = extract_usage(prompt="x" * 40, stdout="y" * 8, stderr="")

    assert (usage.input_tokens, usage.output_tokens) == (10, 2)
    assert usage.usage_status == "estimated"
    assert usage.usage_source == "char_heuristic"


def test_estimate_tokens_never_rounds_text_to_zero() -> None:
    assert estimate_tokens("") == 0
    assert estimate_tokens("ab") == 1
