"""Usage extraction helpers for CLI agent output streams."""

from __future__ import annotations

import re
from dataclasses import dataclass

CHARS_PER_TOKEN = 4

_JSON_INPUT_TOKENS = re.compile(
    r'"(?:input_tokens|prompt_tokens|promptTokenCount|prompt)"\s*:\s*(\d+)',
    re.IGNORECASE,
)
_JSON_OUTPUT_TOKENS = re.compile(
    r'"(?:output_tokens|completion_tokens|candidatesTokenCount|candidates)"\s*:\s*(\d+)',
    re.IGNORECASE,
)

_INPUT_TOKENS = re.compile(r"input[_ ]tokens?\s*[:=]\s*([\d,]+)", re.IGNORECASE)
_OUTPUT_TOKENS = re.compile(r"(?:output|completion)[_ ]tokens?\s*[:=]\s*([\d,]+)", re.IGNORECASE)


@dataclass(slots=True)
class UsageExtraction:
    """Token usage for one agent call, reported or estimated."""

    input_tokens: int
    output_tokens: int
    usage_status: str
    usage_source: str


def extract_usage(*, prompt: str, stdout: str, stderr: str) -> UsageExtraction:
    """Extract token usage from structured or textual output, else estimate it."""

    structured = _extract(
        input_pattern=_JSON_INPUT_TOKENS,
        output_pattern=_JSON_OUTPUT_TOKENS,
        sources=(("agent_stdout", stdout), ("agent_stderr", stderr)),
    )
    if structured is not None:
        return structured

    textual = _extract(
        input_pattern=_INPUT_TOKENS,
        output_pattern=_OUTPUT_TOKENS,
        sources=(("agent_stderr", stderr), ("agent_stdout", stdout)),
    )
    if textual is not None:
        return textual

    return UsageExtraction(
        input_tokens=estimate_tokens(prompt),
        output_tokens=estimate_tokens(stdout),
        usage_status="estimated",
        usage_source="char_heuristic",
    )


def estimate_tokens(text: str) -> int:
    if not text:
        return 0
    return max(1, len(text) // CHARS_PER_TOKEN)


def _extract(
    *,
    input_pattern: re.Pattern[str],
    output_pattern: re.Pattern[str],
    sources: tuple[tuple[str, str], ...],
) -> UsageExtraction | None:
    input_tokens: int | None = None
    output_tokens: int | None = None
    sources_used: list[str] = []

    for source_name, text in sources:
        source_used = False
        if input_tokens is None:
            input_tokens = _extract_int(input_pattern, text)
            source_used = input_tokens is not None
        if output_tokens is None:
            output_tokens = _extract_int(output_pattern, text)
            source_used = source_used or output_tokens is not None
        if source_used:
            sources_used.append(source_name)

    if input_tokens is None and output_tokens is None:
        return None

    return UsageExtraction(
        input_tokens=input_tokens or 0,
        output_tokens=output_tokens or 0,
        usage_status="reported" if None not in (input_tokens, output_tokens) else "partial",
        usage_source="both" if len(sources_used) > 1 else sources_used[0],
    )


def _extract_int(pattern: re.Pattern[str], text: str) -> int | None:
    match = pattern.search(text)
    if match is None:
        return None
    raw = match.group(1).replace(",", "").strip()
    if not raw.isdigit():
        return None
    return int(raw)
