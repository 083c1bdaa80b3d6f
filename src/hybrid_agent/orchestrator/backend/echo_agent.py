"""Local deterministic agent for CLI backend integration tests."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

REVIEW_PROMPT_HINT = "PROPOSED SOLUTION:"


def main(argv: list[str] | None = None) -> int:
    """Answer the prompt file with a JSON payload carrying text and usage."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--prompt-file", required=True)
    parser.add_argument("--model", default="echo")
    args = parser.parse_args(argv)

    prompt = Path(args.prompt_file).read_text("utf-8")
    if REVIEW_PROMPT_HINT in prompt:
        verdict = os.getenv("HYBRID_AGENT_ECHO_VERDICT", "approve")
        text = "APPROVED" if verdict == "approve" else "Missing edge cases; handle empty input."
    else:
        first_line = prompt.strip().splitlines()[0] if prompt.strip() else ""
        text = f"[{args.model}] {first_line}"

    exit_code = int(os.getenv("HYBRID_AGENT_ECHO_EXIT_CODE", "0"))
    if exit_code:
        sys.stderr.write(os.getenv("HYBRID_AGENT_ECHO_STDERR", "echo agent failure") + "\n")
        return exit_code

    payload = {
        "result": text,
        "usage": {
            "input_tokens": len(prompt.split()),
            "output_tokens": len(text.split()),
        },
    }
    sys.stdout.write(json.dumps(payload) + "\n")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
