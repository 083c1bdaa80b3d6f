"""Subprocess-based agent backend for CLI agents (claude, gemini)."""

from __future__ import annotations

import json
import logging
import os
import shlex
import shutil
import string
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from tempfile import TemporaryDirectory

from hybrid_agent.config import Settings
from hybrid_agent.orchestrator.backend.base import AgentResponse, AgentUsage
from hybrid_agent.orchestrator.errors import AgentExecutionError, AgentTimeoutError
from hybrid_agent.orchestrator.failure_classifier import classify_agent_failure
from hybrid_agent.orchestrator.pricing import PricingTable, estimate_cost_usd
from hybrid_agent.orchestrator.usage import extract_usage

logger = logging.getLogger(__name__)

_RESPONSE_TEXT_KEYS = ("result", "response", "text", "content")


@dataclass(slots=True)
class CliSession:
    """Spawn parameters kept until the session's message is sent."""

    session_id: str
    model: str
    work_dir: Path


@dataclass(slots=True)
class CliRunResult:
    """Execution outcome of one CLI invocation."""

    exit_code: int
    timed_out: bool
    stdout: str
    stderr: str


class CliAgent:
    """Run each message through a CLI command template rendered per call."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        name: str,
        command_template: str,
        pricing: PricingTable,
        default_model: str,
        auth_method: str | None = None,
        probe_timeout_seconds: float = 15.0,
    ) -> None:
        self.name = name
        self.command_template = command_template
        self.pricing = pricing
        self.default_model = default_model
        self.auth_method = auth_method
        self.probe_timeout_seconds = probe_timeout_seconds
        self._sessions: dict[str, CliSession] = {}
        self._lock = threading.Lock()

    def spawn(self, session_id: str, *, model: str, work_dir: Path) -> None:
        _validate_command_template(self.command_template, agent=self.name)
        if not work_dir.is_dir():
            raise AgentExecutionError(
                f"Working directory does not exist: {work_dir}",
                agent=self.name,
                transient=False,
            )
        with self._lock:
            self._sessions[session_id] = CliSession(
                session_id=session_id,
                model=model or self.default_model,
                work_dir=work_dir,
            )
        logger.info("Spawned %s session %s (model=%s)", self.name, session_id, model)

    def send_and_wait(
        self,
        session_id: str,
        message: str,
        *,
        timeout_seconds: float,
    ) -> AgentResponse:
        # One message per spawned session; the engine spawns a fresh one per call.
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise AgentExecutionError(
                f"Session {session_id} not found for agent {self.name}; spawn it first.",
                agent=self.name,
                transient=False,
            )

        with TemporaryDirectory(prefix="hybrid-agent-") as temp_dir:
            prompt_file = Path(temp_dir) / "prompt.txt"
            prompt_file.write_text(message, "utf-8")
            run_args, command_head = _build_run_args(
                agent=self.name,
                command_template=self.command_template,
                model=session.model,
                prompt=message,
                prompt_file=prompt_file,
            )
            env = os.environ.copy()
            env["HYBRID_AGENT_SESSION_ID"] = session_id
            env["HYBRID_AGENT_MODEL"] = session.model
            try:
                run = _run_subprocess(
                    run_args=run_args,
                    env=env,
                    cwd=session.work_dir,
                    timeout_seconds=timeout_seconds,
                    output_dir=Path(temp_dir),
                )
            except FileNotFoundError as error:
                raise AgentExecutionError(
                    f"CLI agent command not found: {command_head}",
                    agent=self.name,
                    transient=False,
                ) from error
            except OSError as error:
                raise AgentExecutionError(
                    f"CLI agent failed to start: {error}",
                    agent=self.name,
                    transient=True,
                ) from error

        if run.timed_out:
            raise AgentTimeoutError(
                f"{self.name} did not respond within {timeout_seconds}s",
                agent=self.name,
                timeout_seconds=timeout_seconds,
            )
        if run.exit_code != 0:
            classification = classify_agent_failure(
                agent=self.name,
                exit_code=run.exit_code,
                stdout=run.stdout,
                stderr=run.stderr,
            )
            raise AgentExecutionError(
                f"{self.name} exited with code {run.exit_code} "
                f"({classification.reason_code}): {_truncate(run.stderr or run.stdout)}",
                agent=self.name,
                transient=classification.transient,
                failure_class=classification.failure_class,
                exit_code=run.exit_code,
            )

        usage = extract_usage(prompt=message, stdout=run.stdout, stderr=run.stderr)
        logger.info(
            "%s responded: session=%s tokens=%d/%d usage_status=%s",
            self.name,
            session_id,
            usage.input_tokens,
            usage.output_tokens,
            usage.usage_status,
        )
        return AgentResponse(
            text=extract_response_text(run.stdout),
            usage=AgentUsage(input_tokens=usage.input_tokens, output_tokens=usage.output_tokens),
        )

    def estimate_cost(
        self,
        input_tokens: int,
        output_tokens: int,
        model: str | None = None,
    ) -> float:
        return estimate_cost_usd(
            table=self.pricing,
            agent=self.name,
            model=model or self.default_model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            auth_method=self.auth_method,
        )

    def is_available(self) -> bool:
        try:
            argv = shlex.split(self.command_template)
        except ValueError:
            return False
        if not argv:
            return False
        executable = shutil.which(argv[0])
        if executable is None:
            logger.info("%s executable not found in PATH: %s", self.name, argv[0])
            return False
        try:
            completed = subprocess.run(  # noqa: S603
                [executable, "--version"],
                check=False,
                capture_output=True,
                text=True,
                timeout=self.probe_timeout_seconds,
            )
        except (subprocess.TimeoutExpired, OSError):
            logger.info("%s availability probe failed", self.name, exc_info=True)
            return False
        return completed.returncode == 0


def extract_response_text(stdout: str) -> str:
    """Return the answer text from plain or JSON-formatted CLI output."""

    text = stdout.strip()
    if not text.startswith("{"):
        return text
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return text
    if not isinstance(payload, dict):
        return text
    for key in _RESPONSE_TEXT_KEYS:
        value = payload.get(key)
        if isinstance(value, str):
            return value.strip()
    return text


def _validate_command_template(command_template: str, *, agent: str) -> None:
    stripped = command_template.strip()
    if not stripped:
        raise AgentExecutionError(
            "CLI agent command template is empty.",
            agent=agent,
            transient=False,
        )
    if "{prompt}" not in stripped and "{prompt_file}" not in stripped:
        raise AgentExecutionError(
            "CLI agent command template must include {prompt} or {prompt_file}.",
            agent=agent,
            transient=False,
        )


def _build_run_args(  # noqa: PLR0913
    *,
    agent: str,
    command_template: str,
    model: str,
    prompt: str,
    prompt_file: Path,
    os_name: str | None = None,
) -> tuple[str | list[str], str]:
    _validate_command_template(command_template, agent=agent)
    stripped = command_template.strip()

    current_os_name = os_name or os.name
    try:
        if current_os_name == "nt":
            rendered = _render_windows_command_template(
                template=stripped,
                values={
                    "model": model,
                    "prompt": prompt,
                    "prompt_file": str(prompt_file),
                },
            ).strip()
            if not rendered:
                raise AgentExecutionError(
                    "CLI agent command template rendered empty command.",
                    agent=agent,
                    transient=False,
                )
            return rendered, rendered.split(maxsplit=1)[0]

        rendered = stripped.format(
            model=shlex.quote(model),
            prompt=shlex.quote(prompt),
            prompt_file=shlex.quote(str(prompt_file)),
        )
    except KeyError as error:
        raise AgentExecutionError(
            f"Unsupported command template placeholder: {error}",
            agent=agent,
            transient=False,
        ) from error

    argv = shlex.split(rendered)
    if not argv:
        raise AgentExecutionError(
            "CLI agent command template rendered empty command.",
            agent=agent,
            transient=False,
        )
    return argv, argv[0]


def _render_windows_command_template(*, template: str, values: dict[str, str]) -> str:
    formatter = string.Formatter()
    rendered_parts: list[str] = []
    in_double_quotes = False

    for literal_text, field_name, _format_spec, _conversion in formatter.parse(template):
        rendered_parts.append(literal_text)
        in_double_quotes = _advance_windows_quote_state(literal_text, in_double_quotes)
        if field_name is None:
            continue

        value_text = values[field_name]
        if in_double_quotes:
            rendered_parts.append(value_text.replace('"', '\\"'))
            continue
        rendered_parts.append(subprocess.list2cmdline([value_text]))

    return "".join(rendered_parts)


def _advance_windows_quote_state(literal_text: str, in_double_quotes: bool) -> bool:
    for index, char in enumerate(literal_text):
        if char != '"':
            continue
        backslashes = 0
        scan_index = index - 1
        while scan_index >= 0 and literal_text[scan_index] == "\\":
            backslashes += 1
            scan_index -= 1
        if backslashes % 2 == 1:
            continue
        in_double_quotes = not in_double_quotes
    return in_double_quotes


def _run_subprocess(
    *,
    run_args: str | list[str],
    env: dict[str, str],
    cwd: Path,
    timeout_seconds: float,
    output_dir: Path,
) -> CliRunResult:
    stdout_path = output_dir / "agent_stdout.log"
    stderr_path = output_dir / "agent_stderr.log"
    with (
        stdout_path.open("w", encoding="utf-8") as stdout_handle,
        stderr_path.open("w", encoding="utf-8") as stderr_handle,
    ):
        process = subprocess.Popen(  # noqa: S603
            run_args,
            env=env,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=stdout_handle,
            stderr=stderr_handle,
            text=True,
        )
        start_monotonic = time.monotonic()
        timed_out = False
        while True:
            returncode = process.poll()
            if returncode is not None:
                break
            if time.monotonic() - start_monotonic >= timeout_seconds:
                _terminate_process(process)
                timed_out = True
                returncode = 124
                break
            time.sleep(0.05)

    return CliRunResult(
        exit_code=returncode,
        timed_out=timed_out,
        stdout=stdout_path.read_text("utf-8", errors="replace"),
        stderr=stderr_path.read_text("utf-8", errors="replace"),
    )


def _terminate_process(process: subprocess.Popen[str]) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=2)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=2)


def _truncate(value: str, *, limit: int = 240) -> str:
    compact = value.strip().replace("\n", " ")
    if len(compact) <= limit:
        return compact
    return compact[:limit] + "..."


def build_cli_agents(settings: Settings) -> dict[str, CliAgent]:
    """Create the claude and gemini CLI agents described by settings."""

    agents = settings.agents
    pricing = PricingTable.with_overrides(settings.pricing.overrides)
    return {
        "claude": CliAgent(
            name="claude",
            command_template=agents.claude_command_template,
            pricing=pricing,
            default_model=agents.claude_model_quality,
            auth_method=agents.claude_auth_method,
        ),
        "gemini": CliAgent(
            name="gemini",
            command_template=agents.gemini_command_template,
            pricing=pricing,
            default_model=agents.gemini_model_quality,
            auth_method=agents.gemini_auth_method,
        ),
    }
