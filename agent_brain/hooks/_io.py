from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from typing import Any, TextIO

from ..config import load_config, resolve_project_dir
from ..runtime import RuntimeContext
from ..types import HookInput, HookOutput

logger = logging.getLogger(__name__)

HookHandler = Callable[[HookInput, RuntimeContext], HookOutput]

LOG_FORMAT = "agent-brain %(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool = False) -> None:
    """Send library logs to stderr; stdout carries only the hook answer."""

    root = logging.getLogger("agent_brain")
    level = logging.DEBUG if debug else logging.WARNING
    root.setLevel(level)
    for handler in list(root.handlers):
        if getattr(handler, "_agent_brain", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._agent_brain = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def read_hook_input(stream: TextIO | None = None) -> HookInput:
    raw = (stream or sys.stdin).read()
    if not raw.strip():
        return {}
    data: Any = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("hook input must be a JSON object")
    return data  # type: ignore[return-value]


def write_output(output: HookOutput, stream: TextIO | None = None) -> None:
    target = stream or sys.stdout
    target.write(json.dumps(output, ensure_ascii=False) + "\n")
    target.flush()


def run_hook(
    handler: HookHandler,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> HookOutput:
    """Run one hook invocation. Always answers ``continue: true``."""

    output: HookOutput = {"continue": True}
    try:
        config = load_config()
        configure_logging(config.debug)
        hook_input = read_hook_input(stdin)
        cwd = hook_input.get("cwd")
        runtime = RuntimeContext.create(
            project_dir=resolve_project_dir(cwd if isinstance(cwd, str) and cwd.strip() else None),
            config=config,
        )
        try:
            output = handler(hook_input, runtime)
        finally:
            runtime.close()
    except Exception as exc:  # noqa: BLE001
        logger.debug("%s failed", getattr(handler, "__name__", "hook"), exc_info=exc)
        output = {"continue": True}
    write_output(output, stdout)
    return output
