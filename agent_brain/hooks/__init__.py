from ._io import configure_logging, read_hook_input, run_hook, write_output
from .post_tool_use import capture_tool_observation, handle_post_tool_use
from .session_start import build_session_start_output
from .stop import handle_stop, save_session_summary, summarize_session

__all__ = [
    "build_session_start_output",
    "capture_tool_observation",
    "configure_logging",
    "handle_post_tool_use",
    "handle_stop",
    "read_hook_input",
    "run_hook",
    "save_session_summary",
    "summarize_session",
    "write_output",
]
