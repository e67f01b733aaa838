"""Response runs and the controller that schedules them."""

from scribe.core.controller import AgentController
from scribe.core.factory import ControllerComponents, create_controller
from scribe.core.prompt import build_writing_prompt
from scribe.core.run import ResponseRun, RunState, RunStateError

__all__ = [
    "AgentController",
    "ControllerComponents",
    "ResponseRun",
    "RunState",
    "RunStateError",
    "build_writing_prompt",
    "create_controller",
]
