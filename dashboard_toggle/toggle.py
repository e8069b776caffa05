from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable

import structlog

from dashboard_toggle import commands as msgs
from dashboard_toggle.browser import BrowserCapability, SessionFactory
from dashboard_toggle.commands import Command
from dashboard_toggle.dashboard import WebUIController
from dashboard_toggle.settings import BotSettings


logger = structlog.get_logger(__name__)


class ActionOutcome(enum.Enum):
    ALREADY_IN_DESIRED_STATE = "already_in_desired_state"
    TRANSITION_SUCCEEDED = "transition_succeeded"
    TRANSITION_FAILED = "transition_failed"


@dataclass(frozen=True)
class ToggleResult:
    command: Command
    active_before: bool
    message: str
    active_after: bool | None = None
    outcome: ActionOutcome | None = None


# command -> (target state, already, succeeded, failed)
_TRANSITIONS = {
    Command.START: (True, msgs.MSG_ALREADY_RUNNING, msgs.MSG_STARTED, msgs.MSG_START_FAILED),
    Command.STOP: (False, msgs.MSG_ALREADY_STOPPED, msgs.MSG_STOPPED, msgs.MSG_STOP_FAILED),
}


class ToggleStateMachine:
    def __init__(
        self,
        settings: BotSettings,
        session_factory: SessionFactory,
        controller_factory: Callable[[BrowserCapability, BotSettings], WebUIController] = WebUIController,
    ):
        self.settings = settings
        self.session_factory = session_factory
        self.controller_factory = controller_factory

    async def execute(self, command: Command) -> ToggleResult:
        if command is not Command.STATUS and command not in _TRANSITIONS:
            raise ValueError(f"command not executable: {command}")

        async with self.session_factory() as browser:
            ui = self.controller_factory(browser, self.settings)
            await ui.login()
            active = await ui.observe_state()

            if command is Command.STATUS:
                return ToggleResult(
                    command=command,
                    active_before=active,
                    message=msgs.MSG_ACTIVE if active else msgs.MSG_INACTIVE,
                )

            target, already_msg, ok_msg, failed_msg = _TRANSITIONS[command]
            if active == target:
                logger.info("Toggle skipped; already in desired state", command=command.value, active=active)
                return ToggleResult(
                    command=command,
                    active_before=active,
                    active_after=active,
                    outcome=ActionOutcome.ALREADY_IN_DESIRED_STATE,
                    message=already_msg,
                )

            await ui.trigger_toggle()
            after = await ui.observe_state()
            succeeded = after == target
            logger.info(
                "Toggle finished",
                command=command.value,
                active_before=active,
                active_after=after,
                succeeded=succeeded,
            )
            return ToggleResult(
                command=command,
                active_before=active,
                active_after=after,
                outcome=ActionOutcome.TRANSITION_SUCCEEDED if succeeded else ActionOutcome.TRANSITION_FAILED,
                message=ok_msg if succeeded else failed_msg,
            )
