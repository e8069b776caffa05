from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import structlog

from dashboard_toggle.browser import BrowserCapability
from dashboard_toggle.errors import AutomationError, LoginError, ObservationError, ToggleBotError
from dashboard_toggle.settings import BotSettings


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Step:
    name: str
    action: Callable[[], Awaitable[Any]]
    error: type[ToggleBotError]
    timeout_seconds: float


async def run_steps(steps: list[Step]) -> Any:
    """
    Run steps strictly in order. Each step is bounded by its own timeout and any failure is
    re-raised as the step's error variant, tagged with the step name. Returns the last
    step's result.
    """
    result: Any = None
    for step in steps:
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(step.action(), timeout=step.timeout_seconds)
        except ToggleBotError as exc:
            if isinstance(exc, step.error):
                raise
            raise step.error(f"{step.name}: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise step.error(f"{step.name}: timed out after {step.timeout_seconds}s") from exc
        except Exception as exc:
            raise step.error(f"{step.name}: {type(exc).__name__}: {exc}") from exc
        logger.debug("Dashboard step ok", step=step.name, elapsed_ms=round((time.perf_counter() - started) * 1000.0, 1))
    return result


class WebUIController:
    """Drives the dashboard through a BrowserCapability."""

    def __init__(self, browser: BrowserCapability, settings: BotSettings):
        self.browser = browser
        self.settings = settings

    @property
    def _timeout(self) -> float:
        return float(self.settings.navigation_timeout_seconds)

    def _step(self, name: str, action: Callable[[], Awaitable[Any]], error: type[ToggleBotError]) -> Step:
        # Per-step bound leaves headroom over the browser's own navigation timeout.
        return Step(name=name, action=action, error=error, timeout_seconds=self._timeout + 5.0)

    async def login(self) -> None:
        s = self.settings
        b = self.browser
        await run_steps(
            [
                self._step("navigate", lambda: b.navigate(s.dashboard_url), LoginError),
                self._step("fill_username", lambda: b.fill(s.username_selector, s.dashboard_username), LoginError),
                self._step("fill_password", lambda: b.fill(s.password_selector, s.dashboard_password), LoginError),
                self._step("submit", lambda: b.click(s.submit_selector), LoginError),
                self._step("wait_login", lambda: b.wait_settled(self._timeout), LoginError),
            ]
        )
        logger.info("Dashboard login ok", url=s.dashboard_url)

    async def observe_state(self) -> bool:
        text = await run_steps(
            [self._step("read_status", lambda: self.browser.read_text(self.settings.status_selector), ObservationError)]
        )
        if text is None:
            raise ObservationError(f"read_status: status element not found ({self.settings.status_selector})")
        active = self.settings.active_marker in text
        logger.info("Dashboard state observed", active=active)
        return active

    async def trigger_toggle(self) -> None:
        s = self.settings
        await run_steps(
            [
                self._step("click_toggle", lambda: self.browser.click(s.toggle_selector), AutomationError),
                self._step("wait_toggle", lambda: self.browser.wait_settled(self._timeout), AutomationError),
            ]
        )
        logger.info("Dashboard toggle clicked")
