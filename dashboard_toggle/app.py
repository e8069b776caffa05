from __future__ import annotations

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from dashboard_toggle.browser import playwright_session_factory
from dashboard_toggle.gateway import WebhookGateway, WebhookRequest, WebhookResponse
from dashboard_toggle.notifier import SlackNotifier
from dashboard_toggle.settings import BotSettings, load_settings
from dashboard_toggle.toggle import ToggleStateMachine


logger = structlog.get_logger(__name__)


def build_gateway(settings: BotSettings, http_client: httpx.AsyncClient) -> WebhookGateway:
    return WebhookGateway(
        settings=settings,
        state_machine=ToggleStateMachine(settings, playwright_session_factory(settings)),
        notifier=SlackNotifier(http_client, settings),
    )


def _to_response(resp: WebhookResponse) -> Response:
    if isinstance(resp.body, dict):
        return JSONResponse(resp.body, status_code=resp.status_code, headers=resp.headers)
    return PlainTextResponse(resp.body, status_code=resp.status_code, headers=resp.headers)


def create_app(settings: BotSettings | None = None, *, gateway: WebhookGateway | None = None) -> FastAPI:
    settings = (settings or load_settings()).require_complete()

    app = FastAPI(title="Dashboard Toggle Bot", version="0.1.0")
    app.state.settings = settings
    app.state.http_client = None
    if gateway is None:
        app.state.http_client = httpx.AsyncClient(headers={"User-Agent": "dashboard-toggle-bot"})
        gateway = build_gateway(settings, app.state.http_client)
    app.state.gateway = gateway

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        if app.state.http_client is not None:
            await app.state.http_client.aclose()

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/slack/events")
    async def slack_events(req: Request) -> Response:
        body = await req.body()
        resp = await app.state.gateway.handle(WebhookRequest.build(req.headers, body))
        logger.info("Webhook handled", status_code=resp.status_code)
        return _to_response(resp)

    return app
