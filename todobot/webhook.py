"""FastAPI webhook receiver for GitHub push events."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from typing import Any

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from todobot.config import DEFAULT_CONFIG_PATH
from todobot.connectors.github_gh import push_event_from_payload
from todobot.models import EventReport, PushEvent
from todobot.pipeline import EventGate
from todobot.reporting import report_summary
from todobot.services.command_runtime import CommandRuntime, GithubOptions, default_runtime

logger = logging.getLogger(__name__)


class WebhookSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    secret: str | None = None
    live_actions: bool = False
    workers: int = 1
    config_path: str = DEFAULT_CONFIG_PATH
    defaults: dict[str, Any] = Field(default_factory=dict)
    runtime_override: dict[str, Any] = Field(default_factory=dict)
    gh_bin: str = "gh"
    rate_limit_retries: int = 2
    secondary_backoff_base_seconds: float = 5.0
    rate_limit_max_sleep_seconds: float = 90.0

    def github_options(self) -> GithubOptions:
        return GithubOptions(
            gh_bin=self.gh_bin,
            rate_limit_retries=self.rate_limit_retries,
            secondary_backoff_base_seconds=self.secondary_backoff_base_seconds,
            rate_limit_max_sleep_seconds=self.rate_limit_max_sleep_seconds,
        )


def verify_signature(secret: str, body: bytes, signature: str | None) -> bool:
    if not signature or not signature.startswith("sha256="):
        return False
    expected = "sha256=" + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def create_app(settings: WebhookSettings, runtime: CommandRuntime | None = None) -> FastAPI:
    app = FastAPI(title="todobot webhook")
    resolved_runtime = runtime or default_runtime()
    options = settings.github_options()

    def _process(event: PushEvent) -> EventReport:
        tracker = resolved_runtime.tracker_for(event.repo, options, dry_run=not settings.live_actions)
        fetcher = resolved_runtime.fetcher_for(event.repo, options)
        gate = EventGate.for_event(
            event,
            tracker,
            fetcher,
            config_path=settings.config_path,
            defaults=settings.defaults or None,
            runtime_override=settings.runtime_override or None,
            workers=settings.workers,
        )
        return gate.handle(event)

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/webhook")
    async def receive(
        request: Request,
        x_github_event: str | None = Header(default=None),
        x_hub_signature_256: str | None = Header(default=None),
    ) -> JSONResponse:
        body = await request.body()
        if settings.secret and not verify_signature(settings.secret, body, x_hub_signature_256):
            raise HTTPException(status_code=401, detail="Invalid webhook signature")

        if x_github_event == "ping":
            return JSONResponse({"ok": True})
        if x_github_event != "push":
            return JSONResponse({"ignored": x_github_event}, status_code=202)

        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid JSON payload: {exc}") from exc
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Push payload must be a JSON object")
        try:
            event = push_event_from_payload(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail="Malformed push payload") from exc

        logger.info("Received push to %s for %s (%s commits)", event.ref, event.repo, len(event.commits))
        report = await run_in_threadpool(_process, event)
        return JSONResponse(report_summary(report))

    return app
