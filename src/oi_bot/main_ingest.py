"""Slash command endpoint (the producer half of the pipeline).

Verifies and parses the command, answers Slack straight away with an echo of
the question, and only then publishes a CommandEvent for the worker. A publish
failure can't be reported to the caller any more: the 200 has already gone out,
so it is only logged.

Usage:
    oi-ingest            # or: python -m oi_bot.main_ingest
"""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request, BackgroundTasks, Response
from fastapi.responses import JSONResponse
from .config import Settings, get_settings
from .errors import SignatureVerificationError
from .events import CommandEvent, build_response_payload
from .log import setup_logging, get_logger
from .slack.parse import parse_command, build_ack_text
from .slack.verify import RequestAuthenticator
from .store.bus import EventBus
from .store.db import init_db

logger = get_logger("ingest")

def publish_event(bus: EventBus, event: CommandEvent):
    logger.info(f"Publishing event for {event.user_id}...")
    try:
        event_id = bus.publish(event)
    except Exception:
        logger.exception("Failed to publish event; the request is lost")
        return
    logger.info(f"Published event {event_id}")

def create_app(
    settings: Optional[Settings] = None,
    bus: Optional[EventBus] = None,
    authenticator: Optional[RequestAuthenticator] = None,
) -> FastAPI:
    settings = settings or get_settings()
    bus = bus or EventBus(settings)
    authenticator = authenticator or RequestAuthenticator(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(settings.DB_PATH)
        yield

    app = FastAPI(lifespan=lifespan)

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok"}

    @app.post("/oi")
    @app.post("/slack/commands")
    async def slash_command(request: Request, background_tasks: BackgroundTasks):
        # 1. Verify Signature
        raw_body = await request.body()
        try:
            body = authenticator.verify(request.headers, raw_body)
        except SignatureVerificationError as e:
            logger.warning(f"Rejected request: {e}")
            return Response(status_code=e.status_code)

        # 2. Parse Body
        try:
            command = parse_command(body)
        except UnicodeDecodeError as e:
            logger.warning(f"Could not parse slash command: {e}")
            return Response(status_code=400)

        # 3. Without a response_url there is nowhere to send the answer
        if not command.response_url:
            logger.warning(f"response_url is empty for {command.user_id or 'unknown user'}; dropping request")
            return Response(status_code=400)

        event = CommandEvent(
            user_id=command.user_id,
            text=command.text,
            callback_url=command.response_url,
        )

        # 4. Publish after the acknowledgement has been sent
        background_tasks.add_task(publish_event, bus, event)

        return JSONResponse(build_response_payload(build_ack_text(command.user_id, command.text)))

    return app

def main():
    import uvicorn

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    logger.info(f"Starting ingest on {settings.HOST}:{settings.PORT}")
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT, log_config=None)

if __name__ == "__main__":
    main()
