import hmac
import hashlib
import time
from urllib.parse import urlencode
import httpx
import pytest
from fastapi.testclient import TestClient
from oi_bot.main_ingest import create_app
from oi_bot.events import CommandEvent
from oi_bot.store.bus import EventBus

TEST_MODE = {"X-Test-Mode": "true", "Content-Type": "application/x-www-form-urlencoded"}

def form(**fields):
    defaults = {
        "team_id": "T1",
        "channel_id": "C1",
        "command": "/oi",
        "user_id": "U1",
        "text": "test",
        "response_url": "https://hooks.example/abc",
        "trigger_id": "1.2.3",
    }
    defaults.update(fields)
    return urlencode(defaults)

@pytest.fixture
def client(bus, test_db):
    return TestClient(create_app(test_db, bus=bus))

def test_ingest_acknowledges_and_publishes(client, bus):
    """
    WHY: Slack needs an answer within 3 seconds, the LLM call happens later in the worker.
    HOW: Post a slash command in test mode.
    EXPECTED:
        1. HTTP 200 with the in_channel echo of the question.
        2. One pending CommandEvent on the bus carrying user, text and response_url.
    """
    response = client.post("/oi", content=form(), headers=TEST_MODE)

    assert response.status_code == 200
    assert response.json() == {"response_type": "in_channel", "text": "<@U1> asked:\n\n> test\n"}

    queued = bus.claim()
    assert queued is not None
    assert queued.event == CommandEvent(user_id="U1", text="test", callback_url="https://hooks.example/abc")

def test_ingest_quotes_every_line(client):
    response = client.post("/slack/commands", content=form(text="line one\nline two"), headers=TEST_MODE)

    assert response.json()["text"] == "<@U1> asked:\n\n> line one\n> line two\n"

def test_ingest_empty_text_still_published(client, bus):
    """
    WHY: `/oi` on its own is valid; the worker answers it with a greeting.
    EXPECTED: Ack with a single empty quoted line, and an event with text "".
    """
    response = client.post("/oi", content=form(text="   "), headers=TEST_MODE)

    assert response.json()["text"] == "<@U1> asked:\n\n> \n"
    assert bus.claim().event.text == ""

def test_ingest_missing_response_url(client, bus):
    """
    WHY: Without a response_url the answer could never be delivered.
    HOW: Post a command whose response_url is blank.
    EXPECTED: No body written and nothing on the bus.
    """
    response = client.post("/oi", content=form(response_url="  "), headers=TEST_MODE)

    assert response.status_code == 400
    assert response.content == b""
    assert bus.claim() is None

def test_ingest_rejects_bad_signature(client, bus):
    """
    WHY: Only Slack may trigger LLM calls on our account.
    HOW: Post without test mode and with a junk signature.
    EXPECTED: 401 with an empty body, nothing published.
    """
    headers = {
        "Content-Type": "application/x-www-form-urlencoded",
        "X-Slack-Request-Timestamp": str(int(time.time())),
        "X-Slack-Signature": "v0=nope",
    }
    response = client.post("/oi", content=form(), headers=headers)

    assert response.status_code == 401
    assert response.content == b""
    assert bus.claim() is None

def test_ingest_accepts_signed_request(client, bus, test_db):
    body = form().encode()
    timestamp = str(int(time.time()))
    signature = "v0=" + hmac.new(
        test_db.SLACK_SIGNING_SECRET.encode(),
        f"v0:{timestamp}:".encode() + body,
        hashlib.sha256
    ).hexdigest()
    headers = {
        "Content-Type": "application/x-www-form-urlencoded",
        "X-Slack-Request-Timestamp": timestamp,
        "X-Slack-Signature": signature,
    }

    response = client.post("/oi", content=body, headers=headers)

    assert response.status_code == 200
    assert bus.claim() is not None

def test_ingest_publish_failure_is_not_reported(test_db):
    """
    WHY: The ack is already on its way when publishing happens; a broken bus can't change it.
    HOW: Use a bus whose publish() raises.
    EXPECTED: The caller still gets the 200 acknowledgement.
    """
    class BrokenBus(EventBus):
        def publish(self, event):
            raise RuntimeError("bus is down")

    client = TestClient(create_app(test_db, bus=BrokenBus(test_db)))
    response = client.post("/oi", content=form(), headers=TEST_MODE)

    assert response.status_code == 200
    assert response.json()["text"] == "<@U1> asked:\n\n> test\n"

def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}

@pytest.mark.asyncio
async def test_ingest_publishes_after_ack_over_asgi(bus, test_db):
    """
    WHY: Publication runs as a background task once the ack has been written.
    HOW: Drive the app through httpx's ASGI transport, which waits for the whole ASGI call.
    EXPECTED: The ack comes back and the event is on the bus afterwards.
    """
    transport = httpx.ASGITransport(app=create_app(test_db, bus=bus))
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.post("/oi", content=form(text="hi"), headers=TEST_MODE)

    assert response.json() == {"response_type": "in_channel", "text": "<@U1> asked:\n\n> hi\n"}
    assert bus.claim().event.text == "hi"

def test_ingest_rejects_non_ascii_signature(client, bus):
    """
    WHY: A forged header with non-ASCII characters must be refused like any other bad signature.
    HOW: Send a signature header containing "é" (latin-1 on the wire).
    EXPECTED: 401 with an empty body, nothing published.
    """
    headers = [
        (b"content-type", b"application/x-www-form-urlencoded"),
        (b"x-slack-request-timestamp", str(int(time.time())).encode()),
        (b"x-slack-signature", "v0=é".encode("latin-1")),
    ]
    response = client.post("/oi", content=form(), headers=headers)

    assert response.status_code == 401
    assert response.content == b""
    assert bus.claim() is None

def test_ingest_rejects_non_utf8_body(client, bus):
    """
    WHY: Slack only sends UTF-8 forms; anything else cannot be parsed into a command.
    HOW: Post a body with an invalid UTF-8 byte in test mode.
    EXPECTED: 400 with an empty body, nothing published.
    """
    response = client.post("/oi", content=b"user_id=U1&text=\xff&response_url=https%3A%2F%2Fhooks.example%2Fabc", headers=TEST_MODE)

    assert response.status_code == 400
    assert response.content == b""
    assert bus.claim() is None
