"""Send a signed /oi slash command to a running ingest server.

The response_url defaults to a local listener; point it at something like
https://webhook.site to see the worker's reply.
"""

import argparse
import time
from urllib.parse import urlencode
import httpx
from oi_bot.config import get_settings
from oi_bot.slack.verify import compute_signature

URL = "http://localhost:3000/oi"

def generate_headers(secret: str, body: bytes, test_mode: bool):
    if test_mode:
        return {"X-Test-Mode": "true"}
    timestamp = str(int(time.time()))
    return {
        "X-Slack-Request-Timestamp": timestamp,
        "X-Slack-Signature": compute_signature(secret, timestamp, body),
    }

def send_command(text: str, response_url: str, test_mode: bool):
    settings = get_settings()
    body = urlencode({
        "command": "/oi",
        "user_id": "U12345",
        "user_name": "replay",
        "text": text,
        "response_url": response_url,
    }).encode("utf-8")

    headers = generate_headers(settings.SLACK_SIGNING_SECRET, body, test_mode)
    headers["Content-Type"] = "application/x-www-form-urlencoded"

    print(f"Sending command to {URL}...")
    resp = httpx.post(URL, content=body, headers=headers)
    print(f"Status: {resp.status_code}")
    print(f"Response: {resp.text}")

if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("text", nargs="?", default="say hello")
    parser.add_argument("--response-url", default="http://localhost:8080/response")
    parser.add_argument("--test-mode", action="store_true", help="skip signing, send X-Test-Mode (server needs ALLOW_TEST_MODE=true)")
    args = parser.parse_args()
    send_command(args.text, args.response_url, args.test_mode)
