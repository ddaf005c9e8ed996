"""Delivery of results to a slash command's response_url.

One httpx.Client is shared by every delivery of the process. There is no
retry here: a failed delivery is raised to the caller, and the worker turns
it into a redelivery of the whole event.
"""

from typing import Optional
import httpx
from ..config import Settings
from ..events import build_response_payload
from ..errors import CallbackDeliveryError
from ..log import get_logger

logger = get_logger("respond")

class CallbackClient:
    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None):
        self.client = client or httpx.Client(timeout=settings.CALLBACK_TIMEOUT_SECONDS)

    def deliver(self, url: str, text: str) -> None:
        """
        POST the in_channel payload for `text` to `url`.
        Raises CallbackDeliveryError on a non-200 answer; transport errors propagate.
        """
        resp = self.client.post(
            url,
            json=build_response_payload(text),
            headers={"Content-Type": "application/json"},
        )
        if resp.status_code != httpx.codes.OK:
            status_line = f"{resp.status_code} {resp.reason_phrase}".strip()
            logger.error(f"response_url answered {status_line}")
            raise CallbackDeliveryError(url, status_line)

    def close(self):
        self.client.close()
