"""OpenAI client wrapper.

Sends a prompt as a single-turn chat and returns the first choice's text.
Provider errors (network, auth, rate limit) are raised unmodified.
"""

from typing import Optional
from openai import OpenAI
from ..config import Settings
from ..errors import CompletionError

class CompletionClient:
    def __init__(self, settings: Settings, client: Optional[OpenAI] = None):
        self.model = settings.OPENAI_MODEL
        self.client = client or OpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.OPENAI_TIMEOUT_SECONDS,
            max_retries=0,
        )

    def complete(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "user", "content": prompt}
            ],
        )
        if not response.choices:
            raise CompletionError("completion response contained no choices")
        return response.choices[0].message.content or ""

    def close(self):
        self.client.close()
