"""The contract shared by the ingest (producer) and worker (consumer) processes.

Nothing else crosses the event bus: the producer builds a CommandEvent from an
authenticated slash command, the worker answers it through `callback_url`.
"""

from typing import Dict
from pydantic import BaseModel, ConfigDict, Field

RESPONSE_TYPE = "in_channel"

class CommandEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    text: str = ""
    callback_url: str = Field(..., min_length=1)

class QueuedEvent(BaseModel):
    """A CommandEvent as handed out by the bus, with its delivery bookkeeping."""
    model_config = ConfigDict(frozen=True)

    id: int
    attempts: int
    event: CommandEvent

def build_response_payload(text: str) -> Dict[str, str]:
    return {
        "response_type": RESPONSE_TYPE,
        "text": text,
    }
