"""Consumer side of the pipeline: answer one CommandEvent.

The handler is stateless. Raising from handle() tells the bus the event was
not handled, which makes it eligible for redelivery; a redelivered event is
answered again (duplicate replies are accepted).
"""

import logging
from ..events import CommandEvent
from ..llm.client import CompletionClient
from ..slack.respond import CallbackClient

logger = logging.getLogger("handler")

def greeting_text(user_id: str) -> str:
    return f"Oi <@{user_id}>! What mate?"

def apology_text(user_id: str, error: Exception) -> str:
    return f"Oi <@{user_id}>! Sorry mate: {error}"

def reply_text(user_id: str, content: str) -> str:
    return f"<@{user_id}> {content.strip()}"

class CommandHandler:
    def __init__(self, completer: CompletionClient, callbacks: CallbackClient):
        self.completer = completer
        self.callbacks = callbacks

    def close(self):
        self.completer.close()
        self.callbacks.close()

    def handle(self, event: CommandEvent) -> None:
        # Empty text gets the greeting and nothing else
        if event.text == "":
            logger.info(f"Empty command from {event.user_id}, sending greeting")
            self.callbacks.deliver(event.callback_url, greeting_text(event.user_id))
            return

        logger.info(f"Asking the completion provider for {event.user_id}...")
        try:
            content = self.completer.complete(event.text)
        except Exception as e:
            logger.error(f"Completion failed for {event.user_id}: {e}")
            try:
                self.callbacks.deliver(event.callback_url, apology_text(event.user_id, e))
            except Exception as delivery_error:
                logger.error(f"Could not report the failure to response_url: {delivery_error}")
            raise

        self.callbacks.deliver(event.callback_url, reply_text(event.user_id, content))
        logger.info(f"Replied to {event.user_id}")
