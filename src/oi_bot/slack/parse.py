from typing import Optional
from urllib.parse import parse_qs
from pydantic import BaseModel

class SlashCommand(BaseModel):
    """The fields of a slash command webhook; only the first three drive behaviour."""
    user_id: str = ""
    text: str = ""
    response_url: str = ""

    # informational only
    command: Optional[str] = None
    team_id: Optional[str] = None
    team_domain: Optional[str] = None
    channel_id: Optional[str] = None
    channel_name: Optional[str] = None
    user_name: Optional[str] = None
    api_app_id: Optional[str] = None
    trigger_id: Optional[str] = None

def parse_command(body: bytes) -> SlashCommand:
    """
    Parse a URL-encoded slash command body.
    Raises UnicodeDecodeError on a body that is not UTF-8.
    """
    form = parse_qs(body.decode("utf-8"), keep_blank_values=True)
    fields = {key: values[0] for key, values in form.items() if key in SlashCommand.model_fields}

    command = SlashCommand(**fields)
    return command.model_copy(update={
        "text": command.text.strip(),
        "response_url": command.response_url.strip(),
    })

def quote_text(text: str) -> str:
    return "".join(f"> {line}\n" for line in text.split("\n"))

def build_ack_text(user_id: str, text: str) -> str:
    return f"<@{user_id}> asked:\n\n{quote_text(text)}"
