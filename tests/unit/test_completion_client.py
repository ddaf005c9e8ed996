import pytest
from unittest.mock import MagicMock
from oi_bot.llm.client import CompletionClient
from oi_bot.errors import CompletionError

def fake_response(*contents):
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content)) for content in contents]
    return response

def test_complete_sends_single_user_message(settings):
    """
    WHY: Each command is stateless: the prompt is the whole conversation.
    HOW: Mock the OpenAI client and inspect the create() call.
    EXPECTED: One call, configured model, exactly one user message; first choice's content returned.
    """
    openai_client = MagicMock()
    openai_client.chat.completions.create.return_value = fake_response("  forty two \n", "ignored")

    result = CompletionClient(settings, client=openai_client).complete("what is the answer?")

    assert result == "  forty two \n"
    openai_client.chat.completions.create.assert_called_once_with(
        model=settings.OPENAI_MODEL,
        messages=[{"role": "user", "content": "what is the answer?"}],
    )

def test_complete_propagates_provider_errors(settings):
    """
    WHY: The handler reports the provider's own message to the user.
    EXPECTED: The exception raised by the SDK reaches the caller unmodified.
    """
    openai_client = MagicMock()
    error = ConnectionError("network is down")
    openai_client.chat.completions.create.side_effect = error

    with pytest.raises(ConnectionError) as exc:
        CompletionClient(settings, client=openai_client).complete("hi")
    assert exc.value is error

def test_complete_without_choices_raises(settings):
    openai_client = MagicMock()
    openai_client.chat.completions.create.return_value = fake_response()

    with pytest.raises(CompletionError):
        CompletionClient(settings, client=openai_client).complete("hi")

def test_complete_none_content_is_empty_string(settings):
    openai_client = MagicMock()
    openai_client.chat.completions.create.return_value = fake_response(None)

    assert CompletionClient(settings, client=openai_client).complete("hi") == ""

def test_close_releases_openai_client(settings):
    openai_client = MagicMock()

    CompletionClient(settings, client=openai_client).close()

    openai_client.close.assert_called_once_with()
