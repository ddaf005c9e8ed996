"""Oi - a Slack slash command that answers questions with an LLM.

`/oi <question>` is acknowledged straight away by the ingest server, then
answered out-of-band by a worker that asks OpenAI and posts the reply to the
command's response_url.

Components:
- main_ingest: FastAPI slash command endpoint (producer)
- main_worker: event bus consumer
- pipeline: command handler
- slack: signature verification, command parsing, response_url delivery
- llm: OpenAI completion client
- store: SQLite event bus
"""
