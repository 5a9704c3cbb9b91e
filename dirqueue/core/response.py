"""
Response shaping and the outgoing file name convention.

Generated text is trimmed and bounded before it is handed to delivery:
anything longer than MAX_RESPONSE_CHARS is cut to TRUNCATE_TO_CHARS and
suffixed with TRUNCATION_MARKER. The shaped text is always short enough that
shaping it again is a no-op.
"""
from __future__ import annotations

from dirqueue.domain.models import HEARTBEAT_CHANNEL, ResponseRecord

MAX_RESPONSE_CHARS = 4000
TRUNCATE_TO_CHARS = 3900
TRUNCATION_MARKER = "\n\n[Response truncated...]"

FALLBACK_RESPONSE = "Sorry, I encountered an error processing your request."


def shape_response(text: str) -> str:
    """Trim surrounding whitespace and truncate over-long responses."""
    text = text.strip()
    if len(text) > MAX_RESPONSE_CHARS:
        text = text[:TRUNCATE_TO_CHARS] + TRUNCATION_MARKER
    return text


def response_file_name(response: ResponseRecord) -> str:
    """
    Outgoing file name for a response.

    Heartbeat responses are keyed by message id alone so the trigger can find
    its own reply. Every other channel embeds the channel and the completion
    timestamp to keep near-simultaneous completions apart.
    """
    if response.channel == HEARTBEAT_CHANNEL:
        return f"{response.message_id}.json"
    return f"{response.channel}_{response.message_id}_{response.timestamp}.json"
