"""
PURPOSE: Flatten conversation turns into the text block fed to the pipeline.

CALLED BY: services/template_service.py
"""

from typing import Iterable

from template_engine.schemas.template import ConversationMessage

SUMMARY_HEADER = "=== CONVERSATION HISTORY ===\n\n"


def build_conversation_summary(messages: Iterable[ConversationMessage]) -> str:
    """
    PURPOSE: Render messages oldest first as "ROLE: content" paragraphs.

    Args:
        messages: Conversation turns in any order

    Returns:
        str: Header followed by one "{ROLE}: {content}\\n\\n" block per message.
    """
    ordered = sorted(messages, key=lambda m: m.timestamp)
    body = "".join(f"{message.role.upper()}: {message.content}\n\n" for message in ordered)
    return SUMMARY_HEADER + body
