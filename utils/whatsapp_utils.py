"""
utils/whatsapp_utils.py

Purpose: WhatsApp message builders

- Splits long bodies under the Twilio WhatsApp limit
- Formats bullets and greetings used across menus
- Normalizes WhatsApp identities
"""

from typing import Iterable, List, Optional

WHATSAPP_PREFIX = "whatsapp:"

# Twilio rejects WhatsApp bodies above 1600 characters
MAX_BODY_LENGTH = 1600


def ensure_whatsapp_prefix(identity: str) -> str:
    identity = identity.strip()
    if identity.startswith(WHATSAPP_PREFIX):
        return identity
    return f"{WHATSAPP_PREFIX}{identity}"


def strip_whatsapp_prefix(identity: str) -> str:
    """
    Returns the bare number of a WhatsApp identity.

    Example:
        "whatsapp:+263771234567" -> "+263771234567"
    """
    if identity.startswith(WHATSAPP_PREFIX):
        return identity[len(WHATSAPP_PREFIX):]
    return identity


def split_message(text: str, limit: int = MAX_BODY_LENGTH) -> List[str]:
    """
    Splits a message into chunks no longer than `limit`.

    Breaks on paragraph boundaries first, then lines, then hard-cuts.

    Args:
        text: Message body (WhatsApp markdown)
        limit: Maximum chunk length

    Returns:
        Ordered list of chunks (one chunk if already short enough)
    """
    if len(text) <= limit:
        return [text]

    chunks: List[str] = []
    current = ""
    for paragraph in text.split("\n\n"):
        candidate = f"{current}\n\n{paragraph}" if current else paragraph
        if len(candidate) <= limit:
            current = candidate
            continue
        if current:
            chunks.append(current)
        current = ""
        for line in paragraph.split("\n"):
            candidate = f"{current}\n{line}" if current else line
            if len(candidate) <= limit:
                current = candidate
                continue
            if current:
                chunks.append(current)
            while len(line) > limit:
                chunks.append(line[:limit])
                line = line[limit:]
            current = line
    if current:
        chunks.append(current)
    return chunks


def bullet_list(items: Iterable[str], bullet: str = "•") -> str:
    return "\n".join(f"{bullet} {item}" for item in items)


def greeting_line(name: Optional[str]) -> str:
    if name:
        return f"Hello {name}! 👋"
    return "Hello! 👋"
