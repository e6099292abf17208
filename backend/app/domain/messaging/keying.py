"""Conversation keys for 1:1 threads."""

CONVERSATION_KEY_SEPARATOR = "_"
_ESCAPE = "\\"


def _escape(user_id: str) -> str:
    # uuid ids pass through unchanged
    return user_id.replace(_ESCAPE, _ESCAPE * 2).replace(
        CONVERSATION_KEY_SEPARATOR, _ESCAPE + CONVERSATION_KEY_SEPARATOR
    )


def conversation_key(user_a: str, user_b: str) -> str:
    """Order-independent key for the thread between two users.

    conversation_key(a, b) == conversation_key(b, a). Used to group messages
    and as the push-delivery room name. Separators and backslashes inside an
    id are escaped, so distinct pairs always get distinct keys.
    """
    first, second = sorted((user_a, user_b))
    return f"{_escape(first)}{CONVERSATION_KEY_SEPARATOR}{_escape(second)}"
