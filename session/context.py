import logging

from sms.errors import SessionExpired

logger = logging.getLogger(__name__)

# Token names round-tripped with every SMS turn
FIRST_TEXT = "first_text"
SESSION_ID = "session_id"
ALIAS = "alias"
NEXT_QUESTION = "next_question"
NEXT_SMS_TYPE = "next_sms_type"

TOKEN_KEYS = (FIRST_TEXT, SESSION_ID, ALIAS, NEXT_QUESTION, NEXT_SMS_TYPE)


class ConversationState:
    """
    Conversation-scoped state for one respondent.
    Must persist across turns, but only through the transport round-trip:
    this object starts from the tokens the transport handed in and
    `snapshot()` is what goes back out.

    Every token is independent. Reading an unset token raises
    SessionExpired, it is never defaulted.
    """

    def __init__(self, tokens=None):
        self._tokens = {}
        for key, value in (tokens or {}).items():
            if key in TOKEN_KEYS and value is not None and value != "":
                self._tokens[key] = str(value)

    def get(self, key):
        if key not in self._tokens:
            raise SessionExpired(key)
        return self._tokens[key]

    def get_int(self, key):
        value = self.get(key)
        try:
            return int(value)
        except ValueError:
            raise SessionExpired(key) from None

    def peek(self, key):
        """Read a token that may legitimately be unset (the dialog state)."""
        return self._tokens.get(key)

    def set(self, key, value):
        # Writes are advisory: a bad value is logged and the turn carries on
        try:
            self._tokens[key] = str(value)
        except Exception as e:
            logger.warning("Could not set conversation token %s: %s", key, e)

    def clear(self):
        self._tokens = {}

    def snapshot(self):
        return dict(self._tokens)
