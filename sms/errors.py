from enum import Enum


class Audience(str, Enum):
    """Who needs to hear about a failure."""
    SMS = "sms"
    WEB = "web"


class DialogError(Exception):
    """
    Failure raised anywhere inside an SMS turn.

    - audience: SMS failures are answered to the respondent,
      WEB failures are for the operator (the respondent gets a generic reply)
    - partial_reply: text that can still be sent back over SMS
    """

    audience = Audience.SMS
    default_reply = "Sorry, something went wrong. Please try again later."

    def __init__(self, message, audience=None, partial_reply=None):
        super().__init__(message)
        self.message = message
        if audience is not None:
            self.audience = audience
        self.partial_reply = partial_reply or self.default_reply


class SessionExpired(DialogError):
    default_reply = (
        "Sorry, your session has expired. "
        "Please send another text to start a new report."
    )

    def __init__(self, key):
        super().__init__(f"Conversation token '{key}' is not set")
        self.key = key


class StorageFailure(DialogError):
    default_reply = (
        "Sorry, we could not save your response. "
        "Please send it again."
    )


class IdentifierExhausted(StorageFailure):
    pass


class ConfigurationMissing(DialogError):
    audience = Audience.WEB
