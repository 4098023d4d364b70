import re

YES = "yes"
NO = "no"
UNKNOWN = "unknown"

_PUNCTUATION = re.compile(r"""[~`!@#$%^&*(){}\[\];:"'|,.>?/\\\-_+=]""")

NO_PREFIXES = ("no", "na", "i have not", "i havent")
YES_PREFIXES = ("ye", "i have")


def clean_response(text: str) -> str:
    """Lower-case, trim and strip punctuation from an inbound SMS."""
    text = (text or "").lower().strip()
    # stripping punctuation can expose new outer whitespace
    return _PUNCTUATION.sub("", text).strip()


def is_help(text: str) -> bool:
    return clean_response(text) == "help"


def is_restart(text: str) -> bool:
    return clean_response(text) == "restart"


def is_no(cleaned: str) -> bool:
    return cleaned.startswith(NO_PREFIXES) or cleaned == "n"


def is_yes(cleaned: str) -> bool:
    return cleaned.startswith(YES_PREFIXES) or cleaned == "y"


def to_yes_or_no(text: str) -> str:
    """
    Classify a reply to a yes/no prompt.

    "no" is checked first so that "i have not" never reads as "i have".
    Anything matching neither prefix list (e.g. "maybe", "sure") is UNKNOWN.
    """
    cleaned = clean_response(text)
    if is_no(cleaned):
        return NO
    if is_yes(cleaned):
        return YES
    return UNKNOWN
