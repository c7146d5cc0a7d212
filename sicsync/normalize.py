import re

SEVEN_DIGITS = re.compile(r"[0-9]{7}")
WHITESPACE = re.compile(r"\s")


def normalize_identifier(raw: str) -> str:
    """Turn a stored company number into the form the registry expects.

    Some numbers lost their leading 0 on entry, so a bare seven digit
    number gets it back. An all-whitespace value collapses to "".
    Anything else is passed through untouched.
    """
    if SEVEN_DIGITS.fullmatch(raw):
        return "0" + raw
    if raw and raw.isspace():
        # TODO: confirm against real company number formats whether inner
        # spaces of otherwise valid numbers should be stripped instead.
        return WHITESPACE.sub("", raw)
    return raw
