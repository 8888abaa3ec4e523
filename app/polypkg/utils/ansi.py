"""Terminal control sequence stripping for captured process output."""

_ESC = "\x1b"
_BEL = "\x07"


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from a line of terminal output.

    Handles CSI sequences (``ESC [ params final-letter``: colors, cursor
    movement, line clearing) and OSC sequences (``ESC ] ... BEL`` or
    ``ESC ] ... ESC \\``). Any other escape drops only the ESC byte.
    Idempotent; non-escape characters are never removed.

    Args:
        text: Raw output line.

    Returns:
        The line with only printable content left.
    """
    if _ESC not in text:
        return text

    result: list[str] = []
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        if char != _ESC:
            result.append(char)
            i += 1
            continue

        kind = text[i + 1] if i + 1 < length else ""
        if kind == "[":
            # CSI: parameter bytes up to and including the final letter
            i += 2
            while i < length and not (text[i].isascii() and text[i].isalpha()):
                i += 1
            i += 1
        elif kind == "]":
            # OSC: everything up to BEL or the ST backslash
            i += 2
            while i < length and text[i] not in (_BEL, "\\"):
                i += 1
            i += 1
        else:
            i += 1

    return "".join(result)
