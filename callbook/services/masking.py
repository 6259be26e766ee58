"""Phone number redaction for viewers who may not see raw contact numbers."""

MASK_CHAR = "x"
VISIBLE_TAIL = 4


def mask_phone(phone: str | None) -> str:
    """
    Replace every digit except the trailing four characters with MASK_CHAR.

    Separators (spaces, dashes, parentheses, '+') pass through unchanged, so the
    shape of the number survives. Masking an already-masked value is a no-op.
    """
    if not phone:
        return ""
    head, tail = phone[:-VISIBLE_TAIL], phone[-VISIBLE_TAIL:]
    return "".join(MASK_CHAR if ch.isdigit() else ch for ch in head) + tail
