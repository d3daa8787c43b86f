"""
Cleanup of raw recognition output.
"""


def normalize_text(text: str) -> str:
    """
    Normalize whitespace while keeping paragraph breaks.

    Lines are trimmed and inner whitespace runs become one space. Runs of blank
    lines collapse to a single blank line; leading and trailing blank lines
    are dropped.
    """
    result = []
    prev_empty = False

    for line in text.split("\n"):
        words = line.split()
        if not words:
            # a single blank line marks a paragraph break
            if not prev_empty and result:
                result.append("")
            prev_empty = True
        else:
            result.append(" ".join(words))
            prev_empty = False

    while result and not result[-1]:
        result.pop()

    return "\n".join(result)
