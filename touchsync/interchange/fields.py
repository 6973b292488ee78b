"""Row-level field splitting and quoting for the interchange format."""

from __future__ import annotations

SEPARATOR = ","
QUOTE = '"'


def split_row(line: str, separator: str = SEPARATOR) -> list[str]:
    """
    Split one row into fields.

    Each quote character toggles an "inside quotes" state; a separator
    inside quotes is literal. Inside quotes a doubled quote stands for
    one literal quote character.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0

    while i < len(line):
        char = line[i]
        if char == QUOTE:
            if in_quotes and line[i + 1 : i + 2] == QUOTE:
                current.append(QUOTE)
                i += 2
                continue
            in_quotes = not in_quotes
        elif char == separator and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current))
    return fields


def quote_field(value: str, separator: str = SEPARATOR) -> str:
    """Quote a free-text field when it holds a separator or a quote."""
    value = " ".join(value.splitlines())
    if separator in value or QUOTE in value:
        return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE
    return value
