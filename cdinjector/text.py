from __future__ import annotations


def splice_string(text: str, start: int, end: int, replacement: str) -> str:
    """Replace `text[start:end]` with `replacement`."""
    if not 0 <= start <= end <= len(text):
        raise ValueError(f"invalid splice range [{start}, {end}) for text of length {len(text)}")
    return text[:start] + replacement + text[end:]


__all__ = ["splice_string"]
