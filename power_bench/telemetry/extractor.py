"""Pull combined power readings out of raw ``powermetrics`` text."""

from __future__ import annotations

import re
from typing import Iterator, Optional

# Most specific first. powermetrics prints e.g.
#   "Combined Power (CPU + GPU + ANE): 1234 mW"
# and the looser pattern keeps matching if Apple adjusts the label.
COMBINED_POWER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"Combined Power \(CPU \+ GPU(?: \+ ANE)?\):\s*(\d+)\s*mW", re.IGNORECASE),
    re.compile(r"Combined Power.*?:\s*(\d+)\s*mW", re.IGNORECASE),
)


def extract_milliwatts(line: str) -> Optional[int]:
    """Return the combined power reading on ``line`` in mW, or None."""
    for pattern in COMBINED_POWER_PATTERNS:
        match = pattern.search(line)
        if match is None:
            continue
        captured = match.group(1)
        # \d also matches non-ASCII digits; only plain decimal counts.
        if captured.isascii() and captured.isdigit():
            return int(captured, 10)
    return None


def extract_all(text: str) -> Iterator[int]:
    """Yield every reading found in a multi-line blob, in order."""
    for line in text.splitlines():
        reading = extract_milliwatts(line)
        if reading is not None:
            yield reading


__all__ = ["COMBINED_POWER_PATTERNS", "extract_milliwatts", "extract_all"]
