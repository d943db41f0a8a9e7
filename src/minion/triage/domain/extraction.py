"""
Fact Extraction
===============

Pure functions turning free text into structured facts: version tokens,
mentioned product names and stack-trace error signatures.

Nothing here talks to Jira; the catalog-backed variants live in the
application layer and delegate to these.
"""

import re
from typing import Iterable, List, Optional, Sequence, Set

VERSION_PATTERN = re.compile(r"\d+\.\d+(\.\d+)*")

STACK_LINE_PATTERN = re.compile(
    r"(^\d+\) .+)"
    r"|(^.+Exception: .+)"
    r"|(^\s+at .+)"
    r"|(^\s+... \d+ more)"
    r"|(^\s*Caused by:.+)",
    re.MULTILINE,
)

ANCHOR_PATTERN = re.compile(r"(.+Exception: .+)|(\s*Caused by:.+)")

LINE_BREAK_PATTERN = re.compile(r"\r\n?")

# Frames of our own code contain this, third-party and JDK frames do not.
PRODUCT_FRAME_MARKER = "sonar"


def get_versions(text: str) -> Set[str]:
    """Every version-like token (two or more dotted numeric groups) in text."""
    return {match.group() for match in VERSION_PATTERN.finditer(text)}


def match_products(text: str, known_products: Iterable[str]) -> Set[str]:
    """
    Known product names appearing in text.

    Plain substring containment: no word boundaries, case-sensitive.
    """
    return {product for product in known_products if product in text}


def pick_version(sorted_versions: Sequence[str], candidates: Iterable[str]) -> Optional[str]:
    """
    Newest catalog version that is also among the candidates.

    Args:
        sorted_versions: Known versions, oldest first
        candidates: Versions mentioned by the user

    Returns:
        The matching version, or None when nothing matches
    """
    wanted = set(candidates)
    for version in reversed(sorted_versions):
        if version in wanted:
            return version
    return None


def collect_stack_lines(text: str) -> List[str]:
    """
    First pass: stack-trace-shaped lines, in order of appearance.

    CRLF and lone CR line endings count as line breaks and never end up in
    a collected line.
    """
    text = LINE_BREAK_PATTERN.sub("\n", text)
    return [match.group() for match in STACK_LINE_PATTERN.finditer(text)]


def is_anchor(lines: Sequence[str], index: int) -> bool:
    """
    Whether lines[index] starts a throwable or cause section.

    The first line always counts, so traces missing their exception header
    still produce a signature.
    """
    return index == 0 or ANCHOR_PATTERN.fullmatch(lines[index]) is not None


def _signature_after(lines: Sequence[str], anchor: int) -> Optional[str]:
    line = None
    cursor = anchor + 1
    while cursor < len(lines) and (line is None or PRODUCT_FRAME_MARKER not in line):
        line = lines[cursor]
        cursor += 1
    return line


def select_signatures(lines: Sequence[str]) -> List[str]:
    """
    Second pass: one signature per anchor.

    From each anchor, scan forward until a line containing the product
    marker; that line (or the last line scanned) is the signature. Anchors
    with nothing after them yield nothing. Duplicates are kept.
    """
    signatures = []
    for index in range(len(lines)):
        if not is_anchor(lines, index):
            continue
        signature = _signature_after(lines, index)
        if signature is not None:
            signatures.append(signature)
    return signatures


def get_error_messages(text: str) -> List[str]:
    """Ordered error signatures extracted from a stack-trace-shaped text."""
    return select_signatures(collect_stack_lines(text))
