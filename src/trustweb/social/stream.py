# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Stream filter - re-emit only records whose author is trusted.

Input and output are line-delimited JSON records. Lines that cannot be
parsed, or that carry no author, pass through untouched: malformed input
is never treated as a reason to drop.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from .db import SocialStore
from .graph import TrustFilter

logger = logging.getLogger(__name__)


class LineOutcome(str, Enum):
    """How a line was understood."""

    PARSED = "parsed"  # JSON object with an author
    PASSTHROUGH = "passthrough"  # anything else


@dataclass(frozen=True)
class ClassifiedLine:
    outcome: LineOutcome
    author: str | None = None


@dataclass
class StreamFilterResult:
    passed: int = 0
    dropped: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.dropped

    def summary(self) -> str:
        return f"Passed: {self.passed}, Filtered: {self.dropped}"


def classify_line(line: str) -> ClassifiedLine:
    """Tag a line as a parsed record with an author, or as passthrough."""
    try:
        data = json.loads(line)
    except ValueError:
        return ClassifiedLine(LineOutcome.PASSTHROUGH)

    if not isinstance(data, dict):
        return ClassifiedLine(LineOutcome.PASSTHROUGH)

    author = data.get("pubkey")
    if not isinstance(author, str) or not author:
        return ClassifiedLine(LineOutcome.PASSTHROUGH)

    return ClassifiedLine(LineOutcome.PARSED, author)


class StreamFilter:
    """Applies the trust filter to a stream of records, one per line."""

    def __init__(self, store: SocialStore, self_pubkey: str, max_distance: int):
        self.trust = TrustFilter(store)
        self.self_pubkey = self_pubkey
        self.max_distance = max_distance

    def keep(self, line: str) -> bool:
        classified = classify_line(line)
        if classified.outcome is LineOutcome.PASSTHROUGH:
            return True
        return self.trust.allows(classified.author, self.self_pubkey, self.max_distance)

    def run(self, lines: Iterable[str], out: TextIO) -> StreamFilterResult:
        """Copy trusted and unparseable lines from ``lines`` to ``out``.

        Blank lines are skipped and not counted.
        """
        result = StreamFilterResult()
        for raw in lines:
            line = raw.rstrip("\r\n")
            if not line.strip():
                continue

            if self.keep(line):
                out.write(line + "\n")
                result.passed += 1
            else:
                result.dropped += 1

        out.flush()
        logger.debug(f"Stream filter done: {result.summary()}")
        return result
