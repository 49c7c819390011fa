"""
Recurrence expansion.

``expand`` turns a base interval plus a pattern and a count into the ordered
occurrences of the series. Nothing is persisted here: occurrences are keyed by
their start until the engine commits them.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime

from .intervals import add_occurrence
from .types import Occurrence, RecurrencePattern


@dataclass(frozen=True)
class RecurrenceRequest:
    start: datetime
    end: datetime
    pattern: RecurrencePattern
    count: int


class Expansion:
    """Finite, restartable sequence of occurrences.

    Iterating twice yields the same occurrences; each iteration computes them
    lazily from the request.
    """

    def __init__(self, request: RecurrenceRequest):
        self.request = request

    def __iter__(self) -> Iterator[Occurrence]:
        request = self.request
        duration = request.end - request.start
        for index in range(request.count):
            start = add_occurrence(request.start, request.pattern, index)
            yield Occurrence(index=index, start=start, end=start + duration)

    def __len__(self) -> int:
        return max(self.request.count, 0)


def expand(
    start: datetime, end: datetime, pattern: RecurrencePattern, count: int
) -> Expansion:
    """Expand a recurring request into exactly ``count`` occurrences.

    Count bounds are validated by the caller.
    """
    return Expansion(RecurrenceRequest(start, end, RecurrencePattern(pattern), count))
