"""Virtual millisecond clock driving timer elapse deterministically."""
from __future__ import annotations
from dataclasses import dataclass
from heapq import heappop, heappush
from typing import Callable, Dict, Hashable, List, Optional, Tuple

TimerCallback = Callable[[], object]

@dataclass
class _Entry:
    seq: int
    key: Hashable
    due_ms: int
    callback: TimerCallback

class VirtualClock:
    def __init__(self, start_ms: int = 0):
        self._now_ms = start_ms
        self._seq = 0
        self._entries: Dict[int, _Entry] = {}
        self._queue: List[Tuple[int, int]] = []

    @property
    def now_ms(self) -> int:
        return self._now_ms

    @property
    def pending_count(self) -> int:
        return len(self._entries)

    def next_due(self) -> Optional[int]:
        return self._queue[0][0] if self._queue else None

    def pending_keys(self) -> List[Hashable]:
        return [self._entries[seq].key for _, seq in sorted(self._queue)]

    def call_later(self, delay_ms: int, callback: TimerCallback, key: Hashable = None) -> int:
        """Schedule a one-shot callback ``delay_ms`` from now; returns its sequence number."""
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self._seq += 1
        entry = _Entry(seq=self._seq, key=key if key is not None else self._seq,
                       due_ms=self._now_ms + delay_ms, callback=callback)
        self._entries[entry.seq] = entry
        heappush(self._queue, (entry.due_ms, entry.seq))
        return entry.seq

    def advance(self, delta_ms: int) -> int:
        """Move time forward and fire due callbacks in (due, registration) order."""
        if delta_ms < 0:
            raise ValueError("delta_ms must be >= 0")
        target = self._now_ms + delta_ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due_ms, seq = heappop(self._queue)
            entry = self._entries.pop(seq, None)
            if entry is None:
                continue
            self._now_ms = max(self._now_ms, due_ms)
            entry.callback()
            fired += 1
        self._now_ms = target
        return fired

    def advance_to_next(self) -> int:
        due = self.next_due()
        if due is None:
            return 0
        return self.advance(max(0, due - self._now_ms))

    def cancel_all(self) -> None:
        self._entries.clear()
        self._queue.clear()

    def reset(self) -> None:
        self.cancel_all()
        self._now_ms = 0
        self._seq = 0
