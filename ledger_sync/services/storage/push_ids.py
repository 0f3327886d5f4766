"""
Generated Keys

Keys follow the push-id scheme used by the Realtime Database clients:
8 characters of millisecond timestamp followed by 12 random characters,
all drawn from an alphabet whose ASCII order matches its index order.
Keys generated in one process therefore sort in creation order, even
within the same millisecond.
"""

import secrets
import threading
import time
from typing import Optional


PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


class PushIdGenerator:
    """Produces lexicographically increasing generated keys."""

    def __init__(self):
        self._lock = threading.Lock()
        self._last_time = 0
        self._last_random: list[int] = [0] * 12

    def generate(self, now_ms: Optional[int] = None) -> str:
        now = int(time.time() * 1000) if now_ms is None else now_ms

        with self._lock:
            duplicate_time = now == self._last_time
            self._last_time = now

            time_chars = []
            for _ in range(8):
                time_chars.append(PUSH_CHARS[now % 64])
                now //= 64
            time_part = "".join(reversed(time_chars))

            if not duplicate_time:
                self._last_random = [secrets.randbelow(64) for _ in range(12)]
            else:
                # Same millisecond: increment the random part by one
                i = 11
                while i >= 0 and self._last_random[i] == 63:
                    self._last_random[i] = 0
                    i -= 1
                if i >= 0:
                    self._last_random[i] += 1

            random_part = "".join(PUSH_CHARS[n] for n in self._last_random)

        return time_part + random_part


_generator = PushIdGenerator()


def generate_push_id() -> str:
    """Generate a new key from the process-wide generator."""
    return _generator.generate()
