"""Record identifiers: "<prefix>_<epoch ms>_<random base36>".

Ids sort roughly by creation time, but nothing may rely on that ordering.
Only uniqueness matters, which the 36^9 random suffix provides.
"""
import secrets
import string
import threading
import time

ALPHABET = string.digits + string.ascii_lowercase
SUFFIX_LENGTH = 9


class IdGenerator:
    """Generates ids for one collection without a central counter."""

    def __init__(self, prefix: str, suffix_length: int = SUFFIX_LENGTH, clock=time.time_ns):
        self.prefix = prefix
        self.suffix_length = suffix_length
        self.clock = clock
        self._last_ms = 0
        self._lock = threading.Lock()

    def _timestamp_ms(self) -> int:
        # Never step backwards when the wall clock does
        now = self.clock() // 1_000_000
        with self._lock:
            if now < self._last_ms:
                now = self._last_ms
            self._last_ms = now
        return now

    def _suffix(self) -> str:
        return "".join(secrets.choice(ALPHABET) for _ in range(self.suffix_length))

    def __call__(self) -> str:
        return f"{self.prefix}_{self._timestamp_ms()}_{self._suffix()}"


new_file_id = IdGenerator("file")
new_folder_id = IdGenerator("folder")
