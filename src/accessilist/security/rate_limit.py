"""
File-backed sliding-window rate limiter.

Each (endpoint, client) pair gets its own small JSON file holding the
timestamps of recent requests. Files are updated under an exclusive flock,
so the limit holds across worker processes on one host. Stale files are
removed opportunistically.

Limits are declared per endpoint for production and multiplied by the
runtime mode's factor (staging 5x, local 50x).
"""

from __future__ import annotations

import fcntl
import hashlib
import json
import logging
import math
import os
import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

HOUR = 3600
STALE_FILE_SECONDS = 86400

# Production limits per client IP: (requests, window seconds)
ENDPOINT_LIMITS: dict[str, tuple[int, int]] = {
    "generate-key": (60, HOUR),
    "instantiate": (20, HOUR),
    "save": (1000, HOUR),
    "restore": (200, HOUR),
    "delete": (50, HOUR),
    "list": (100, HOUR),
}


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


class FileRateLimiter:
    """Sliding-window limiter persisted in flat files.

    Args:
        storage_dir: Directory for the per-client files.
        requests_per_window: Maximum requests per window.
        window_seconds: Window duration in seconds.
        namespace: Prefix mixed into file names so endpoints count separately.
        now: Optional clock function for deterministic tests.
        cleanup_probability: Chance per allowed request of sweeping stale files.

    Example:
        >>> limiter = FileRateLimiter("/tmp/rl", requests_per_window=20, window_seconds=3600)
        >>> decision = limiter.check("203.0.113.7")
        >>> if not decision.allowed:
        ...     pass  # 429 with Retry-After: decision.retry_after
    """

    def __init__(
        self,
        storage_dir: str | os.PathLike[str],
        requests_per_window: int = 100,
        window_seconds: int = HOUR,
        namespace: str = "default",
        now: Callable[[], float] | None = None,
        cleanup_probability: float = 0.01,
    ) -> None:
        self._storage_dir = Path(storage_dir)
        self._requests_per_window = requests_per_window
        self._window_seconds = window_seconds
        self._namespace = namespace
        self._now = now or time.time
        self._cleanup_probability = cleanup_probability

    @property
    def requests_per_window(self) -> int:
        return self._requests_per_window

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def _path_for(self, client_id: str) -> Path:
        digest = hashlib.sha256(f"{self._namespace}:{client_id}".encode()).hexdigest()[:32]
        return self._storage_dir / f"rl_{digest}.json"

    def _prune(self, attempts: list[float], current_time: float) -> list[float]:
        cutoff = current_time - self._window_seconds
        return [ts for ts in attempts if ts > cutoff]

    @staticmethod
    def _load(raw: bytes) -> list[float]:
        if not raw:
            return []
        try:
            attempts = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("Discarding corrupt rate limit file")
            return []
        if not isinstance(attempts, list):
            return []
        return [float(ts) for ts in attempts if isinstance(ts, (int, float))]

    def check(self, client_id: str) -> RateLimitDecision:
        """Record a request if it fits in the window.

        Args:
            client_id: Unique identifier for the client (e.g. IP address).

        Returns:
            Decision; ``retry_after`` is set when the request is refused.
        """
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        path = self._path_for(client_id)
        fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o600)
        with os.fdopen(fd, "r+b") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                current_time = self._now()
                attempts = self._prune(self._load(f.read()), current_time)

                if len(attempts) >= self._requests_per_window:
                    retry_after = math.ceil(min(attempts) + self._window_seconds - current_time)
                    return RateLimitDecision(
                        allowed=False, remaining=0, retry_after=max(1, retry_after)
                    )

                attempts.append(current_time)
                f.seek(0)
                f.truncate()
                f.write(json.dumps(attempts).encode("utf-8"))
                f.flush()
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

        if random.random() < self._cleanup_probability:
            self.cleanup_stale_files()

        return RateLimitDecision(
            allowed=True, remaining=self._requests_per_window - len(attempts)
        )

    def get_remaining(self, client_id: str) -> int:
        """Remaining requests in the current window, without recording one."""
        path = self._path_for(client_id)
        try:
            with open(path, "rb") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    attempts = self._load(f.read())
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            return self._requests_per_window
        attempts = self._prune(attempts, self._now())
        return max(0, self._requests_per_window - len(attempts))

    def reset(self, client_id: str) -> None:
        try:
            self._path_for(client_id).unlink()
        except FileNotFoundError:
            pass

    def cleanup_stale_files(self) -> int:
        """Delete limiter files untouched for a day. Returns how many went."""
        cutoff = time.time() - STALE_FILE_SECONDS
        removed = 0
        for path in self._storage_dir.glob("rl_*.json"):
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
            except FileNotFoundError:
                continue
        if removed:
            logger.debug("Removed %d stale rate limit files", removed)
        return removed


def build_endpoint_limiters(
    storage_dir: str | os.PathLike[str],
    multiplier: int = 1,
    limits: dict[str, tuple[int, int]] | None = None,
    now: Callable[[], float] | None = None,
) -> dict[str, FileRateLimiter]:
    """One limiter per endpoint, with limits scaled by ``multiplier``."""
    return {
        endpoint: FileRateLimiter(
            storage_dir,
            requests_per_window=max_requests * multiplier,
            window_seconds=window,
            namespace=endpoint,
            now=now,
        )
        for endpoint, (max_requests, window) in (limits or ENDPOINT_LIMITS).items()
    }
