from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Protocol, Tuple

from src.adapters.phone_verifier import PhoneVerificationResult
from src.utils.parsing import phone_digits

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60


class PhoneVerifier(Protocol):
    def verify(self, phone: str) -> PhoneVerificationResult:  # pragma: no cover - interface only
        ...


class VerificationCache:
    """Thread-safe map of phone digits to valid results, each entry expiring after ``ttl_seconds``."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, PhoneVerificationResult]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[PhoneVerificationResult]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, result = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return result

    def set(self, key: str, result: PhoneVerificationResult) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (self._clock() + self._ttl, result)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class PhoneVerificationService:
    """Cached front for the phone verification provider.

    Only valid verdicts are cached so a provider hiccup never pins a real
    number as invalid.
    """

    def __init__(self, verifier: PhoneVerifier, cache: Optional[VerificationCache] = None) -> None:
        self._verifier = verifier
        self._cache = cache or VerificationCache()

    def verify(self, phone: str) -> PhoneVerificationResult:
        key = phone_digits(phone)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Using cached phone verification result")
            return cached

        result = self._verifier.verify(phone)
        if result.is_valid:
            self._cache.set(key, result)
        return result
