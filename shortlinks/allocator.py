"""Short code allocation.

Flow Diagram: allocate()
========================
::
    ┌─────────────┐
    │ attempt = 1 │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ sample code │◄──────────────┐
    │ (nanoid)    │               │
    └──────┬──────┘               │
           ▼                      │
    ┌─────────────┐   present     │
    │ lookup_by_  ├──────────┐    │
    │ code()      │          ▼    │
    └──────┬──────┘   ┌──────────────┐
     absent│          │ attempt < max│── yes
           ▼          └──────┬───────┘
    ┌─────────────┐          │ no
    │ return code │          ▼
    └─────────────┘   AllocationExhausted

The existence check only avoids predictable insert failures. Two concurrent
allocations can still pick the same code; the unique constraint on
``links.code`` rejects the second insert and the caller takes the next
candidate, still within the same attempt budget.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Protocol

from nanoid import generate

from shortlinks.exceptions import AllocationExhausted
from shortlinks.logger import LOGGER_NAME
from shortlinks.models import Link

__all__ = ["CodeAllocator", "CodeLookup", "DEFAULT_ALPHABET", "DEFAULT_CODE_LENGTH", "DEFAULT_MAX_ATTEMPTS"]

DEFAULT_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
DEFAULT_CODE_LENGTH = 6
DEFAULT_MAX_ATTEMPTS = 50


class CodeLookup(Protocol):
    async def lookup_by_code(self, code: str) -> Link | None: ...


class CodeAllocator:
    """Draws random fixed-length codes until one is not yet stored."""

    def __init__(
        self,
        store: CodeLookup,
        alphabet: str = DEFAULT_ALPHABET,
        length: int = DEFAULT_CODE_LENGTH,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        assert length > 0, f"length must be positive, got {length!r}"
        assert max_attempts > 0, f"max_attempts must be positive, got {max_attempts!r}"
        self._store = store
        self.alphabet = alphabet
        self.length = length
        self.max_attempts = max_attempts
        self._logger = logger or logging.getLogger(LOGGER_NAME)

    def generate(self) -> str:
        return generate(self.alphabet, self.length)

    async def candidates(self) -> AsyncIterator[str]:
        """Yield codes that are free at the time of their check.

        Every sampled code counts against ``max_attempts``, including codes
        handed out earlier that the caller then failed to insert. One
        iteration is therefore one bounded allocation.

        Raises:
            AllocationExhausted: the attempt budget ran out.
            StorageFault: an existence check failed.
        """
        for attempt in range(1, self.max_attempts + 1):
            code = self.generate()
            if await self._store.lookup_by_code(code) is None:
                if attempt > 1:
                    self._logger.debug(f"Allocated code {code} after {attempt} attempts")
                yield code
        self._logger.error(f"Could not allocate a unique code after {self.max_attempts} attempts")
        raise AllocationExhausted(self.max_attempts)

    async def allocate(self) -> str:
        """Return a code that no stored link uses at the time of the check.

        Raises:
            AllocationExhausted: every sampled code was taken.
            StorageFault: the existence check failed.
        """
        async with aclosing(self.candidates()) as codes:
            async for code in codes:
                return code
        raise AllocationExhausted(self.max_attempts)
