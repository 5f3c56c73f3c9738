"""
Growable Character Buffer
=========================

GrowString is the accumulator used by the inline-expression backend.
It keeps explicit storage, size and capacity so the growth policy is
observable and bounded:

| Operation  | Capacity after the call           |
|------------|-----------------------------------|
| new        | 10                                |
| append     | unchanged, or 2 * capacity + 1    |
| write      | exactly len(text)                 |
| concat     | exactly size + other.size         |

The storage always has one slot more than the capacity, and the slot
at index ``size`` always holds a NUL terminator.

Allocation failure (a MemoryError from the interpreter, or a request
beyond ``max_capacity``) raises OutOfMemoryError and leaves the buffer
unchanged.

Usage
-----
>>> gs = GrowString()
>>> for letter in "abc":
...     gs.append(letter)
>>> gs.view()
'abc'
"""

import logging
from typing import Optional

from stutter.errors import OutOfMemoryError

logger = logging.getLogger(__name__)

NUL = "\0"


class GrowString:
    """
    Dynamically sized, NUL-terminated character sequence.

    Attributes:
        capacity: Number of characters that fit without growing
        size: Number of characters currently held
        max_capacity: Optional upper bound on capacity
    """

    INITIAL_CAPACITY = 10

    def __init__(self, max_capacity: Optional[int] = None):
        self.max_capacity = max_capacity
        self._data: Optional[list[str]] = None
        self._size = 0
        self._capacity = 0
        self._data = self._allocate(self.INITIAL_CAPACITY)
        self._capacity = self.INITIAL_CAPACITY

    @classmethod
    def from_text(cls, text: str, max_capacity: Optional[int] = None) -> "GrowString":
        """Create a buffer holding ``text``."""
        return cls(max_capacity=max_capacity).write(text)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def size(self) -> int:
        return self._size

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_freed(self) -> bool:
        return self._data is None

    # =========================================================================
    # Mutation
    # =========================================================================

    def append(self, letter: str) -> "GrowString":
        """
        Append one character.

        Grows the capacity to ``2 * capacity + 1`` when the buffer is full.

        Raises:
            ValueError: If ``letter`` is not exactly one character
            OutOfMemoryError: If the buffer cannot grow
        """
        self._check_live()
        if len(letter) != 1:
            raise ValueError(f"append takes a single character, got {letter!r}")

        if self._size >= self._capacity:
            new_capacity = 1 + self._capacity * 2
            self._data = self._reallocate(new_capacity)
            logger.debug(f"GrowString grew from {self._capacity} to {new_capacity}")
            self._capacity = new_capacity

        self._data[self._size] = letter
        self._data[self._size + 1] = NUL
        self._size += 1
        return self

    def extend(self, text: str) -> "GrowString":
        """Append every character of ``text``."""
        for letter in text:
            self.append(letter)
        return self

    def write(self, text: str) -> "GrowString":
        """
        Replace the entire contents with ``text``.

        The capacity is resized to exactly ``len(text)``.
        """
        self._check_live()
        data = self._allocate(len(text))
        data[:len(text)] = text
        self._data = data
        self._size = len(text)
        self._capacity = len(text)
        return self

    def concat(self, other: "GrowString") -> "GrowString":
        """
        Append the contents of another buffer in place.

        The capacity is recomputed to exactly the combined length.
        ``other`` is not modified; concatenating a buffer onto itself
        doubles its contents.
        """
        self._check_live()
        other._check_live()
        addition = other.view()
        new_size = self._size + len(addition)
        data = self._reallocate(new_size)
        data[self._size:new_size] = addition
        data[new_size] = NUL
        self._data = data
        self._size = new_size
        self._capacity = new_size
        return self

    def free(self) -> None:
        """Release the storage. Safe to call more than once."""
        self._data = None
        self._size = 0
        self._capacity = 0

    # =========================================================================
    # Access
    # =========================================================================

    def view(self) -> str:
        """Return the current contents (without the terminator)."""
        self._check_live()
        return "".join(self._data[:self._size])

    def terminated(self) -> str:
        """Return the stored contents up to and including the NUL terminator."""
        self._check_live()
        return "".join(self._data[:self._size + 1])

    def __len__(self) -> int:
        return self._size

    def __str__(self) -> str:
        return self.view()

    def __repr__(self) -> str:
        if self.is_freed:
            return "GrowString(<freed>)"
        return f"GrowString({self.view()!r}, size={self._size}, capacity={self._capacity})"

    # =========================================================================
    # Storage
    # =========================================================================

    def _check_live(self) -> None:
        if self._data is None:
            raise ValueError("operation on a freed GrowString")

    def _allocate(self, capacity: int) -> list[str]:
        """Allocate zeroed storage for ``capacity`` characters plus the NUL."""
        if self.max_capacity is not None and capacity > self.max_capacity:
            raise OutOfMemoryError("GrowString", capacity, self.max_capacity)
        try:
            return [NUL] * (capacity + 1)
        except MemoryError as e:
            raise OutOfMemoryError("GrowString", capacity) from e

    def _reallocate(self, capacity: int) -> list[str]:
        """Allocate new storage and copy the current contents into it."""
        data = self._allocate(capacity)
        data[:self._size] = self._data[:self._size]
        return data
