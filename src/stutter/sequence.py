"""
Ordered Sequence
================

OrderedSequence is the owned, ordered container the stack-machine
backend emits instructions into. It is array-backed: positions are
plain integer indices and there are no node links to walk or repair.

Ownership
---------
A sequence owns every value it holds. ``destroy()`` releases each value
exactly once (calling ``release()`` on values that define it) and then
empties the sequence. ``concat(a, b)`` moves b's values into a, leaving
b empty, so a value is never owned by two sequences.

Usage
-----
>>> seq = OrderedSequence.of("a")
>>> seq.append("c")
1
>>> seq.insert_after(0, "b")
1
>>> list(seq)
['a', 'b', 'c']
"""

from typing import Generic, Iterator, Optional, TypeVar

from stutter.errors import OutOfMemoryError, SequenceError

T = TypeVar("T")


class OrderedSequence(Generic[T]):
    """
    Ordered container over owned values.

    Attributes:
        max_length: Optional upper bound on the number of values
    """

    def __init__(self, max_length: Optional[int] = None):
        self.max_length = max_length
        self._items: list[T] = []
        self._destroyed = False

    @classmethod
    def of(cls, value: T, max_length: Optional[int] = None) -> "OrderedSequence[T]":
        """Create a single-element sequence."""
        seq = cls(max_length=max_length)
        seq.append(value)
        return seq

    # =========================================================================
    # Mutation
    # =========================================================================

    def append(self, value: T) -> int:
        """
        Add ``value`` at the tail.

        Returns:
            The index of the new element
        """
        self._check_live()
        self._reserve(1)
        self._items.append(value)
        return len(self._items) - 1

    def insert_after(self, index: int, value: T) -> int:
        """
        Insert ``value`` immediately after the element at ``index``.

        Returns:
            The index of the new element

        Raises:
            SequenceError: If ``index`` does not name an element
        """
        self._check_live()
        self._check_index(index)
        self._reserve(1)
        self._items.insert(index + 1, value)
        return index + 1

    def delete_after(self, index: int) -> T:
        """
        Remove and release the element following ``index``.

        Returns:
            The removed value, already released

        Raises:
            SequenceError: If there is no element after ``index``
        """
        self._check_live()
        self._check_index(index)
        if index + 1 >= len(self._items):
            raise SequenceError(f"no element after index {index}")
        value = self._items.pop(index + 1)
        _release(value)
        return value

    @staticmethod
    def concat(first: "OrderedSequence[T]", second: "OrderedSequence[T]") -> "OrderedSequence[T]":
        """
        Move every element of ``second`` onto the tail of ``first``.

        The order is first's elements followed by second's elements,
        each in their original relative order. ``second`` is left empty.

        Returns:
            ``first``

        Raises:
            SequenceError: If both arguments are the same sequence
        """
        if first is second:
            raise SequenceError("cannot concatenate a sequence with itself")
        first._check_live()
        second._check_live()
        first._reserve(len(second._items))
        first._items.extend(second._items)
        second._items = []
        return first

    def extend(self, other: "OrderedSequence[T]") -> "OrderedSequence[T]":
        """Method form of ``concat(self, other)``."""
        return OrderedSequence.concat(self, other)

    def destroy(self) -> None:
        """Release every element exactly once. Safe to call more than once."""
        if self._destroyed:
            return
        for value in self._items:
            _release(value)
        self._items = []
        self._destroyed = True

    # =========================================================================
    # Access
    # =========================================================================

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    def head(self) -> T:
        self._check_live()
        if not self._items:
            raise SequenceError("empty sequence has no head")
        return self._items[0]

    def tail(self) -> T:
        self._check_live()
        if not self._items:
            raise SequenceError("empty sequence has no tail")
        return self._items[-1]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._items!r})"

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_live(self) -> None:
        if self._destroyed:
            raise SequenceError("operation on a destroyed sequence")

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._items):
            raise SequenceError(f"index {index} out of range for sequence of length {len(self._items)}")

    def _reserve(self, count: int) -> None:
        needed = len(self._items) + count
        if self.max_length is not None and needed > self.max_length:
            raise OutOfMemoryError(self.__class__.__name__, needed, self.max_length)


def _release(value) -> None:
    """Call ``release()`` on values that own resources of their own."""
    release = getattr(value, "release", None)
    if callable(release):
        release()
