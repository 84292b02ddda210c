"""
=============================================================================
HANDLE SET
=============================================================================

A fixed-capacity set of small non-negative integers, used to track which
socket handles the loop is watching.

=============================================================================
REPRESENTATION
=============================================================================

select() thinks in bitmasks: bit N set means "watch descriptor N". We keep
the same shape, but use a single Python int as the bit array so there is no
word/offset arithmetic to get wrong:

    handles {3, 4, 7}

    bit:   ... 7 6 5 4 3 2 1 0
    value: ... 1 0 0 1 1 0 0 0   == 0b10011000 == 152

    add(h)       bits |=  (1 << h)
    remove(h)    bits &= ~(1 << h)
    contains(h)  bits &   (1 << h) != 0
    max()        bits.bit_length() - 1

The capacity is a hard ceiling (1024 by default, the FD_SETSIZE that
select() itself supports). Handles outside [0, capacity) are rejected with
HandleCapacityError and never touch the bitmask.

=============================================================================
"""

from typing import Iterator, Iterable

from ..config import DEFAULT_HANDLE_CAPACITY
from ..errors import HandleCapacityError


class HandleSet:
    """
    Bitset of watched handles.

    Iteration is in ascending handle order, so scans are deterministic.

    Usage:
        watched = HandleSet()
        watched.add(3)
        ready = watched.snapshot()
        for fd in ready:
            ...
    """

    __slots__ = ("_bits", "_capacity")

    def __init__(self, handles: Iterable[int] = (),
                 capacity: int = DEFAULT_HANDLE_CAPACITY):
        self._bits = 0
        self._capacity = capacity
        for handle in handles:
            self.add(handle)

    @property
    def capacity(self) -> int:
        return self._capacity

    def _check(self, handle: int) -> None:
        if not 0 <= handle < self._capacity:
            raise HandleCapacityError(handle, self._capacity)

    def add(self, handle: int) -> None:
        """
        Start watching a handle.

        Raises:
            HandleCapacityError: handle is negative or >= capacity.
        """
        self._check(handle)
        self._bits |= 1 << handle

    def remove(self, handle: int) -> None:
        """Stop watching a handle. Unknown handles are ignored."""
        if 0 <= handle < self._capacity:
            self._bits &= ~(1 << handle)

    def contains(self, handle: int) -> bool:
        if not 0 <= handle < self._capacity:
            return False
        return bool(self._bits & (1 << handle))

    def snapshot(self) -> "HandleSet":
        """Return an independent copy; later changes don't affect it."""
        copy = HandleSet(capacity=self._capacity)
        copy._bits = self._bits
        return copy

    def max(self) -> int:
        """Highest member, or -1 when empty."""
        return self._bits.bit_length() - 1

    def clear(self) -> None:
        self._bits = 0

    def __contains__(self, handle: object) -> bool:
        return isinstance(handle, int) and self.contains(handle)

    def __iter__(self) -> Iterator[int]:
        bits = self._bits
        handle = 0
        while bits:
            if bits & 1:
                yield handle
            bits >>= 1
            handle += 1

    def __len__(self) -> int:
        return bin(self._bits).count("1")

    def __bool__(self) -> bool:
        return self._bits != 0

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HandleSet):
            return self._bits == other._bits
        return NotImplemented

    def __repr__(self) -> str:
        return f"HandleSet({list(self)}, capacity={self._capacity})"
