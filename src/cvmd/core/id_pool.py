"""Pool of small integer identifiers (VM channel ids)."""

from ..exceptions import IdOutOfRangeError, PoolExhaustedError


class IdPool:
    """Allocate, free and occupy integers from the range [start, end).

    `allocate` always hands out the lowest free value, which keeps
    assignments deterministic across restarts.
    """

    def __init__(self, start: int, end: int) -> None:
        if end < start:
            raise ValueError(f"Invalid id range [{start}, {end})")
        self.start = start
        self.end = end
        self._used: set[int] = set()

    def __len__(self) -> int:
        return len(self._used)

    def __contains__(self, value: object) -> bool:
        return value in self._used

    @property
    def capacity(self) -> int:
        return self.end - self.start

    @property
    def available(self) -> int:
        return self.capacity - len(self._used)

    def allocate(self) -> int:
        """Take the lowest free id.

        Returns:
            Allocated id

        Raises:
            PoolExhaustedError: If every id in the range is held
        """
        if len(self._used) < self.capacity:
            for value in range(self.start, self.end):
                if value not in self._used:
                    self._used.add(value)
                    return value
        raise PoolExhaustedError(self.start, self.end)

    def occupy(self, value: int) -> None:
        """Mark a specific id as held. Occupying a held id is a no-op.

        Args:
            value: Id to mark

        Raises:
            IdOutOfRangeError: If value lies outside [start, end)
        """
        if not self.start <= value < self.end:
            raise IdOutOfRangeError(value, self.start, self.end)
        self._used.add(value)

    def free(self, value: int) -> None:
        """Release an id. Freeing an id that is not held is a no-op."""
        self._used.discard(value)
