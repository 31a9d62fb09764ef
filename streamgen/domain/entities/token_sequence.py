"""Token sequence entity for streamgen.

A TokenSequence starts from the encoded prompt and only grows while that
prompt is being decoded.
"""

from typing import Iterable, Iterator, List, Sequence, Union, overload


class TokenSequence(Sequence[int]):
    """Append-only sequence of token ids for a single prompt."""

    def __init__(self, token_ids: Iterable[int] = ()):
        self._ids: List[int] = []
        for token_id in token_ids:
            self.append(token_id)

    def append(self, token_id: int) -> None:
        """Append one generated token id."""
        token_id = int(token_id)
        if token_id < 0:
            raise ValueError(f"Token ID must be non-negative, got {token_id}")
        self._ids.append(token_id)

    def last(self, n: int) -> List[int]:
        """Return the trailing ``n`` token ids (fewer if the sequence is shorter)."""
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")
        return self._ids[max(0, len(self._ids) - n):]

    def to_list(self) -> List[int]:
        """Copy of the ids as a plain list."""
        return list(self._ids)

    @overload
    def __getitem__(self, index: int) -> int: ...

    @overload
    def __getitem__(self, index: slice) -> List[int]: ...

    def __getitem__(self, index: Union[int, slice]) -> Union[int, List[int]]:
        return self._ids[index]

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[int]:
        return iter(self._ids)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TokenSequence):
            return self._ids == other._ids
        if isinstance(other, list):
            return self._ids == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"TokenSequence({self._ids!r})"
