"""Mutable selection over a fixed set of candidate ids."""

from typing import Iterable, Iterator, Sequence

from .models import CleanupCandidate


class SelectionSet:
    """Ids marked for remediation.

    Membership is restricted to the candidate universe the set was built
    with; ids outside it are ignored rather than added.
    """

    def __init__(self, universe: Iterable[str] = ()) -> None:
        self._order: list[str] = list(dict.fromkeys(universe))
        self._universe = set(self._order)
        self._selected: set[str] = set()

    @classmethod
    def auto_select(
        cls,
        candidates: Sequence[CleanupCandidate],
        threshold: float,
    ) -> "SelectionSet":
        """Build a selection with every candidate strictly above the threshold."""
        selection = cls(c.file_id for c in candidates)
        selection._selected = {c.file_id for c in candidates if c.confidence > threshold}
        return selection

    def __contains__(self, file_id: object) -> bool:
        return file_id in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def toggle(self, file_id: str) -> bool:
        """Flip membership of an id.

        Returns:
            True if the id is selected afterwards
        """
        if file_id not in self._universe:
            return False
        if file_id in self._selected:
            self._selected.discard(file_id)
            return False
        self._selected.add(file_id)
        return True

    def select_all(self) -> None:
        self._selected = set(self._universe)

    def clear(self) -> None:
        self._selected.clear()

    def discard(self, file_id: str) -> None:
        """Forget an id entirely, e.g. after it was purged."""
        self._selected.discard(file_id)
        if file_id in self._universe:
            self._universe.discard(file_id)
            self._order.remove(file_id)

    def snapshot(self) -> tuple[str, ...]:
        """Selected ids in candidate order."""
        return tuple(i for i in self._order if i in self._selected)
