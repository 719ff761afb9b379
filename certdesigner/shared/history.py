from __future__ import annotations

from copy import deepcopy


class History:
    """Linear undo/redo over whole field-list snapshots.

    Snapshots are deep copies, so callers may keep mutating the list they
    committed without touching recorded states.
    """

    def __init__(self, fields: list[dict] | None = None):
        self._snapshots: list[list[dict]] = []
        self._index = -1
        if fields is not None:
            self.reset(fields)

    def reset(self, fields: list[dict]) -> None:
        self._snapshots = [deepcopy(fields)]
        self._index = 0

    def clear(self) -> None:
        self._snapshots = []
        self._index = -1

    def commit(self, fields: list[dict]) -> None:
        del self._snapshots[self._index + 1 :]
        self._snapshots.append(deepcopy(fields))
        self._index = len(self._snapshots) - 1

    @property
    def index(self) -> int:
        return self._index

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._snapshots) - 1

    def current(self) -> list[dict] | None:
        if self._index < 0:
            return None
        return deepcopy(self._snapshots[self._index])

    def undo(self) -> list[dict] | None:
        if not self.can_undo:
            return None
        self._index -= 1
        return deepcopy(self._snapshots[self._index])

    def redo(self) -> list[dict] | None:
        if not self.can_redo:
            return None
        self._index += 1
        return deepcopy(self._snapshots[self._index])
