from certdesigner.shared.history import History


def _fields(x):
    return [{"id": "a", "x": x}]


def test_load_resets_to_single_snapshot():
    history = History(_fields(1))
    assert len(history) == 1
    assert history.index == 0
    assert not history.can_undo
    assert not history.can_redo


def test_undo_then_redo_returns_to_same_state():
    history = History(_fields(1))
    history.commit(_fields(2))
    history.commit(_fields(3))
    assert history.undo() == _fields(2)
    assert history.redo() == _fields(3)
    assert history.current() == _fields(3)


def test_boundaries_are_no_ops():
    history = History(_fields(1))
    assert history.undo() is None
    assert history.redo() is None
    assert history.index == 0


def test_commit_after_undo_truncates_redo_branch():
    history = History(_fields(1))
    history.commit(_fields(2))
    history.commit(_fields(3))
    history.undo()
    history.undo()
    history.commit(_fields(9))
    assert len(history) == 2
    assert not history.can_redo
    assert history.current() == _fields(9)


def test_snapshots_are_isolated_from_caller_mutation():
    fields = _fields(1)
    history = History(fields)
    fields[0]["x"] = 99
    history.commit(fields)
    restored = history.undo()
    assert restored == _fields(1)
    restored[0]["x"] = 42
    assert history.current() == _fields(1)


def test_clear_empties_history():
    history = History(_fields(1))
    history.clear()
    assert len(history) == 0
    assert history.current() is None
