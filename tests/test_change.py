from pathlib import Path

from leptos_builder.change import Change, ChangeKind, ChangeSet, Watched, WatchKind


def test_all_changes_need_every_build():
    changes = ChangeSet.all_changes()
    assert changes.need_server_build()
    assert changes.need_front_build()
    assert changes.need_style_build(True, False)
    assert list(changes.asset_iter()) == [Watched.rescan()]
    assert len(changes) == 5


def test_empty_set_needs_nothing():
    changes = ChangeSet()
    assert changes.is_empty()
    assert not changes.need_server_build()
    assert not changes.need_front_build()
    assert not changes.need_style_build(True, True)
    assert list(changes.asset_iter()) == []


def test_add_ignores_duplicates():
    changes = ChangeSet()
    assert changes.add(Change(ChangeKind.STYLE)) is True
    assert changes.add(Change(ChangeKind.STYLE)) is False
    assert len(changes) == 1


def test_bin_source_only_needs_server():
    changes = ChangeSet([Change(ChangeKind.BIN_SOURCE)])
    assert changes.need_server_build()
    assert not changes.need_front_build()


def test_additional_needs_server_and_front():
    changes = ChangeSet([Change(ChangeKind.ADDITIONAL)])
    assert changes.need_server_build()
    assert changes.need_front_build()


def test_style_build_depends_on_flags():
    lib_only = ChangeSet([Change(ChangeKind.LIB_SOURCE)])
    assert lib_only.need_style_build(False, True)
    assert not lib_only.need_style_build(True, False)

    style_only = ChangeSet([Change(ChangeKind.STYLE)])
    assert style_only.need_style_build(True, False)
    assert not style_only.need_style_build(False, True)


def test_asset_iter_keeps_order():
    first = Watched.write("assets/a.txt")
    second = Watched.remove("assets/b.txt")
    changes = ChangeSet(
        [Change.asset(first), Change(ChangeKind.CONF), Change.asset(second)]
    )
    assert list(changes.asset_iter()) == [first, second]


def test_clear_empties_set():
    changes = ChangeSet.all_changes()
    changes.clear()
    assert changes.is_empty()


def test_copy_is_independent():
    changes = ChangeSet([Change(ChangeKind.CONF)])
    copied = changes.copy()
    copied.add(Change(ChangeKind.STYLE))
    assert len(changes) == 1
    assert len(copied) == 2


def test_watched_paths():
    assert Watched.create("a/b").path() == Path("a/b")
    assert Watched.rescan().path() is None
    renamed = Watched.rename("old", "new")
    assert renamed.kind is WatchKind.RENAME
    assert renamed.path() == Path("old")
    assert renamed.dest == Path("new")