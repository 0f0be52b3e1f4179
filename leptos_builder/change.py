"""Sets of source changes that decide which build steps have to run."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class WatchKind(Enum):
    """Kinds of file-system events seen by the watcher."""

    CREATE = "create"
    REMOVE = "remove"
    RENAME = "rename"
    WRITE = "write"
    RESCAN = "rescan"


@dataclass(frozen=True)
class Watched:
    """A file-system event; a rename carries both its source and its destination."""

    kind: WatchKind
    source: Path | None = None
    dest: Path | None = None

    @classmethod
    def create(cls, path: Path | str) -> Watched:
        return cls(WatchKind.CREATE, Path(path))

    @classmethod
    def remove(cls, path: Path | str) -> Watched:
        return cls(WatchKind.REMOVE, Path(path))

    @classmethod
    def write(cls, path: Path | str) -> Watched:
        return cls(WatchKind.WRITE, Path(path))

    @classmethod
    def rename(cls, source: Path | str, dest: Path | str) -> Watched:
        return cls(WatchKind.RENAME, Path(source), Path(dest))

    @classmethod
    def rescan(cls) -> Watched:
        return cls(WatchKind.RESCAN)

    def path(self) -> Path | None:
        """The path the event concerns; None for a rescan."""
        return self.source


class ChangeKind(Enum):
    """What part of a project changed."""

    BIN_SOURCE = "bin_source"
    LIB_SOURCE = "lib_source"
    ASSET = "asset"
    STYLE = "style"
    CONF = "conf"
    ADDITIONAL = "additional"


@dataclass(frozen=True)
class Change:
    """One change; asset changes carry the event that caused them."""

    kind: ChangeKind
    watched: Watched | None = None

    @classmethod
    def asset(cls, watched: Watched) -> Change:
        return cls(ChangeKind.ASSET, watched)


_BIN_SOURCE = Change(ChangeKind.BIN_SOURCE)
_LIB_SOURCE = Change(ChangeKind.LIB_SOURCE)
_STYLE = Change(ChangeKind.STYLE)
_CONF = Change(ChangeKind.CONF)
_ADDITIONAL = Change(ChangeKind.ADDITIONAL)


class ChangeSet:
    """An ordered collection of distinct changes."""

    def __init__(self, changes: list[Change] | None = None) -> None:
        self._changes: list[Change] = []
        for change in changes or ():
            self.add(change)

    @classmethod
    def all_changes(cls) -> ChangeSet:
        """A set that makes every build step run."""
        return cls(
            [_BIN_SOURCE, _LIB_SOURCE, _STYLE, _CONF, Change.asset(Watched.rescan())]
        )

    def __iter__(self) -> Iterator[Change]:
        return iter(self._changes)

    def __len__(self) -> int:
        return len(self._changes)

    def __contains__(self, change: object) -> bool:
        return change in self._changes

    def __repr__(self) -> str:
        return f"ChangeSet({self._changes!r})"

    def copy(self) -> ChangeSet:
        return ChangeSet(list(self._changes))

    def is_empty(self) -> bool:
        return not self._changes

    def clear(self) -> None:
        self._changes.clear()

    def need_server_build(self) -> bool:
        return any(c in self._changes for c in (_BIN_SOURCE, _CONF, _ADDITIONAL))

    def need_front_build(self) -> bool:
        return any(c in self._changes for c in (_LIB_SOURCE, _CONF, _ADDITIONAL))

    def asset_iter(self) -> Iterator[Watched]:
        """The events behind the asset changes, in order."""
        for change in self._changes:
            if change.kind is ChangeKind.ASSET and change.watched is not None:
                yield change.watched

    def need_style_build(self, css_files: bool, css_in_source: bool) -> bool:
        return (css_files and _STYLE in self._changes) or (
            css_in_source and _LIB_SOURCE in self._changes
        )

    def add(self, change: Change) -> bool:
        """Add a change unless already present; report whether it was added."""
        if change in self._changes:
            return False
        self._changes.append(change)
        return True