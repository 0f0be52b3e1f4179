"""Keeping the site directory in step with the project's assets directory."""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from leptos_builder.change import ChangeSet, WatchKind, Watched

log = logging.getLogger(__name__)

_INDEX_HTML = "index.html"
_DEFAULT_PKG_NAME = "pkg"


def _rebase(path: Path, src_root: Path, dest_root: Path) -> Path:
    try:
        return Path(dest_root) / Path(path).relative_to(src_root)
    except ValueError as exc:
        raise ValueError(f"{path} is not below {src_root}") from exc


def _copy_entry(source: Path, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    if source.is_dir():
        shutil.copytree(source, dest, dirs_exist_ok=True)
    else:
        shutil.copy2(source, dest)


def _update_file(source: Path, dest: Path) -> bool:
    """Copy the source over the destination unless both already hold the same bytes."""
    data = source.read_bytes()
    if dest.is_file() and dest.read_bytes() == data:
        return False
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(data)
    return True


def reserved(src: Path | str, pkg_dir: Path | str) -> list[Path]:
    """Paths in the assets directory that must not be copied to the site."""
    return [Path(src) / _INDEX_HTML, Path(pkg_dir)]


def clean_dest(dest: Path | str, pkg_dir: Path | str) -> None:
    """Empty the site directory, keeping the package directory and index.html."""
    pkg_name = Path(pkg_dir).name
    if not pkg_name:
        log.warning("Assets No site-pkg-dir given, defaulting to 'pkg' for checks what to delete.")
        log.warning("Assets This will probably delete already generated files.")
        pkg_name = _DEFAULT_PKG_NAME

    for entry in list(os.scandir(dest)):
        path = Path(entry.path)
        if entry.is_dir(follow_symlinks=False):
            if entry.name != pkg_name:
                log.debug("Assets removing folder %s", path)
                shutil.rmtree(path)
        elif entry.name != _INDEX_HTML:
            log.debug("Assets removing file %s", path)
            path.unlink()


def mirror(src_root: Path | str, dest_root: Path | str, reserved_paths: Iterable[Path]) -> None:
    """Copy every entry of the source directory into the destination, skipping reserved ones."""
    src_root = Path(src_root)
    dest_root = Path(dest_root)
    skip = {Path(p) for p in reserved_paths}
    for source in sorted(src_root.iterdir()):
        dest = _rebase(source, src_root, dest_root)
        if source in skip:
            log.warning("Assets reserved filename for Leptos. Please remove %s", source)
            continue
        if source.is_dir():
            log.debug("Assets copy folder %s -> %s", source, dest)
        else:
            log.debug("Assets copy file %s -> %s", source, dest)
        _copy_entry(source, dest)


def resync(src: Path | str, dest: Path | str, pkg_dir: Path | str) -> None:
    """Clean the site directory and copy the whole assets directory into it."""
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    try:
        clean_dest(dest, pkg_dir)
    except OSError as exc:
        raise OSError(f"Cleaning {dest}: {exc}") from exc
    try:
        mirror(src, dest, reserved(src, pkg_dir))
    except OSError as exc:
        raise OSError(f"Mirroring {src} -> {dest}: {exc}") from exc


def update_asset(
    watched: Watched,
    src_root: Path | str,
    dest_root: Path | str,
    pkg_dir: Path | str,
    reserved_paths: Iterable[Path] = (),
) -> bool:
    """Apply one file-system event to the site; report whether the site changed."""
    src_root = Path(src_root)
    dest_root = Path(dest_root)
    path = watched.path()
    if path is not None and path in {Path(p) for p in reserved_paths}:
        log.warning("Assets reserved filename for Leptos. Please remove %s", path)
        return False

    kind = watched.kind
    if kind is WatchKind.CREATE:
        _copy_entry(watched.source, _rebase(watched.source, src_root, dest_root))
        return True
    if kind is WatchKind.REMOVE:
        target = _rebase(watched.source, src_root, dest_root)
        if target.is_dir():
            shutil.rmtree(target)
        else:
            target.unlink()
        return False
    if kind is WatchKind.RENAME:
        old = _rebase(watched.source, src_root, dest_root)
        new = _rebase(watched.dest, src_root, dest_root)
        os.rename(old, new)
        return True
    if kind is WatchKind.WRITE:
        return _update_file(watched.source, _rebase(watched.source, src_root, dest_root))
    resync(src_root, dest_root, pkg_dir)
    return True


def sync_assets(proj: Any, changes: ChangeSet, first_sync: bool) -> bool:
    """Bring the project's site up to date with its assets; True when anything changed."""
    assets = proj.assets
    if assets is None:
        return False
    dest_root = proj.site.root_dir
    pkg_dir = proj.site.pkg_dir

    if first_sync:
        log.debug("Assets starting full resync")
        resync(assets.dir, dest_root, pkg_dir)
        changed = True
    else:
        changed = False
        for watched in changes.asset_iter():
            log.debug("Assets processing %r", watched)
            changed |= update_asset(watched, assets.dir, dest_root, pkg_dir, [])

    if changed:
        log.debug("Assets finished (with changes)")
    else:
        log.debug("Assets finished (no changes)")
    return changed