"""Content hashes in the names of the generated front-end files."""

from __future__ import annotations

import base64
import hashlib
import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from leptos_builder.project import Project


def _file_hash(path: Path) -> str:
    digest = hashlib.md5(path.read_bytes()).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def compute_front_file_hashes(pkg_dir: Path | str) -> dict[Path, str]:
    """Hash every file below the directory; unreadable directories are skipped."""
    hashes: dict[Path, str] = {}
    stack = [Path(pkg_dir)]
    while stack:
        directory = stack.pop()
        try:
            entries = list(os.scandir(directory))
        except OSError:
            continue
        for entry in entries:
            path = directory / entry.name
            if path.is_file():
                hashes[path] = _file_hash(path)
            elif path.is_dir():
                stack.append(path)
    return hashes


def _extension(path: Path) -> str:
    if not path.suffix:
        raise ValueError(f"no extension: {path}")
    return path.suffix[1:]


def rename_files(files_to_hashes: dict[Path, str]) -> dict[Path, Path]:
    """Rename each file to ``stem.hash.ext``; return the old paths mapped to the new."""
    renamed: dict[Path, Path] = {}
    for path, digest in files_to_hashes.items():
        path = Path(path)
        if not path.stem:
            raise ValueError(f"no file stem: {path}")
        new_path = path.with_name(f"{path.stem}.{digest}.{_extension(path)}")
        path.rename(new_path)
        renamed[path] = new_path
    return renamed


def replace_in_file(
    path: Path | str, old_to_new_paths: dict[Path, Path], root_dir: Path | str
) -> None:
    """Replace the old names, relative to the root, with the new ones in a file."""
    path = Path(path)
    root = Path(root_dir)
    contents = path.read_text()
    for old_path, new_path in old_to_new_paths.items():
        try:
            old_rel = Path(old_path).relative_to(root)
            new_rel = Path(new_path).relative_to(root)
        except ValueError as exc:
            raise ValueError(f"could not strip root path {root}") from exc
        contents = contents.replace(str(old_rel), str(new_rel))
    path.write_text(contents)


def add_hashes_to_site(proj: Project) -> None:
    """Add hashes to the css, js and wasm file names and record them in the hash file."""
    pkg_dir = proj.site.root_relative_pkg_dir()
    hashes = compute_front_file_hashes(pkg_dir)
    renamed = rename_files(hashes)

    js_dest = Path(proj.lib.js_file.dest)
    wasm_dest = Path(proj.lib.wasm_file.dest)
    css_dest = Path(proj.style.site_file.dest)

    replace_in_file(renamed[js_dest], renamed, pkg_dir)

    lines = "".join(
        f"{_extension(dest)}: {hashes[dest]}\n" for dest in (js_dest, wasm_dest, css_dest)
    )
    Path(proj.hash_file.abs).write_text(lines)