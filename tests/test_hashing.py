import ipaddress
from pathlib import Path
from types import SimpleNamespace

import pytest

from leptos_builder.hashing import (
    add_hashes_to_site,
    compute_front_file_hashes,
    rename_files,
    replace_in_file,
)
from leptos_builder.profile import HashFile
from leptos_builder.project_config import Site, SiteFile, SourcedSiteFile

_URLSAFE = set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")


def test_hash_of_empty_file(tmp_path):
    (tmp_path / "empty.js").write_bytes(b"")
    hashes = compute_front_file_hashes(tmp_path)
    assert hashes == {tmp_path / "empty.js": "1B2M2Y8AsgTpgAmY7PhCfg"}


def test_hashes_are_unpadded_urlsafe_and_content_based(tmp_path):
    (tmp_path / "a.js").write_text("same")
    (tmp_path / "b.js").write_text("same")
    (tmp_path / "c.js").write_text("other")
    hashes = compute_front_file_hashes(tmp_path)
    assert hashes[tmp_path / "a.js"] == hashes[tmp_path / "b.js"]
    assert hashes[tmp_path / "a.js"] != hashes[tmp_path / "c.js"]
    for digest in hashes.values():
        assert len(digest) == 22
        assert set(digest) <= _URLSAFE


def test_hashes_include_nested_directories(tmp_path):
    nested = tmp_path / "snippets" / "x"
    nested.mkdir(parents=True)
    (nested / "inline0.js").write_text("js")
    (tmp_path / "app.wasm").write_bytes(b"\0asm")
    hashes = compute_front_file_hashes(tmp_path)
    assert set(hashes) == {nested / "inline0.js", tmp_path / "app.wasm"}


def test_missing_directory_gives_no_hashes(tmp_path):
    assert compute_front_file_hashes(tmp_path / "missing") == {}


def test_rename_files_inserts_hash(tmp_path):
    path = tmp_path / "app.js"
    path.write_text("x")
    renamed = rename_files({path: "HASH"})
    assert renamed == {path: tmp_path / "app.HASH.js"}
    assert not path.exists()
    assert (tmp_path / "app.HASH.js").read_text() == "x"


def test_rename_files_requires_extension(tmp_path):
    path = tmp_path / "noext"
    path.write_text("x")
    with pytest.raises(ValueError, match="no extension"):
        rename_files({path: "HASH"})
    assert path.exists()


def test_replace_in_file_uses_root_relative_names(tmp_path):
    js = tmp_path / "app.js"
    js.write_text("load('app.wasm'); load('app.js');")
    mapping = {
        tmp_path / "app.wasm": tmp_path / "app.W.wasm",
        tmp_path / "app.js": tmp_path / "app.J.js",
    }
    replace_in_file(js, mapping, tmp_path)
    assert js.read_text() == "load('app.W.wasm'); load('app.J.js');"


def test_replace_in_file_outside_root_raises(tmp_path):
    js = tmp_path / "app.js"
    js.write_text("x")
    with pytest.raises(ValueError):
        replace_in_file(js, {Path("/elsewhere/a.js"): Path("/elsewhere/a.H.js")}, tmp_path)


def test_add_hashes_to_site(tmp_path):
    root = tmp_path / "site"
    pkg = root / "pkg"
    pkg.mkdir(parents=True)
    (pkg / "app.js").write_text("import init from './app.wasm';")
    (pkg / "app.wasm").write_bytes(b"\0asm")
    (pkg / "app.css").write_text("body {}")
    target = tmp_path / "target" / "debug"
    target.mkdir(parents=True)

    addr = (ipaddress.IPv4Address("127.0.0.1"), 3000)
    proj = SimpleNamespace(
        site=Site(root_dir=root, pkg_dir=Path("pkg"), addr=addr, reload=(addr[0], 3001)),
        lib=SimpleNamespace(
            js_file=SiteFile(dest=pkg / "app.js", site=Path("pkg/app.js")),
            wasm_file=SourcedSiteFile(
                source=tmp_path / "x.wasm", dest=pkg / "app.wasm", site=Path("pkg/app.wasm")
            ),
        ),
        style=SimpleNamespace(site_file=SiteFile(dest=pkg / "app.css", site=Path("pkg/app.css"))),
        hash_file=HashFile(abs=target / "hash.txt", rel=Path("hash.txt")),
    )

    add_hashes_to_site(proj)

    lines = (target / "hash.txt").read_text().splitlines()
    assert [line.split(": ")[0] for line in lines] == ["js", "wasm", "css"]
    digests = dict(line.split(": ") for line in lines)

    names = sorted(p.name for p in pkg.iterdir())
    assert names == sorted(
        [f"app.{digests['js']}.js", f"app.{digests['wasm']}.wasm", f"app.{digests['css']}.css"]
    )
    js_text = (pkg / f"app.{digests['js']}.js").read_text()
    assert f"./app.{digests['wasm']}.wasm" in js_text