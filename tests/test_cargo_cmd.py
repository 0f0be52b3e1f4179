import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from leptos_builder import cargo_cmd
from leptos_builder.cargo_cmd import (
    CargoCommand,
    build_cargo_command_string,
    build_cargo_front_cmd,
    build_cargo_server_cmd,
)
from leptos_builder.metadata import CargoMetadata
from leptos_builder.options import Opts
from leptos_builder.project import Config


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    work = tmp_path / "cwd"
    work.mkdir()
    monkeypatch.chdir(work)


def _lib_targets(name):
    return [{"name": name, "kind": ["cdylib", "rlib"], "crate_types": ["cdylib", "rlib"]}]


def _bin_targets(name):
    return [{"name": name, "kind": ["bin"], "crate_types": ["bin"]}]


def _project_metadata(root: Path, extra=None) -> CargoMetadata:
    leptos = {
        "output-name": "example",
        "site-root": "target/site",
        "site-pkg-dir": "pkg",
        "hash-files": True,
        "bin-features": ["ssr"],
        "lib-features": ["hydrate"],
    }
    leptos.update(extra or {})
    return CargoMetadata.from_json(
        {
            "workspace_root": str(root),
            "target_directory": str(root / "target"),
            "packages": [
                {
                    "name": "example",
                    "id": "example 0.1.0",
                    "manifest_path": str(root / "Cargo.toml"),
                    "targets": _lib_targets("example") + _bin_targets("example"),
                    "metadata": {"leptos": leptos},
                    "dependencies": [],
                }
            ],
            "workspace_members": ["example 0.1.0"],
        }
    )


def _workspace_metadata(root: Path) -> CargoMetadata:
    def package(name, manifest, targets):
        return {
            "name": name,
            "id": f"{name} 0.1.0",
            "manifest_path": str(manifest),
            "targets": targets,
            "metadata": None,
            "dependencies": [],
        }

    packages = [
        package("server-package", root / "project1" / "server" / "Cargo.toml",
                _bin_targets("server-package")),
        package("front-package", root / "project1" / "front" / "Cargo.toml",
                _lib_targets("front_package")),
        package("project2", root / "project2" / "Cargo.toml",
                _lib_targets("project2") + _bin_targets("project2")),
    ]
    return CargoMetadata.from_json(
        {
            "workspace_root": str(root),
            "target_directory": str(root / "target"),
            "packages": packages,
            "workspace_members": [p["id"] for p in packages],
            "metadata": {
                "leptos": [
                    {
                        "name": "project1",
                        "bin-package": "server-package",
                        "lib-package": "front-package",
                        "site-root": "target/site/project1",
                    },
                    {
                        "name": "project2",
                        "bin-package": "project2",
                        "lib-package": "project2",
                        "site-root": "target/site/project2",
                        "bin-features": ["ssr"],
                        "lib-features": ["hydrate"],
                    },
                ]
            },
        }
    )


def _load(cli, metadata):
    return Config.load(cli, metadata.workspace_root.parent, metadata, True, None, {})


@pytest.fixture
def project_root(tmp_path):
    return tmp_path / "examples" / "project"


@pytest.fixture
def workspace_root(tmp_path):
    return tmp_path / "examples" / "workspace"


def test_project_dev(project_root):
    conf = _load(Opts(), _project_metadata(project_root))
    server = build_cargo_server_cmd("build", conf.projects[0])

    env_ref = (
        "LEPTOS_OUTPUT_NAME=example "
        "LEPTOS_SITE_ROOT=target/site "
        "LEPTOS_SITE_PKG_DIR=pkg "
        "LEPTOS_SITE_ADDR=127.0.0.1:3000 "
        "LEPTOS_RELOAD_PORT=3001 "
        "LEPTOS_LIB_DIR=. "
        "LEPTOS_BIN_DIR=. "
        "LEPTOS_HASH_FILES=true "
        "LEPTOS_HASH_FILE_NAME=hash.txt "
        "LEPTOS_WATCH=true"
    )
    assert server.env_line == env_ref
    assert server.line == (
        "cargo build --package=example --bin=example --no-default-features --features=ssr"
    )

    front = build_cargo_front_cmd("build", True, conf.projects[0])
    assert front.line.startswith("cargo build --package=example --lib --target-dir=")
    assert front.line.endswith(
        "--target=wasm32-unknown-unknown --no-default-features --features=hydrate"
    )


def test_project_release(project_root):
    conf = _load(Opts(release=True), _project_metadata(project_root))
    server = build_cargo_server_cmd("build", conf.projects[0])
    assert server.line == (
        "cargo build --package=example --bin=example --no-default-features "
        "--features=ssr --release"
    )

    front = build_cargo_front_cmd("build", True, conf.projects[0])
    assert front.line.startswith("cargo build --package=example --lib --target-dir=")
    assert front.line.endswith(
        "--target=wasm32-unknown-unknown --no-default-features --features=hydrate --release"
    )


def test_workspace_project1(workspace_root):
    env_ref = (
        "LEPTOS_OUTPUT_NAME=project1 "
        "LEPTOS_SITE_ROOT=target/site/project1 "
        "LEPTOS_SITE_PKG_DIR=pkg "
        "LEPTOS_SITE_ADDR=127.0.0.1:3000 "
        "LEPTOS_RELOAD_PORT=3001 "
        f"LEPTOS_LIB_DIR=project1{os.sep}front "
        f"LEPTOS_BIN_DIR=project1{os.sep}server "
        "LEPTOS_HASH_FILES=false "
        "LEPTOS_WATCH=true"
    )
    conf = _load(Opts(), _workspace_metadata(workspace_root))

    server = build_cargo_server_cmd("build", conf.projects[0])
    assert server.env_line == env_ref
    assert server.line == (
        "cargo build --package=server-package --bin=server-package --no-default-features"
    )

    front = build_cargo_front_cmd("build", True, conf.projects[0])
    assert front.env_line == env_ref
    assert front.line.startswith("cargo build --package=front-package --lib --target-dir=")
    assert front.line.endswith("--target=wasm32-unknown-unknown --no-default-features")


def test_workspace_project2(workspace_root):
    conf = _load(Opts(), _workspace_metadata(workspace_root))

    server = build_cargo_server_cmd("build", conf.projects[1])
    assert server.line == (
        "cargo build --package=project2 --bin=project2 --no-default-features --features=ssr"
    )

    front = build_cargo_front_cmd("build", True, conf.projects[1])
    assert front.line.startswith("cargo build --package=project2 --lib --target-dir=")
    assert front.line.endswith(
        "--target=wasm32-unknown-unknown --no-default-features --features=hydrate"
    )


def test_extra_cargo_args(project_root):
    cli = Opts(lib_cargo_args=["-j", "8"], bin_cargo_args=["-j", "16"])
    conf = _load(cli, _project_metadata(project_root))

    server = build_cargo_server_cmd("build", conf.projects[0])
    assert server.line == (
        "cargo build --package=example --bin=example --no-default-features --features=ssr -j 16"
    )

    front = build_cargo_front_cmd("build", True, conf.projects[0])
    assert front.line.startswith("cargo build --package=example --lib --target-dir=")
    assert front.line.endswith(
        "--target=wasm32-unknown-unknown --no-default-features --features=hydrate -j 8"
    )


def test_command_string_quotes_arguments_with_spaces():
    assert build_cargo_command_string(["build", "--features=a b"]) == "cargo build '--features=a b'"


def test_command_string_without_arguments():
    assert build_cargo_command_string([]) == "cargo"


def test_front_target_dir_is_front_target_path(project_root):
    conf = _load(Opts(), _project_metadata(project_root))
    front = build_cargo_front_cmd("build", False, conf.projects[0])
    assert f"--target-dir={project_root / 'target' / 'front'}" in front.args
    assert not any(arg.startswith("--target=") for arg in front.args)
    assert front.program == "cargo"


def test_server_test_command_has_no_bin_flag(project_root):
    conf = _load(Opts(), _project_metadata(project_root))
    server = build_cargo_server_cmd("test", conf.projects[0])
    assert server.args == (
        "test", "--package=example", "--no-default-features", "--features=ssr",
    )


def test_server_wasm_triple_builds_lib(project_root):
    metadata = _project_metadata(
        project_root,
        {"bin-target-triple": "wasm32-wasi", "bin-target-dir": "out", "bin-cargo-command": "cross"},
    )
    conf = _load(Opts(), metadata)
    server = build_cargo_server_cmd("build", conf.projects[0])
    assert server.program == "cross"
    assert server.line == (
        "cargo build --package=example --lib --target-dir=out --target=wasm32-wasi "
        "--no-default-features --features=ssr"
    )


def test_named_profile_and_default_features(project_root):
    metadata = _project_metadata(
        project_root,
        {"bin-profile-release": "server-release", "bin-default-features": True},
    )
    conf = _load(Opts(release=True), metadata)
    server = build_cargo_server_cmd("build", conf.projects[0])
    assert server.line == (
        "cargo build --package=example --bin=example --features=ssr --profile=server-release"
    )


def test_spawn_passes_environment():
    command = CargoCommand(
        program=sys.executable,
        args=("-c", "import os, sys; sys.exit(0 if os.environ.get('LEPTOS_X') == 'yes' else 3)"),
        envs=(("LEPTOS_X", "yes"),),
    )
    assert command.spawn().wait() == 0


def test_spawn_missing_program_raises(tmp_path):
    command = CargoCommand(program=str(tmp_path / "missing"), args=(), envs=())
    with pytest.raises(OSError):
        command.spawn()


def test_proj_runs_server_then_front_tests(project_root):
    conf = _load(Opts(), _project_metadata(project_root))
    with patch("leptos_builder.cargo_cmd.subprocess.Popen") as popen:
        popen.return_value.wait.side_effect = [0, 0]
        assert cargo_cmd.test_proj(conf.projects[0]) is True
    first, second = (call.args[0] for call in popen.call_args_list)
    assert first[:3] == ["cargo", "test", "--package=example"]
    assert "--bin=example" not in first
    assert second[:4] == ["cargo", "test", "--package=example", "--lib"]
    assert "--target=wasm32-unknown-unknown" not in second


def test_proj_fails_when_front_tests_fail(project_root):
    conf = _load(Opts(), _project_metadata(project_root))
    with patch("leptos_builder.cargo_cmd.subprocess.Popen") as popen:
        popen.return_value.wait.side_effect = [0, 101]
        assert cargo_cmd.test_proj(conf.projects[0]) is False


def test_all_raises_for_failed_project(workspace_root):
    conf = _load(Opts(), _workspace_metadata(workspace_root))
    with patch("leptos_builder.cargo_cmd.subprocess.Popen") as popen:
        popen.return_value.wait.side_effect = [1, 0, 0, 0]
        with pytest.raises(RuntimeError, match="Tests failed for project1"):
            cargo_cmd.test_all(conf)
    assert popen.call_count == 4


def test_all_passes(project_root):
    conf = _load(Opts(), _project_metadata(project_root))
    with patch("leptos_builder.cargo_cmd.subprocess.Popen") as popen:
        popen.return_value.wait.side_effect = [0, 0]
        assert cargo_cmd.test_all(conf) is None
    assert popen.call_count == 2