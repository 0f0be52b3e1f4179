"""Cargo command lines for the server and front-end packages, and running their tests."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from leptos_builder.project import Config, Project

log = logging.getLogger(__name__)

WASM_TARGET = "wasm32-unknown-unknown"


def build_cargo_command_string(args: Iterable[str]) -> str:
    """The cargo command line as shown to the user; arguments with spaces are quoted."""
    return " ".join(["cargo", *(f"'{arg}'" if " " in arg else arg for arg in args)])


@dataclass(frozen=True)
class CargoCommand:
    """A cargo invocation: the program, its arguments and extra environment variables."""

    program: str
    args: tuple[str, ...]
    envs: tuple[tuple[str, str], ...]

    @property
    def line(self) -> str:
        """The command line for display."""
        return build_cargo_command_string(self.args)

    @property
    def env_line(self) -> str:
        """The extra environment variables as ``NAME=value`` pairs for display."""
        return " ".join(f"{name}={value}" for name, value in self.envs)

    def spawn(self) -> subprocess.Popen:
        """Start the command with the extra variables added to the current environment."""
        env = dict(os.environ)
        env.update(self.envs)
        return subprocess.Popen([self.program, *self.args], env=env)


def _common_tail(
    args: list[str],
    default_features: bool,
    features: list[str],
    cargo_args: list[str] | None,
    profile_args: list[str],
) -> None:
    if not default_features:
        args.append("--no-default-features")
    if features:
        args.append(f"--features={','.join(features)}")
    if cargo_args:
        args.extend(cargo_args)
    args.extend(profile_args)


def build_cargo_server_cmd(cmd: str, proj: Project) -> CargoCommand:
    """The cargo command that runs ``cmd`` on the project's server package."""
    binary = proj.bin
    args = [cmd, f"--package={binary.name}"]

    # A server built for wasm is built as a lib so a wasm runtime can run it.
    server_is_wasm = binary.target_triple is not None and "wasm" in binary.target_triple
    if cmd != "test":
        args.append("--lib" if server_is_wasm else f"--bin={binary.target}")

    if binary.target_dir is not None:
        args.append(f"--target-dir={binary.target_dir}")
    if binary.target_triple is not None:
        args.append(f"--target={binary.target_triple}")

    log.debug("BIN CARGO ARGS: %r", binary.cargo_args)
    _common_tail(
        args,
        binary.default_features,
        binary.features,
        binary.cargo_args,
        binary.profile.cargo_args(),
    )
    return CargoCommand(
        program=binary.cargo_command or "cargo",
        args=tuple(args),
        envs=tuple(proj.to_envs()),
    )


def build_cargo_front_cmd(cmd: str, wasm: bool, proj: Project) -> CargoCommand:
    """The cargo command that runs ``cmd`` on the project's front-end package."""
    lib = proj.lib
    args = [
        cmd,
        f"--package={lib.name}",
        "--lib",
        f"--target-dir={lib.front_target_path}",
    ]
    if wasm:
        args.append(f"--target={WASM_TARGET}")

    _common_tail(
        args,
        lib.default_features,
        lib.features,
        lib.cargo_args,
        lib.profile.cargo_args(),
    )
    return CargoCommand(program="cargo", args=tuple(args), envs=tuple(proj.to_envs()))


def server_cargo_process(cmd: str, proj: Project) -> tuple[CargoCommand, subprocess.Popen]:
    """Start cargo on the server package; return the command and its process."""
    command = build_cargo_server_cmd(cmd, proj)
    return command, command.spawn()


def front_cargo_process(
    cmd: str, wasm: bool, proj: Project
) -> tuple[CargoCommand, subprocess.Popen]:
    """Start cargo on the front-end package; return the command and its process."""
    command = build_cargo_front_cmd(cmd, wasm, proj)
    return command, command.spawn()


def test_proj(proj: Project) -> bool:
    """Run the server tests, then the front-end tests; True when both pass."""
    server_cmd, process = server_cargo_process("test", proj)
    server_status = process.wait()
    log.debug("Cargo envs: %s", server_cmd.env_line)
    log.info("Cargo server tests finished %s", server_cmd.line)

    front_cmd, process = front_cargo_process("test", False, proj)
    front_status = process.wait()
    log.debug("Cargo envs: %s", front_cmd.env_line)
    log.info("Cargo front tests finished %s", front_cmd.line)

    return server_status == 0 and front_status == 0


def test_all(config: Config) -> None:
    """Test every project; raise naming the first one whose tests failed."""
    first_failed = None
    for proj in config.projects:
        if not test_proj(proj) and first_failed is None:
            first_failed = proj
    if first_failed is not None:
        raise RuntimeError(f"Tests failed for {first_failed.name}")