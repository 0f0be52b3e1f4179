"""Command-line options and the project template generator command."""

from __future__ import annotations

import argparse
import copy
import subprocess
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class LogTarget(Enum):
    """Dependencies whose logs can be shown."""

    WASM = "wasm"
    SERVER = "server"


@dataclass
class Opts:
    """Options shared by the build, test, end-to-end, serve and watch commands."""

    release: bool = False
    precompress: bool = False
    hot_reload: bool = False
    project: str | None = None
    features: list[str] = field(default_factory=list)
    lib_features: list[str] = field(default_factory=list)
    lib_cargo_args: list[str] | None = None
    bin_features: list[str] = field(default_factory=list)
    bin_cargo_args: list[str] | None = None
    wasm_debug: bool = False
    verbose: int = 0


_TEMPLATE_HOST = "https://github.com/"
_TEMPLATE_SHORTCUTS = frozenset({"leptos-rs/start", "leptos-rs/start-axum"})


def absolute_git_url(url: str | None) -> str | None:
    """Expand the built-in template shortcuts to full repository URLs."""
    if url is None:
        return None
    if url in _TEMPLATE_SHORTCUTS:
        return f"{_TEMPLATE_HOST}{url}"
    return url


@dataclass
class NewCommand:
    """Options for generating a new project from a template."""

    git: str | None = None
    branch: str | None = None
    tag: str | None = None
    path: str | None = None
    name: str | None = None
    force: bool = False
    verbose: bool = False
    init: bool = False

    def to_args(self) -> list[str]:
        """Arguments for the template generator's ``generate`` command."""
        args: list[str] = []
        valued = (
            ("git", absolute_git_url(self.git)),
            ("branch", self.branch),
            ("tag", self.tag),
            ("path", self.path),
            ("name", self.name),
        )
        for flag, value in valued:
            if value is not None:
                args.extend([f"--{flag}", value])
        for flag, enabled in (("force", self.force), ("verbose", self.verbose), ("init", self.init)):
            if enabled:
                args.append(f"--{flag}")
        return args

    def run(self, executable: str | Path) -> int:
        """Run the template generator and wait for it; return its exit code."""
        try:
            completed = subprocess.run(
                [str(executable), "generate", *self.to_args()], check=False
            )
        except OSError as exc:
            raise RuntimeError(
                "Could not spawn cargo-generate command (verify that it is installed)"
            ) from exc
        return completed.returncode


class Command(Enum):
    """The subcommands of the command line."""

    BUILD = "build"
    TEST = "test"
    END_TO_END = "end-to-end"
    SERVE = "serve"
    WATCH = "watch"
    NEW = "new"


_BIN_COMMANDS = (Command.SERVE, Command.WATCH)


@dataclass
class Cli:
    """A parsed command line."""

    command: Command
    options: Opts | None = None
    new: NewCommand | None = None
    trailing: list[str] = field(default_factory=list)
    manifest_path: Path | None = None
    log: list[LogTarget] = field(default_factory=list)

    def opts(self) -> Opts | None:
        """The build options, or None for the ``new`` command."""
        if self.command is Command.NEW or self.options is None:
            return None
        return copy.deepcopy(self.options)

    def bin_args(self) -> list[str] | None:
        """Arguments for the server binary, for ``serve`` and ``watch`` only."""
        if self.command in _BIN_COMMANDS:
            return list(self.trailing)
        return None


def _add_opts(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-r", "--release", action="store_true",
                        help="Build artifacts in release mode, with optimizations.")
    parser.add_argument("-P", "--precompress", action="store_true",
                        help="Precompress static assets with gzip and brotli.")
    parser.add_argument("--hot-reload", action="store_true",
                        help="Turn on partial hot-reloading.")
    parser.add_argument("-p", "--project",
                        help="Which project to use, from a list of projects defined in a workspace.")
    parser.add_argument("--features", action="append",
                        help="The features to use when compiling all targets.")
    parser.add_argument("--lib-features", action="append",
                        help="The features to use when compiling the lib target.")
    parser.add_argument("--lib-cargo-args", action="append",
                        help="The cargo flags to pass when compiling the lib target.")
    parser.add_argument("--bin-features", action="append",
                        help="The features to use when compiling the bin target.")
    parser.add_argument("--bin-cargo-args", action="append",
                        help="The cargo flags to pass when compiling the bin target.")
    parser.add_argument("--wasm-debug", action="store_true",
                        help="Include debug information in Wasm output.")
    parser.add_argument("-v", dest="verbose", action="count", default=0,
                        help="Verbosity (-v: verbose, -vv: very verbose).")


def _opts_from(ns: argparse.Namespace) -> Opts:
    return Opts(
        release=ns.release,
        precompress=ns.precompress,
        hot_reload=ns.hot_reload,
        project=ns.project,
        features=ns.features or [],
        lib_features=ns.lib_features or [],
        lib_cargo_args=ns.lib_cargo_args,
        bin_features=ns.bin_features or [],
        bin_cargo_args=ns.bin_cargo_args,
        wasm_debug=ns.wasm_debug,
        verbose=ns.verbose,
    )


def _add_new(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group()
    source.add_argument("-g", "--git",
                        help="Git repository to clone the template from, or a built-in shortcut.")
    source.add_argument("-p", "--path", help="Local path to copy the template from.")
    ref = parser.add_mutually_exclusive_group()
    ref.add_argument("-b", "--branch", help="Branch to use when installing from git.")
    ref.add_argument("-t", "--tag", help="Tag to use when installing from git.")
    parser.add_argument("-n", "--name", help="Directory to create / project name.")
    parser.add_argument("-f", "--force", action="store_true",
                        help="Don't convert the project name to kebab-case.")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enables more verbose output.")
    parser.add_argument("--init", action="store_true",
                        help="Generate the template directly into the current dir.")


def _build_parser() -> tuple[argparse.ArgumentParser, argparse.ArgumentParser]:
    parser = argparse.ArgumentParser(prog="leptos-builder")
    parser.add_argument("--manifest-path", type=Path, help="Path to Cargo.toml.")
    parser.add_argument("--log", action="append", choices=[t.value for t in LogTarget],
                        help="Output logs from dependencies (multiple --log accepted).")
    sub = parser.add_subparsers(dest="command", required=True)

    helps = {
        Command.BUILD: "Build the server and the client.",
        Command.TEST: "Run the cargo tests for app, client and server.",
        Command.END_TO_END: "Start the server and end-2-end tests.",
        Command.SERVE: "Serve. Defaults to hydrate mode.",
        Command.WATCH: "Serve and automatically reload when files change.",
    }
    for command, text in helps.items():
        cmd_parser = sub.add_parser(command.value, help=text)
        _add_opts(cmd_parser)
        if command in _BIN_COMMANDS:
            cmd_parser.add_argument("bin_args", nargs=argparse.REMAINDER)

    new_parser = sub.add_parser(Command.NEW.value,
                                help="Start a wizard for creating a new project.")
    _add_new(new_parser)
    return parser, new_parser


def parse_cli(argv: list[str] | None = None) -> Cli:
    """Parse a command line; exits with a usage message on bad input."""
    parser, new_parser = _build_parser()
    ns = parser.parse_args(sys.argv[1:] if argv is None else argv)
    command = Command(ns.command)
    log = [LogTarget(value) for value in ns.log or []]

    if command is Command.NEW:
        new = NewCommand(
            git=ns.git, branch=ns.branch, tag=ns.tag, path=ns.path, name=ns.name,
            force=ns.force, verbose=ns.verbose, init=ns.init,
        )
        if new == NewCommand():
            new_parser.print_help(sys.stderr)
            raise SystemExit(2)
        return Cli(command=command, new=new, manifest_path=ns.manifest_path, log=log)

    trailing: list[str] = []
    if command in _BIN_COMMANDS:
        trailing = list(ns.bin_args)
        if trailing and trailing[0] == "--":
            trailing = trailing[1:]
    return Cli(
        command=command,
        options=_opts_from(ns),
        trailing=trailing,
        manifest_path=ns.manifest_path,
        log=log,
    )