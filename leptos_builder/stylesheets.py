"""Compiling style sheets with the external sass and tailwind tools."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from leptos_builder.project_config import SourcedSiteFile, TailwindConfig

log = logging.getLogger(__name__)

DEFAULT_TAILWIND_CONFIG = """/** @type {import('tailwindcss').Config} */
    module.exports = {
      content: {
        relative: true,
        files: ["*.html", "./src/**/*.rs"],
      },
      theme: {
        extend: {},
      },
      plugins: [],
    }
    """


class OutcomeStatus(Enum):
    """How a build step ended."""

    SUCCESS = "success"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome:
    """The end of a build step; a successful one carries its result."""

    status: OutcomeStatus
    value: str | None = None

    @classmethod
    def success(cls, value: str) -> Outcome:
        return cls(OutcomeStatus.SUCCESS, value)

    @classmethod
    def stopped(cls) -> Outcome:
        return cls(OutcomeStatus.STOPPED)

    @classmethod
    def failed(cls) -> Outcome:
        return cls(OutcomeStatus.FAILED)

    @property
    def is_success(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


@dataclass(frozen=True)
class _Finished:
    returncode: int
    stdout: str
    stderr: str


def _run_piped(name: str, command: list[str]) -> _Finished | None:
    """Run with captured output; None when interrupted, in which case the process is killed."""
    process = subprocess.Popen(
        command, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True
    )
    try:
        stdout, stderr = process.communicate()
    except KeyboardInterrupt:
        log.debug("%s interrupted", name)
        process.kill()
        process.wait()
        return None
    return _Finished(process.returncode, stdout, stderr)


def sass_args(style_file: SourcedSiteFile, optimise: bool) -> list[str]:
    """Arguments for the sass compiler."""
    args = [str(style_file.source)]
    if optimise:
        args.append("--no-source-map")
    return args


def compile_sass(
    style_file: SourcedSiteFile, optimise: bool, executable: str | Path
) -> Outcome:
    """Compile a sass/scss file; a success carries the css."""
    args = sass_args(style_file, optimise)
    log.debug("Style running sass %s", " ".join(args))
    finished = _run_piped("Dart Sass", [str(executable), *args])
    if finished is None:
        return Outcome.stopped()
    if finished.returncode == 0:
        return Outcome.success(finished.stdout)
    log.warning("Dart Sass failed with:")
    print(finished.stderr)
    return Outcome.failed()


def create_default_tailwind_config(tw_conf: TailwindConfig) -> None:
    """Write a starter tailwind configuration file."""
    Path(tw_conf.config_file).write_text(DEFAULT_TAILWIND_CONFIG)


def tailwind_process(
    cmd: str, tw_conf: TailwindConfig, executable: str | Path
) -> tuple[str, list[str]]:
    """The display line and the full command for a tailwind run."""
    args = [
        "--input",
        str(tw_conf.input_file),
        "--config",
        str(tw_conf.config_file),
        "--output",
        str(tw_conf.tmp_file),
    ]
    line = f"{cmd} {' '.join(args)}"
    return line, [str(executable), *args]


def compile_tailwind(tw_conf: TailwindConfig, executable: str | Path) -> Outcome:
    """Run tailwind; a success carries the generated css."""
    if not Path(tw_conf.config_file).exists():
        create_default_tailwind_config(tw_conf)

    line, command = tailwind_process("tailwind", tw_conf, executable)
    finished = _run_piped("Tailwind", command)
    if finished is None:
        return Outcome.stopped()

    if finished.returncode == 0:
        lines = finished.stderr.splitlines()
        if lines and "Done" in lines[-1]:
            log.info("Tailwind finished %s", line)
            try:
                return Outcome.success(Path(tw_conf.tmp_file).read_text())
            except OSError as exc:
                log.error("Failed to read tailwind result: %s", exc)
                return Outcome.failed()
        log.warning("Tailwind failed %s", line)
        print(f"{finished.stdout}\n{finished.stderr}")
        return Outcome.failed()

    log.warning("Tailwind failed")
    if finished.stdout:
        print(finished.stdout)
    print(finished.stderr)
    return Outcome.failed()