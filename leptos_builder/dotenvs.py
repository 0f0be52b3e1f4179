"""Loading .env files and overlaying environment settings onto a project config."""

from __future__ import annotations

import ipaddress
import logging
import os
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

log = logging.getLogger(__name__)

SocketAddr = tuple["ipaddress.IPv4Address | ipaddress.IPv6Address", int]


def _parse_port(text: str) -> int:
    digits = text[1:] if text.startswith("+") else text
    if not digits or not (digits.isascii() and digits.isdigit()):
        raise ValueError(f"invalid port number: {text!r}")
    port = int(digits)
    if port > 0xFFFF:
        raise ValueError(f"port number out of range: {text!r}")
    return port


def parse_socket_addr(text: str) -> SocketAddr:
    """Parse ``ip:port`` or ``[ipv6]:port`` into an (address, port) pair."""
    host, sep, port = text.rpartition(":")
    if not sep:
        raise ValueError(f"invalid socket address syntax: {text!r}")
    if host.startswith("[") and host.endswith("]"):
        address: ipaddress.IPv4Address | ipaddress.IPv6Address = ipaddress.IPv6Address(host[1:-1])
    else:
        address = ipaddress.IPv4Address(host)
    return address, _parse_port(port)


def parse_bool(text: str) -> bool:
    """Accept exactly ``true`` or ``false``."""
    if text == "true":
        return True
    if text == "false":
        return False
    raise ValueError(f"provided string was not `true` or `false`: {text!r}")


def load_dotenvs(directory: Path | str) -> list[tuple[str, str]] | None:
    """Read the nearest .env file in the directory or one of its parents."""
    current = Path(directory)
    while True:
        candidate = current / ".env"
        if candidate.is_file():
            entries = []
            for key, value in dotenv_values(candidate).items():
                if value is None:
                    raise ValueError(f"{candidate}: no value given for {key!r}")
                entries.append((key, value))
            return entries
        parent = current.parent
        if parent == current:
            return None
        current = parent


_Setter = tuple[str, Callable[[str], Any]]

_SETTINGS: dict[str, _Setter] = {
    "LEPTOS_OUTPUT_NAME": ("output_name", str),
    "LEPTOS_SITE_ROOT": ("site_root", Path),
    "LEPTOS_SITE_PKG_DIR": ("site_pkg_dir", Path),
    "LEPTOS_STYLE_FILE": ("style_file", Path),
    "LEPTOS_ASSETS_DIR": ("assets_dir", Path),
    "LEPTOS_SITE_ADDR": ("site_addr", parse_socket_addr),
    "LEPTOS_RELOAD_PORT": ("reload_port", _parse_port),
    "LEPTOS_END2END_CMD": ("end2end_cmd", str),
    "LEPTOS_END2END_DIR": ("end2end_dir", Path),
    "LEPTOS_HASH_FILES": ("hash_files", parse_bool),
    "LEPTOS_BROWSERQUERY": ("browserquery", str),
    "LEPTOS_BIN_TARGET_TRIPLE": ("bin_target_triple", str),
    "LEPTOS_BIN_TARGET_DIR": ("bin_target_dir", str),
    "LEPTOS_BIN_CARGO_COMMAND": ("bin_cargo_command", str),
}

# Read elsewhere, when locating external tools; accepted here without a warning.
_TOOL_VERSION_VARS = frozenset(
    {
        "LEPTOS_TAILWIND_VERSION",
        "LEPTOS_SASS_VERSION",
        "LEPTOS_CARGO_GENERATE_VERSION",
        "LEPTOS_WASM_OPT_VERSION",
    }
)


def overlay(conf: Any, envs: Iterable[tuple[str, str]]) -> None:
    """Apply recognised LEPTOS_* settings to the config; warn about unknown ones."""
    for key, value in envs:
        setting = _SETTINGS.get(key)
        if setting is not None:
            attr, convert = setting
            setattr(conf, attr, convert(value))
        elif key in _TOOL_VERSION_VARS:
            continue
        elif key.startswith("LEPTOS_"):
            log.warning("Env %s is not used by cargo-leptos", key)


def overlay_env(
    conf: Any,
    dotenvs: Iterable[tuple[str, str]] | None,
    environ: Mapping[str, str] | None = None,
) -> None:
    """Overlay .env settings, then the process environment, which wins."""
    if dotenvs is not None:
        overlay(conf, dotenvs)
    overlay(conf, (os.environ if environ is None else environ).items())