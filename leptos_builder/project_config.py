"""Per-project settings read from the leptos metadata, and what derives from them."""

from __future__ import annotations

import ipaddress
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from leptos_builder.dotenvs import SocketAddr, load_dotenvs, overlay_env, parse_socket_addr

log = logging.getLogger(__name__)

# A site root starting with one of these is placed under the cargo target directory.
CARGO_TARGET_DIR_MARKER = "CARGO_TARGET_DIR"
CARGO_BUILD_TARGET_DIR_MARKER = "CARGO_BUILD_TARGET_DIR"
_MARKERS = (CARGO_TARGET_DIR_MARKER, CARGO_BUILD_TARGET_DIR_MARKER)


class ConfigError(ValueError):
    """The project configuration is invalid."""


@dataclass(frozen=True)
class SiteFile:
    """A file in the site: where it is written and its path within the site."""

    dest: Path
    site: Path


@dataclass(frozen=True)
class SourcedSiteFile:
    """A site file produced from a source file."""

    source: Path
    dest: Path
    site: Path


def _default_site_addr() -> SocketAddr:
    return ipaddress.IPv4Address("127.0.0.1"), 3000


def _with_extension(path: Path, ext: str) -> Path:
    return path.with_suffix(f".{ext}")


def _string(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {value!r}")
    return value


def _path(value: Any) -> Path:
    return Path(_string(value))


def _bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected a boolean, got {value!r}")
    return value


def _u16(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an integer, got {value!r}")
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"integer out of range for a port: {value}")
    return value


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        raise TypeError(f"expected a list, got {value!r}")
    return [_string(item) for item in value]


def _path_list(value: Any) -> list[Path]:
    return [Path(item) for item in _string_list(value)]


def _socket_addr(value: Any) -> SocketAddr:
    return parse_socket_addr(_string(value))


def _optional(convert: Callable[[Any], Any]) -> Callable[[Any], Any]:
    def wrapped(value: Any) -> Any:
        return None if value is None else convert(value)

    return wrapped


_FIELDS: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "output-name": ("output_name", _string),
    "site-addr": ("site_addr", _socket_addr),
    "site-root": ("site_root", _path),
    "site-pkg-dir": ("site_pkg_dir", _path),
    "style-file": ("style_file", _optional(_path)),
    "hash-file": ("hash_file", _optional(_path)),
    "hash-files": ("hash_files", _bool),
    "tailwind-input-file": ("tailwind_input_file", _optional(_path)),
    "tailwind-config-file": ("tailwind_config_file", _optional(_path)),
    "assets-dir": ("assets_dir", _optional(_path)),
    "js-dir": ("js_dir", _optional(_path)),
    "watch-additional-files": ("watch_additional_files", _optional(_path_list)),
    "reload-port": ("reload_port", _u16),
    "end2end-cmd": ("end2end_cmd", _optional(_string)),
    "end2end-dir": ("end2end_dir", _optional(_path)),
    "browserquery": ("browserquery", _string),
    "bin-target": ("bin_target", _string),
    "bin-target-triple": ("bin_target_triple", _optional(_string)),
    "bin-target-dir": ("bin_target_dir", _optional(_string)),
    "bin-cargo-command": ("bin_cargo_command", _optional(_string)),
    "bin-cargo-args": ("bin_cargo_args", _optional(_string)),
    "bin-exe-name": ("bin_exe_name", _optional(_string)),
    "features": ("features", _string_list),
    "lib-features": ("lib_features", _string_list),
    "lib-default-features": ("lib_default_features", _bool),
    "lib-cargo-args": ("lib_cargo_args", _optional(_string)),
    "bin-features": ("bin_features", _string_list),
    "bin-default-features": ("bin_default_features", _bool),
    "separate-front-target-dir": ("separate_front_target_dir", _optional(_bool)),
    "lib-profile-dev": ("lib_profile_dev", _optional(_string)),
    "lib-profile-release": ("lib_profile_release", _optional(_string)),
    "bin-profile-dev": ("bin_profile_dev", _optional(_string)),
    "bin-profile-release": ("bin_profile_release", _optional(_string)),
}


@dataclass
class ProjectConfig:
    """The settings of one project, as written in its metadata section."""

    output_name: str = ""
    site_addr: SocketAddr = field(default_factory=_default_site_addr)
    site_root: Path = field(default_factory=lambda: Path(CARGO_TARGET_DIR_MARKER) / "site")
    site_pkg_dir: Path = field(default_factory=lambda: Path("pkg"))
    style_file: Path | None = None
    hash_file: Path | None = None
    hash_files: bool = False
    tailwind_input_file: Path | None = None
    tailwind_config_file: Path | None = None
    assets_dir: Path | None = None
    js_dir: Path | None = None
    watch_additional_files: list[Path] | None = None
    reload_port: int = 3001
    end2end_cmd: str | None = None
    end2end_dir: Path | None = None
    browserquery: str = "defaults"
    bin_target: str = ""
    bin_target_triple: str | None = None
    bin_target_dir: str | None = None
    bin_cargo_command: str | None = None
    bin_cargo_args: str | None = None
    bin_exe_name: str | None = None
    features: list[str] = field(default_factory=list)
    lib_features: list[str] = field(default_factory=list)
    lib_default_features: bool = False
    lib_cargo_args: str | None = None
    bin_features: list[str] = field(default_factory=list)
    bin_default_features: bool = False
    config_dir: Path = field(default_factory=Path)
    tmp_dir: Path = field(default_factory=Path)
    separate_front_target_dir: bool | None = None
    lib_profile_dev: str | None = None
    lib_profile_release: str | None = None
    bin_profile_dev: str | None = None
    bin_profile_release: str | None = None

    @classmethod
    def from_metadata(
        cls,
        directory: Path | str,
        metadata: Mapping[str, Any],
        target_directory: Path | str,
        environ: Mapping[str, str] | None = None,
    ) -> ProjectConfig:
        """Read a metadata section, overlay .env and environment settings, and validate."""
        if not isinstance(metadata, Mapping):
            raise ConfigError(f"project metadata must be a table, got {metadata!r}")
        conf = cls(config_dir=Path(directory), tmp_dir=Path(target_directory) / "tmp")
        for key, value in metadata.items():
            spec = _FIELDS.get(key)
            if spec is None:
                continue
            attr, convert = spec
            try:
                setattr(conf, attr, convert(value))
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"invalid value for `{key}`: {exc}") from exc

        try:
            overlay_env(conf, load_dotenvs(directory), environ)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

        forbidden = {Path("/"), Path("."), *(Path(marker) for marker in _MARKERS)}
        if conf.site_root in forbidden:
            raise ConfigError(
                f"site-root cannot be '{conf.site_root}'. "
                "All the content is erased when building the site."
            )
        parts = conf.site_root.parts
        if parts and parts[0] in _MARKERS:
            conf.site_root = Path(target_directory).joinpath(*parts[1:])

        if conf.site_addr[1] == conf.reload_port:
            raise ConfigError(
                f"The site-addr port and reload-port cannot be the same: {conf.reload_port}"
            )

        if conf.separate_front_target_dir is not None:
            log.warning(
                "Deprecated: the `separate-front-target-dir` option is deprecated "
                "since cargo-leptos 0.2.3"
            )
            log.warning(
                "It is now unconditionally enabled; you can remove it from your Cargo.toml"
            )
        return conf


@dataclass(frozen=True)
class Site:
    """Where the site is written and the addresses it is served on."""

    root_dir: Path
    pkg_dir: Path
    addr: SocketAddr
    reload: SocketAddr

    @classmethod
    def from_config(cls, config: ProjectConfig) -> Site:
        ip, _ = config.site_addr
        return cls(
            root_dir=config.site_root,
            pkg_dir=config.site_pkg_dir,
            addr=config.site_addr,
            reload=(ip, config.reload_port),
        )

    def root_relative_pkg_dir(self) -> Path:
        """The package directory inside the site root."""
        return self.root_dir / self.pkg_dir


@dataclass(frozen=True)
class TailwindConfig:
    """Input, configuration and output files of a tailwind run."""

    input_file: Path
    config_file: Path
    tmp_file: Path

    @classmethod
    def from_config(cls, config: ProjectConfig) -> TailwindConfig | None:
        """None when no tailwind input file is configured."""
        if config.tailwind_input_file is None:
            if config.tailwind_config_file is not None:
                raise ConfigError(
                    "The Cargo.toml `tailwind-input-file` is required when using "
                    "`tailwind-config-file`]"
                )
            return None
        config_file = config.tailwind_config_file or Path("tailwind.config.js")
        return cls(
            input_file=config.config_dir / config.tailwind_input_file,
            config_file=config.config_dir / config_file,
            tmp_file=config.tmp_dir / "tailwind.css",
        )


@dataclass(frozen=True)
class StyleConfig:
    """The style sheet sources and the css file written to the site."""

    file: SourcedSiteFile | None
    browserquery: str
    tailwind: TailwindConfig | None
    site_file: SiteFile

    @classmethod
    def from_config(cls, config: ProjectConfig) -> StyleConfig:
        site_rel = _with_extension(config.site_pkg_dir / config.output_name, "css")
        site_file = SiteFile(dest=config.site_root / site_rel, site=site_rel)
        style_file = None
        if config.style_file is not None:
            # relative to the configuration file
            style_file = SourcedSiteFile(
                source=config.config_dir / config.style_file,
                dest=config.site_root / site_rel,
                site=site_rel,
            )
        return cls(
            file=style_file,
            browserquery=config.browserquery,
            tailwind=TailwindConfig.from_config(config),
            site_file=site_file,
        )


@dataclass(frozen=True)
class AssetsConfig:
    """The directory whose content is copied into the site."""

    dir: Path

    @classmethod
    def from_config(cls, config: ProjectConfig) -> AssetsConfig | None:
        if config.assets_dir is None:
            return None
        # relative to the configuration file
        return cls(dir=config.config_dir / config.assets_dir)


@dataclass(frozen=True)
class End2EndConfig:
    """The command running the end-to-end tests and the directory it runs in."""

    cmd: str
    dir: Path

    @classmethod
    def from_config(cls, config: ProjectConfig) -> End2EndConfig | None:
        if config.end2end_cmd is None:
            return None
        return cls(cmd=config.end2end_cmd, dir=config.end2end_dir or Path())