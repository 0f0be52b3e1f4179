"""Projects defined in the workspace and the resolved build configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from leptos_builder.metadata import CargoMetadata, Package
from leptos_builder.options import Opts
from leptos_builder.packages import BinPackage, LibPackage
from leptos_builder.profile import HashFile
from leptos_builder.project_config import (
    AssetsConfig,
    ConfigError,
    End2EndConfig,
    ProjectConfig,
    Site,
    StyleConfig,
)


def _leptos_metadata(metadata: Any) -> Any:
    if isinstance(metadata, Mapping):
        return metadata.get("leptos")
    return None


@dataclass(frozen=True)
class ProjectDefinition:
    """Which packages make up a project."""

    name: str
    bin_package: str
    lib_package: str

    @classmethod
    def _from_section(cls, section: Any) -> ProjectDefinition:
        values = []
        for key in ("name", "bin-package", "lib-package"):
            value = section.get(key) if isinstance(section, Mapping) else None
            if not isinstance(value, str):
                raise ConfigError(f"missing field `{key}` in [[workspace.metadata.leptos]]")
            values.append(value)
        return cls(*values)

    @classmethod
    def _from_project(
        cls,
        package: Package,
        metadata: Any,
        directory: Path,
        cargo_metadata: CargoMetadata,
        environ: Mapping[str, str] | None,
    ) -> tuple[ProjectDefinition, ProjectConfig]:
        conf = ProjectConfig.from_metadata(
            directory, metadata, cargo_metadata.target_directory, environ
        )
        if package.cdylib_target() is None:
            raise ConfigError(
                "Cargo.toml has leptos metadata but is missing a cdylib library target. "
                f"{package.manifest_path}"
            )
        if not package.has_bin_target():
            raise ConfigError(
                f"Cargo.toml has leptos metadata but is missing a bin target. {package.manifest_path}"
            )
        return cls(package.name, package.name, package.name), conf

    @classmethod
    def parse(
        cls, metadata: CargoMetadata, environ: Mapping[str, str] | None = None
    ) -> list[tuple[ProjectDefinition, ProjectConfig]]:
        """Workspace-level projects first, then those defined in member packages."""
        found: list[tuple[ProjectDefinition, ProjectConfig]] = []
        workspace_md = _leptos_metadata(metadata.workspace_metadata)
        if isinstance(workspace_md, list):
            for section in workspace_md:
                conf = ProjectConfig.from_metadata(
                    Path(), section, metadata.target_directory, environ
                )
                found.append((cls._from_section(section), conf))

        for package in metadata.workspace_packages():
            try:
                rel_manifest = package.manifest_path.relative_to(metadata.workspace_root)
            except ValueError as exc:
                raise ConfigError(
                    f"{package.manifest_path} is outside {metadata.workspace_root}"
                ) from exc
            package_md = _leptos_metadata(package.metadata)
            if package_md is not None:
                found.append(
                    cls._from_project(package, package_md, rel_manifest.parent, metadata, environ)
                )
        return found


def _format_addr(addr: tuple[Any, int]) -> str:
    ip, port = addr
    return f"[{ip}]:{port}" if ip.version == 6 else f"{ip}:{port}"


@dataclass
class Project:
    """A fully resolved project ready to be built."""

    working_dir: Path
    name: str
    lib: LibPackage
    bin: BinPackage
    style: StyleConfig
    watch: bool
    release: bool
    precompress: bool
    hot_reload: bool
    wasm_debug: bool
    site: Site
    end2end: End2EndConfig | None
    assets: AssetsConfig | None
    js_dir: Path
    watch_additional_files: list[Path]
    hash_file: HashFile
    hash_files: bool

    @classmethod
    def resolve(
        cls,
        cli: Opts,
        cwd: Path | str,
        metadata: CargoMetadata,
        watch: bool,
        bin_args: list[str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> list[Project]:
        """Resolve every project; only the one in the working dir if exactly one is."""
        resolved: list[Project] = []
        for definition, config in ProjectDefinition.parse(metadata, environ):
            if not config.output_name:
                config.output_name = definition.name
            lib = LibPackage.resolve(cli, metadata, definition, config)
            bin_package = BinPackage.resolve(cli, metadata, definition, config, bin_args)
            resolved.append(
                cls(
                    working_dir=metadata.workspace_root,
                    name=definition.name,
                    lib=lib,
                    bin=bin_package,
                    style=StyleConfig.from_config(config),
                    watch=watch,
                    release=cli.release,
                    precompress=cli.precompress,
                    hot_reload=cli.hot_reload,
                    wasm_debug=cli.wasm_debug,
                    site=Site.from_config(config),
                    end2end=End2EndConfig.from_config(config),
                    assets=AssetsConfig.from_config(config),
                    js_dir=config.js_dir if config.js_dir is not None else Path("src"),
                    watch_additional_files=list(config.watch_additional_files or []),
                    hash_file=HashFile.for_target(
                        metadata.target_directory, bin_package.profile, config.hash_file
                    ),
                    hash_files=config.hash_files,
                )
            )

        cwd = Path(cwd)
        in_cwd = [
            p for p in resolved
            if p.bin.abs_dir.is_relative_to(cwd) or p.lib.abs_dir.is_relative_to(cwd)
        ]
        return in_cwd if len(in_cwd) == 1 else resolved

    def to_envs(self) -> list[tuple[str, str]]:
        """Environment variables for the external commands run for this project."""
        envs = [
            ("LEPTOS_OUTPUT_NAME", self.lib.output_name),
            ("LEPTOS_SITE_ROOT", str(self.site.root_dir)),
            ("LEPTOS_SITE_PKG_DIR", str(self.site.pkg_dir)),
            ("LEPTOS_SITE_ADDR", _format_addr(self.site.addr)),
            ("LEPTOS_RELOAD_PORT", str(self.site.reload[1])),
            ("LEPTOS_LIB_DIR", str(self.lib.rel_dir)),
            ("LEPTOS_BIN_DIR", str(self.bin.rel_dir)),
            ("LEPTOS_HASH_FILES", "true" if self.hash_files else "false"),
        ]
        if self.hash_files:
            envs.append(("LEPTOS_HASH_FILE_NAME", str(self.hash_file.rel)))
        if self.watch:
            envs.append(("LEPTOS_WATCH", "true"))
        return envs


def _names(projects: list[Project]) -> str:
    return ", ".join(p.name for p in projects)


@dataclass
class Config:
    """The projects selected for this run and the options they were built with."""

    working_dir: Path
    projects: list[Project]
    cli: Opts
    watch: bool

    @classmethod
    def load(
        cls,
        cli: Opts,
        cwd: Path | str,
        metadata: CargoMetadata,
        watch: bool,
        bin_args: list[str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> Config:
        projects = Project.resolve(cli, cwd, metadata, watch, bin_args, environ)
        if not projects:
            raise ConfigError(
                "Please define leptos projects in the workspace Cargo.toml sections "
                "[[workspace.metadata.leptos]]"
            )
        if cli.project is not None:
            chosen = next((p for p in projects if p.name == cli.project), None)
            if chosen is None:
                raise ConfigError(
                    f'The specified project "{cli.project}" not found. '
                    f"Available projects: {_names(projects)}"
                )
            projects = [chosen]
        return cls(working_dir=metadata.workspace_root, projects=projects, cli=cli, watch=watch)

    def current_project(self) -> Project:
        """The only project, or an error asking to pick one."""
        if len(self.projects) == 1:
            return self.projects[0]
        raise ConfigError(
            f"There are several projects available ({_names(self.projects)}). "
            "Please select one of them with the command line parameter --project"
        )