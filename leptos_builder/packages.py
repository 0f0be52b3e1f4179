"""The lib (front-end) and bin (server) packages of a project."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from leptos_builder.metadata import CargoMetadata
from leptos_builder.options import Opts
from leptos_builder.profile import Profile, select_profile
from leptos_builder.project_config import ConfigError, ProjectConfig, SiteFile, SourcedSiteFile

if TYPE_CHECKING:
    from leptos_builder.project import ProjectDefinition

_WASM_TRIPLES = ("wasm32-wasi", "wasm32-unknown-unknown")


def _with_extension(path: Path, ext: str) -> Path:
    return path.with_suffix(f".{ext}" if ext else "")


def _unbase(path: Path, base: Path) -> Path:
    try:
        return path.relative_to(base)
    except ValueError as exc:
        raise ConfigError(f"Could not make {path} relative to {base}") from exc


def _src_paths(metadata: CargoMetadata, package_id: str, rel_dir: Path) -> list[Path]:
    paths = metadata.src_path_dependencies(package_id)
    paths.append(Path("src") if rel_dir == Path(".") else rel_dir / "src")
    return paths


def _features(selected: list[str], configured: list[str], config: ProjectConfig, cli: Opts) -> list[str]:
    features = list(selected or configured)
    features.extend(config.features)
    features.extend(cli.features)
    return features


@dataclass
class LibPackage:
    """The package compiled to WASM for the browser."""

    name: str
    abs_dir: Path
    rel_dir: Path
    wasm_file: SourcedSiteFile
    js_file: SiteFile
    features: list[str]
    default_features: bool
    output_name: str
    src_paths: list[Path]
    front_target_path: Path
    profile: Profile
    cargo_args: list[str] | None

    @classmethod
    def resolve(
        cls,
        cli: Opts,
        metadata: CargoMetadata,
        project: ProjectDefinition,
        config: ProjectConfig,
    ) -> LibPackage:
        name = project.lib_package
        output_name = config.output_name or name.replace("-", "_")
        package = next((p for p in metadata.workspace_packages() if p.name == name), None)
        if package is None:
            raise ConfigError(f'Could not find the project lib-package "{name}"')

        features = _features(cli.lib_features, config.lib_features, config, cli)
        abs_dir = package.manifest_path.parent
        rel_dir = _unbase(abs_dir, metadata.workspace_root)
        profile = select_profile(cli.release, config.lib_profile_release, config.lib_profile_dev)

        wasm_site = _with_extension(config.site_pkg_dir / output_name, "wasm")
        wasm_file = SourcedSiteFile(
            source=_with_extension(
                metadata.rel_target_dir()
                / "front"
                / "wasm32-unknown-unknown"
                / str(profile)
                / name.replace("-", "_"),
                "wasm",
            ),
            dest=config.site_root / wasm_site,
            site=wasm_site,
        )
        js_site = _with_extension(config.site_pkg_dir / output_name, "js")
        js_file = SiteFile(dest=config.site_root / js_site, site=js_site)

        return cls(
            name=name,
            abs_dir=abs_dir,
            rel_dir=rel_dir,
            wasm_file=wasm_file,
            js_file=js_file,
            features=features,
            default_features=config.lib_default_features,
            output_name=output_name,
            src_paths=_src_paths(metadata, package.id, rel_dir),
            front_target_path=metadata.target_directory / "front",
            profile=profile,
            cargo_args=None if cli.lib_cargo_args is None else list(cli.lib_cargo_args),
        )


@dataclass
class BinPackage:
    """The package built as the server executable."""

    name: str
    abs_dir: Path
    rel_dir: Path
    exe_file: Path
    target: str
    features: list[str]
    default_features: bool
    src_paths: list[Path]
    profile: Profile
    target_triple: str | None
    target_dir: str | None
    cargo_command: str | None
    cargo_args: list[str] | None
    bin_args: list[str] | None

    @classmethod
    def resolve(
        cls,
        cli: Opts,
        metadata: CargoMetadata,
        project: ProjectDefinition,
        config: ProjectConfig,
        bin_args: list[str] | None = None,
    ) -> BinPackage:
        features = _features(cli.bin_features, config.bin_features, config, cli)
        name = project.bin_package
        package = next(
            (p for p in metadata.workspace_packages() if p.name == name and p.has_bin_target()),
            None,
        )
        if package is None:
            raise ConfigError(f'Could not find the project bin-package "{name}"')

        targets = [t for t in package.targets if t.is_bin()]
        if config.bin_target:
            target = next((t for t in targets if t.name == config.bin_target), None)
            if target is None:
                raise ConfigError(
                    "Could not find the target specified: [[workspace.metadata.leptos]] "
                    f'bin-target = "{config.bin_target}"'
                )
        elif len(targets) == 1:
            target = targets[0]
        elif not targets:
            raise ConfigError(f"No bin targets found for member {name}")
        else:
            raise ConfigError(
                f'Several bin targets found for member "{name}", please specify which one '
                'to use with: [[workspace.metadata.leptos]] bin-target = "name"'
            )

        abs_dir = package.manifest_path.parent
        rel_dir = _unbase(abs_dir, metadata.workspace_root)
        profile = select_profile(cli.release, config.bin_profile_release, config.bin_profile_dev)

        if os.name == "nt":
            file_ext = "exe"
        elif config.bin_target_triple in _WASM_TRIPLES:
            file_ext = "wasm"
        else:
            file_ext = ""
        # Kept relative so the path does not depend on where the workspace lives.
        exe_dir = (
            Path(config.bin_target_dir)
            if config.bin_target_dir is not None
            else metadata.rel_target_dir()
        )
        if config.bin_target_triple is not None:
            exe_dir = exe_dir / config.bin_target_triple
        exe_name = config.bin_exe_name if config.bin_exe_name is not None else name
        exe_file = _with_extension(exe_dir / str(profile) / exe_name, file_ext)

        return cls(
            name=name,
            abs_dir=abs_dir,
            rel_dir=rel_dir,
            exe_file=exe_file,
            target=target.name,
            features=features,
            default_features=config.bin_default_features,
            src_paths=_src_paths(metadata, package.id, rel_dir),
            profile=profile,
            target_triple=config.bin_target_triple,
            target_dir=config.bin_target_dir,
            cargo_command=config.bin_cargo_command,
            cargo_args=None if cli.bin_cargo_args is None else list(cli.bin_cargo_args),
            bin_args=None if bin_args is None else list(bin_args),
        )