"""Workspace and package information as reported by ``cargo metadata``."""

from __future__ import annotations

import json
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from leptos_builder.project_config import ConfigError


def _require(data: Any, key: str, where: str) -> Any:
    if not isinstance(data, Mapping) or key not in data:
        raise ConfigError(f"cargo metadata: missing `{key}` in {where}")
    return data[key]


@dataclass(frozen=True)
class Target:
    """A build target of a package."""

    name: str
    kind: tuple[str, ...] = ()
    crate_types: tuple[str, ...] = ()

    @classmethod
    def _from_json(cls, data: Any) -> Target:
        return cls(
            name=_require(data, "name", "target"),
            kind=tuple(data.get("kind") or ()),
            crate_types=tuple(data.get("crate_types") or ()),
        )

    def is_bin(self) -> bool:
        return "bin" in self.kind

    def is_cdylib(self) -> bool:
        return "cdylib" in self.kind or "cdylib" in self.crate_types


@dataclass
class Package:
    """A package of the dependency graph."""

    name: str
    id: str
    manifest_path: Path
    targets: list[Target] = field(default_factory=list)
    metadata: Any = None
    path_dependencies: list[Path] = field(default_factory=list)

    @classmethod
    def _from_json(cls, data: Any) -> Package:
        name = _require(data, "name", "package")
        deps = data.get("dependencies") or []
        return cls(
            name=name,
            id=_require(data, "id", f"package {name}"),
            manifest_path=Path(_require(data, "manifest_path", f"package {name}")),
            targets=[Target._from_json(t) for t in data.get("targets") or []],
            metadata=data.get("metadata"),
            path_dependencies=[Path(d["path"]) for d in deps if d.get("path")],
        )

    def has_bin_target(self) -> bool:
        return any(target.is_bin() for target in self.targets)

    def cdylib_target(self) -> Target | None:
        """The first target producing a cdylib, if any."""
        return next((t for t in self.targets if t.is_cdylib()), None)


@dataclass
class CargoMetadata:
    """The workspace layout: its root, target directory, packages and members."""

    workspace_root: Path
    target_directory: Path
    packages: list[Package] = field(default_factory=list)
    workspace_members: list[str] = field(default_factory=list)
    workspace_metadata: Any = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> CargoMetadata:
        """Build from the decoded JSON output of ``cargo metadata``."""
        return cls(
            workspace_root=Path(_require(data, "workspace_root", "metadata")),
            target_directory=Path(_require(data, "target_directory", "metadata")),
            packages=[Package._from_json(p) for p in data.get("packages") or []],
            workspace_members=list(data.get("workspace_members") or []),
            workspace_metadata=data.get("metadata"),
        )

    @classmethod
    def load(cls, manifest_path: Path | str) -> CargoMetadata:
        """Run ``cargo metadata`` for the manifest and read its output."""
        command = [
            "cargo",
            "metadata",
            "--format-version",
            "1",
            "--manifest-path",
            str(manifest_path),
        ]
        try:
            completed = subprocess.run(command, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise ConfigError("Could not run cargo metadata") from exc
        if completed.returncode != 0:
            raise ConfigError(f"cargo metadata failed: {completed.stderr.strip()}")
        try:
            data = json.loads(completed.stdout)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"cargo metadata returned invalid JSON: {exc}") from exc
        return cls.from_json(data)

    def workspace_packages(self) -> list[Package]:
        """The packages that are members of the workspace, in metadata order."""
        members = set(self.workspace_members)
        return [p for p in self.packages if p.id in members]

    def _relative(self, path: Path) -> Path:
        try:
            return path.relative_to(self.workspace_root)
        except ValueError:
            return path

    def rel_target_dir(self) -> Path:
        """The target directory relative to the workspace root, when inside it."""
        return self._relative(self.target_directory)

    def src_path_dependencies(self, package_id: str) -> list[Path]:
        """Source dirs of the local path dependencies of a package, transitively."""
        start = next((p for p in self.packages if p.id == package_id), None)
        if start is None:
            raise ConfigError(f"Unknown package id {package_id!r}")
        by_dir = {p.manifest_path.parent: p for p in self.packages}
        seen = {start.id}
        result: list[Path] = []

        def visit(package: Package) -> None:
            for dep_dir in package.path_dependencies:
                dep = by_dir.get(dep_dir)
                if dep is None or dep.id in seen:
                    continue
                seen.add(dep.id)
                result.append(self._relative(dep_dir) / "src")
                visit(dep)

        visit(start)
        return result