"""Cargo build profiles and the hash file location that depends on them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ProfileKind(Enum):
    """The three shapes a cargo profile can take."""

    DEBUG = "debug"
    RELEASE = "release"
    NAMED = "named"


@dataclass(frozen=True)
class Profile:
    """A cargo profile: the built-in debug or release one, or a custom named one."""

    kind: ProfileKind
    name: str | None = None

    def __post_init__(self) -> None:
        if (self.kind is ProfileKind.NAMED) != (self.name is not None):
            raise ValueError("only a named profile carries a name")

    def __str__(self) -> str:
        if self.name is not None:
            return self.name
        return self.kind.value

    def cargo_args(self) -> list[str]:
        """Arguments that select this profile on a cargo command line."""
        if self.kind is ProfileKind.RELEASE:
            return ["--release"]
        if self.kind is ProfileKind.NAMED:
            return [f"--profile={self.name}"]
        return []


def select_profile(is_release: bool, release: str | None, debug: str | None) -> Profile:
    """Pick the profile for a build, preferring a configured custom name."""
    if is_release:
        if release is not None:
            return Profile(ProfileKind.NAMED, release)
        return Profile(ProfileKind.RELEASE)
    if debug is not None:
        return Profile(ProfileKind.NAMED, debug)
    return Profile(ProfileKind.DEBUG)


@dataclass(frozen=True)
class HashFile:
    """The text file listing the hashes of the front-end files."""

    abs: Path
    rel: Path

    @classmethod
    def for_target(
        cls,
        target_directory: Path | str,
        profile: Profile,
        rel: Path | str | None = None,
    ) -> HashFile:
        """Place the hash file under the target directory of the given profile."""
        rel_path = Path(rel) if rel is not None else Path("hash.txt")
        return cls(abs=Path(target_directory) / str(profile) / rel_path, rel=rel_path)