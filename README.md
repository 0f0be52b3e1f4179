# leptos_builder

`leptos_builder` reads the Leptos project definitions of a Cargo workspace
and provides the pieces of a site build: the cargo command lines for the
server and the WASM front end, the stylesheet tools, the static assets and
content-hashed file names.

## Modules

- `leptos_builder.metadata`: `CargoMetadata`, `Package` and `Target`, read
  from the JSON output of `cargo metadata` (`CargoMetadata.load` runs it,
  `CargoMetadata.from_json` takes already decoded data).
- `leptos_builder.project_config`: `ProjectConfig` (one metadata section,
  with defaults, `.env` and environment overlays, and validation), plus
  `Site`, `StyleConfig`, `TailwindConfig`, `AssetsConfig`,
  `End2EndConfig`, `SiteFile`, `SourcedSiteFile` and `ConfigError`.
- `leptos_builder.dotenvs`: `load_dotenvs` finds the nearest `.env` file in
  a directory or its parents; `overlay` and `overlay_env` apply the
  recognised `LEPTOS_*` settings to a config.
- `leptos_builder.packages`: `LibPackage` and `BinPackage`.
- `leptos_builder.project`: `ProjectDefinition`, `Project` and `Config`.
- `leptos_builder.profile`: `Profile`, `select_profile` and `HashFile`.
- `leptos_builder.options`: `Opts`, `Cli`, `parse_cli`, `NewCommand` and
  `absolute_git_url`.
- `leptos_builder.cargo_cmd`: `CargoCommand`, `build_cargo_server_cmd`,
  `build_cargo_front_cmd`, `build_cargo_command_string`,
  `server_cargo_process`, `front_cargo_process`, `test_proj` and `test_all`.
- `leptos_builder.change`: `Watched`, `Change` and `ChangeSet`.
- `leptos_builder.assets`: `sync_assets`, `resync`, `update_asset`,
  `clean_dest`, `mirror` and `reserved`.
- `leptos_builder.stylesheets`: `compile_sass`, `compile_tailwind`,
  `tailwind_process`, `sass_args`, `create_default_tailwind_config` and
  `Outcome`.
- `leptos_builder.hashing`: `add_hashes_to_site`,
  `compute_front_file_hashes`, `rename_files` and `replace_in_file`.

## Loading a configuration

```python
from pathlib import Path

from leptos_builder.metadata import CargoMetadata
from leptos_builder.options import Opts
from leptos_builder.project import Config

metadata = CargoMetadata.load(Path("Cargo.toml"))
config = Config.load(Opts(), Path.cwd(), metadata, False)
project = config.current_project()

for name, value in project.to_envs():
    print(f"{name}={value}")
```

Projects come from `[[workspace.metadata.leptos]]` sections and from
`leptos` tables in member packages' metadata. When exactly one project lies
under the working directory, only that one is kept. `Config.load` and
`current_project` raise `ConfigError` when no project is defined, when the
project named in `Opts.project` is unknown, when several projects remain
and none was chosen, or when a setting is invalid (for example a
`site-root` of `/` or `.`, or a reload port equal to the site port).

A `site-root` starting with `CARGO_TARGET_DIR` or `CARGO_BUILD_TARGET_DIR`
is placed under the cargo target directory. Settings in a `.env` file are
applied first, then those of the process environment (or of the `environ`
mapping passed in), which win.

## Cargo commands

```python
from leptos_builder.cargo_cmd import (
    build_cargo_command_string,
    build_cargo_front_cmd,
    build_cargo_server_cmd,
    test_all,
)

server = build_cargo_server_cmd("build", project)
print(server.env_line)
print(server.line)
process = server.spawn()

front = build_cargo_front_cmd("build", True, project)

print(build_cargo_command_string(["build", "--features=ssr"]))
# cargo build --features=ssr

test_all(config)  # raises RuntimeError naming the first project whose tests failed
```

`spawn` starts the command with the project's `LEPTOS_*` variables added to
the current environment and returns the `subprocess.Popen`.

## Tracking changes

```python
from leptos_builder.change import Change, ChangeKind, ChangeSet

changes = ChangeSet()
changes.add(Change(ChangeKind.STYLE))
changes.need_style_build(True, False)   # True
changes.need_server_build()             # False
```

`ChangeSet.all_changes()` is the set for a full build.

## Assets, stylesheets and hashes

- `sync_assets(project, changes, first_sync)` copies the assets directory
  into the site root (a full resync on the first run, then the events in the
  change set) and returns whether anything changed.
- `compile_sass(style_file, optimise, executable)` and
  `compile_tailwind(tw_conf, executable)` run the given tool executable and
  return an `Outcome`; a successful one carries the css text.
  `compile_tailwind` writes a default tailwind configuration file when none
  exists.
- `add_hashes_to_site(project)` renames every file under the site's package
  directory to `stem.hash.ext` (an unpadded url-safe base64 MD5), updates the
  references in the js file and writes the js, wasm and css hashes to the
  project's hash file.

## Command-line options

`parse_cli` in `leptos_builder.options` parses the subcommands `build`,
`test`, `end-to-end`, `serve`, `watch` and `new` with options such as
`--release`, `--project`, `--features`, `--lib-features`,
`--bin-features`, `--lib-cargo-args`, `--bin-cargo-args`,
`--precompress`, `--hot-reload`, `--wasm-debug`, `-v`, and the global
`--manifest-path` and `--log`.

```python
from leptos_builder.options import parse_cli

cli = parse_cli(["build", "--release", "--project", "project1"])
opts = cli.opts()
```

`NewCommand.to_args()` gives the arguments for `cargo generate`, expanding
the shortcuts `leptos-rs/start` and `leptos-rs/start-axum` to full git
addresses; `NewCommand.run(executable)` runs it.

## What it does not do

The package installs no command. `parse_cli` only parses a command line;
nothing here runs the `build`, `serve`, `watch` or `end-to-end` workflows.
It does not run wasm-bindgen or wasm-opt, post-process or minify css,
precompress static files, serve the site, watch files or send reload
signals. The sass, tailwind and template-generator executables are not
located or downloaded: their paths are passed in.