from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from watchfiles import DefaultFilter, watch

from cststypegen.config import GeneratorConfig, Settings, build_config
from cststypegen.pipeline import LOG_PREFIX, run


DEFAULT_INPUT_DIR = ".."
DEFAULT_OUTPUT_PATH = "./typedefs.d.ts"

USAGE_GUIDANCE = (
    "usage: cststypegen [input_dir] [output_file]\n"
    f"  input_dir    C# source directory (env CsTsTypeGen_SourceDirectory, default {DEFAULT_INPUT_DIR})\n"
    f"  output_file  declaration file to write (env CsTsTypeGen_DefinitionsPath, default {DEFAULT_OUTPUT_PATH})"
)


class CSharpSourceFilter(DefaultFilter):
    """Only .cs files, never anything under build output directories below the watched root."""

    def __init__(self, watched_root: Path, excluded_directory_names: frozenset[str]) -> None:
        super().__init__()
        self.watched_root = watched_root.resolve()
        self.excluded_directory_names = excluded_directory_names

    def directories_below_root(self, path: str) -> tuple[str, ...]:
        changed_path = Path(path)
        try:
            return changed_path.relative_to(self.watched_root).parts[:-1]
        except ValueError:
            pass
        try:
            return changed_path.resolve().relative_to(self.watched_root).parts[:-1]
        except ValueError:
            return changed_path.parts[:-1]

    def __call__(self, change, path: str) -> bool:
        if not path.endswith(".cs"):
            return False
        if any(part in self.excluded_directory_names for part in self.directories_below_root(path)):
            return False
        return super().__call__(change, path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cststypegen",
        description="Generate a TypeScript declaration file from C# sources.",
    )
    parser.add_argument("input_dir", nargs="?", default=None, help="Directory scanned recursively for *.cs files.")
    parser.add_argument("output_file", nargs="?", default=None, help="Path of the .d.ts file to write.")
    parser.add_argument(
        "--type-map",
        dest="type_map",
        default=None,
        help="YAML-like file of 'CSharpName: tsType' overrides and 'Name<T>: template' generics.",
    )
    parser.add_argument(
        "--jobs",
        dest="jobs",
        type=int,
        default=1,
        help="Parse files on this many threads (default: 1).",
    )
    parser.add_argument(
        "--watch",
        dest="watch",
        action="store_true",
        help="Regenerate whenever a .cs file under input_dir changes.",
    )
    return parser


def watch_and_regenerate(input_dir: Path, output_path: Path, config: GeneratorConfig, jobs: int) -> int:
    """Generate once, then again after every batch of .cs changes."""
    run(input_dir, output_path, config=config, jobs=jobs)
    print(f"{LOG_PREFIX} Watching: {input_dir}")

    watch_filter = CSharpSourceFilter(input_dir, config.excluded_directory_names)
    for changes in watch(str(input_dir), watch_filter=watch_filter, debounce=300):
        changed_paths = sorted({changed_path.replace("\\", "/") for (_change, changed_path) in changes})
        print(f"\n{LOG_PREFIX} Change detected:")
        for changed_path in changed_paths:
            print("  -", changed_path)

        try:
            run(input_dir, output_path, config=config, jobs=jobs)
        except OSError as exc:
            print(f"cststypegen: {exc}", file=sys.stderr)
        time.sleep(0.05)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = Settings()

    if not settings.generation_enabled:
        print(f"{LOG_PREFIX} Definition generation disabled by CsTsTypeGen_GenerateDefinitions; skipping.")
        return 0

    input_dir = Path(args.input_dir or settings.source_directory or DEFAULT_INPUT_DIR)
    output_path = Path(args.output_file or settings.definitions_path or DEFAULT_OUTPUT_PATH)

    if not input_dir.is_dir():
        print(f"cststypegen: input directory not found: {input_dir}", file=sys.stderr)
        print(USAGE_GUIDANCE, file=sys.stderr)
        return 1

    if args.jobs < 1:
        print("cststypegen: --jobs must be at least 1", file=sys.stderr)
        return 1

    type_map = args.type_map or settings.type_map_path
    try:
        config = build_config(Path(type_map) if type_map else None)
        if args.watch:
            return watch_and_regenerate(input_dir, output_path, config, args.jobs)
        return run(input_dir, output_path, config=config, jobs=args.jobs)
    except KeyboardInterrupt:
        return 0
    except Exception as exc:
        print(f"cststypegen: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
