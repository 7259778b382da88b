"""Discover C# sources, collect their declarations, render and write the output file."""
from __future__ import annotations

import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from cststypegen.config import GeneratorConfig
from cststypegen.declarations import DeclarationSet, SourceUnit
from cststypegen.emitter import render_typescript
from cststypegen.errors import SourceParseError
from cststypegen.parser import parse_source_file


LOG_PREFIX = "[cststypegen]"


@dataclass(frozen=True)
class CollectionResult:
    """Declarations from every parsed file plus the files that were skipped."""
    declaration_set: DeclarationSet
    parsed_files: tuple[Path, ...] = ()
    failures: tuple[tuple[Path, str], ...] = ()


@dataclass(frozen=True)
class GenerationResult:
    output_path: Path
    source_file_count: int
    failures: tuple[tuple[Path, str], ...] = field(default_factory=tuple)


# ============================================================
# Pipeline steps
# ============================================================

def discover_source_files(root: Path, *, config: GeneratorConfig | None = None) -> list[Path]:
    """Sorted recursive *.cs walk that skips build output directories."""
    if config is None:
        config = GeneratorConfig()

    source_files: list[Path] = []
    for candidate in sorted(root.rglob("*.cs")):
        relative_parts = candidate.relative_to(root).parts[:-1]
        if any(part in config.excluded_directory_names for part in relative_parts):
            continue
        if candidate.is_file():
            source_files.append(candidate)
    return source_files


def _parse_or_failure(source_file: Path, config: GeneratorConfig) -> SourceUnit | SourceParseError:
    try:
        return parse_source_file(source_file, config=config)
    except SourceParseError as parse_error:
        return parse_error


def collect_declarations(
    source_files: Sequence[Path],
    *,
    config: GeneratorConfig | None = None,
    jobs: int = 1,
) -> CollectionResult:
    """
    Parse every file and fold the successes into one DeclarationSet.

    With jobs > 1 the files are parsed on a thread pool; results are folded in
    the order of source_files either way, so the output does not depend on jobs.
    """
    if config is None:
        config = GeneratorConfig()

    if jobs > 1 and len(source_files) > 1:
        with ThreadPoolExecutor(max_workers=jobs) as executor:
            outcomes = list(executor.map(lambda source_file: _parse_or_failure(source_file, config), source_files))
    else:
        outcomes = [_parse_or_failure(source_file, config) for source_file in source_files]

    declaration_set = DeclarationSet.empty()
    parsed_files: list[Path] = []
    failures: list[tuple[Path, str]] = []
    for source_file, outcome in zip(source_files, outcomes):
        if isinstance(outcome, SourceParseError):
            print(f"{LOG_PREFIX} warning: skipped {outcome}", file=sys.stderr)
            failures.append((source_file, str(outcome)))
            continue
        declaration_set = declaration_set.merge(outcome)
        parsed_files.append(source_file)

    return CollectionResult(
        declaration_set=declaration_set,
        parsed_files=tuple(parsed_files),
        failures=tuple(failures),
    )


def generate(
    input_dir: Path,
    output_path: Path,
    *,
    config: GeneratorConfig | None = None,
    jobs: int = 1,
) -> GenerationResult:
    """Collect, render and write the declaration file once."""
    if config is None:
        config = GeneratorConfig()

    source_files = discover_source_files(input_dir, config=config)
    print(f"{LOG_PREFIX} Found {len(source_files)} C# file(s) under {input_dir}")

    collection = collect_declarations(source_files, config=config, jobs=jobs)
    typescript_text = render_typescript(collection.declaration_set, config=config)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(typescript_text, encoding="utf-8")
    print(f"{LOG_PREFIX} OK -> {output_path}")

    return GenerationResult(
        output_path=output_path,
        source_file_count=len(source_files),
        failures=collection.failures,
    )


def run(
    input_dir: Path,
    output_path: Path,
    *,
    config: GeneratorConfig | None = None,
    jobs: int = 1,
) -> int:
    """Generate once; skipped files are reported but do not fail the run."""
    result = generate(input_dir, output_path, config=config, jobs=jobs)
    if result.failures:
        print(f"{LOG_PREFIX} {len(result.failures)} file(s) skipped", file=sys.stderr)
    return 0
