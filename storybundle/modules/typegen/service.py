from __future__ import annotations

import contextlib
import json
import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from storybundle.modules.typegen.emitter import DEFAULT_DECLARATION_EXTENSION, generate_bundle_types
from storybundle.modules.typegen.errors import (
    BundleParseError,
    BundleShapeError,
    BundleTypesError,
    BundleWriteError,
)
from storybundle.modules.typegen.schemas import CompiledStoryBundle, GenerationOptions, TypeGenerationStats

logger = logging.getLogger(__name__)

DEFAULT_BUNDLE_SUFFIX = ".json"
REQUIRED_BUNDLE_KEYS = ("version", "metadata", "data")


@dataclass(slots=True)
class BundleRunResult:
    source_path: Path
    output_path: Path | None = None
    stats: TypeGenerationStats | None = None
    error: BundleTypesError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _validation_locations(exc: ValidationError) -> list[str]:
    out: list[str] = []
    for item in exc.errors():
        loc = ".".join(str(part) for part in item.get("loc", ()))
        if loc and loc not in out:
            out.append(loc)
    return out


def parse_bundle_payload(payload: Any, *, path: Path | str) -> CompiledStoryBundle:
    if not isinstance(payload, dict):
        raise BundleShapeError(path=path, locations=["<root>"])
    missing = [key for key in REQUIRED_BUNDLE_KEYS if payload.get(key) in (None, "", False)]
    if missing:
        raise BundleShapeError(path=path, locations=missing)
    try:
        return CompiledStoryBundle.model_validate(payload)
    except ValidationError as exc:
        raise BundleShapeError(path=path, locations=_validation_locations(exc)) from exc


def load_bundle(path: Path) -> CompiledStoryBundle:
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise BundleParseError(path=path, detail=str(exc)) from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise BundleParseError(path=path, detail=str(exc)) from exc
    return parse_bundle_payload(payload, path=path)


def write_declarations(output_path: Path, content: str, *, source_path: Path) -> None:
    """Write `content` in one shot through a sibling temp file so a failed write leaves nothing behind."""
    tmp_path = output_path.with_name(f"{output_path.name}.tmp")
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(content, encoding="utf-8")
        os.replace(tmp_path, output_path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            tmp_path.unlink(missing_ok=True)
        raise BundleWriteError(path=source_path, output_path=output_path, detail=str(exc)) from exc


def process_bundle(
    bundle_path: Path,
    output_dir: Path,
    options: GenerationOptions,
    *,
    extension: str = DEFAULT_DECLARATION_EXTENSION,
) -> BundleRunResult:
    try:
        bundle = load_bundle(bundle_path)
    except BundleTypesError as exc:
        logger.error(exc.message)
        return BundleRunResult(source_path=bundle_path, error=exc)

    result = generate_bundle_types(bundle, options, extension=extension)
    output_path = output_dir / result.filename
    try:
        write_declarations(output_path, result.content, source_path=bundle_path)
    except BundleWriteError as exc:
        logger.error(exc.message)
        return BundleRunResult(source_path=bundle_path, error=exc)

    stats = result.stats
    logger.info(f"Generated: {output_path}")
    logger.debug(f"  Cards: {stats.card_id_count}")
    logger.debug(f"  Choices: {stats.choice_id_count}")
    logger.debug(f"  Characters: {stats.character_id_count}")
    logger.debug(f"  Variables: {stats.variable_count}")
    logger.debug(f"  Flags: {stats.flag_count}")
    return BundleRunResult(source_path=bundle_path, output_path=output_path, stats=stats)


def list_bundle_files(input_dir: Path, *, suffix: str = DEFAULT_BUNDLE_SUFFIX) -> list[Path]:
    return sorted(path for path in input_dir.iterdir() if path.is_file() and path.name.endswith(suffix))


def process_directory(
    input_dir: Path,
    output_dir: Path,
    options: GenerationOptions,
    *,
    suffix: str = DEFAULT_BUNDLE_SUFFIX,
    extension: str = DEFAULT_DECLARATION_EXTENSION,
) -> list[BundleRunResult]:
    bundle_files = list_bundle_files(input_dir, suffix=suffix)
    if not bundle_files:
        logger.info(f"No bundle files found in: {input_dir}")
        return []

    logger.info(f"Processing {len(bundle_files)} bundle(s)...")
    results = [process_bundle(path, output_dir, options, extension=extension) for path in bundle_files]
    logger.info("Done!")
    return results


def run_generation(
    input_path: Path,
    output_dir: Path,
    options: GenerationOptions,
    *,
    suffix: str = DEFAULT_BUNDLE_SUFFIX,
    extension: str = DEFAULT_DECLARATION_EXTENSION,
) -> list[BundleRunResult]:
    if not input_path.exists():
        logger.info(f"Creating input directory: {input_path}")
        input_path.mkdir(parents=True, exist_ok=True)
        logger.info("No bundles to process yet.")
        return []
    if input_path.is_file():
        return [process_bundle(input_path, output_dir, options, extension=extension)]
    return process_directory(input_path, output_dir, options, suffix=suffix, extension=extension)


class BundleWatcher:
    """Poll bundle files for mtime changes and regenerate declarations for each changed file."""

    def __init__(
        self,
        input_path: Path,
        output_dir: Path,
        options: GenerationOptions,
        *,
        suffix: str = DEFAULT_BUNDLE_SUFFIX,
        extension: str = DEFAULT_DECLARATION_EXTENSION,
        poll_interval_s: float = 1.0,
    ) -> None:
        self.input_path = input_path
        self.output_dir = output_dir
        self.options = options
        self.suffix = suffix
        self.extension = extension
        self.poll_interval_s = float(poll_interval_s)
        self._mtimes = self._snapshot()

    def _matching_files(self) -> list[Path]:
        if self.input_path.is_file():
            return [self.input_path]
        if not self.input_path.is_dir():
            return []
        return sorted(path for path in self.input_path.rglob(f"*{self.suffix}") if path.is_file())

    def _snapshot(self) -> dict[Path, int]:
        out: dict[Path, int] = {}
        for path in self._matching_files():
            try:
                out[path] = path.stat().st_mtime_ns
            except OSError:
                # Removed between listing and stat.
                continue
        return out

    def poll_once(self) -> list[BundleRunResult]:
        current = self._snapshot()
        changed = [path for path, mtime in current.items() if self._mtimes.get(path) != mtime]
        self._mtimes = current
        results: list[BundleRunResult] = []
        for path in changed:
            logger.info(f"Change detected: {path}")
            results.append(process_bundle(path, self.output_dir, self.options, extension=self.extension))
        return results

    def run(self, *, sleep: Callable[[float], None] = time.sleep) -> None:
        logger.info("Watching for changes...")
        try:
            while True:
                sleep(self.poll_interval_s)
                self.poll_once()
        except KeyboardInterrupt:
            logger.info("Stopped watching.")
