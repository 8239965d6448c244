# File: dalgen/output.py
"""
dalgen - Generated File Writer
==============================

Responsible for:
    1. Prefixing generated files with the "do not edit" disclaimer.
    2. Running every file through the sanitizer (import pruning + black).
    3. Writing the result atomically (write-to-temp then rename).
    4. Reporting per-file diagnostics without aborting the batch.

A file that fails to parse is never written; the other files of the batch
still are.  Previously written files are left as they were.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Set, Tuple, Union

from dalgen.errors import ProgrammingError, SanitizeError
from dalgen.models import OutputConfig
from dalgen.sanitizer import Diagnostic, SanitizeResult, SourceSanitizer
from dalgen.utils import Timer, build_import_block, count_lines, sha256_hex, write_bytes

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dalgen.output")

# ---------------------------------------------------------------------------
# Header rendering
# ---------------------------------------------------------------------------

DISCLAIMER: str = (
    "# Code generated by dalgen. DO NOT EDIT.\n"
    "# This file is meant to be re-generated in place and/or deleted at any time.\n"
)


def file_disclaimer() -> str:
    """Disclaimer followed by a blank line so the next statement stays detached."""
    return DISCLAIMER + "\n"


def render_header(
    imports: Optional[Mapping[str, Optional[str]]] = None,
    from_imports: Optional[Mapping[str, Set[str]]] = None,
    disclaimer: bool = True,
) -> str:
    """
    Render the top of a generated file: the disclaimer, then a sorted
    import block.  Templates may import more than they use; the sanitizer
    prunes the rest.
    """
    parts: List[str] = []
    if disclaimer:
        parts.append(file_disclaimer())
    block: str = build_import_block(imports or {}, from_imports)
    if block:
        parts.append(block + "\n\n")
    return "".join(parts)


# ---------------------------------------------------------------------------
# Data classes for write results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single written file."""

    relative_path: str
    absolute_path: str
    size_bytes: int
    line_count: int
    sha256: str
    pruned_imports: Tuple[str, ...] = ()


@dataclass(frozen=False, slots=True)
class OutputReport:
    """Outcome of ``OutputWriter.write_all``."""

    files: List[FileRecord] = field(default_factory=list)
    diagnostics: Dict[str, Diagnostic] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    elapsed_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.diagnostics and not self.errors

    @property
    def total_bytes(self) -> int:
        return sum(r.size_bytes for r in self.files)

    def summary(self) -> str:
        return (
            f"{len(self.files)} file(s) written, "
            f"{len(self.diagnostics)} failed to format, "
            f"{len(self.errors)} failed to write"
        )


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


class OutputWriter:
    """
    Finalizes and writes generated files under one output directory.

    Usage::

        writer = OutputWriter(Path("./models"))
        report = writer.write_all({"users.py": users_src, "posts.py": posts_src})
        for name, diagnostic in report.diagnostics.items():
            print(name, diagnostic)

    ``write_all`` may fan out over a thread pool; each destination path is
    written by exactly one worker.
    """

    def __init__(self, output_dir: Union[str, Path], config: Optional[OutputConfig] = None) -> None:
        self._output_dir: Path = Path(output_dir).resolve()
        self._config: OutputConfig = config or OutputConfig()
        self._sanitizer: SourceSanitizer = SourceSanitizer(self._config.sanitize)

        logger.debug(
            "OutputWriter initialised: output_dir=%s, atomic=%s.",
            self._output_dir,
            self._config.atomic_writes,
        )

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def finalize(self, raw: Union[str, bytes]) -> SanitizeResult:
        """Prefix the disclaimer (if configured) and sanitize, without writing."""
        if self._config.write_disclaimer:
            if isinstance(raw, bytes):
                raw = file_disclaimer().encode("utf-8") + raw
            else:
                raw = file_disclaimer() + raw
        return self._sanitizer.sanitize(raw)

    def write(self, file_name: str, raw: Union[str, bytes]) -> FileRecord:
        """
        Sanitize *raw* and write it to ``output_dir / file_name``.

        Raises:
            SanitizeError: the source did not parse or format; nothing is written.
            ProgrammingError: *file_name* points outside the output directory.
            UnicodeEncodeError: the output does not fit the configured encoding.
            OSError: the file could not be written.
        """
        target: Path = self._resolve(file_name)
        result: SanitizeResult = self.finalize(raw)
        data: bytes = result.unwrap(path=file_name)

        if self._config.encoding.lower().replace("-", "") != "utf8":
            data = data.decode("utf-8").encode(self._config.encoding)

        size: int = write_bytes(target, data, atomic=self._config.atomic_writes)
        logger.debug("Wrote %s (%d bytes, pruned %s).", file_name, size, list(result.pruned))

        return FileRecord(
            relative_path=file_name,
            absolute_path=str(target),
            size_bytes=size,
            line_count=count_lines(data.decode(self._config.encoding)),
            sha256=sha256_hex(data),
            pruned_imports=result.pruned,
        )

    def write_all(
        self,
        files: Mapping[str, Union[str, bytes]],
        max_workers: Optional[int] = None,
    ) -> OutputReport:
        """
        Write every ``file_name -> source`` entry, collecting diagnostics per
        file instead of stopping at the first failure.
        """
        report: OutputReport = OutputReport()

        with Timer("write_all") as timer:
            if max_workers is not None and max_workers > 1 and len(files) > 1:
                with ThreadPoolExecutor(max_workers=max_workers) as pool:
                    outcomes = list(pool.map(self._write_one, files.keys(), files.values()))
            else:
                outcomes = [self._write_one(name, raw) for name, raw in files.items()]

        for name, record, diagnostic, error in outcomes:
            if record is not None:
                report.files.append(record)
            if diagnostic is not None:
                report.diagnostics[name] = diagnostic
            if error is not None:
                report.errors[name] = error
        report.elapsed_seconds = timer.elapsed

        if report.success:
            logger.info("Output complete: %s in %.3fs.", report.summary(), timer.elapsed)
        else:
            logger.error("Output finished with failures: %s.", report.summary())
        return report

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _write_one(
        self,
        file_name: str,
        raw: Union[str, bytes],
    ) -> Tuple[str, Optional[FileRecord], Optional[Diagnostic], Optional[str]]:
        try:
            return file_name, self.write(file_name, raw), None, None
        except SanitizeError as exc:
            logger.warning("Skipped %s: generated source did not format.", file_name)
            return file_name, None, exc.diagnostic, None
        except (OSError, UnicodeError) as exc:
            error_msg: str = f"Failed to write {file_name}: {type(exc).__name__}: {exc}"
            logger.error(error_msg)
            return file_name, None, None, error_msg

    def _resolve(self, file_name: str) -> Path:
        target: Path = (self._output_dir / file_name).resolve()
        if target != self._output_dir and self._output_dir not in target.parents:
            raise ProgrammingError(f"output file {file_name!r} escapes {self._output_dir}")
        return target

    def __repr__(self) -> str:
        return f"<OutputWriter {self._output_dir}>"


__all__: List[str] = [
    "DISCLAIMER",
    "file_disclaimer",
    "render_header",
    "FileRecord",
    "OutputReport",
    "OutputWriter",
]
