"""ImageProcessor: one image in, one encoded file out.

Stages run sequentially on the calling thread:

    bind -> resolve output path -> resize -> metadata -> watermark -> encode/write

Each job works on a snapshot of the settings plus its own option bag, so a
settings update (or another job's watermark position) never leaks into a job
that is already running. A processor handles one job at a time; run separate
instances to convert images in parallel.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from image_converter.errors import CodecError, EncodeFailure, NoSourceBound
from image_converter.file_operations import FileIO, LocalFileIO
from image_converter.logger import get_logger
from image_converter.settings_manager import Metadata, Settings, SettingsStore, WatermarkConfig

from . import decoder
from .encoder import EncodeOptions, encode, normalize_format, optimize_preset, resolve_target_format
from .metadata import compose_exif, prepare_metadata
from .metrics import metrics
from .output_path import resolve_output_path
from .resize import apply_resize, plan_resize
from .source import BoundSource, bind_source
from .watermark import apply_watermark

_logger = get_logger("pipeline")

OPTIMIZE_SUFFIX = "optimized"


@dataclass(frozen=True)
class ImageJob:
    source: BoundSource
    output_path: str
    target_format: str
    options: EncodeOptions


@dataclass(frozen=True)
class CompletedJob:
    source_path: str
    output_path: str
    target_format: str
    width: int
    height: int
    size_bytes: int


class ImageProcessor:
    """Convert, resize, watermark and tag single images.

    Usage:
        processor = ImageProcessor()
        processor.update_metadata(author="Jane")
        job = processor.bind("/photos/a.jpg").convert("webp", {"resize": True, "max_width": 800})
    """

    def __init__(
        self,
        settings: Settings | SettingsStore | None = None,
        fileio: FileIO | None = None,
    ) -> None:
        if isinstance(settings, SettingsStore):
            self._store = settings
        else:
            self._store = SettingsStore(settings=settings)
        self._fileio = fileio or LocalFileIO()
        self._source: BoundSource | None = None
        self._lock = threading.RLock()

    # settings -----------------------------------------------------------

    @property
    def settings(self) -> Settings:
        return self._store.settings

    @property
    def metadata(self) -> Metadata:
        return self._store.settings.metadata

    @property
    def watermark(self) -> WatermarkConfig:
        return self._store.settings.watermark

    def update_settings(self, **partial: Any) -> Settings:
        return self._store.update(**partial)

    def update_metadata(self, **fields: Any) -> Metadata:
        return self._store.update(metadata=fields).metadata

    def update_watermark(self, **fields: Any) -> WatermarkConfig:
        return self._store.update(watermark=fields).watermark

    # job ----------------------------------------------------------------

    @property
    def source(self) -> BoundSource | None:
        return self._source

    def bind(self, path: str) -> ImageProcessor:
        """Set the source image; raises UnsupportedSourceFormat for unknown extensions."""
        with self._lock:
            self._source = bind_source(path)
            _logger.debug("bound source: %s", self._source.path)
        return self

    def convert(
        self,
        path_or_format: str | None,
        options: EncodeOptions | Mapping[str, Any] | None = None,
        *,
        settings: Settings | None = None,
    ) -> CompletedJob:
        """Run the bound source through the pipeline and write the result.

        `path_or_format` is either a destination file ("/out/a.png") or a bare
        format ("png"), in which case the file is written next to the source as
        ``<stem>_<suffix>.png``. `settings` overrides the stored settings for
        this job only.
        """
        return self._submit(path_or_format, options, settings, optimize=False)

    def optimize(
        self,
        path_or_format: str | None = None,
        options: EncodeOptions | Mapping[str, Any] | None = None,
        *,
        settings: Settings | None = None,
    ) -> CompletedJob:
        """Re-encode the bound source in its own format with size-oriented defaults."""
        return self._submit(path_or_format, options, settings, optimize=True)

    def process(
        self,
        source_path: str,
        path_or_format: str | None,
        options: EncodeOptions | Mapping[str, Any] | None = None,
    ) -> CompletedJob:
        """Bind and convert in one call, holding the processor for the whole job."""
        with self._lock:
            return self.bind(source_path).convert(path_or_format, options)

    def _submit(
        self,
        path_or_format: str | None,
        options: EncodeOptions | Mapping[str, Any] | None,
        settings: Settings | None,
        optimize: bool,
    ) -> CompletedJob:
        with self._lock:
            source = self._source
            if source is None:
                raise NoSourceBound()
            try:
                opts = _job_options(source, options, optimize)
                result = self._run(source, path_or_format, opts, settings or self._store.settings)
            except Exception:
                metrics.inc("pipeline.jobs_failed")
                raise
            finally:
                # the source is consumed by the attempt, whatever its outcome
                self._source = None
            metrics.inc("pipeline.jobs_completed")
            return result

    def _run(
        self, source: BoundSource, path_or_format: str | None, opts: EncodeOptions, settings: Settings
    ) -> CompletedJob:
        target_format = resolve_target_format(path_or_format, source.ext, opts.optimize)
        if not opts.optimize and target_format == normalize_format(source.ext):
            _logger.warning(
                "Output format matches the source format (.%s) and optimize is off; converting anyway.",
                source.ext,
            )

        output_path = resolve_output_path(
            path_or_format,
            source.path,
            opts.suffix,
            fileio=self._fileio,
            force_ext=source.ext if opts.optimize else None,
        )
        job = ImageJob(source=source, output_path=output_path, target_format=target_format, options=opts)
        _logger.info("converting %s -> %s (%s)", source.path, job.output_path, target_format)

        try:
            image = decoder.load_image(source.path)
        except CodecError as e:
            raise EncodeFailure(f"cannot decode source {source.path}: {e}") from e

        try:
            if opts.resize:
                with metrics.timed("pipeline.resize"):
                    max_width = opts.max_width or settings.max_width
                    plan = plan_resize(max_width, image.width, image.height, opts.squared)
                    image = apply_resize(image, plan)

            embedded = None
            if not settings.metadata.is_empty():
                with metrics.timed("pipeline.metadata"):
                    embedded = prepare_metadata(image, compose_exif(settings.metadata))

            if opts.watermark:
                with metrics.timed("pipeline.watermark"):
                    image = apply_watermark(image, settings.watermark, opts.watermark_position or "center")
        except CodecError as e:
            raise EncodeFailure(f"cannot process {source.path}: {e}") from e

        with metrics.timed("pipeline.encode"):
            size = encode(image, job.target_format, job.output_path, opts, fileio=self._fileio, metadata=embedded)

        return CompletedJob(
            source_path=source.path,
            output_path=job.output_path,
            target_format=job.target_format,
            width=image.width,
            height=image.height,
            size_bytes=size,
        )


def _job_options(
    source: BoundSource, options: EncodeOptions | Mapping[str, Any] | None, optimize: bool
) -> EncodeOptions:
    opts = options if isinstance(options, EncodeOptions) else EncodeOptions.from_dict(options)
    if not optimize:
        return opts
    preset = optimize_preset(source.ext)
    # explicit options win over the preset
    explicit = {k: v for k, v in opts.to_dict().items() if k in preset}
    return opts.merged(**{**preset, **explicit}, optimize=True, suffix=opts.suffix or OPTIMIZE_SUFFIX)
