"""Builder: renders the source document into the output root."""

import time
import uuid
from collections.abc import Callable
from pathlib import Path

import structlog

from specbuild.config import BuildConfig
from specbuild.constants import COMPONENT_BUILDER
from specbuild.errors import OutputWriteError, RenderError
from specbuild.observability.metrics import BuildMetrics
from specbuild.renderer.engine import DocumentRenderer, DocutilsRenderer
from specbuild.renderer.io import AtomicWriter
from specbuild.renderer.models import BuildResult, RenderOptions, RenderWarning
from specbuild.renderer.warnings import echo_warning, make_warning_handler
from specbuild.state_machine import BuildState, BuildStateMachine


logger = structlog.get_logger()


class Builder:
    """Renders the source document and writes ``<output_dir>/index.html``.

    Implements the build state machine:
        BUILD_PENDING -> RENDERING -> WRITING -> BUILD_DONE|BUILD_FAILED

    The output file is only replaced after a successful render, and is
    replaced atomically.
    """

    def __init__(
        self,
        config: BuildConfig,
        renderer: DocumentRenderer | None = None,
        emit_warning: Callable[[str], None] = echo_warning,
        metrics: BuildMetrics | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            config: Build configuration.
            renderer: Rendering engine. Defaults to docutils.
            emit_warning: Receives each formatted warning line.
            metrics: Optional metrics instance.
        """
        self._config = config
        self._renderer = renderer or DocutilsRenderer()
        self._emit_warning = emit_warning
        self._metrics = metrics or BuildMetrics.get_instance()
        self._log = logger.bind(component=COMPONENT_BUILDER)
        self._last_state: BuildState | None = None

    @property
    def last_state(self) -> BuildState | None:
        """Final state of the most recent build, if any."""
        return self._last_state

    def build(self) -> BuildResult:
        """Render the source document and write the output file.

        Returns:
            BuildResult indicating success or failure.
        """
        build_id = uuid.uuid4().hex[:12]
        state_machine = BuildStateMachine(build_id)
        log = self._log.bind(build_id=build_id)
        start_time = time.perf_counter()
        source_path = self._config.source_path
        warnings: list[RenderWarning] = []

        handle_warning = make_warning_handler(
            default_file=source_path,
            emit=self._emit_warning,
            metrics=self._metrics,
        )

        def on_warning(warning: RenderWarning) -> None:
            warnings.append(warning)
            handle_warning(warning)

        options = RenderOptions(
            verbose=self._config.verbose,
            warning_handler=on_warning,
            external_references=self._config.external_references,
            log=lambda message: log.info("render_progress", message=message),
        )

        log.info("build_started", source=str(source_path))

        try:
            state_machine.to_rendering()
            document = self._renderer.render(source_path, options)
            document = document.renamed(self._config.output_filename)

            state_machine.to_writing()
            output_dir = Path(self._config.output_dir)
            writer = AtomicWriter(output_dir, build_id)
            generated = writer.write(output_dir / document.name, document.content)

            state_machine.to_done()
        except (RenderError, OutputWriteError) as e:
            state_machine.to_failed()
            self._last_state = state_machine.state
            self._metrics.record_failure()

            error_summary = f"{type(e).__name__}: {e}"
            log.error("build_failed", error=error_summary)

            return BuildResult(
                build_id=build_id,
                success=False,
                warnings=warnings,
                error_summary=error_summary,
                duration_ms=(time.perf_counter() - start_time) * 1000,
            )

        self._last_state = state_machine.state
        duration_ms = (time.perf_counter() - start_time) * 1000
        self._metrics.record_build(duration_ms, generated.bytes_written)

        log.info(
            "build_complete",
            output=generated.path,
            bytes=generated.bytes_written,
            warnings=len(warnings),
            duration_ms=round(duration_ms, 2),
        )

        return BuildResult(
            build_id=build_id,
            success=True,
            output=generated,
            warnings=warnings,
            duration_ms=duration_ms,
        )
