"""Entry point for the workflows-batch command.

Runs every workflow of a directory against an HTTP execution engine, compares
the outputs with stored snapshots and reports the result. Configuration comes
from WORKFLOWS_BATCH_* environment variables (see workflows_batch.config).

Exit codes:
    0   all workflows succeeded or only warned
    1   at least one workflow failed
    2   invalid configuration
    3   batch aborted on an internal consistency error
    130 forced stop (second interrupt)
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import signal
import sys
from collections.abc import Callable

from .batch import run_batch
from .config import BatchConfig
from .context import RunContext
from .engine.exceptions import ConfigurationError, InternalConsistencyError
from .engine.execution_engine import HttpExecutionEngine
from .engine.results import BatchResult
from .engine.store import DirectoryWorkflowStore
from .reporting import format_report_json, format_summary, write_ci_output

logger = logging.getLogger(__name__)

EXIT_FAILURES = 1
EXIT_CONFIGURATION = 2
EXIT_INTERNAL = 3
EXIT_FORCED = 130


def _configure_logging() -> None:
    valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    log_level_str = os.getenv("WORKFLOWS_BATCH_LOG_LEVEL", "INFO").upper()

    if log_level_str not in valid_log_levels:
        print(
            f"Warning: Invalid WORKFLOWS_BATCH_LOG_LEVEL '{log_level_str}'. "
            f"Valid levels: {', '.join(sorted(valid_log_levels))}. "
            "Using INFO.",
            file=sys.stderr,
        )
        log_level_str = "INFO"

    # stdout is reserved for the JSON report and the progress board
    logging.basicConfig(
        level=getattr(logging, log_level_str),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _make_signal_handler(context: RunContext) -> Callable[[], None]:
    """First interrupt cancels gracefully, the second exits immediately."""

    def _on_signal() -> None:
        if context.request_cancel():
            logger.warning("Second interrupt received - stopping immediately")
            os._exit(EXIT_FORCED)

    return _on_signal


def _install_signal_handlers(context: RunContext) -> None:
    loop = asyncio.get_running_loop()
    on_signal = _make_signal_handler(context)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, on_signal)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {sig.name} not supported on this platform")


async def _run(config: BatchConfig) -> BatchResult:
    if config.workflows_dir is None:
        raise ConfigurationError("WORKFLOWS_BATCH_WORKFLOWS_DIR is required")
    if config.engine_url is None:
        raise ConfigurationError("WORKFLOWS_BATCH_ENGINE_URL is required")

    store = DirectoryWorkflowStore(config.workflows_dir)
    engine = HttpExecutionEngine(config.engine_url)
    context = RunContext(config=config)
    _install_signal_handlers(context)

    try:
        return await run_batch(config, engine, store, context)
    finally:
        await engine.close()


def _emit_report(config: BatchConfig, result: BatchResult) -> None:
    report = format_report_json(result, short=config.short_output)

    if config.output_file is not None:
        config.output_file.write_text(report + "\n", encoding="utf-8")
        logger.info(format_summary(result, config.output_file))
    else:
        print(report)

    if config.ci_summary and config.github_output is not None:
        write_ci_output("ciMessage", json.dumps(result.ci_message), config.github_output)


def main() -> None:
    """Run a batch from environment configuration and exit with its status."""
    _configure_logging()

    try:
        config = BatchConfig.from_env()
        result = asyncio.run(_run(config))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(EXIT_CONFIGURATION)
    except InternalConsistencyError as e:
        logger.error(f"Batch aborted: {e}")
        sys.exit(EXIT_INTERNAL)

    _emit_report(config, result)

    if result.summary.failed_executions > 0:
        sys.exit(EXIT_FAILURES)


if __name__ == "__main__":
    main()
