from __future__ import annotations

import logging
import sys
from time import perf_counter
from typing import Any, Dict, Optional

import boto3
from rich.console import Console

from .aws.clients import fetcher_factory, make_session
from .aws.discovery import collect_instances
from .aws.regions import resolve_regions
from .config import RunConfig, dump_config, load_run_config
from .export.json import open_output, write_instance_results
from .logging import LogConfig, add_run_log_file, get_logger, setup_logging
from .util.errors import as_exit_code
from .util.rich_progress import RunProgress, render_run_summary_table

LOG = get_logger(__name__)


class _StepTimers:
    def __init__(self) -> None:
        self._starts: Dict[str, float] = {}

    def start(self, key: str) -> None:
        self._starts[key] = perf_counter()

    def finish(self, key: str) -> Optional[int]:
        started = self._starts.pop(key, None)
        if started is None:
            return None
        return int((perf_counter() - started) * 1000)


def _log_event(
    logger: Any,
    level: int,
    message: str,
    *,
    step: str,
    phase: str,
    timers: Optional[_StepTimers] = None,
    timer_key: Optional[str] = None,
    **extra: Any,
) -> None:
    key = timer_key or step
    duration_ms = None
    if timers is not None:
        if phase == "start":
            timers.start(key)
        elif phase in {"complete", "error"}:
            duration_ms = timers.finish(key)
    payload: Dict[str, Any] = {"step": step, "phase": phase, "event": f"{step}.{phase}"}
    if duration_ms is not None:
        payload["duration_ms"] = duration_ms
    payload.update(extra)
    logger.log(level, message, extra=payload)


def _resolve_session(cfg: RunConfig) -> boto3.Session:
    return make_session(cfg.profile)


def cmd_run(cfg: RunConfig, *, console: Optional[Console] = None) -> int:
    # Validate the selector and profile before touching the filesystem or the network.
    regions = resolve_regions(cfg.region)
    session = _resolve_session(cfg)
    output_path = cfg.output_path
    timers = _StepTimers()

    _log_event(
        LOG,
        logging.INFO,
        "Starting inventory run",
        step="run",
        phase="start",
        timers=timers,
        selector=cfg.region,
        output=str(output_path),
        config=dump_config(cfg),
    )

    with open_output(output_path) as fh:
        _log_event(
            LOG,
            logging.INFO,
            "Collection started",
            step="collect",
            phase="start",
            timers=timers,
            region_count=len(regions),
        )
        with RunProgress(enabled=cfg.progress, console=console) as progress:
            progress.start_collection(regions)
            details = collect_instances(
                cfg.region,
                fetcher_factory(session),
                page_size=cfg.page_size,
                max_workers=cfg.workers_region,
                on_region_done=progress.region_done,
            )
        _log_event(
            LOG,
            logging.INFO,
            "Collection complete",
            step="collect",
            phase="complete",
            timers=timers,
            count=len(details),
        )

        write_instance_results(details, fh, output_path)

    _log_event(
        LOG,
        logging.INFO,
        "Inventory run complete",
        step="run",
        phase="complete",
        timers=timers,
        count=len(details),
    )
    print(f"successfully wrote to {output_path}")
    render_run_summary_table(
        enabled=cfg.progress,
        status="OK",
        regions=regions,
        total_instances=len(details),
        output_path=str(output_path),
        console=console,
    )
    return 0


def main() -> None:
    try:
        cfg = load_run_config()
        setup_logging(LogConfig(level=cfg.log_level, json_logs=cfg.json_logs))
        if cfg.log_file:
            add_run_log_file(cfg.log_file)
        sys.exit(cmd_run(cfg))
    except SystemExit:
        raise
    except BrokenPipeError:
        # Common when users pipe stdout to `head` or similar tools.
        sys.exit(0)
    except Exception as e:
        setup_logging(LogConfig())  # no-op when already configured
        LOG.error("Execution failed: %s", e, extra={"error": str(e)})
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
