from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator

import psutil

from psptree import config as px_config


@dataclass
class OperationLog:
    """Mutable record for a single logged operation."""

    name: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def add_metadata(self, **values: Any) -> None:
        self.metadata.update(values)


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.3f}"
    return str(value)


@contextmanager
def log_operation(
    logger: logging.Logger,
    name: str,
    *,
    level: int = logging.INFO,
) -> Iterator[OperationLog]:
    """Time the wrapped block and emit one ``op=<name>`` line when it exits.

    With diagnostics enabled the line also carries user CPU time and the RSS
    delta of the current process; otherwise both fields read ``NA``.
    """

    runtime = px_config.runtime_config()
    op_log = OperationLog(name=name)
    process = psutil.Process() if runtime.enable_diagnostics else None
    cpu_before = process.cpu_times() if process is not None else None
    rss_before = process.memory_info().rss if process is not None else None
    start = time.perf_counter()
    try:
        yield op_log
    except BaseException:
        op_log.add_metadata(status="error")
        raise
    finally:
        wall_ms = (time.perf_counter() - start) * 1e3
        fields = [f"op={name}", f"wall_ms={wall_ms:.3f}"]
        if process is not None:
            cpu_after = process.cpu_times()
            rss_after = process.memory_info().rss
            cpu_user_ms = (cpu_after.user - cpu_before.user) * 1e3
            fields.append(f"cpu_user_ms={cpu_user_ms:.3f}")
            fields.append(f"rss_delta={rss_after - rss_before}")
        else:
            fields.append("cpu_user_ms=NA")
            fields.append("rss_delta=NA")
        fields.extend(
            f"{key}={_format_value(value)}" for key, value in op_log.metadata.items()
        )
        logger.log(level, " ".join(fields))


__all__ = ["OperationLog", "log_operation"]
