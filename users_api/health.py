"""Liveness and process status reporting."""

from __future__ import annotations

import os
import platform
import sys
import time
from datetime import datetime, timezone
from typing import Dict, Optional

import psutil

_BYTES_PER_MB = 1024 * 1024


def _process() -> psutil.Process:
    return psutil.Process(os.getpid())


def _format_mb(value: Optional[int]) -> Optional[str]:
    if value is None:
        return None
    return f"{round(value / _BYTES_PER_MB)} MB"


def uptime_seconds() -> float:
    """Seconds since the current process started."""

    return max(0.0, time.time() - _process().create_time())


def memory_usage() -> Dict[str, Optional[str]]:
    process = _process()
    try:
        info = process.memory_full_info()
    except (psutil.AccessDenied, psutil.ZombieProcess):
        info = process.memory_info()
    return {
        "rss": _format_mb(getattr(info, "rss", None)),
        "vms": _format_mb(getattr(info, "vms", None)),
        "uss": _format_mb(getattr(info, "uss", None)),
    }


def health_payload(environment: str) -> Dict[str, object]:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": uptime_seconds(),
        "environment": environment,
    }


def status_payload(environment: str) -> Dict[str, object]:
    payload = health_payload(environment)
    payload.update(
        {
            "version": platform.python_version(),
            "implementation": sys.implementation.name,
            "memory": memory_usage(),
            "platform": sys.platform,
            "arch": platform.machine(),
            "pid": os.getpid(),
        }
    )
    return payload


__all__ = ["health_payload", "memory_usage", "status_payload", "uptime_seconds"]
