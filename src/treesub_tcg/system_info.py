from __future__ import annotations

import os
import platform
from datetime import datetime


def run_timestamp(now: datetime | None = None) -> str:
    moment = now if now is not None else datetime.now()
    return moment.strftime("%Y%m%d_%H%M%S")


def get_system_metadata() -> dict[str, object]:
    return {
        "platform": platform.platform(),
        "machine": platform.machine(),
        "python_version": platform.python_version(),
        "cpu_count": os.cpu_count(),
    }
