from __future__ import annotations

import logging
import os
import platform
import socket

_configured = False


def configure_logging(level: str = "INFO") -> None:
    global _configured
    if _configured:
        return
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
    )
    _configured = True


def log_system_info(logger: logging.Logger) -> None:
    logger.info("=== System Info ===")
    logger.info("Hostname: %s", socket.gethostname())
    logger.info("Platform: %s (python %s)", platform.platform(), platform.python_version())
    logger.info("CPUs: %s", os.cpu_count())
