"""Shared logging helpers for doofpy."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: INFO by
    default and a terse format that keeps operator output readable next to the
    JSON the CLI prints. Pass ``force=True`` to reconfigure from tests.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    # httpx logs every request at INFO; batch runs would drown in it
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
