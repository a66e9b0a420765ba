"""Shared logging helpers for linkmany."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with the library's default format.

    Applications embedding linkmany usually configure logging themselves; this
    helper exists for scripts and tests. Pass ``force=True`` to replace an
    existing configuration.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
