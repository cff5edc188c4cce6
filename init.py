"""Application startup orchestration helpers."""

from __future__ import annotations

import logging
from typing import Callable

from db import utils as db_utils

logger = logging.getLogger(__name__)


def initialize_app(
    *,
    ensure_dirs: Callable[[], None],
    init_db: Callable[..., bool],
    connection_factory: Callable[[], db_utils.DatabaseHandle | db_utils.DatabaseEngine],
    seed_demo_data: bool = False,
) -> db_utils.DatabaseHandle:
    """Perform the core startup tasks required for the application.

    The initializer ensures the image and log directories exist, creates and
    seeds the catalog schema when it is missing, and establishes the fallback
    connection used outside of a request.
    """

    ensure_dirs()

    created = init_db(seed_demo_data=seed_demo_data)
    if created:
        logger.info("Initialized new catalog database (demo data: %s)", seed_demo_data)

    connection = connection_factory()
    handle = (
        connection
        if isinstance(connection, db_utils.DatabaseHandle)
        else db_utils.DatabaseHandle(connection)
    )
    db_utils.set_fallback_connection(handle)
    return handle


__all__ = ["initialize_app"]
