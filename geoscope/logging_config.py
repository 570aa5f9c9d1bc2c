from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Set the level for the ``geoscope`` logger tree.

    Notes:
    - stdlib logging only; Uvicorn already installs handlers.
    - ``GEOSCOPE_LOG_LEVEL=DEBUG`` shows per-request area-set resolution and
      cache misses; denials log at INFO, hierarchy cycles at ERROR.
    """

    normalized = level.upper()
    logging.getLogger("geoscope").setLevel(normalized)
    # Child loggers (geoscope.geo_authz.*, geoscope.security.*) inherit this level.
    logging.getLogger("geoscope").propagate = True
