"""Shared service helpers."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from pronosite.errors import ConsistencyError, PronoError

log = structlog.get_logger(__name__)


@contextmanager
def rejections_logged(action: str, **context: Any) -> Iterator[None]:
    """Log domain errors with their code, then let them propagate."""
    try:
        yield
    except ConsistencyError as e:
        log.error(f"{action}_failed", code=e.code, error=str(e), **context)
        raise
    except PronoError as e:
        log.warning(f"{action}_rejected", code=e.code, error=str(e), **context)
        raise
