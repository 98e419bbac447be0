"""Shared helpers for Supabase-backed repositories."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal

import httpx
from postgrest.exceptions import APIError

from media_paywall.domain.errors import StoreUnavailable

_logger = logging.getLogger(__name__)


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate client and transport failures into StoreUnavailable."""
    try:
        yield
    except (APIError, httpx.HTTPError) as exc:
        _logger.warning("Store call failed: operation=%s error=%s", operation, exc)
        raise StoreUnavailable(f"{operation} failed") from exc


def parse_timestamp(value: object) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def parse_decimal(value: object) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))
