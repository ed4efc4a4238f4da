"""Utility modules for cross-cutting concerns."""

from utils.errors import UnexpectedError
from utils.timezone import now_utc, parse_iso
