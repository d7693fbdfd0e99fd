"""
Tax table lifecycle status.

Tax tables are append-only. A new fiscal year (or a corrected schedule) is
a new table version, never an edit in place. Only PUBLISHED tables are
served to the engines. Superseded tables remain on disk for replay/audit.
"""

from enum import Enum, unique


@unique
class ConfigStatus(str, Enum):
    """Lifecycle status for a jurisdiction tax table."""

    DRAFT = "draft"
    APPROVED = "approved"
    PUBLISHED = "published"
    SUPERSEDED = "superseded"


# Statuses the registry will hand to a calculation
SERVABLE_STATUSES: frozenset[ConfigStatus] = frozenset({ConfigStatus.PUBLISHED})
