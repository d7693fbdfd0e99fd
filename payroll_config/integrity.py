"""
Tax Table Integrity -- fingerprint pinning for approved table sets.

When a set file ``<name>.yaml`` has a sibling ``<name>.APPROVED_FINGERPRINT``,
the checksum of the set's raw contents must match the pinned value.  This
prevents unauthorized or accidental edits to published rates.

The pin file is a single line: the SHA-256 hex string produced by
``compute_checksum()`` over the parsed YAML document.

If no pin file exists, the check is skipped (draft/dev workflow).
"""

from __future__ import annotations

from pathlib import Path

from payroll_kernel.exceptions import ConfigIntegrityError

PINFILE_SUFFIX = ".APPROVED_FINGERPRINT"


def pin_path_for(set_path: Path) -> Path:
    """Pin file location for a set file."""
    return set_path.with_suffix(PINFILE_SUFFIX)


def read_pinned_fingerprint(set_path: Path) -> str | None:
    """Read the pin file next to a set file.

    Returns:
        The pinned SHA-256 hex string, or None if no pin file exists.
    """
    pin_path = pin_path_for(set_path)
    if not pin_path.is_file():
        return None
    return pin_path.read_text().strip()


def verify_fingerprint_pin(table_key: str, fingerprint: str, set_path: Path) -> None:
    """Verify that a set's fingerprint matches its pin file.

    No-op if no pin file exists.

    Raises:
        ConfigIntegrityError: If pin exists and fingerprint does not match.
    """
    pinned = read_pinned_fingerprint(set_path)
    if pinned is None:
        return

    if fingerprint != pinned:
        raise ConfigIntegrityError(
            table_key=table_key,
            expected=pinned,
            actual=fingerprint,
            pin_path=pin_path_for(set_path),
        )
