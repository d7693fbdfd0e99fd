"""
Tests for APPROVED_FINGERPRINT pinning of table sets.
"""

import pytest

from payroll_config import get_tax_table
from payroll_config.integrity import (
    pin_path_for,
    read_pinned_fingerprint,
    verify_fingerprint_pin,
)
from payroll_config.loader import compute_checksum, load_yaml_file
from payroll_kernel.exceptions import ConfigIntegrityError


class TestPinFile:
    """Reading and verifying pins."""

    def test_pin_path(self, tmp_path):
        assert pin_path_for(tmp_path / "in_fy2025.yaml").name == "in_fy2025.APPROVED_FINGERPRINT"

    def test_no_pin_is_noop(self, tmp_path):
        set_path = tmp_path / "x.yaml"

        assert read_pinned_fingerprint(set_path) is None
        verify_fingerprint_pin("x", "abc", set_path)

    def test_matching_pin(self, tmp_path):
        set_path = tmp_path / "x.yaml"
        pin_path_for(set_path).write_text("abc123\n")

        verify_fingerprint_pin("x", "abc123", set_path)

    def test_mismatched_pin(self, tmp_path):
        set_path = tmp_path / "x.yaml"
        pin_path_for(set_path).write_text("a" * 64)

        with pytest.raises(ConfigIntegrityError) as exc_info:
            verify_fingerprint_pin("x", "b" * 64, set_path)

        err = exc_info.value
        assert err.code == "CONFIG_INTEGRITY_MISMATCH"
        assert err.table_key == "x"
        assert err.expected == "a" * 64
        assert err.actual == "b" * 64


class TestPinnedSets:
    """Pins are enforced when tables are loaded."""

    def test_pinned_set_loads(self, raw_india_set, write_set):
        sets_dir = write_set(raw_india_set, "in_fy2025.yaml")
        set_path = sets_dir / "in_fy2025.yaml"
        pin_path_for(set_path).write_text(compute_checksum(load_yaml_file(set_path)))

        assert get_tax_table("IN", 2025, config_dir=sets_dir).key == "IN:2025:NEW"

    def test_edited_set_rejected(self, raw_india_set, write_set):
        sets_dir = write_set(raw_india_set, "in_fy2025.yaml")
        set_path = sets_dir / "in_fy2025.yaml"
        pin_path_for(set_path).write_text(compute_checksum(load_yaml_file(set_path)))

        raw_india_set["regimes"]["NEW"]["cess_rate"] = 5
        write_set(raw_india_set, "in_fy2025.yaml")

        with pytest.raises(ConfigIntegrityError):
            get_tax_table("IN", 2025, config_dir=sets_dir)
