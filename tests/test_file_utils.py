"""
Tests for atomic file replacement
"""

import os
import stat
from unittest.mock import patch

import pytest

from elkarbackup.utils.file_utils import atomic_write_text


class TestAtomicWriteText:
    def test_creates_missing_directories(self, tmp_path) -> None:
        path = tmp_path / "a" / "b" / "file.txt"

        atomic_write_text(str(path), "content")

        assert path.read_text() == "content"

    def test_applies_mode(self, tmp_path) -> None:
        path = tmp_path / "authorized_keys"

        atomic_write_text(str(path), "key\n", mode=0o600)

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_failed_rename_keeps_old_content(self, tmp_path) -> None:
        path = tmp_path / "parameters.json"
        path.write_text("old")

        with patch("os.replace", side_effect=OSError("read-only filesystem")):
            with pytest.raises(OSError):
                atomic_write_text(str(path), "new")

        assert path.read_text() == "old"
        assert [p.name for p in tmp_path.iterdir()] == ["parameters.json"]
