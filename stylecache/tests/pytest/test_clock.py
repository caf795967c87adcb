"""Tests for modification-time tracking."""

from __future__ import annotations

from pathlib import Path

import pytest

from stylecache.build.clock import DependencyClock, stat_mtime

from .conftest import touch


@pytest.mark.evergreen
class TestObserve:
    def test_unseen_file_counts_as_changed(self, tmp_path: Path) -> None:
        f = tmp_path / "a.css"
        f.write_text("a {}")
        clock = DependencyClock()

        assert clock.observe(f) is True
        assert f in clock

    def test_unchanged_file(self, tmp_path: Path) -> None:
        f = tmp_path / "a.css"
        f.write_text("a {}")
        clock = DependencyClock()
        clock.observe(f)

        assert clock.observe(f) is False

    def test_touched_file_changes_once(self, tmp_path: Path) -> None:
        f = tmp_path / "a.css"
        f.write_text("a {}")
        clock = DependencyClock()
        clock.observe(f)

        touch(f)
        assert clock.observe(f) is True
        assert clock.observe(f) is False
        assert clock.get(f) == stat_mtime(f)

    def test_missing_file_returns_none(self, tmp_path: Path) -> None:
        clock = DependencyClock()
        assert clock.observe(tmp_path / "missing.css") is None
        assert len(clock) == 0

    def test_missing_file_keeps_recorded_time(self, tmp_path: Path) -> None:
        f = tmp_path / "a.css"
        f.write_text("a {}")
        clock = DependencyClock()
        clock.observe(f)
        recorded = clock.get(f)

        f.unlink()
        assert clock.observe(f) is None
        assert clock.get(f) == recorded


@pytest.mark.evergreen
class TestPrime:
    def test_prime_records_without_reporting_change(self, tmp_path: Path) -> None:
        f = tmp_path / "b.css"
        f.write_text("b {}")
        clock = DependencyClock()

        clock.prime([f])
        assert clock.observe(f) is False

    def test_prime_does_not_overwrite(self, tmp_path: Path) -> None:
        f = tmp_path / "b.css"
        f.write_text("b {}")
        clock = DependencyClock()
        clock.record(f, 1.0)

        clock.prime([f])
        assert clock.get(f) == 1.0

    def test_prime_skips_missing(self, tmp_path: Path) -> None:
        clock = DependencyClock()
        clock.prime([tmp_path / "missing.css"])
        assert len(clock) == 0


@pytest.mark.evergreen
class TestChanged:
    def test_changed_lists_only_modified(self, tmp_path: Path) -> None:
        a = tmp_path / "a.css"
        b = tmp_path / "b.css"
        a.write_text("a {}")
        b.write_text("b {}")
        clock = DependencyClock()
        clock.prime([a, b])

        touch(b)
        assert clock.changed([a, b, tmp_path / "gone.css"]) == [str(b)]

    def test_forget_and_snapshot(self, tmp_path: Path) -> None:
        clock = DependencyClock()
        clock.record("x.css", 1.0)
        clock.record("y.css", 2.0)
        clock.forget("x.css")

        assert clock.snapshot() == {"y.css": 2.0}
