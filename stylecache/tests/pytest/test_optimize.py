"""Tests for the default optimizer and the optimization gate."""

from __future__ import annotations

import logging

import pytest

from stylecache.build.errors import TransformError
from stylecache.build.optimize import OptimizationGate, optimizer_from_callable, transform


@pytest.mark.evergreen
class TestTransform:
    def test_minify(self) -> None:
        css = ".a {\n  color: red;\n}\n\n.b > .c {\n  margin: 0 auto;\n}\n"
        assert transform(css, minify=True) == ".a{color:red}.b>.c{margin:0 auto}"

    def test_comments_removed_but_notices_kept(self) -> None:
        out = transform("/*! keep */\n/* drop */\n.a { color: red; }", minify=True)
        assert "/*! keep */" in out
        assert "drop" not in out

    def test_strings_are_preserved(self) -> None:
        out = transform('.a::before { content: "a  ;  b"; }', minify=True)
        assert '"a  ;  b"' in out

    def test_tidy_without_minify(self) -> None:
        assert transform("a {}   \n\n\n\nb {}  \n") == "a {}\n\nb {}\n"

    def test_error_recovery_keeps_unbalanced_tail(self, caplog) -> None:
        css = ".a { color: red; } .b { color: blue;"
        with caplog.at_level(logging.WARNING, logger="stylecache.build.optimize"):
            out = transform(css, minify=True)

        assert out == ".a{color:red}.b { color: blue;"
        assert "recovered" in caplog.text

    def test_unbalanced_input_without_recovery(self) -> None:
        with pytest.raises(TransformError):
            transform(".a { color: red; } .b {", error_recovery=False)


@pytest.mark.evergreen
class TestOptimizationGate:
    def test_identical_input_reuses_previous_output(self, counting_optimizer) -> None:
        gate = OptimizationGate(counting_optimizer)

        first = gate.maybe_optimize(".a { color: red; }", None, None, True, True)
        second = gate.maybe_optimize(".a { color: red; }", ".a { color: red; }", first, True, True)

        assert second is first
        assert counting_optimizer.calls == 1
        assert gate.invocations == 1

    def test_changed_input_runs_optimizer(self, counting_optimizer) -> None:
        gate = OptimizationGate(counting_optimizer)
        first = gate.maybe_optimize(".a { color: red; }", None, None, True, True)

        out = gate.maybe_optimize(".a { color: blue; }", ".a { color: red; }", first, True, True)
        assert out == ".a{color:blue}"
        assert counting_optimizer.calls == 2

    def test_missing_previous_optimized_runs_optimizer(self, counting_optimizer) -> None:
        gate = OptimizationGate(counting_optimizer)
        gate.maybe_optimize(".a {}", ".a {}", None, True, True)
        assert counting_optimizer.calls == 1

    def test_disabled_returns_input(self, counting_optimizer) -> None:
        gate = OptimizationGate(counting_optimizer)
        css = ".a {\n  color: red;\n}\n"

        assert gate.maybe_optimize(css, None, None, False, True) == css
        assert counting_optimizer.calls == 0

    def test_minify_flag_is_forwarded(self, counting_optimizer) -> None:
        gate = OptimizationGate(counting_optimizer)
        out = gate.maybe_optimize(".a {\n  color: red;\n}\n\n\n", None, None, True, False)
        assert out == ".a {\n  color: red;\n}\n"

    def test_optimizer_failure_falls_back_to_input(self, caplog) -> None:
        def failing(css, *, minify, error_recovery):
            raise TransformError("cannot parse")

        gate = OptimizationGate(failing)
        with caplog.at_level(logging.WARNING, logger="stylecache.build.optimize"):
            assert gate.maybe_optimize(".a {}", None, None, True, True) == ".a {}"
        assert "cannot parse" in caplog.text

    def test_plain_callable_adapter(self) -> None:
        gate = OptimizationGate(optimizer_from_callable(str.upper))
        assert gate.maybe_optimize(".a {}", None, None, True, True) == ".A {}"
