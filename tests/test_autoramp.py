# tests/test_autoramp.py
import dataclasses

import pytest

from nr_bler.autoramp import ConvergenceTracker, EarlyAbortPolicy, OperatingPoint
from nr_bler.metrics import bler, clopper_pearson, relative_precision


class TestEarlyAbortPolicy:

    def test_failures_abort_while_active(self):
        pol = EarlyAbortPolicy()
        assert pol.should_abort_point(False)
        assert pol.should_abort_point(False)
        assert pol.active

    def test_first_success_disables_for_good(self):
        pol = EarlyAbortPolicy()
        assert not pol.should_abort_point(True)
        assert not pol.active
        assert not pol.should_abort_point(False)
        assert not pol.should_abort_point(True)
        assert not pol.active


class TestConvergenceTracker:

    def test_counts_and_stopping_rule(self):
        tr = ConvergenceTracker(2.0, target_block_errors=2)
        assert tr.current_bler() is None
        for ok in (True, False, True, True):
            tr.record(ok)
            assert not tr.is_point_converged()
        tr.record(False)
        assert tr.is_point_converged()
        assert (tr.trial_count, tr.error_count) == (5, 2)
        assert tr.current_bler() == pytest.approx(0.4)

    def test_finalize_returns_snapshot(self):
        tr = ConvergenceTracker(1.0, target_block_errors=1)
        tr.record(True)
        with pytest.raises(RuntimeError, match="0/1"):
            tr.finalize()
        tr.record(False)
        pt = tr.finalize()
        assert pt == OperatingPoint(1.0, trial_count=2, error_count=1)
        with pytest.raises(RuntimeError, match="finalized"):
            tr.record(True)

    def test_degenerate_abort(self):
        tr = ConvergenceTracker(-10.0, target_block_errors=10)
        pt = tr.abort_degenerate()
        assert pt.degenerate
        assert (pt.trial_count, pt.error_count) == (1, 1)
        assert pt.bler == 1.0
        assert not pt.recordable
        assert tr.is_point_converged()

    def test_degenerate_abort_requires_untouched_point(self):
        tr = ConvergenceTracker(0.0, target_block_errors=10)
        tr.record(False)
        with pytest.raises(RuntimeError):
            tr.abort_degenerate()

    def test_reset(self):
        tr = ConvergenceTracker(0.0, target_block_errors=3)
        tr.record(False)
        tr.reset_counters()
        assert (tr.trial_count, tr.error_count, tr.degenerate) == (0, 0, False)

    def test_invalid_target(self):
        with pytest.raises(ValueError):
            ConvergenceTracker(0.0, target_block_errors=0)

    def test_confidence_interval_brackets_estimate(self):
        tr = ConvergenceTracker(0.0, target_block_errors=10)
        for i in range(40):
            tr.record(i % 4 != 0)
        lo, hi = tr.confidence_interval()
        assert lo < tr.current_bler() < hi


class TestOperatingPoint:

    def test_bler_and_recordable(self):
        assert OperatingPoint(0.0).bler is None
        assert not OperatingPoint(0.0).recordable
        assert OperatingPoint(1.0, 3, 2).bler == pytest.approx(2 / 3)
        assert OperatingPoint(1.0, 3, 2).recordable
        # a genuinely measured BLER of 1 is not written either
        assert not OperatingPoint(1.0, 2, 2).recordable

    @pytest.mark.parametrize("t,e", [(-1, 0), (2, 3), (2, -1)])
    def test_invalid_counts(self, t, e):
        with pytest.raises(ValueError):
            OperatingPoint(0.0, t, e)

    def test_is_immutable(self):
        pt = OperatingPoint(0.0, 3, 1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            pt.trial_count = 4

    def test_to_dict(self):
        d = OperatingPoint(1.5, 10, 2).to_dict()
        assert d["snr_db"] == 1.5
        assert d["bler"] == pytest.approx(0.2)
        lo, hi = d["bler_ci95"]
        assert 0.0 < lo < 0.2 < hi < 1.0


class TestMetrics:

    def test_bler(self):
        assert bler(0, 0) is None
        assert bler(1, 4) == 0.25

    def test_clopper_pearson_zero_errors(self):
        lo, hi = clopper_pearson(0, 10)
        assert lo == 0.0
        assert hi == pytest.approx(1.0 - 0.025 ** (1 / 10), rel=1e-9)

    def test_clopper_pearson_all_errors(self):
        lo, hi = clopper_pearson(10, 10)
        assert hi == 1.0
        assert lo == pytest.approx(0.025 ** (1 / 10), rel=1e-9)

    def test_clopper_pearson_edges(self):
        assert clopper_pearson(0, 0) == (0.0, 1.0)
        with pytest.raises(ValueError):
            clopper_pearson(5, 4)

    def test_relative_precision(self):
        assert relative_precision(100) == pytest.approx(0.1)
        assert relative_precision(0) == float("inf")
