# tests/test_sweep.py
import pytest

from nr_bler.autoramp import OperatingPoint
from nr_bler.config import SweepConfig
from nr_bler.results import MemorySink
from nr_bler.sweep import SweepController, SweepLimitExceeded, SweepResult


class ScriptedTrials:
    """
    Stand-in for TrialRunner: run_trial() pops the next scripted outcome of
    the current SNR (True = decoded correctly). Running past the end of a
    script fails the test.
    """

    def __init__(self, script):
        self.script = {float(k): list(v) for k, v in script.items()}
        self.snrs = []
        self._queue = None

    def set_snr(self, snr_db):
        self.snrs.append(float(snr_db))
        self._queue = self.script.setdefault(float(snr_db), [])

    def run_trial(self):
        if not self._queue:
            raise AssertionError(f"no scripted outcome left at {self.snrs[-1]} dB")
        return self._queue.pop(0)

    def exhausted(self):
        return all(not v for v in self.script.values())


class ConstantTrials:
    def __init__(self, outcome):
        self.outcome = outcome
        self.n = 0

    def set_snr(self, snr_db):
        pass

    def run_trial(self):
        self.n += 1
        return self.outcome


def _cfg(start=0.0, delta=1.0, errors=2, target=0.5):
    return SweepConfig(BG=1, Z_c=2, iterations=5, target_block_errors=errors, target_bler=target,
                       esn0_start=start, esn0_delta=delta, seed=0)


class TestSweepController:

    def test_worked_example(self):
        """
        0 dB: first trial fails before any success -> degenerate, not written.
        1 dB: S F F -> 2/3, written.
        2 dB: S F S S F -> 0.4 < 0.5, written, sweep ends.
        """
        trials = ScriptedTrials({
            0.0: [False],
            1.0: [True, False, False],
            2.0: [True, False, True, True, False],
        })
        sink = MemorySink()
        res = SweepController(_cfg(), trials, sink=sink).run()

        assert trials.exhausted()
        assert trials.snrs == [0.0, 1.0, 2.0]
        assert res.points == [
            OperatingPoint(0.0, 1, 1, degenerate=True),
            OperatingPoint(1.0, 3, 2),
            OperatingPoint(2.0, 5, 2),
        ]
        assert sink.records == [(1.0, pytest.approx(2 / 3)), (2.0, pytest.approx(0.4))]
        assert res.meta["BG"] == 1 and res.meta["target_BLER"] == 0.5

    def test_found_start_disables_early_abort(self):
        trials = ScriptedTrials({
            0.0: [True, False, False],
            # first trial fails, but a success was already seen: counted, not aborted
            1.0: [False, False],
            2.0: [False, True, True, True, True, False],
        })
        sink = MemorySink()
        res = SweepController(_cfg(), trials, sink=sink).run()

        assert trials.exhausted()
        mid = res.points[1]
        assert not mid.degenerate
        assert (mid.trial_count, mid.error_count) == (2, 2)
        # BLER of exactly 1 is never written
        assert [s for s, _ in sink.records] == [0.0, 2.0]

    def test_leading_degenerate_points(self):
        trials = ScriptedTrials({
            -3.0: [False], -2.0: [False], -1.0: [False],
            0.0: [True, True, True, True, False, True, True, True, False],
        })
        res = SweepController(_cfg(start=-3.0), trials).run()
        assert [p.degenerate for p in res.points] == [True, True, True, False]
        assert res.points[-1].bler == pytest.approx(2 / 9)
        assert res.trial_count == 3 + 9

    def test_never_ends_on_a_degenerate_point(self):
        # a very loose target is still not met by BLER = 1
        trials = ScriptedTrials({0.0: [False], 1.0: [True, False, False]})
        res = SweepController(_cfg(target=0.9), trials).run()
        assert res.points[-1].snr_db == 1.0
        assert not res.points[-1].degenerate

    def test_termination_is_strict(self):
        # BLER exactly equal to the target does not stop the sweep
        trials = ScriptedTrials({
            0.0: [True, False, True, False],
            1.0: [True, True, True, False, True, False],
        })
        res = SweepController(_cfg(target=0.5), trials).run()
        assert [p.bler for p in res.points] == [0.5, pytest.approx(1 / 3)]

    def test_snr_ladder(self):
        trials = ScriptedTrials({})
        for i in range(20):
            trials.script[-10.0 + 0.5 * i] = [False]
        trials.script[0.0] = [True, True, False]
        res = SweepController(_cfg(start=-10.0, delta=0.5, errors=1), trials).run()
        assert res.snr_db == [-10.0 + 0.5 * i for i in range(21)]
        assert res.snr_db[-1] == 0.0

    def test_observer_sees_every_trial(self):
        seen = []
        trials = ScriptedTrials({
            0.0: [False],
            1.0: [True, False, False],
            2.0: [True, False, True, True, False],
        })
        SweepController(_cfg(), trials, observer=seen.append).run()
        assert len(seen) == 1 + 3 + 5
        assert seen[0].degenerate
        assert [p.trial_count for p in seen[1:4]] == [1, 2, 3]
        assert all(isinstance(p, OperatingPoint) for p in seen)

    def test_run_point_directly(self):
        trials = ScriptedTrials({3.0: [True, False, True, False]})
        ctrl = SweepController(_cfg(), trials)
        pt = ctrl.run_point(3.0)
        assert (pt.trial_count, pt.error_count) == (4, 2)
        assert not ctrl.policy.active

    def test_max_points(self):
        trials = ConstantTrials(False)
        with pytest.raises(SweepLimitExceeded, match="5 operating points"):
            SweepController(_cfg(), trials, max_points=5).run()
        assert trials.n == 5

    def test_max_trials_per_point(self):
        trials = ConstantTrials(True)
        with pytest.raises(SweepLimitExceeded, match="after 100 trials"):
            SweepController(_cfg(), trials, max_trials_per_point=100).run()
        assert trials.n == 100

    def test_trial_errors_propagate(self):
        class Broken(ConstantTrials):
            def run_trial(self):
                raise RuntimeError("decoder crashed")

        with pytest.raises(RuntimeError, match="decoder crashed"):
            SweepController(_cfg(), Broken(True)).run()


class TestSweepResult:

    def test_append_requires_increasing_snr(self):
        res = SweepResult()
        res.append(OperatingPoint(1.0, 2, 1))
        with pytest.raises(ValueError, match="strictly increasing"):
            res.append(OperatingPoint(1.0, 2, 1))
        with pytest.raises(ValueError):
            res.append(OperatingPoint(0.5, 2, 1))

    def test_json_file(self, tmp_path):
        res = SweepResult(meta={"BG": 2, "seed": 3})
        res.append(OperatingPoint(-1.0, 1, 1, degenerate=True))
        res.append(OperatingPoint(0.0, 7, 2))
        path = tmp_path / "sub" / "r.json"
        res.to_json_file(path)
        back = SweepResult.from_json_file(path)
        assert back.points == res.points
        assert back.meta == res.meta
        assert back.supported
        assert back.recorded_points == [OperatingPoint(0.0, 7, 2)]
