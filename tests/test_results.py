# tests/test_results.py
import pytest

from nr_bler.autoramp import OperatingPoint
from nr_bler.results import (
    BLERFileSink,
    MemorySink,
    aggregate_runs,
    format_record,
    group_by_configuration,
    read_bler_file,
)
from nr_bler.sweep import SweepResult


def _result(seed, points, BG=1, Z_c=2, supported=True):
    res = SweepResult(meta={"BG": BG, "Z_c": Z_c, "iterations": 50, "target_block_errors": 2,
                            "seed": seed}, supported=supported)
    for p in points:
        res.append(p)
    return res


def test_record_format():
    assert format_record(1.0, 2 / 3) == "1.000000\t6.666667e-01\n"
    assert format_record(-9.5, 0.0125) == "-9.500000\t1.250000e-02\n"


def test_file_sink_writes_only_recordable_points(tmp_path):
    path = tmp_path / "BLER_vs_SNR_1_2_50_2_0.txt"
    with BLERFileSink(path) as sink:
        sink.write(OperatingPoint(0.0, 1, 1, degenerate=True))
        sink.write(OperatingPoint(0.5, 2, 2))
        sink.write(OperatingPoint(1.0, 3, 2))
        sink.write(OperatingPoint(2.0, 5, 2))
        assert sink.n_written == 2
    assert path.read_text() == "1.000000\t6.666667e-01\n2.000000\t4.000000e-01\n"
    assert read_bler_file(path) == [(1.0, pytest.approx(2 / 3)), (2.0, pytest.approx(0.4))]


def test_file_sink_open_failure_is_fatal(tmp_path):
    with pytest.raises(OSError):
        BLERFileSink(tmp_path)  # a directory
    with pytest.raises(OSError):
        BLERFileSink(tmp_path / "missing" / "out.txt")


def test_memory_sink():
    sink = MemorySink()
    sink.write(OperatingPoint(0.0, 1, 1, degenerate=True))
    sink.write(OperatingPoint(1.0, 4, 1))
    assert sink.records == [(1.0, 0.25)]


class TestAggregation:

    def test_counts_are_summed_per_snr(self):
        a = _result(0, [OperatingPoint(0.0, 1, 1, degenerate=True),
                        OperatingPoint(1.0, 3, 2), OperatingPoint(2.0, 5, 2)])
        b = _result(1, [OperatingPoint(1.0, 5, 2), OperatingPoint(2.0, 10, 2)])
        merged = aggregate_runs([a, b])
        assert merged.points == [OperatingPoint(1.0, 8, 4), OperatingPoint(2.0, 15, 4)]
        assert merged.meta["seeds"] == [0, 1]
        assert "seed" not in merged.meta
        assert merged.supported

    def test_snr_matching_tolerates_float_noise(self):
        a = _result(0, [OperatingPoint(0.1 + 0.2, 4, 2)])
        b = _result(1, [OperatingPoint(0.3, 6, 2)])
        merged = aggregate_runs([a, b])
        assert len(merged.points) == 1
        assert merged.points[0].bler == pytest.approx(0.4)

    def test_unsupported_results_are_ignored(self):
        a = _result(0, [OperatingPoint(1.0, 4, 2)])
        skipped = _result(1, [], supported=False)
        merged = aggregate_runs([a, skipped])
        assert merged.meta["seeds"] == [0]
        assert aggregate_runs([skipped]).supported is False

    def test_group_by_configuration(self):
        r = [_result(0, [], Z_c=2), _result(0, [], Z_c=3), _result(1, [], Z_c=2)]
        groups = group_by_configuration(r)
        assert list(groups) == [(1, 2, 50, 2), (1, 3, 50, 2)]
        assert [x.meta["seed"] for x in groups[(1, 2, 50, 2)]] == [0, 1]
