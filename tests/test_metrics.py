import pytest

from image_converter.image_engine.metrics import PipelineMetrics


def test_counters_and_timings():
    m = PipelineMetrics()

    m.inc("jobs")
    m.inc("jobs", 2)
    with m.timed("encode"):
        pass

    snap = m.snapshot()
    assert snap["counters"] == {"jobs": 3}
    assert m.count("jobs") == 3
    assert m.count("never") == 0
    assert len(snap["timings"]["encode"]) == 1
    assert snap["timings"]["encode"][0] >= 0.0


def test_timed_records_when_the_block_raises():
    m = PipelineMetrics()

    with pytest.raises(RuntimeError):
        with m.timed("resize"):
            raise RuntimeError("x")

    assert len(m.snapshot()["timings"]["resize"]) == 1


def test_reset_clears_everything():
    m = PipelineMetrics()
    m.inc("jobs")
    with m.timed("encode"):
        pass

    m.reset()

    assert m.snapshot() == {"counters": {}, "timings": {}}
