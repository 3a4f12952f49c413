import io

import pytest

from clxsim.progress import EventProgress, progress_interval


@pytest.mark.parametrize(
    "num, expected",
    [
        (1, 1),
        (1000, 1),
        (1001, 100),
        (10000, 100),
        (10001, 500),
        (100000, 500),
        (100001, 1000),
        (1000000, 1000),
        (1000001, 2000),
        (10000000, 2000),
        (10000001, 3000),
    ],
)
def test_progress_interval(num, expected):
    assert progress_interval(num) == expected


def test_small_run_reports_every_event():
    out = io.StringIO()
    progress = EventProgress(4, stream=out)
    assert progress.begin_event(0) == "Event 1 (25%)\r"
    assert progress.begin_event(3) == "Event 4 (100%)\r"
    assert out.getvalue() == "Event 1 (25%)\rEvent 4 (100%)\r"


def test_large_run_skips_between_intervals():
    out = io.StringIO()
    progress = EventProgress(5000, stream=out)
    assert progress.interval == 100
    assert progress.begin_event(0) is None
    assert progress.begin_event(98) is None
    assert progress.begin_event(99) == "Event 100 (2%)\r"
    assert out.getvalue() == "Event 100 (2%)\r"


def test_count_of_lines_matches_interval():
    out = io.StringIO()
    progress = EventProgress(20000, stream=out)
    lines = [progress.begin_event(i) for i in range(20000)]
    assert sum(line is not None for line in lines) == 20000 // 500
    assert out.getvalue().count("\r") == 40