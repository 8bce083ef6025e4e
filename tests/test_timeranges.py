from datetime import datetime, timedelta, timezone

import pytest

from socreport.errors import InvalidTimeRangeError
from socreport.timeranges import from_date, hours_for, to_iso


def test_known_labels():
    assert hours_for("1h") == 1
    assert hours_for("3d") == 72
    assert hours_for("90d") == 2160


@pytest.mark.parametrize("label", ["5m", "", "24H", None, "1w"])
def test_unknown_label(label):
    with pytest.raises(InvalidTimeRangeError):
        hours_for(label)


def test_from_date():
    now = datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)
    assert from_date("7d", now) == now - timedelta(days=7)


def test_to_iso():
    assert to_iso(datetime(2024, 3, 4, 6, 0, tzinfo=timezone.utc)) == "2024-03-04T06:00:00Z"
    assert to_iso(datetime(2024, 3, 4, 6, 0)) == "2024-03-04T06:00:00Z"
    plus_two = timezone(timedelta(hours=2))
    assert to_iso(datetime(2024, 3, 4, 8, 0, tzinfo=plus_two)) == "2024-03-04T06:00:00Z"
