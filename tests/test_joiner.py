import pandas as pd
import pytest

from processing.errors import KeySetMismatchError
from processing.joiner import (
    CONUS_BBOX,
    drop_holes,
    filter_bbox,
    join,
    join_and_filter,
    validate_keys,
)
from processing.records import GeometryRecord, JoinedRecord, frame_from_records, records_from_frame


def test_validate_keys_accepts_equal_sets():
    validate_keys({"Alabama", "Wyoming"}, {"Alabama", "Wyoming"})


def test_validate_keys_ignores_order_and_repeats():
    validate_keys(["Wyoming", "Alabama", "Alabama"], ["Alabama", "Wyoming"])


def test_validate_keys_reports_both_sorted_lists():
    with pytest.raises(KeySetMismatchError) as excinfo:
        validate_keys({"Alabama"}, {"Wyoming", "Alabama"})

    error = excinfo.value
    assert error.geometry_keys == ["Alabama"]
    assert error.attribute_keys == ["Alabama", "Wyoming"]
    assert error.missing_from_geometry == ["Wyoming"]
    assert error.missing_from_attributes == []
    assert "['Alabama']" in str(error)
    assert "['Alabama', 'Wyoming']" in str(error)


def test_validate_keys_rejects_disjoint_sets_of_same_size():
    with pytest.raises(KeySetMismatchError):
        validate_keys({"Alabama", "Wyoming"}, {"Alabama", "Texas"})


def test_join_carries_matching_attributes(geometry_frame, attribute_frame):
    joined = join(geometry_frame, attribute_frame)

    assert len(joined) == len(geometry_frame)
    assert list(joined["polygon_id"]) == list(geometry_frame["polygon_id"])
    assert list(joined["order"]) == list(geometry_frame["order"])

    indexed = attribute_frame.set_index("region_key")
    for _, row in joined.iterrows():
        expected = indexed.loc[row["region_key"]]
        assert row["population"] == expected["population"]
        assert row["wins"] == expected["wins"]
        assert row["wins_per_receipt"] == expected["wins_per_receipt"]


def test_join_two_regions_scenario(attribute_frame):
    geometry = frame_from_records(
        [
            GeometryRecord("Alabama", -86.0, 32.0, 0, False),
            GeometryRecord("Wyoming", -107.0, 43.0, 1, False),
        ]
    )

    joined = records_from_frame(join(geometry, attribute_frame), JoinedRecord)

    assert len(joined) == 2
    assert joined[0].region_key == "Alabama"
    assert joined[0].population == 5_000_000.0
    assert joined[0].wins == 10
    assert joined[1].region_key == "Wyoming"
    assert joined[1].wins == 2


def test_join_does_not_modify_inputs(geometry_frame, attribute_frame):
    before = geometry_frame.copy()
    join(geometry_frame, attribute_frame)
    pd.testing.assert_frame_equal(geometry_frame, before)


def test_filter_bbox_keeps_inside_and_drops_outside():
    records = frame_from_records(
        [
            GeometryRecord("Massachusetts", -70.0, 42.0, 0, False),
            GeometryRecord("Alaska", -130.0, 60.0, 1, False),
        ]
    )

    kept = filter_bbox(records, *CONUS_BBOX)

    assert list(kept["region_key"]) == ["Massachusetts"]


def test_filter_bbox_is_closed():
    min_lon, max_lon, min_lat, max_lat = CONUS_BBOX
    records = frame_from_records(
        [
            GeometryRecord("corner", min_lon, min_lat, 0, False),
            GeometryRecord("corner", max_lon, max_lat, 0, False, 1),
            GeometryRecord("outside", max_lon + 0.001, max_lat, 1, False),
        ]
    )

    kept = filter_bbox(records, min_lon, max_lon, min_lat, max_lat)

    assert list(kept["region_key"]) == ["corner", "corner"]


def test_filter_bbox_defaults_to_continental_us():
    records = frame_from_records(
        [
            GeometryRecord("Hawaii", -157.8, 21.3, 0, False),
            GeometryRecord("Kansas", -98.0, 38.5, 1, False),
        ]
    )

    assert list(filter_bbox(records)["region_key"]) == ["Kansas"]


def test_filter_bbox_is_idempotent(geometry_frame, attribute_frame):
    joined = join(geometry_frame, attribute_frame)
    once = filter_bbox(joined, -105.0, -85.0, 30.0, 44.0)
    twice = filter_bbox(once, -105.0, -85.0, 30.0, 44.0)

    pd.testing.assert_frame_equal(once, twice)


def test_drop_holes_removes_only_holes_and_keeps_order(geometry_frame):
    result = drop_holes(geometry_frame)

    assert not result["is_hole"].any()
    expected = geometry_frame[~geometry_frame["is_hole"]].reset_index(drop=True)
    pd.testing.assert_frame_equal(result, expected)


def test_drop_holes_scenario():
    hole = GeometryRecord("Alabama", -86.5, 32.5, 1, True)
    ring = GeometryRecord("Alabama", -88.0, 31.0, 0, False)
    records = frame_from_records([ring, hole])

    remaining = records_from_frame(drop_holes(records), GeometryRecord)

    assert remaining == [ring]


def test_join_and_filter_runs_every_step(geometry_frame, attribute_frame):
    result = join_and_filter(geometry_frame, attribute_frame)

    assert len(result) == 6
    assert not result["is_hole"].any()
    assert set(result["region_key"]) == {"Alabama", "Wyoming"}
    assert "wins_per_pop" in result.columns


def test_join_and_filter_stops_on_key_mismatch(geometry_frame, attribute_frame):
    with pytest.raises(KeySetMismatchError):
        join_and_filter(geometry_frame, attribute_frame[attribute_frame["region_key"] == "Alabama"])
