"""Shared fixtures for engine tests."""

import pandas as pd
import pytest
from shapely.geometry import box

from hfc.engine.config import AuditSettings
from hfc.engine.geo import PolygonArea, SamplePoint


@pytest.fixture
def settings():
    return AuditSettings(reporting_columns=("key", "enum_id", "site"))


@pytest.fixture
def polygons():
    return [
        PolygonArea("North", box(30.00, -1.95, 30.05, -1.90)),
        PolygonArea("South", box(30.05, -1.95, 30.10, -1.90)),
    ]


@pytest.fixture
def points():
    return {
        "N-01": SamplePoint("N-01", latitude=-1.92, longitude=30.02, radius_m=150),
        "S-01": SamplePoint("S-01", latitude=-1.92, longitude=30.08, radius_m=150),
    }


def make_record(key, **overrides):
    record = {
        "key": key,
        "enum_id": "E1",
        "site": "North",
        "point_id": "N-01",
        "consent": "1",
        "starttime": "2024-03-04 09:00",
        "endtime": "2024-03-04 09:30",
        "gps_latitude": -1.92,
        "gps_longitude": 30.02,
        "hh_size": 4,
        "water_source": "piped",
    }
    record.update(overrides)
    return record


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def survey():
    return pd.DataFrame(
        [
            make_record("U1"),
            make_record("U2", enum_id="E2", site="South", point_id="S-01", gps_longitude=30.08),
            make_record("U3", starttime="2020-01-02 09:00", endtime="2020-01-01 10:00"),
            make_record("U4", consent="2", starttime="2024-03-05 10:00", endtime="2024-03-05 09:00"),
        ]
    )
