import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import geopandas as gpd  # noqa: E402
import pandas as pd  # noqa: E402
import pytest  # noqa: E402
import yaml  # noqa: E402
from shapely.geometry import MultiPolygon, Polygon  # noqa: E402

sys.path.insert(0, str(Path(__file__).parent.parent))

from processing.records import (  # noqa: E402
    AttributeRecord,
    GeometryRecord,
    frame_from_records,
)

ALABAMA = Polygon(
    [(-88.0, 31.0), (-85.0, 31.0), (-85.0, 34.0), (-88.0, 34.0)],
    holes=[[(-87.0, 32.0), (-86.0, 32.0), (-86.0, 33.0), (-87.0, 33.0)]],
)
WYOMING = Polygon([(-111.0, 41.0), (-104.0, 41.0), (-104.0, 45.0), (-111.0, 45.0)])
# Mainland piece inside the box, island piece far outside it
ALASKA = MultiPolygon(
    [
        Polygon([(-150.0, 60.0), (-140.0, 60.0), (-140.0, 65.0), (-150.0, 65.0)]),
        Polygon([(-170.0, 52.0), (-168.0, 52.0), (-168.0, 53.0), (-170.0, 53.0)]),
    ]
)

ATTRIBUTE_ROWS = [
    AttributeRecord("Alabama", 5_000_000.0, 10, 200, 2_000_000.0, 2e-06, 5e-06),
    AttributeRecord("Wyoming", 500_000.0, 2, 40, 100_000.0, 4e-06, 2e-05),
]


@pytest.fixture
def boundaries():
    return gpd.GeoDataFrame(
        {"NAME": ["Alabama", "Wyoming"]}, geometry=[ALABAMA, WYOMING], crs="EPSG:4326"
    )


@pytest.fixture
def geometry_frame():
    return frame_from_records(
        [
            GeometryRecord("Alabama", -88.0, 31.0, 0, False, 0),
            GeometryRecord("Alabama", -85.0, 31.0, 0, False, 1),
            GeometryRecord("Alabama", -85.0, 34.0, 0, False, 2),
            GeometryRecord("Alabama", -87.0, 32.0, 1, True, 0),
            GeometryRecord("Alabama", -86.0, 32.0, 1, True, 1),
            GeometryRecord("Alabama", -86.0, 33.0, 1, True, 2),
            GeometryRecord("Wyoming", -111.0, 41.0, 2, False, 0),
            GeometryRecord("Wyoming", -104.0, 41.0, 2, False, 1),
            GeometryRecord("Wyoming", -104.0, 45.0, 2, False, 2),
        ]
    )


@pytest.fixture
def attribute_frame():
    return frame_from_records(ATTRIBUTE_ROWS)


@pytest.fixture
def attributes_csv(tmp_path):
    path = tmp_path / "state_wins.csv"
    path.write_text(
        "state,population,wins,estab,receipts,winsperpop,winsperreceipt\n"
        "Alabama,5000000,10,200,2000000,2e-06,5e-06\n"
        "Wyoming,500000,2,40,100000,4e-06,2e-05\n"
    )
    return path


@pytest.fixture
def project(tmp_path, boundaries, attributes_csv):
    """A project directory with a shapefile, an attribute file and a config."""
    shp_dir = tmp_path / "data" / "geospatial"
    shp_dir.mkdir(parents=True)
    shapefile = shp_dir / "states.shp"
    boundaries.to_file(shapefile)
    (tmp_path / "pyproject.toml").write_text("")

    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "project_name": "Test Maps",
                "description": "Test run",
                "directories": {"data": "data", "output": "output"},
                "input_files": {
                    "state_boundaries_shp": "data/geospatial/states.shp",
                    "attributes_csv": str(attributes_csv),
                },
                "visualization": {"show_on_screen": False, "map_dpi": 72},
            }
        )
    )
    return tmp_path


@pytest.fixture
def config(project):
    from ops.config_loader import Config

    return Config(str(project / "config.yaml"), project_root_override=project)


@pytest.fixture
def mismatched_attributes_csv(tmp_path):
    path = tmp_path / "mismatch.csv"
    pd.DataFrame(
        {
            "state": ["Alabama", "Texas"],
            "population": [5_000_000, 29_000_000],
            "wins": [10, 40],
            "estab": [200, 3000],
            "receipts": [2_000_000, 90_000_000],
        }
    ).to_csv(path, index=False)
    return path
