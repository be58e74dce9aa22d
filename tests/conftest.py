import pytest
import sys
from pathlib import Path
from PIL import Image

# Add src to sys.path so we can import sitereport
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from sitereport.core.models import Feature, ReportMetadata  # noqa: E402
from sitereport.export.layout import OffscreenRegion  # noqa: E402


def make_feature(
    name: str = "Culvert A",
    category: str = "Drainage",
    *,
    geometry: dict | None = None,
    observations: list | None = None,
    internal_id: str | None = None,
    description: str = "Concrete culvert",
) -> Feature:
    """Build a feature with a small polygon near Cambridge by default."""
    if geometry is None:
        geometry = {
            "type": "Polygon",
            "coordinates": [[
                [0.1200, 52.2000],
                [0.1210, 52.2000],
                [0.1210, 52.2006],
                [0.1200, 52.2006],
                [0.1200, 52.2000],
            ]],
        }
    properties = {
        "Name": name,
        "category": category,
        "Description": description,
        "observations": observations or [],
        "_internalId": internal_id or name.lower().replace(" ", "-"),
    }
    return Feature(geometry=geometry, properties=properties)


# Common test fixtures
@pytest.fixture
def feature_factory():
    """Factory for test features."""
    return make_feature


@pytest.fixture
def sample_features():
    """Features across two categories, deliberately out of order."""
    return [
        make_feature("Rill 2", "Erosion"),
        make_feature("Culvert B", "Drainage"),
        make_feature("Rill 1", "Erosion", observations=[
            {"observationType": "Gully", "severity": "High", "recommendation": "Regrade slope"},
        ]),
        make_feature("Culvert A", "Drainage"),
    ]


@pytest.fixture
def sample_metadata():
    return ReportMetadata(
        title="North Field Survey",
        description="Spring walkover",
        client_name="Acme Farms",
        project_id="NF-01",
    )


@pytest.fixture
def region():
    """Isolated off-screen region so leak checks are per test."""
    return OffscreenRegion()


@pytest.fixture
def sample_image(tmp_path: Path):
    """Create a simple test image."""
    img = Image.new("RGB", (200, 100), color="white")
    img_path = tmp_path / "sample.png"
    img.save(img_path)
    return img_path
