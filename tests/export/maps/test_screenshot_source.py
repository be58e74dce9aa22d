"""
Tests for the overview map screenshot source.
"""

import numpy as np
import pytest
from PIL import Image

from sitereport.core.models import CategoryStyle, CategoryStyles
from sitereport.export.maps import FeatureMapScreenshotSource, GeoRaster, LayerVisibility

BOUNDS = (0.119, 52.1995, 0.122, 52.2011)


@pytest.fixture
def ortho():
    return GeoRaster(Image.new("RGB", (64, 64), (0, 0, 255)), BOUNDS)


@pytest.fixture
def dsm():
    values = np.linspace(10, 50, 64 * 64, dtype=np.float32).reshape(64, 64)
    return GeoRaster(Image.fromarray(values), BOUNDS)


class TestGeoRaster:
    def test_invalid_bounds_raise(self):
        with pytest.raises(ValueError, match="bounds"):
            GeoRaster(Image.new("RGB", (4, 4)), (1, 1, 0, 0))

    def test_open_reads_image(self, sample_image):
        raster = GeoRaster.open(sample_image, [0, 0, 1, 1])

        assert raster.image.size == (200, 100)
        assert raster.bounds == (0.0, 0.0, 1.0, 1.0)


class TestFeatureMapScreenshotSource:
    def test_capabilities_follow_rasters(self, sample_features, ortho):
        source = FeatureMapScreenshotSource(sample_features, ortho=ortho)

        assert source.has_ortho
        assert not source.has_dsm

    @pytest.mark.asyncio
    async def test_screenshot_has_requested_size(self, sample_features):
        source = FeatureMapScreenshotSource(sample_features, size=(320, 200))

        screenshot = await source.get_screenshot()

        assert screenshot.size == (320, 200)
        assert source.render_count == 1

    @pytest.mark.asyncio
    async def test_ortho_layer_only_when_visible(self, sample_features, ortho):
        # Arrange
        source = FeatureMapScreenshotSource(sample_features, ortho=ortho, size=(320, 200))
        source.layer_visibility = LayerVisibility(features=False, ortho=False)
        source.render_layers()
        plain = await source.get_screenshot()

        # Act
        source.layer_visibility = LayerVisibility(features=False, ortho=True)
        source.render_layers()
        with_ortho = await source.get_screenshot()

        # Assert
        assert plain.getpixel((160, 100)) != (0, 0, 255)
        assert with_ortho.getpixel((160, 100)) == (0, 0, 255)

    @pytest.mark.asyncio
    async def test_dsm_layer_is_colorized(self, sample_features, dsm):
        source = FeatureMapScreenshotSource(sample_features, dsm=dsm, size=(320, 200))
        source.layer_visibility = LayerVisibility(features=False, dsm=True)
        source.render_layers()

        screenshot = await source.get_screenshot()

        assert screenshot.getpixel((160, 100)) != screenshot.getpixel((1, 1))

    @pytest.mark.asyncio
    async def test_features_drawn_in_category_color(self, feature_factory):
        styles = CategoryStyles({"Drainage": CategoryStyle(fill_color="#00ff00", fill_opacity=1.0)})
        source = FeatureMapScreenshotSource([feature_factory()], styles, size=(320, 200))

        screenshot = await source.get_screenshot()

        assert screenshot.getpixel((160, 100)) == (0, 255, 0)

    def test_features_without_geometry_are_skipped(self, feature_factory):
        broken = feature_factory("Ghost", geometry={})
        source = FeatureMapScreenshotSource([broken, feature_factory()], size=(100, 100))

        source.render_layers()

        assert source.render_count == 1

    def test_visibility_copy_is_independent(self):
        visibility = LayerVisibility(ortho=True)

        saved = visibility.copy()
        visibility.ortho = False

        assert saved.ortho is True
