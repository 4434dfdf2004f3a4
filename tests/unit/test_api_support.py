"""
Unit tests for API settings, schemas and error types.
"""

import base64

import pytest

from shelfspine.api.dependencies import Settings
from shelfspine.api.middleware.error_handler import InvalidRequestError
from shelfspine.api.routes.detection import parse_config_overrides
from shelfspine.api.schemas import DetectionConfigSchema, DetectionResponse
from shelfspine.errors import (
    BackendUnavailable,
    DecodeError,
    DetectionError,
    MalformedConfigError,
    ShelfSpineError,
)
from shelfspine.vision.config import DEFAULT_CONFIG
from shelfspine.vision.models import (
    BoundingBox,
    DetectedLine,
    DetectedSpine,
    DetectionDebugInfo,
    DetectionResult,
    ShelfRow,
)


class TestSettings:
    """Tests for Settings.from_env."""

    def test_defaults(self, monkeypatch):
        for name in ("MAX_UPLOAD_SIZE_MB", "CROP_PADDING", "DETECTION_TIMEOUT_SECONDS", "ALLOWED_IMAGE_TYPES"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.max_upload_size_bytes == 10 * 1024 * 1024
        assert settings.crop_padding == 0
        assert settings.detection_timeout_seconds is None
        assert settings.allowed_image_type_set == {"image/jpeg", "image/png", "image/webp"}

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("MAX_UPLOAD_SIZE_MB", "2")
        monkeypatch.setenv("CROP_PADDING", "4")
        monkeypatch.setenv("DETECTION_TIMEOUT_SECONDS", "1.5")
        monkeypatch.setenv("ALLOWED_IMAGE_TYPES", "image/png")
        monkeypatch.setenv("SHELFSPINE_ENV", "production")
        monkeypatch.setenv("DEBUG", "false")
        monkeypatch.setenv("SPINE_MAX_IMAGE_DIMENSION", "1024")

        settings = Settings.from_env()

        assert settings.max_upload_size_mb == 2
        assert settings.crop_padding == 4
        assert settings.detection_timeout_seconds == 1.5
        assert settings.allowed_image_type_set == {"image/png"}
        assert settings.environment == "production"
        assert settings.debug is False
        assert settings.detection_config.max_image_dimension == 1024


class TestParseConfigOverrides:
    """Tests for the config form field parser."""

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty(self, raw):
        assert parse_config_overrides(raw) is None

    def test_object(self):
        assert parse_config_overrides('{"maxImageDimension": 800}') == {"maxImageDimension": 800}

    @pytest.mark.parametrize("raw", ["{oops", "[1, 2]", "42"])
    def test_invalid(self, raw):
        with pytest.raises(InvalidRequestError) as exc_info:
            parse_config_overrides(raw)

        assert exc_info.value.status_code == 400


class TestSchemas:
    """Tests for response schema conversion."""

    def test_detection_response_from_result(self):
        edge = DetectedLine(x1=10, y1=0, x2=10, y2=90, angle=0.0, position=10.0)
        result = DetectionResult(
            spines=[DetectedSpine(
                index=0,
                bounding_box=BoundingBox(0, 0, 10, 90),
                image_buffer=b"\xff\xd8data",
                right_edge=edge,
            )],
            filtered_count=2,
            shelf_rows=[ShelfRow(y=0, height=90)],
            debug_info=DetectionDebugInfo(image_width=100, image_height=90),
            edges_image_buffer=b"png",
        )

        response = DetectionResponse.from_result(result)

        assert response.total_spines == 1
        assert response.filtered_count == 2
        assert response.spines[0].left_edge is None
        assert response.spines[0].right_edge.position == 10.0
        assert response.spines[0].right_edge.orientation == "vertical"
        assert base64.b64decode(response.spines[0].image_base64) == b"\xff\xd8data"
        assert base64.b64decode(response.edges_image_base64) == b"png"

    def test_config_schema(self):
        schema = DetectionConfigSchema.from_config(DEFAULT_CONFIG)

        assert schema.model_dump() == DEFAULT_CONFIG.to_dict()


class TestErrors:
    """Tests for the error hierarchy."""

    @pytest.mark.parametrize("error, code, status", [
        (DecodeError("bad"), "DECODE_ERROR", 400),
        (BackendUnavailable("OpenCV"), "BACKEND_UNAVAILABLE", 503),
        (MalformedConfigError("x", "y"), "MALFORMED_CONFIG", 400),
        (DetectionError("resized"), "DETECTION_FAILED", 500),
    ])
    def test_codes(self, error, code, status):
        assert isinstance(error, ShelfSpineError)
        assert error.code == code
        assert error.status_code == status

    def test_detection_error_names_state(self):
        error = DetectionError("lines_found", detail="boom")

        assert error.state == "lines_found"
        assert "lines_found" in error.message
