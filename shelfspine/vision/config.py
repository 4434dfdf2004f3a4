"""
Detection configuration.

DetectionConfig is immutable: callers derive new instances with
with_overrides() instead of mutating a shared one, so a single config can
be used from several threads at once.
"""

import math
import os
from dataclasses import dataclass, asdict, fields, replace
from typing import Any, Dict, Mapping, Optional

from loguru import logger

from shelfspine.errors import MalformedConfigError


# camelCase names accepted from JSON clients
FIELD_ALIASES = {
    "minSpineWidthPercent": "min_spine_width_percent",
    "maxSpineWidthPercent": "max_spine_width_percent",
    "verticalAngleTolerance": "vertical_angle_tolerance",
    "minLineLengthPercent": "min_line_length_percent",
    "cannyLowThreshold": "canny_low_threshold",
    "cannyHighThreshold": "canny_high_threshold",
    "maxImageDimension": "max_image_dimension",
}

ENV_PREFIX = "SPINE_"


@dataclass(frozen=True)
class DetectionConfig:
    """Tunable thresholds for spine detection."""

    # Spine width bounds, as percent of image width
    min_spine_width_percent: float = 0.8
    max_spine_width_percent: float = 12.0

    # Degrees off vertical still accepted as a spine edge
    vertical_angle_tolerance: float = 15.0

    # Minimum Hough segment length, as percent of row height
    min_line_length_percent: float = 15.0

    # Canny hysteresis thresholds
    canny_low_threshold: float = 30.0
    canny_high_threshold: float = 120.0

    # Longest side of the working-resolution copy
    max_image_dimension: int = 2000

    def __post_init__(self):
        values = {f.name: _as_number(f.name, getattr(self, f.name)) for f in fields(self)}

        for name in (
            "min_spine_width_percent",
            "max_spine_width_percent",
            "vertical_angle_tolerance",
            "min_line_length_percent",
            "canny_low_threshold",
            "canny_high_threshold",
        ):
            if values[name] < 0:
                logger.warning(f"Clamping negative {name}={values[name]} to 0")
                values[name] = 0.0

        if values["min_spine_width_percent"] > values["max_spine_width_percent"]:
            logger.warning("min_spine_width_percent exceeds max_spine_width_percent, swapping")
            values["min_spine_width_percent"], values["max_spine_width_percent"] = (
                values["max_spine_width_percent"],
                values["min_spine_width_percent"],
            )

        if values["canny_low_threshold"] > values["canny_high_threshold"]:
            logger.warning("canny_low_threshold exceeds canny_high_threshold, swapping")
            values["canny_low_threshold"], values["canny_high_threshold"] = (
                values["canny_high_threshold"],
                values["canny_low_threshold"],
            )

        if values["vertical_angle_tolerance"] > 90:
            logger.warning(f"Clamping vertical_angle_tolerance={values['vertical_angle_tolerance']} to 90")
            values["vertical_angle_tolerance"] = 90.0

        if values["min_line_length_percent"] > 100:
            logger.warning(f"Clamping min_line_length_percent={values['min_line_length_percent']} to 100")
            values["min_line_length_percent"] = 100.0

        max_dim = int(values["max_image_dimension"])
        if max_dim < 1:
            logger.warning(f"Clamping max_image_dimension={max_dim} to 1")
            max_dim = 1
        values["max_image_dimension"] = max_dim

        for name, value in values.items():
            object.__setattr__(self, name, value)

    @classmethod
    def from_mapping(cls, overrides: Optional[Mapping[str, Any]] = None) -> "DetectionConfig":
        """Build a config from defaults plus a partial mapping of overrides."""
        return DEFAULT_CONFIG.with_overrides(overrides)

    @classmethod
    def from_env(cls) -> "DetectionConfig":
        """
        Load overrides from SPINE_<FIELD> environment variables.

        For example SPINE_MAX_IMAGE_DIMENSION=1600.
        """
        overrides = {}
        for f in fields(cls):
            raw = os.getenv(ENV_PREFIX + f.name.upper())
            if raw is not None and raw.strip():
                overrides[f.name] = raw.strip()
        return cls.from_mapping(overrides)

    def with_overrides(self, overrides: Optional[Mapping[str, Any]] = None) -> "DetectionConfig":
        """Return a copy with the recognized keys of `overrides` applied."""
        if not overrides:
            return self

        known = {f.name for f in fields(self)}
        changes: Dict[str, Any] = {}
        for key, value in overrides.items():
            name = FIELD_ALIASES.get(key, key)
            if name not in known:
                logger.warning(f"Ignoring unknown detection config key: {key}")
                continue
            if value is None:
                continue
            changes[name] = value

        return replace(self, **changes)

    def width_bounds(self, image_width: float):
        """(min_width, max_width) in pixels for an image of this width."""
        return (
            image_width * (self.min_spine_width_percent / 100),
            image_width * (self.max_spine_width_percent / 100),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _as_number(name: str, value) -> float:
    if isinstance(value, bool):
        raise MalformedConfigError(name, value)
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        else:
            number = float(str(value).strip())
    except (TypeError, ValueError, OverflowError):
        raise MalformedConfigError(name, value)
    # NaN compares False against every bound, so it would slip past the clamps
    if not math.isfinite(number):
        raise MalformedConfigError(name, value)
    return number


DEFAULT_CONFIG = DetectionConfig()


def get_default_config() -> DetectionConfig:
    """Return the default detection configuration."""
    return DEFAULT_CONFIG
