"""
Spine Region Calculator

Turns a left-to-right sequence of vertical spine edges into candidate
spine bounding boxes using width bounds.
"""

from typing import List, Optional

from shelfspine.vision.config import DEFAULT_CONFIG, DetectionConfig
from shelfspine.vision.models import BoundingBox, DetectedLine, SpineRegion


def calculate_spine_regions(
    lines: List[DetectedLine],
    image_width: int,
    image_height: int,
    config: Optional[DetectionConfig] = None,
) -> List[SpineRegion]:
    """
    Candidate spine regions between consecutive vertical lines.

    Three kinds of region are checked against the configured width bounds:
    - image left edge to the first line (strictly inside the bounds)
    - each gap between neighbouring lines (bounds inclusive)
    - last line to the image right edge (strictly inside the bounds)

    With no lines at all, the whole image is returned as a single region.

    Args:
        lines: Vertical lines sorted by position, left to right
        image_width: Width of the image the lines belong to
        image_height: Height of that image; every region spans it fully
        config: Detection configuration

    Returns:
        Regions ordered left to right
    """
    config = config or DEFAULT_CONFIG

    if not lines:
        return [SpineRegion(
            bounding_box=BoundingBox(x=0, y=0, width=image_width, height=image_height),
        )]

    min_width, max_width = config.width_bounds(image_width)
    regions = []

    first = lines[0]
    if min_width < first.position < max_width:
        regions.append(SpineRegion(
            bounding_box=BoundingBox(
                x=0,
                y=0,
                width=int(round(first.position)),
                height=image_height,
            ),
            left_edge=None,
            right_edge=first,
        ))

    for left, right in zip(lines, lines[1:]):
        gap = right.position - left.position
        if min_width <= gap <= max_width:
            regions.append(SpineRegion(
                bounding_box=BoundingBox(
                    x=int(round(left.position)),
                    y=0,
                    width=int(round(gap)),
                    height=image_height,
                ),
                left_edge=left,
                right_edge=right,
            ))

    last = lines[-1]
    right_gap = image_width - last.position
    if min_width < right_gap < max_width:
        regions.append(SpineRegion(
            bounding_box=BoundingBox(
                x=int(round(last.position)),
                y=0,
                width=int(round(right_gap)),
                height=image_height,
            ),
            left_edge=last,
            right_edge=None,
        ))

    return regions


def add_padding(
    box: BoundingBox,
    padding: int,
    image_width: int,
    image_height: int,
) -> BoundingBox:
    """Grow a box by `padding` pixels on every side, clipped to the image."""
    if padding <= 0:
        return box

    x1 = max(0, box.x - padding)
    y1 = max(0, box.y - padding)
    x2 = min(image_width, box.right + padding)
    y2 = min(image_height, box.bottom + padding)
    return BoundingBox(x=x1, y=y1, width=x2 - x1, height=y2 - y1)
