"""
Line Merger

Collapses near-duplicate parallel detections of the same physical edge
into one representative line.
"""

from typing import List

import numpy as np

from shelfspine.vision.models import DetectedLine, LineOrientation


DEFAULT_MERGE_THRESHOLD = 8.0


def merge_nearby_lines(
    lines: List[DetectedLine],
    merge_threshold: float = DEFAULT_MERGE_THRESHOLD,
) -> List[DetectedLine]:
    """
    Merge lines whose positions are within `merge_threshold` pixels.

    Lines are sorted by position and grouped greedily: a line joins the
    current group when it is within the threshold of the group's last
    member, so a group can drift further than the threshold end to end.

    The output is in group order; callers that need a strict ordering
    re-sort by position.
    """
    if not lines:
        return []

    ordered = sorted(lines, key=lambda line: line.position)

    merged = []
    group = [ordered[0]]

    for line in ordered[1:]:
        if abs(line.position - group[-1].position) <= merge_threshold:
            group.append(line)
        else:
            merged.append(merge_group(group))
            group = [line]

    merged.append(merge_group(group))
    return merged


def merge_group(group: List[DetectedLine]) -> DetectedLine:
    """
    One representative line for a group.

    Cross-axis coordinates are averaged; along-axis coordinates take the
    tightest enclosing span, so the merged line covers the full extent of
    its members.
    """
    if len(group) == 1:
        return group[0]

    angle = float(np.mean([line.angle for line in group]))
    orientation = group[0].orientation

    if orientation == LineOrientation.HORIZONTAL:
        y1 = float(np.mean([line.y1 for line in group]))
        y2 = float(np.mean([line.y2 for line in group]))
        x1 = min(min(line.x1, line.x2) for line in group)
        x2 = max(max(line.x1, line.x2) for line in group)
        return DetectedLine(
            x1=int(x1),
            y1=int(round(y1)),
            x2=int(x2),
            y2=int(round(y2)),
            angle=angle,
            position=(y1 + y2) / 2,
            orientation=orientation,
        )

    x1 = float(np.mean([line.x1 for line in group]))
    x2 = float(np.mean([line.x2 for line in group]))
    y1 = min(min(line.y1, line.y2) for line in group)
    y2 = max(max(line.y1, line.y2) for line in group)
    return DetectedLine(
        x1=int(round(x1)),
        y1=int(y1),
        x2=int(round(x2)),
        y2=int(y2),
        angle=angle,
        position=(x1 + x2) / 2,
        orientation=orientation,
    )
