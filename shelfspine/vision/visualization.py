"""
Debug drawing for detection results.
"""

from typing import Tuple

import cv2
import numpy as np

from shelfspine.vision.models import DetectionResult


def visualize_detection(
    image: np.ndarray,
    result: DetectionResult,
    spine_color: Tuple[int, int, int] = (0, 255, 0),
    row_color: Tuple[int, int, int] = (255, 128, 0),
    show_index: bool = True,
) -> np.ndarray:
    """
    Draw shelf rows and spine boxes on a copy of the original image.

    Args:
        image: Full-resolution BGR image the result was computed on
        result: Detection result
        spine_color: BGR color for spine boxes
        row_color: BGR color for shelf row boundaries
        show_index: Label each spine with its index

    Returns:
        Annotated copy of the image
    """
    vis_image = image.copy()
    if vis_image.ndim == 2:
        vis_image = cv2.cvtColor(vis_image, cv2.COLOR_GRAY2BGR)

    width = vis_image.shape[1]
    for row in result.shelf_rows:
        cv2.line(vis_image, (0, row.y), (width - 1, row.y), row_color, 2)
        cv2.line(vis_image, (0, row.bottom - 1), (width - 1, row.bottom - 1), row_color, 2)

    for spine in result.spines:
        box = spine.bounding_box
        cv2.rectangle(
            vis_image,
            (box.x, box.y),
            (box.right - 1, box.bottom - 1),
            spine_color,
            2
        )

        if show_index:
            label = str(spine.index)
            cv2.putText(
                vis_image,
                label,
                (box.x + 4, box.y + 20),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.6,
                spine_color,
                2
            )

    return vis_image
