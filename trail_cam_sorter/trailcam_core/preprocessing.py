"""
Region cropping and composition for the Trail Cam Sorter.

Builds the single grayscale image handed to OCR: every caption region is
cropped from the frame, placed right-aligned into a fixed-size canvas, and
the canvases are stacked top to bottom in region order.
"""

from typing import List, Sequence

import cv2
import numpy as np

from .utils import BoundingBox, CompositionFailure, RegionSpec


class RegionCompositor:
    """Crops caption regions and stacks them into one OCR-friendly image."""

    def __init__(
        self,
        canvas_width: int = 520,
        canvas_height: int = 60
    ):
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height

    def bounding_boxes(
        self,
        image: np.ndarray,
        region_specs: Sequence[RegionSpec]
    ) -> List[BoundingBox]:
        """Compute pixel bounding boxes for each region, in declaration order."""
        if image is None or image.size == 0:
            raise CompositionFailure("Cannot compute regions of an empty image.")

        height, width = image.shape[:2]
        return [BoundingBox.from_region(spec, width, height) for spec in region_specs]

    def compose(
        self,
        image: np.ndarray,
        region_specs: Sequence[RegionSpec]
    ) -> np.ndarray:
        """
        Build the composite image.

        Args:
            image: Decoded BGR (or BGRA / grayscale) frame
            region_specs: Regions to crop, top to bottom in the result

        Returns:
            2-D uint8 image of shape (canvas_height * len(region_specs), canvas_width)
        """
        if not region_specs:
            raise CompositionFailure("No regions to compose.")

        canvases = []
        for box in self.bounding_boxes(image, region_specs):
            if box.is_empty():
                raise CompositionFailure(
                    f"Region '{box.label}' falls outside the frame: "
                    f"({box.left}, {box.top}, {box.right}, {box.bottom})"
                )

            crop = image[box.top:box.bottom, box.left:box.right]
            gray = self._to_gray(crop, box.label)
            canvases.append(self._place_on_canvas(gray))

        joined = canvases[0]
        for canvas in canvases[1:]:
            joined = self._vconcat(joined, canvas)

        return self._to_gray(joined, "composite")

    def _to_gray(self, image: np.ndarray, label: str) -> np.ndarray:
        """Convert to single-channel uint8."""
        try:
            if image.ndim == 2:
                gray = image
            elif image.shape[2] == 4:
                gray = cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
            elif image.shape[2] == 3:
                gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
            elif image.shape[2] == 1:
                gray = image[:, :, 0]
            else:
                raise CompositionFailure(
                    f"Unsupported channel count for '{label}': {image.shape[2]}"
                )
        except cv2.error as e:
            raise CompositionFailure(f"Failed to convert '{label}' to grayscale: {e}") from e

        if gray.dtype != np.uint8:
            gray = cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)

        return np.ascontiguousarray(gray)

    def _place_on_canvas(self, gray: np.ndarray) -> np.ndarray:
        """Right-align a crop on a black canvas, shrinking it if it does not fit."""
        h, w = gray.shape[:2]

        scale = min(self.canvas_width / w, self.canvas_height / h, 1.0)
        if scale < 1.0:
            new_w = max(1, int(w * scale))
            new_h = max(1, int(h * scale))
            gray = cv2.resize(gray, (new_w, new_h), interpolation=cv2.INTER_AREA)
            h, w = new_h, new_w

        canvas = np.zeros((self.canvas_height, self.canvas_width), dtype=np.uint8)
        x = self.canvas_width - w
        canvas[0:h, x:x + w] = gray
        return canvas

    def _vconcat(self, top: np.ndarray, bottom: np.ndarray) -> np.ndarray:
        """Stack two images vertically."""
        if top.shape[1] != bottom.shape[1]:
            raise CompositionFailure(
                f"Images must have the same width ({top.shape[1]} != {bottom.shape[1]})."
            )
        return np.vstack([top, bottom])
