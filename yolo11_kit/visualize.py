from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Tuple, Union

import numpy as np

from .types import Detection


def format_label(det: Detection, class_names: Optional[Dict[int, str]] = None, show_score: bool = True) -> str:
    """
    "<name> <confidence %>", e.g. "person 87.5%". Labels missing from
    `class_names` fall back to the numeric index.
    """

    name = class_names.get(det.label, str(det.label)) if class_names else str(det.label)
    if show_score:
        return f"{name} {det.confidence * 100:.1f}%"
    return name


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    class_names: Optional[Dict[int, str]] = None,
    show_score: bool = True,
    color: Tuple[int, int, int] = (0, 255, 0),
    text_color: Tuple[int, int, int] = (0, 0, 0),
    box_thickness: int = 2,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw bounding boxes + labels on an OpenCV BGR image and return a copy.

    Args:
        image_bgr: input image in BGR (H, W, 3).
        detections: iterable of Detection in original image coordinates.
        class_names: optional mapping {label: class_name}.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    for det in detections:
        x1, y1, x2, y2 = (int(round(v)) for v in det.as_xyxy())
        cv2.rectangle(out, (x1, y1), (x2, y2), color, thickness=box_thickness)
        cv2.putText(
            out,
            format_label(det, class_names, show_score),
            (x1, max(y1 - 5, 0)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            text_color,
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )
    return out


def save_result(
    image_bgr: np.ndarray,
    detections: Sequence[Detection],
    path: Union[str, Path] = "output.jpg",
    *,
    class_names: Optional[Dict[int, str]] = None,
) -> Path:
    """
    Draw detections and write the image to `path`.
    """

    vis = draw_detections(image_bgr, detections, class_names=class_names)

    import cv2  # type: ignore

    out_path = Path(path)
    if not cv2.imwrite(str(out_path), vis):
        raise RuntimeError(f"Failed to write output image: {out_path}")
    return out_path
