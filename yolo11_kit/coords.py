from __future__ import annotations

import numpy as np

from .types import Detection, LetterboxParams


def scale_boxes(boxes: np.ndarray, params: LetterboxParams) -> np.ndarray:
    """
    Map (N, 4) xywh boxes from the padded model input back to the original image.

    Corners are shifted by the before-padding, divided by the scale and clamped
    to [0, orig_w - 1] / [0, orig_h - 1]. Width and height never go negative.
    """

    b = np.asarray(boxes, dtype=np.float32).reshape(-1, 4)

    x0 = (b[:, 0] - params.pad_left) / params.scale
    y0 = (b[:, 1] - params.pad_top) / params.scale
    x1 = (b[:, 0] + b[:, 2] - params.pad_left) / params.scale
    y1 = (b[:, 1] + b[:, 3] - params.pad_top) / params.scale

    orig_w, orig_h = params.orig_size
    max_x = orig_w - 1.0
    max_y = orig_h - 1.0
    x0 = np.clip(x0, 0.0, max_x)
    y0 = np.clip(y0, 0.0, max_y)
    x1 = np.clip(x1, 0.0, max_x)
    y1 = np.clip(y1, 0.0, max_y)

    return np.stack([x0, y0, np.maximum(x1 - x0, 0.0), np.maximum(y1 - y0, 0.0)], axis=1).astype(np.float32)


def map_detection(det: Detection, params: LetterboxParams) -> Detection:
    (x, y, w, h), = scale_boxes(np.array([det.as_xywh()], dtype=np.float32), params)
    return Detection(x=float(x), y=float(y), width=float(w), height=float(h), label=det.label, confidence=det.confidence)


def to_padded_boxes(boxes: np.ndarray, params: LetterboxParams) -> np.ndarray:
    """
    Forward letterbox transform: original-image xywh boxes -> padded model input.
    """

    b = np.asarray(boxes, dtype=np.float32).reshape(-1, 4)
    out = b * params.scale
    out[:, 0] += params.pad_left
    out[:, 1] += params.pad_top
    return out.astype(np.float32)
