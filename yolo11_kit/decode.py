from __future__ import annotations

from typing import List, Tuple

import numpy as np

from .errors import InvalidShapeError, check_threshold
from .types import Detection

# Physical layouts of the raw output buffer:
# - "channels_first": (num_channels, num_anchors), e.g. 84 x 4725 for a 480px YOLO11 export
# - "anchors_first":  (num_anchors, num_channels)
LAYOUTS = ("channels_first", "anchors_first")


def anchor_rows(
    preds: np.ndarray,
    num_anchors: int,
    num_channels: int,
    layout: str = "channels_first",
) -> np.ndarray:
    """
    View the raw output as a (num_anchors, num_channels) float32 array.

    The buffer carries no shape metadata of its own, so the dimensions and the
    physical layout are part of the contract with the inference engine. Flat
    buffers, 2-D arrays and 2-D arrays with a leading batch axis of 1 are accepted.
    """

    if layout not in LAYOUTS:
        raise ValueError(f"Unsupported layout {layout!r}, expected one of {LAYOUTS}")

    num_anchors = int(num_anchors)
    num_channels = int(num_channels)
    if num_channels < 5:
        raise InvalidShapeError(
            f"num_channels must be >= 5 (4 box values + at least one class), got {num_channels}"
        )
    if num_anchors < 0:
        raise InvalidShapeError(f"num_anchors must be >= 0, got {num_anchors}")

    p = np.asarray(preds, dtype=np.float32)
    if p.ndim == 3:
        if p.shape[0] != 1:
            raise InvalidShapeError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
        p = p[0]

    if p.ndim == 2:
        if layout == "channels_first":
            expected = (num_channels, num_anchors)
        else:
            expected = (num_anchors, num_channels)
        if p.shape != expected:
            raise InvalidShapeError(f"Output shape {p.shape} does not match {layout} layout {expected}")
    elif p.ndim != 1:
        raise InvalidShapeError(f"Unsupported output shape: {p.shape}")

    if p.size != num_anchors * num_channels:
        raise InvalidShapeError(
            f"Buffer holds {p.size} values, expected {num_anchors} x {num_channels} = {num_anchors * num_channels}"
        )

    if layout == "channels_first":
        return p.reshape(num_channels, num_anchors).T
    return p.reshape(num_anchors, num_channels)


def decode_arrays(
    preds: np.ndarray,
    num_anchors: int,
    num_channels: int,
    conf_thres: float,
    img_w: float,
    img_h: float,
    layout: str = "channels_first",
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Decode raw YOLO11 output into candidates in padded-model coordinates.

    Returns:
        boxes: (N, 4) float32 as x, y, width, height
        scores: (N,) best class score per kept anchor
        labels: (N,) int64 class index of that score
    """

    conf_thres = check_threshold("conf_thres", conf_thres)
    if img_w <= 0 or img_h <= 0:
        raise InvalidShapeError(f"Image size must be > 0, got ({img_w}, {img_h})")

    rows = anchor_rows(preds, num_anchors, num_channels, layout)
    class_scores = rows[:, 4:]

    # np.argmax returns the first maximal index, so ties go to the lowest label.
    labels = np.argmax(class_scores, axis=1)
    scores = class_scores[np.arange(rows.shape[0]), labels]

    keep = scores > conf_thres
    cx, cy, w, h = rows[keep, :4].T

    # cxcywh -> xyxy, each corner clamped to the padded image
    x0 = np.clip(cx - 0.5 * w, 0.0, img_w)
    y0 = np.clip(cy - 0.5 * h, 0.0, img_h)
    x1 = np.clip(cx + 0.5 * w, 0.0, img_w)
    y1 = np.clip(cy + 0.5 * h, 0.0, img_h)
    boxes = np.stack([x0, y0, x1 - x0, y1 - y0], axis=1).astype(np.float32)

    return boxes, scores[keep], labels[keep].astype(np.int64)


def decode_detections(
    preds: np.ndarray,
    num_anchors: int,
    num_channels: int,
    conf_thres: float,
    img_w: float,
    img_h: float,
    layout: str = "channels_first",
) -> List[Detection]:
    boxes, scores, labels = decode_arrays(preds, num_anchors, num_channels, conf_thres, img_w, img_h, layout)
    return [
        Detection(x=float(x), y=float(y), width=float(w), height=float(h), label=int(label), confidence=float(score))
        for (x, y, w, h), score, label in zip(boxes, scores, labels)
    ]
