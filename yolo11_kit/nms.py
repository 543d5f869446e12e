from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .errors import check_threshold
from .types import Detection


@dataclass
class NMSConfig:
    iou_threshold: float = 0.45
    # False: boxes with different labels never suppress each other.
    class_agnostic: bool = False

    def __post_init__(self) -> None:
        self.iou_threshold = check_threshold("nms_thres", self.iou_threshold)


def box_iou(a: Tuple[float, float, float, float], b: Tuple[float, float, float, float]) -> float:
    """
    IoU of two (x, y, w, h) boxes. A zero union counts as no overlap.
    """

    ax, ay, aw, ah = a
    bx, by, bw, bh = b
    iw = max(0.0, min(ax + aw, bx + bw) - max(ax, bx))
    ih = max(0.0, min(ay + ah, by + bh) - max(ay, by))
    inter = iw * ih
    union = aw * ah + bw * bh - inter
    if union <= 0:
        return 0.0
    return inter / union


def confidence_order(scores: np.ndarray) -> np.ndarray:
    """
    Indices that sort `scores` descending. Order among equal scores is unspecified.
    """

    return np.asarray(scores).argsort()[::-1]


def sort_by_confidence(detections: Sequence[Detection]) -> List[Detection]:
    return sorted(detections, key=lambda d: d.confidence, reverse=True)


def nms_sorted(
    boxes: np.ndarray,
    labels: np.ndarray,
    iou_threshold: float,
    class_agnostic: bool = False,
) -> np.ndarray:
    """
    Greedy NMS over candidates already sorted by confidence (highest first).

    Each candidate is compared against the boxes accepted so far and rejected
    as soon as one of them overlaps it with IoU > `iou_threshold`. Expects
    boxes shape (N, 4) in xywh. Returns indices into the sorted input, in
    acceptance order.
    """

    iou_threshold = check_threshold("nms_thres", iou_threshold)
    boxes = np.asarray(boxes, dtype=np.float32).reshape(-1, 4)
    labels = np.asarray(labels).reshape(-1)
    if labels.shape[0] != boxes.shape[0]:
        raise ValueError(f"Got {boxes.shape[0]} boxes but {labels.shape[0]} labels")
    if boxes.shape[0] == 0:
        return np.empty((0,), dtype=np.int64)

    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    x2 = boxes[:, 0] + boxes[:, 2]
    y2 = boxes[:, 1] + boxes[:, 3]
    areas = boxes[:, 2] * boxes[:, 3]

    picked: List[int] = []
    for i in range(boxes.shape[0]):
        kept = np.asarray(picked, dtype=np.int64)
        if not class_agnostic:
            kept = kept[labels[kept] == labels[i]]

        if kept.size > 0:
            w = np.maximum(0.0, np.minimum(x2[i], x2[kept]) - np.maximum(x1[i], x1[kept]))
            h = np.maximum(0.0, np.minimum(y2[i], y2[kept]) - np.maximum(y1[i], y1[kept]))
            inter = w * h
            union = areas[i] + areas[kept] - inter
            iou = np.divide(inter, union, out=np.zeros_like(inter), where=union > 0)
            if np.any(iou > iou_threshold):
                continue

        picked.append(i)

    return np.asarray(picked, dtype=np.int64)


def nms(boxes: np.ndarray, scores: np.ndarray, labels: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Sort by score, suppress, and return indices into the unsorted input
    (highest confidence first).
    """

    scores = np.asarray(scores).reshape(-1)
    if scores.size == 0:
        return np.empty((0,), dtype=np.int64)

    order = confidence_order(scores)
    boxes = np.asarray(boxes, dtype=np.float32).reshape(-1, 4)
    labels = np.asarray(labels).reshape(-1)
    keep = nms_sorted(boxes[order], labels[order], cfg.iou_threshold, cfg.class_agnostic)
    return order[keep]


def nms_detections(
    detections: Sequence[Detection],
    iou_threshold: float = 0.45,
    class_agnostic: bool = False,
) -> List[int]:
    cfg = NMSConfig(iou_threshold=iou_threshold, class_agnostic=class_agnostic)
    if not detections:
        return []
    boxes = np.array([d.as_xywh() for d in detections], dtype=np.float32)
    scores = np.array([d.confidence for d in detections], dtype=np.float32)
    labels = np.array([d.label for d in detections], dtype=np.int64)
    keep = nms(boxes, scores, labels, cfg)
    return [int(i) for i in keep]
