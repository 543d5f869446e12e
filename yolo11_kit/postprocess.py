from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .coords import scale_boxes
from .decode import LAYOUTS, decode_arrays
from .errors import InvalidShapeError, check_threshold
from .nms import NMSConfig, nms
from .types import Detection, LetterboxParams


@dataclass
class YoloPostConfig:
    """
    YOLO11 post-processing settings.
    """
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    # If True, overlapping boxes suppress each other across labels.
    class_agnostic: bool = False
    # Physical layout of the raw output: "channels_first" (C+4, A) or "anchors_first" (A, C+4).
    layout: str = "channels_first"

    def __post_init__(self) -> None:
        self.conf_threshold = check_threshold("conf_thres", self.conf_threshold)
        self.iou_threshold = check_threshold("nms_thres", self.iou_threshold)
        if self.layout not in LAYOUTS:
            raise ValueError(f"Unsupported layout {self.layout!r}, expected one of {LAYOUTS}")


class YoloPostprocessor:
    """
    Raw YOLO11 output -> final detections in original image coordinates.

    Stages: decode (confidence filter) -> sort by confidence -> greedy NMS ->
    inverse letterbox mapping. Stateless between calls.
    """

    def __init__(self, cfg: YoloPostConfig):
        self.cfg = cfg
        self.nms_cfg = NMSConfig(iou_threshold=cfg.iou_threshold, class_agnostic=cfg.class_agnostic)

    def process(
        self,
        preds: np.ndarray,
        params: LetterboxParams,
        num_anchors: Optional[int] = None,
        num_channels: Optional[int] = None,
    ) -> List[Detection]:
        """
        Args:
            preds: raw output for a single image
            params: letterbox parameters used to build the model input
            num_anchors/num_channels: required for flat buffers, read from the
                array shape (according to `cfg.layout`) otherwise
        """

        num_anchors, num_channels = self._resolve_dims(preds, num_anchors, num_channels)
        padded_w, padded_h = params.padded_size
        boxes, scores, labels = decode_arrays(
            preds,
            num_anchors,
            num_channels,
            self.cfg.conf_threshold,
            padded_w,
            padded_h,
            layout=self.cfg.layout,
        )
        if scores.size == 0:
            return []

        keep = nms(boxes, scores, labels, self.nms_cfg)
        boxes = scale_boxes(boxes[keep], params)

        return [
            Detection(x=float(x), y=float(y), width=float(w), height=float(h), label=int(label), confidence=float(score))
            for (x, y, w, h), score, label in zip(boxes, scores[keep], labels[keep])
        ]

    def _resolve_dims(
        self,
        preds: np.ndarray,
        num_anchors: Optional[int],
        num_channels: Optional[int],
    ) -> Tuple[int, int]:
        if num_anchors is not None and num_channels is not None:
            return int(num_anchors), int(num_channels)

        shape = np.shape(preds)
        if len(shape) == 3 and shape[0] == 1:
            shape = shape[1:]
        if len(shape) != 2:
            raise InvalidShapeError(
                f"Cannot infer (num_anchors, num_channels) from output shape {np.shape(preds)}; pass them explicitly."
            )

        if self.cfg.layout == "channels_first":
            channels, anchors = shape
        else:
            anchors, channels = shape
        return int(anchors), int(channels)
