"""
YOLO11 output decoding and post-processing.

Core (NumPy only): decode the raw (4 + C) x anchors output, filter by
confidence, sort, greedy NMS and map boxes back through the letterbox.
OpenCV is needed for letterboxing images and drawing; inference runtimes
(ncnn, ONNX Runtime, TorchScript) are imported only by their backends.
"""

from .types import Detection, LetterboxParams
from .errors import InvalidShapeError, InvalidThresholdError, PostprocessError
from .letterbox import compute_letterbox, letterbox
from .decode import anchor_rows, decode_arrays, decode_detections
from .nms import NMSConfig, box_iou, confidence_order, nms, nms_detections, nms_sorted, sort_by_confidence
from .coords import map_detection, scale_boxes, to_padded_boxes
from .postprocess import YoloPostprocessor, YoloPostConfig
from .runtime import YoloPipeline, load_pipeline, find_project_root, resolve_path, LetterboxConfig, StageTimings
from .metadata import COCO_CLASSES, coco_class_names, load_class_names
from .visualize import draw_detections, format_label, save_result
from .config import RunConfig, load_run_config, run_config_from_payload

__all__ = [
    "Detection",
    "LetterboxParams",
    "InvalidShapeError",
    "InvalidThresholdError",
    "PostprocessError",
    "compute_letterbox",
    "letterbox",
    "anchor_rows",
    "decode_arrays",
    "decode_detections",
    "NMSConfig",
    "box_iou",
    "confidence_order",
    "nms",
    "nms_detections",
    "nms_sorted",
    "sort_by_confidence",
    "map_detection",
    "scale_boxes",
    "to_padded_boxes",
    "YoloPostprocessor",
    "YoloPostConfig",
    "YoloPipeline",
    "load_pipeline",
    "find_project_root",
    "resolve_path",
    "LetterboxConfig",
    "StageTimings",
    "COCO_CLASSES",
    "coco_class_names",
    "load_class_names",
    "draw_detections",
    "format_label",
    "save_result",
    "RunConfig",
    "load_run_config",
    "run_config_from_payload",
]
