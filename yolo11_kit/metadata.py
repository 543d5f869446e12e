from __future__ import annotations

from typing import Dict

COCO_CLASSES = (
    "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck", "boat", "traffic light",
    "fire hydrant", "stop sign", "parking meter", "bench", "bird", "cat", "dog", "horse", "sheep", "cow",
    "elephant", "bear", "zebra", "giraffe", "backpack", "umbrella", "handbag", "tie", "suitcase", "frisbee",
    "skis", "snowboard", "sports ball", "kite", "baseball bat", "baseball glove", "skateboard", "surfboard",
    "tennis racket", "bottle", "wine glass", "cup", "fork", "knife", "spoon", "bowl", "banana", "apple",
    "sandwich", "orange", "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair", "couch",
    "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse", "remote", "keyboard", "cell phone",
    "microwave", "oven", "toaster", "sink", "refrigerator", "book", "clock", "vase", "scissors", "teddy bear",
    "hair drier", "toothbrush",
)


def coco_class_names() -> Dict[int, str]:
    return dict(enumerate(COCO_CLASSES))


def load_class_names(metadata_path: str) -> Dict[int, str]:
    """
    Load class names from a model metadata file.

    Two formats are understood. The `metadata.yaml` written next to ultralytics
    exports:

        names:
          0: person
          1: bicycle
          ...

    and a plain text file with one name per line (line number = class id).
    This function intentionally avoids adding a PyYAML dependency.
    """

    with open(metadata_path, "r", encoding="utf-8") as f:
        lines = [raw.rstrip("\n") for raw in f]

    if not any(line.strip() == "names:" for line in lines):
        return {i: line.strip() for i, line in enumerate(lines) if line.strip()}

    names: Dict[int, str] = {}
    in_names = False
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line == "names:":
            in_names = True
            continue
        if not in_names:
            continue
        # a new top-level key ends the names block
        if not raw[:1].isspace() and not line[0].isdigit():
            break

        # Parse "id: label"
        if ":" not in line:
            continue
        left, right = line.split(":", 1)
        left = left.strip()
        right = right.strip().strip("'").strip('"')
        if not left.isdigit():
            continue
        names[int(left)] = right

    return names
