from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np
from tqdm import tqdm

from yolo11_kit import LetterboxConfig, YoloPostConfig, YoloPostprocessor, compute_letterbox, load_pipeline


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_ms: List[float]) -> TimingSummary:
    ms_sorted = sorted(values_ms)
    return TimingSummary(
        n=len(ms_sorted),
        mean_ms=float(statistics.fmean(ms_sorted)),
        p50_ms=_percentile(ms_sorted, 50.0),
        p90_ms=_percentile(ms_sorted, 90.0),
        p95_ms=_percentile(ms_sorted, 95.0),
    )


def _format_summary(label: str, s: TimingSummary) -> str:
    return (
        f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms "
        f"p90={s.p90_ms:.3f}ms p95={s.p95_ms:.3f}ms"
    )


def synthetic_output(num_anchors: int, num_labels: int, imgsz: int, seed: int = 0) -> np.ndarray:
    """
    Random (4 + num_labels, num_anchors) raw output, channels first like ncnn/ONNX exports.
    """

    rng = np.random.default_rng(seed)
    boxes = np.empty((4, num_anchors), dtype=np.float32)
    boxes[0:2] = rng.uniform(0, imgsz, size=(2, num_anchors))
    boxes[2:4] = rng.uniform(8, imgsz / 4, size=(2, num_anchors))
    # mostly background, like a real frame
    scores = rng.beta(0.5, 8.0, size=(num_labels, num_anchors)).astype(np.float32)
    return np.vstack([boxes, scores])


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark YOLO11 post-processing (decode + sort + NMS + mapping).")
    parser.add_argument("--image", default=None, help="Benchmark the full pipeline on this image (needs --model).")
    parser.add_argument("--model", default=None, help="Model for --image (ncnn stem, .onnx, .torchscript).")
    parser.add_argument("--backend", default=None, help="Force backend: ncnn / onnxruntime / torchscript.")
    parser.add_argument("--anchors", type=int, default=4725, help="Synthetic anchors (4725 for a 480px input).")
    parser.add_argument("--classes", type=int, default=80, help="Synthetic number of classes.")
    parser.add_argument("--imgsz", type=int, default=480, help="Letterbox input size.")
    parser.add_argument("--conf", type=float, default=0.25, help="Confidence threshold.")
    parser.add_argument("--nms", type=float, default=0.45, help="IoU threshold for NMS.")
    parser.add_argument("--class-agnostic", action="store_true", help="Class-agnostic NMS.")
    parser.add_argument("--iters", type=int, default=200, help="Timed iterations.")
    parser.add_argument("--warmup", type=int, default=10, help="Untimed warmup iterations.")
    args = parser.parse_args()

    if args.iters < 1:
        raise ValueError("--iters must be >= 1")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")
    if args.imgsz < 32:
        raise ValueError("--imgsz must be >= 32")

    post_cfg = YoloPostConfig(conf_threshold=args.conf, iou_threshold=args.nms, class_agnostic=args.class_agnostic)

    if args.image is not None:
        import cv2

        if args.model is None:
            raise ValueError("--image requires --model")
        img = cv2.imread(args.image)
        if img is None:
            raise FileNotFoundError(f"Could not read image at path: {args.image}")
        pipeline = load_pipeline(
            args.model,
            backend=args.backend,
            letterbox_cfg=LetterboxConfig(target_size=args.imgsz),
            post_cfg=post_cfg,
        )
        for _ in range(args.warmup):
            pipeline(img)

        t_pre: List[float] = []
        t_inf: List[float] = []
        t_post: List[float] = []
        counts: List[int] = []
        for _ in tqdm(range(args.iters), desc="pipeline"):
            counts.append(len(pipeline(img)))
            t_pre.append(pipeline.last_timings.preprocess_ms)
            t_inf.append(pipeline.last_timings.inference_ms)
            t_post.append(pipeline.last_timings.postprocess_ms)

        print(_format_summary("preprocess", _summarize_ms(t_pre)))
        print(_format_summary("inference", _summarize_ms(t_inf)))
        print(_format_summary("postprocess", _summarize_ms(t_post)))
        print(f"detections={counts[-1]} backend={pipeline.backend_name}")
        return 0

    preds = synthetic_output(args.anchors, args.classes, args.imgsz)
    params = compute_letterbox(1280, 720, target_size=args.imgsz)
    post = YoloPostprocessor(post_cfg)
    for _ in range(args.warmup):
        post.process(preds, params)

    t_post = []
    n_dets = 0
    for _ in tqdm(range(args.iters), desc="postprocess"):
        t0 = time.perf_counter()
        n_dets = len(post.process(preds, params))
        t_post.append((time.perf_counter() - t0) * 1000.0)

    print(_format_summary("postprocess", _summarize_ms(t_post)))
    print(f"anchors={args.anchors} classes={args.classes} detections={n_dets}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
