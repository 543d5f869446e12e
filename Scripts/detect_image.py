import argparse
import sys
from pathlib import Path

import cv2

from yolo11_kit import (
    LetterboxConfig,
    RunConfig,
    YoloPostConfig,
    coco_class_names,
    load_class_names,
    load_pipeline,
    save_result,
)
from yolo11_kit.config import apply_run_config, collect_cli_dests, load_run_config, run_config_from_payload


def build_parser() -> argparse.ArgumentParser:
    defaults = RunConfig()
    parser = argparse.ArgumentParser(description="Run YOLO11 detection on one image and save the visualization.")
    parser.add_argument("image", help="Path to an input image.")
    parser.add_argument("--config", default=None, help="Optional JSON run config; command-line flags take precedence.")
    parser.add_argument("--model", default=defaults.model, help="ncnn stem / param file, .onnx or .torchscript model.")
    parser.add_argument("--backend", default=defaults.backend, help="Force backend: ncnn / onnxruntime / torchscript.")
    parser.add_argument("--metadata", default=defaults.metadata, help="Class names file (defaults to COCO names).")
    parser.add_argument("--out", dest="output", default=defaults.output, help="Output image path.")
    parser.add_argument("--imgsz", dest="target_size", type=int, default=defaults.target_size, help="Letterbox size.")
    parser.add_argument("--stride", type=int, default=defaults.stride, help="Model stride for padding.")
    parser.add_argument("--conf", dest="conf_thres", type=float, default=defaults.conf_thres, help="Confidence threshold.")
    parser.add_argument("--nms", dest="nms_thres", type=float, default=defaults.nms_thres, help="IoU threshold for NMS.")
    parser.add_argument("--class-agnostic", action="store_true", help="Suppress overlapping boxes across classes.")
    parser.add_argument("--int8", action="store_true", help="ncnn: use int8 inference.")
    parser.add_argument("--no-vulkan", dest="use_vulkan", action="store_false", help="ncnn: run on CPU only.")
    parser.add_argument("--threads", dest="num_threads", type=int, default=defaults.num_threads, help="Worker threads.")
    parser.add_argument("--show", action="store_true", help="Show a window with visualized detections.")
    return parser


def main(argv=None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.config:
        payload = load_run_config(Path(args.config))
        apply_run_config(args=args, payload=payload, cli_dests=collect_cli_dests(parser, argv))

    cfg = run_config_from_payload({k: v for k, v in vars(args).items() if k not in ("image", "config", "show")})
    if cfg.model is None:
        parser.error("--model is required (on the command line or in --config)")

    print(
        f"[CONFIG] INT8={int(cfg.int8)} conf={cfg.conf_thres:.2f} nms={cfg.nms_thres:.2f} "
        f"agnostic={int(cfg.class_agnostic)} imgsz={cfg.target_size}"
    )

    img = cv2.imread(args.image)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {args.image}")

    class_names = load_class_names(cfg.metadata) if cfg.metadata else coco_class_names()

    pipeline = load_pipeline(
        model_path=cfg.model,
        backend=cfg.backend,
        letterbox_cfg=LetterboxConfig(target_size=cfg.target_size, stride=cfg.stride),
        post_cfg=YoloPostConfig(
            conf_threshold=cfg.conf_thres,
            iou_threshold=cfg.nms_thres,
            class_agnostic=cfg.class_agnostic,
        ),
        ncnn_use_vulkan=cfg.use_vulkan,
        ncnn_int8=cfg.int8,
        num_threads=cfg.num_threads,
    )

    detections = pipeline(img)
    timings = pipeline.last_timings
    print(f"[INFO] out shape: {pipeline.last_output_shape}")
    print(
        f"[TIME] Preprocess: {timings.preprocess_ms:.2f} ms | Inference: {timings.inference_ms:.2f} ms "
        f"| Postprocess: {timings.postprocess_ms:.2f} ms"
    )

    for det in detections:
        name = class_names.get(det.label, str(det.label))
        print(name, f"{det.confidence:.3f}", tuple(round(v, 1) for v in det.as_xywh()))

    out_path = save_result(img, detections, cfg.output, class_names=class_names)
    print(f"[INFO] Saved result as {out_path} ({len(detections)} objects)")

    if args.show:
        cv2.imshow("detections", cv2.imread(str(out_path)))
        cv2.waitKey(0)
        cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
