from __future__ import annotations

import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .letterbox import letterbox, round_up_to_stride
from .postprocess import YoloPostConfig, YoloPostprocessor
from .types import Detection, LetterboxParams


PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Best-effort project root discovery, so `models/yolo11n` resolves the same
    way from scripts, tests and notebooks.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    Absolute paths are returned as-is; relative ones resolve against `root`,
    or the project root when root is "auto"/None.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


@dataclass(frozen=True)
class LetterboxConfig:
    target_size: int = 480
    stride: int = 32
    color: Tuple[int, int, int] = (114, 114, 114)
    rect: bool = False


@dataclass(frozen=True)
class PreprocessResult:
    blob: np.ndarray
    params: LetterboxParams


@dataclass(frozen=True)
class StageTimings:
    preprocess_ms: float
    inference_ms: float
    postprocess_ms: float


class YoloPipeline:
    """
    Plug-and-play pipeline: preprocess (letterbox) -> inference -> postprocess.

    The pipeline expects BGR images (OpenCV-style) as `np.ndarray` and returns
    a list of `Detection` in original image coordinates, highest confidence first.

    `infer_fn` (usually a backend's `infer`) is owned by the caller and may be
    shared between pipelines; it is not reentrant, so callers running frames
    from several threads must serialize calls themselves.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        *,
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
        letterbox_cfg: LetterboxConfig = LetterboxConfig(),
        post_cfg: YoloPostConfig = YoloPostConfig(),
    ):
        self._infer_fn = infer_fn
        self.backend = backend
        self.backend_name = backend_name
        self.letterbox_cfg = letterbox_cfg
        self.post = YoloPostprocessor(post_cfg)
        self.last_timings: Optional[StageTimings] = None
        self.last_output_shape: Optional[Tuple[int, ...]] = None

    def preprocess(self, image_bgr: np.ndarray) -> PreprocessResult:
        if image_bgr is None or not hasattr(image_bgr, "shape"):
            raise TypeError("image_bgr must be a NumPy array (BGR).")
        if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
            raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

        img, params = letterbox(
            image_bgr,
            target_size=self.letterbox_cfg.target_size,
            stride=self.letterbox_cfg.stride,
            color=self.letterbox_cfg.color,
            rect=self.letterbox_cfg.rect,
        )

        # BGR -> RGB, normalize, HWC -> CHW, add batch
        blob = img[:, :, ::-1].astype(np.float32) / 255.0
        blob = np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])

        return PreprocessResult(blob=blob, params=params)

    def __call__(self, image_bgr: np.ndarray) -> List[Detection]:
        t0 = time.perf_counter()
        prep = self.preprocess(image_bgr)
        t1 = time.perf_counter()
        preds = self._infer_fn(prep.blob)
        t2 = time.perf_counter()
        detections = self.post.process(preds, prep.params)
        t3 = time.perf_counter()

        self.last_output_shape = tuple(np.shape(preds))
        self.last_timings = StageTimings(
            preprocess_ms=(t1 - t0) * 1000.0,
            inference_ms=(t2 - t1) * 1000.0,
            postprocess_ms=(t3 - t2) * 1000.0,
        )
        return detections


def fit_letterbox_to_input(
    letterbox_cfg: LetterboxConfig,
    input_hw: Optional[Tuple[int, int]],
) -> LetterboxConfig:
    """
    Match the letterbox to a model with a fixed (H, W) input, e.g. a stock
    640x640 ONNX export. Dynamic inputs (None) keep `letterbox_cfg` as-is.
    """

    if input_hw is None:
        return letterbox_cfg

    h, w = input_hw
    if h != w:
        raise ValueError(f"Model input {w}x{h} is not square; letterbox only produces square inputs.")
    if letterbox_cfg.rect:
        raise ValueError(f"Model input is fixed at {w}x{h}; rect letterboxing produces variable sizes.")

    padded = round_up_to_stride(letterbox_cfg.target_size, letterbox_cfg.stride)
    if padded == h:
        return letterbox_cfg
    if h % letterbox_cfg.stride != 0:
        raise ValueError(
            f"Model input size {h} is not a multiple of stride {letterbox_cfg.stride} "
            f"(letterbox target_size={letterbox_cfg.target_size})"
        )
    return replace(letterbox_cfg, target_size=h)


def infer_backend_name(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in {".param", ".bin"}:
        return "ncnn"
    if suffix == ".onnx":
        return "onnxruntime"
    if suffix in {".torchscript", ".ts", ".pt"}:
        return "torchscript"
    # ultralytics export directory (yolo11n_ncnn_model/) or a bare param/bin stem
    if (path / "model.ncnn.param").exists() or Path(f"{path}.param").exists():
        return "ncnn"
    raise ValueError(f"Could not infer backend from '{path}'. Pass backend=... explicitly.")


def load_pipeline(
    model_path: PathLike,
    *,
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
    letterbox_cfg: LetterboxConfig = LetterboxConfig(),
    post_cfg: YoloPostConfig = YoloPostConfig(),
    ncnn_use_vulkan: bool = True,
    ncnn_int8: bool = False,
    num_threads: int = 4,
    onnx_providers: Optional[Sequence[str]] = None,
    torch_device: str = "cpu",
    torch_half: bool = False,
) -> YoloPipeline:
    """
    Create a pipeline for a model on disk.

        pipe = load_pipeline("models/yolo11n")  # models/yolo11n.param + .bin via ncnn

    Args:
        model_path: model file, ncnn param/bin stem or ultralytics ncnn export dir;
            relative paths resolve against project root by default
        backend: "ncnn", "onnxruntime", "torchscript" or None to infer from the path
        root: base directory for resolving relative model paths ("auto" uses best-effort project root)
    """

    resolved = resolve_path(model_path, root=root)
    chosen = (backend or infer_backend_name(resolved)).lower()

    if chosen == "ncnn":
        from .backends.ncnn_backend import NcnnBackend, NcnnBackendConfig

        if resolved.is_dir():
            resolved = resolved / "model.ncnn"
        ncnn_backend = NcnnBackend(
            resolved,
            NcnnBackendConfig(use_vulkan=ncnn_use_vulkan, int8=ncnn_int8, num_threads=num_threads),
        )
        return YoloPipeline(
            ncnn_backend.infer,
            backend=ncnn_backend,
            backend_name="ncnn",
            letterbox_cfg=letterbox_cfg,
            post_cfg=post_cfg,
        )

    if chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        ort_backend = OnnxRuntimeBackend(
            resolved,
            OnnxRuntimeBackendConfig(providers=onnx_providers, num_threads=num_threads),
        )
        return YoloPipeline(
            ort_backend.infer,
            backend=ort_backend,
            backend_name="onnxruntime",
            letterbox_cfg=fit_letterbox_to_input(letterbox_cfg, ort_backend.input_hw),
            post_cfg=post_cfg,
        )

    if chosen == "torchscript":
        from .backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        ts_backend = TorchScriptBackend(
            resolved,
            TorchScriptBackendConfig(device=torch_device, half=torch_half),
        )
        return YoloPipeline(
            ts_backend.infer,
            backend=ts_backend,
            backend_name="torchscript",
            letterbox_cfg=letterbox_cfg,
            post_cfg=post_cfg,
        )

    raise ValueError(f"Unsupported backend: {backend!r}")
