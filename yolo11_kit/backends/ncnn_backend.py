from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import numpy as np


PathLike = Union[str, Path]


@dataclass(frozen=True)
class NcnnBackendConfig:
    """
    Configuration for ncnn inference.

    - use_vulkan: run on the GPU through Vulkan compute when available
    - int8: use int8 inference (for quantized param/bin pairs); fp16 arithmetic otherwise
    - num_threads: CPU worker threads
    - input_name/output_name: blob names of a pnnx/ultralytics YOLO11 export
    """

    use_vulkan: bool = True
    int8: bool = False
    num_threads: int = 4
    input_name: str = "in0"
    output_name: str = "out0"


def resolve_ncnn_paths(model_path: PathLike) -> Tuple[Path, Path]:
    """
    Accept a model stem (`models/yolo11n`) or either file of the pair and
    return (`<stem>.param`, `<stem>.bin`).
    """

    p = Path(model_path)
    stem = p.with_suffix("") if p.suffix in {".param", ".bin"} else p
    return Path(f"{stem}.param"), Path(f"{stem}.bin")


class NcnnBackend:
    """
    ncnn backend for YOLO11 param/bin models.

    Expects an NCHW float32 blob shaped (1, 3, H, W). Returns the raw output as
    a (num_channels, num_anchors) array.

    The loaded net is created once and reused; every call gets its own
    extractor. The net is not guarded against concurrent callers.
    """

    def __init__(self, model_path: PathLike, cfg: NcnnBackendConfig = NcnnBackendConfig()):
        try:
            import ncnn  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("ncnn is required for the ncnn backend. Install it with `pip install ncnn`.") from e

        self._ncnn = ncnn
        self.param_path, self.bin_path = resolve_ncnn_paths(model_path)
        for path in (self.param_path, self.bin_path):
            if not path.exists():
                raise FileNotFoundError(str(path))

        self.cfg = cfg
        net = ncnn.Net()
        net.opt.use_vulkan_compute = cfg.use_vulkan
        net.opt.use_bf16_storage = True
        if cfg.int8:
            net.opt.use_int8_inference = True
            net.opt.use_fp16_arithmetic = False
        else:
            net.opt.use_int8_inference = False
            net.opt.use_fp16_arithmetic = True
        net.opt.use_packing_layout = True
        net.opt.num_threads = cfg.num_threads

        if net.load_param(str(self.param_path)) != 0:
            raise RuntimeError(f"Failed to load ncnn param: {self.param_path}")
        if net.load_model(str(self.bin_path)) != 0:
            raise RuntimeError(f"Failed to load ncnn model: {self.bin_path}")
        self.net = net

    def infer(self, blob: np.ndarray) -> np.ndarray:
        if blob.ndim == 4:
            if blob.shape[0] != 1:
                raise ValueError(f"Batch > 1 is not supported (got shape {blob.shape}).")
            blob = blob[0]
        chw = np.ascontiguousarray(blob, dtype=np.float32)

        with self.net.create_extractor() as ex:
            ex.input(self.cfg.input_name, self._ncnn.Mat(chw).clone())
            ret, out = ex.extract(self.cfg.output_name)
            if ret != 0:
                raise RuntimeError(f"ncnn extract({self.cfg.output_name!r}) failed with code {ret}")
            return np.array(out)
