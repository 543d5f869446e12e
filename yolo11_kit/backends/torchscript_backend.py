from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np


PathLike = Union[str, Path]


@dataclass(frozen=True)
class TorchScriptBackendConfig:
    """
    Configuration for TorchScript inference.

    - device: "cpu" or "cuda" (if available)
    - half: run the model in float16 (CUDA only)
    - output_index: YOLO11 TorchScript exports may return a tuple; the raw
      predictions are selected by this index
    """

    device: str = "cpu"
    half: bool = False
    output_index: int = 0


class TorchScriptBackend:
    """
    TorchScript backend for `yolo export format=torchscript` models.

    Returns the raw predictions as float32 NumPy without the batch axis.
    """

    def __init__(self, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("torch is required for the TorchScript backend. Install with `pip install torch`.") from e

        self._torch = torch
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        self.device = torch.device(cfg.device)
        if cfg.half and self.device.type != "cuda":
            raise ValueError("half=True requires a CUDA device.")
        self.half = cfg.half
        self.output_index = cfg.output_index

        model = torch.jit.load(str(self.model_path), map_location=self.device)
        model.eval()
        if self.half:
            model = model.half()
        self.model = model

    def infer(self, blob: np.ndarray) -> np.ndarray:
        torch = self._torch
        x = torch.from_numpy(np.ascontiguousarray(blob)).to(self.device)
        x = x.half() if self.half else x.float()

        with torch.inference_mode():
            y = self.model(x)

        if isinstance(y, (tuple, list)):
            y = y[self.output_index]

        out = y.detach().float().to("cpu").numpy()
        if out.ndim == 3 and out.shape[0] == 1:
            out = out[0]
        return out
