"""
Optional inference backends for yolo11_kit.

Backends are kept in a separate module so core functionality (decode, NMS,
coordinate mapping) stays lightweight and can be used without installing
inference runtimes. Every backend exposes `infer(blob) -> np.ndarray`.
"""

from __future__ import annotations

__all__ = []
