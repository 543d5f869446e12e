from typing import Tuple

import numpy as np

from .types import LetterboxParams


def round_up_to_stride(value: int, stride: int) -> int:
    return (value + stride - 1) // stride * stride


def compute_letterbox(
    orig_w: int,
    orig_h: int,
    target_size: int = 480,
    stride: int = 32,
    rect: bool = False,
) -> LetterboxParams:
    """
    Compute resize + padding for fitting an image into a stride-aligned model input.

    The longer side is scaled to exactly `target_size` and the shorter side
    truncated to an integer. With rect=False the input is square: both sides are
    `target_size` rounded up to a multiple of `stride`. With rect=True each side
    is the smallest stride multiple that fits the scaled image.
    """

    if orig_w <= 0 or orig_h <= 0:
        raise ValueError(f"Image size must be > 0, got ({orig_w}, {orig_h})")
    if target_size < stride:
        raise ValueError(f"target_size must be >= stride ({stride}), got {target_size}")

    if orig_w > orig_h:
        scale = target_size / orig_w
        resized_w, resized_h = target_size, max(1, int(orig_h * scale))
    else:
        scale = target_size / orig_h
        resized_w, resized_h = max(1, int(orig_w * scale)), target_size

    if rect:
        padded_w, padded_h = round_up_to_stride(resized_w, stride), round_up_to_stride(resized_h, stride)
    else:
        padded_w = padded_h = round_up_to_stride(target_size, stride)

    return LetterboxParams(
        scale=scale,
        pad_x=padded_w - resized_w,
        pad_y=padded_h - resized_h,
        orig_w=orig_w,
        orig_h=orig_h,
        padded_w=padded_w,
        padded_h=padded_h,
    )


def letterbox(
    image: np.ndarray,
    target_size: int = 480,
    stride: int = 32,
    color: Tuple[int, int, int] = (114, 114, 114),
    rect: bool = False,
) -> Tuple[np.ndarray, LetterboxParams]:
    """
    Resize and pad image to the model input size.

    Returns:
        padded: resized + padded image
        params: scale/padding needed to map boxes back (see `coords.scale_boxes`)
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterbox(). Install with `pip install opencv-python`.") from e

    h, w = image.shape[:2]
    params = compute_letterbox(w, h, target_size=target_size, stride=stride, rect=rect)
    resized_w = params.padded_w - params.pad_x
    resized_h = params.padded_h - params.pad_y

    if (w, h) != (resized_w, resized_h):
        image = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)

    top, left = params.pad_top, params.pad_left
    bottom, right = params.pad_y - top, params.pad_x - left
    padded = cv2.copyMakeBorder(image, top, bottom, left, right, cv2.BORDER_CONSTANT, value=color)

    return padded, params
