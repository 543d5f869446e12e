import unittest

import numpy as np

from yolo11_kit.decode import decode_detections
from yolo11_kit.errors import InvalidThresholdError
from yolo11_kit.nms import (
    NMSConfig,
    box_iou,
    confidence_order,
    nms,
    nms_detections,
    nms_sorted,
    sort_by_confidence,
)
from yolo11_kit.types import Detection


def _det(x: float, y: float, w: float, h: float, label: int, conf: float) -> Detection:
    return Detection(x=x, y=y, width=w, height=h, label=label, confidence=conf)


class TestBoxIou(unittest.TestCase):
    def test_identical_boxes(self) -> None:
        self.assertAlmostEqual(box_iou((3, 4, 10, 20), (3, 4, 10, 20)), 1.0)

    def test_disjoint_boxes(self) -> None:
        self.assertEqual(box_iou((0, 0, 10, 10), (50, 50, 100, 100)), 0.0)
        self.assertEqual(box_iou((0, 0, 1, 1), (1, 0, 1000, 1000)), 0.0)

    def test_partial_overlap(self) -> None:
        # intersection 2, union 4 + 4 - 2
        self.assertAlmostEqual(box_iou((0, 0, 2, 2), (1, 0, 2, 2)), 1.0 / 3.0)

    def test_zero_area_boxes(self) -> None:
        self.assertEqual(box_iou((5, 5, 0, 0), (5, 5, 0, 0)), 0.0)


class TestSort(unittest.TestCase):
    def test_sort_is_descending_permutation(self) -> None:
        rng = np.random.default_rng(0)
        dets = [_det(0, 0, 1, 1, 0, float(c)) for c in rng.uniform(0, 1, size=40)]
        dets.append(_det(0, 0, 1, 1, 0, dets[0].confidence))  # a tie
        out = sort_by_confidence(dets)
        self.assertEqual(len(out), len(dets))
        self.assertEqual(sorted(id(d) for d in out), sorted(id(d) for d in dets))
        for a, b in zip(out, out[1:]):
            self.assertGreaterEqual(a.confidence, b.confidence)

    def test_confidence_order(self) -> None:
        scores = np.array([0.2, 0.9, 0.5], dtype=np.float32)
        self.assertTrue(np.array_equal(confidence_order(scores), np.array([1, 2, 0])))

    def test_empty(self) -> None:
        self.assertEqual(sort_by_confidence([]), [])


class TestNms(unittest.TestCase):
    def test_duplicate_anchor_scenario(self) -> None:
        rows = np.array(
            [
                [10, 10, 4, 4, 0.9, 0.1],
                [10, 10, 4, 4, 0.95, 0.05],
            ],
            dtype=np.float32,
        )
        dets = decode_detections(rows.T, 2, 6, conf_thres=0.5, img_w=32, img_h=32)
        keep = nms_detections(dets, iou_threshold=0.45)
        self.assertEqual(keep, [1])
        self.assertAlmostEqual(dets[keep[0]].confidence, 0.95, places=6)

    def test_cross_class_overlap(self) -> None:
        dets = [_det(0, 0, 10, 10, 0, 0.8), _det(0, 0, 10, 10, 1, 0.9)]
        self.assertEqual(nms_detections(dets, 0.45, class_agnostic=False), [1, 0])
        self.assertEqual(nms_detections(dets, 0.45, class_agnostic=True), [1])

    def test_only_kept_boxes_suppress(self) -> None:
        # B overlaps A (IoU 1/3) and is dropped; C overlaps only B, so it survives.
        boxes = np.array([[0, 0, 10, 10], [5, 0, 10, 10], [10, 0, 10, 10]], dtype=np.float32)
        labels = np.zeros(3, dtype=np.int64)
        keep = nms_sorted(boxes, labels, 0.3)
        self.assertTrue(np.array_equal(keep, np.array([0, 2])))

    def test_iou_equal_to_threshold_is_kept(self) -> None:
        # intersection 2, union 3 + 3 - 2
        boxes = np.array([[0, 0, 3, 1], [1, 0, 3, 1]], dtype=np.float32)
        keep = nms_sorted(boxes, np.zeros(2), 0.5)
        self.assertEqual(len(keep), 2)

    def test_zero_area_boxes_do_not_suppress(self) -> None:
        boxes = np.array([[5, 5, 0, 0], [5, 5, 0, 0]], dtype=np.float32)
        keep = nms_sorted(boxes, np.zeros(2), 0.0)
        self.assertTrue(np.array_equal(keep, np.array([0, 1])))

    def test_returns_unsorted_indices_by_confidence(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [100, 100, 10, 10], [1, 1, 10, 10]], dtype=np.float32)
        scores = np.array([0.3, 0.6, 0.9], dtype=np.float32)
        keep = nms(boxes, scores, np.zeros(3), NMSConfig(iou_threshold=0.45))
        self.assertTrue(np.array_equal(keep, np.array([2, 1])))

    def test_idempotent(self) -> None:
        rng = np.random.default_rng(7)
        xy = rng.uniform(0, 200, size=(120, 2))
        wh = rng.uniform(10, 60, size=(120, 2))
        boxes = np.hstack([xy, wh]).astype(np.float32)
        scores = rng.uniform(0, 1, size=120).astype(np.float32)
        labels = rng.integers(0, 3, size=120)
        cfg = NMSConfig(iou_threshold=0.45)

        keep = nms(boxes, scores, labels, cfg)
        self.assertLess(keep.size, 120)
        again = nms(boxes[keep], scores[keep], labels[keep], cfg)
        self.assertTrue(np.array_equal(keep[again], keep))

    def test_empty_input(self) -> None:
        self.assertEqual(nms_detections([], 0.45), [])
        keep = nms_sorted(np.zeros((0, 4), dtype=np.float32), np.zeros(0), 0.45)
        self.assertEqual(keep.size, 0)

    def test_threshold_out_of_range(self) -> None:
        with self.assertRaises(InvalidThresholdError):
            NMSConfig(iou_threshold=1.2)
        with self.assertRaises(InvalidThresholdError):
            nms_detections([_det(0, 0, 1, 1, 0, 0.5)], iou_threshold=-0.5)

    def test_label_count_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            nms_sorted(np.zeros((2, 4), dtype=np.float32), np.zeros(3), 0.45)


if __name__ == "__main__":
    unittest.main()
