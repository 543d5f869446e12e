import unittest

import numpy as np

from yolo11_kit.decode import anchor_rows, decode_arrays, decode_detections
from yolo11_kit.errors import InvalidShapeError, InvalidThresholdError


def _two_anchor_rows() -> np.ndarray:
    # anchors first: [cx, cy, w, h, score_0, score_1]
    return np.array(
        [
            [10, 10, 4, 4, 0.9, 0.1],
            [10, 10, 4, 4, 0.95, 0.05],
        ],
        dtype=np.float32,
    )


class TestAnchorRows(unittest.TestCase):
    def test_channels_first_is_transposed(self) -> None:
        rows = _two_anchor_rows()
        out = anchor_rows(rows.T, num_anchors=2, num_channels=6, layout="channels_first")
        self.assertEqual(out.shape, (2, 6))
        self.assertTrue(np.array_equal(out, rows))

    def test_flat_buffer_channels_first(self) -> None:
        rows = _two_anchor_rows()
        flat = np.ascontiguousarray(rows.T).ravel()
        out = anchor_rows(flat, num_anchors=2, num_channels=6)
        self.assertTrue(np.array_equal(out, rows))

    def test_flat_buffer_anchors_first(self) -> None:
        rows = _two_anchor_rows()
        out = anchor_rows(rows.ravel(), num_anchors=2, num_channels=6, layout="anchors_first")
        self.assertTrue(np.array_equal(out, rows))

    def test_batch_axis_of_one(self) -> None:
        rows = _two_anchor_rows()
        out = anchor_rows(rows.T[None, ...], num_anchors=2, num_channels=6)
        self.assertEqual(out.shape, (2, 6))

    def test_batch_larger_than_one_rejected(self) -> None:
        preds = np.zeros((2, 6, 2), dtype=np.float32)
        with self.assertRaises(InvalidShapeError):
            anchor_rows(preds, num_anchors=2, num_channels=6)

    def test_too_few_channels(self) -> None:
        with self.assertRaises(InvalidShapeError):
            anchor_rows(np.zeros((4, 10), dtype=np.float32), num_anchors=10, num_channels=4)

    def test_size_mismatch(self) -> None:
        with self.assertRaises(InvalidShapeError):
            anchor_rows(np.zeros(13, dtype=np.float32), num_anchors=2, num_channels=6)

    def test_shape_contradicts_layout(self) -> None:
        rows = _two_anchor_rows()
        with self.assertRaises(InvalidShapeError):
            anchor_rows(rows, num_anchors=2, num_channels=6, layout="channels_first")

    def test_unknown_layout(self) -> None:
        with self.assertRaises(ValueError):
            anchor_rows(_two_anchor_rows(), num_anchors=2, num_channels=6, layout="nchw")


class TestDecode(unittest.TestCase):
    def test_two_anchor_scenario(self) -> None:
        dets = decode_detections(_two_anchor_rows().T, 2, 6, conf_thres=0.5, img_w=32, img_h=32)
        self.assertEqual(len(dets), 2)
        self.assertEqual([d.label for d in dets], [0, 0])
        self.assertAlmostEqual(dets[0].confidence, 0.9, places=6)
        self.assertAlmostEqual(dets[1].confidence, 0.95, places=6)
        for d in dets:
            self.assertEqual(d.as_xywh(), (8.0, 8.0, 4.0, 4.0))

    def test_threshold_is_strict(self) -> None:
        rows = np.array([[10, 10, 4, 4, 0.5, 0.1], [10, 10, 4, 4, 0.51, 0.1]], dtype=np.float32)
        boxes, scores, labels = decode_arrays(rows, 2, 6, 0.5, 32, 32, layout="anchors_first")
        self.assertEqual(scores.shape, (1,))
        self.assertAlmostEqual(float(scores[0]), 0.51, places=6)

    def test_argmax_tie_goes_to_lowest_label(self) -> None:
        rows = np.array(
            [
                [10, 10, 4, 4, 0.7, 0.7, 0.2],
                [10, 10, 4, 4, 0.1, 0.8, 0.8],
            ],
            dtype=np.float32,
        )
        _, _, labels = decode_arrays(rows, 2, 7, 0.25, 32, 32, layout="anchors_first")
        self.assertTrue(np.array_equal(labels, np.array([0, 1])))

    def test_corners_clamped_to_padded_image(self) -> None:
        rows = np.array(
            [
                [2, 5, 10, 4, 0.9],  # x0 = -3 -> 0
                [30, 30, 10, 10, 0.9],  # x1 = 35 -> 32, y1 = 35 -> 32
            ],
            dtype=np.float32,
        )
        boxes, _, _ = decode_arrays(rows, 2, 5, 0.25, 32, 32, layout="anchors_first")
        self.assertTrue(np.allclose(boxes[0], [0.0, 3.0, 7.0, 4.0]))
        self.assertTrue(np.allclose(boxes[1], [25.0, 25.0, 7.0, 7.0]))
        self.assertTrue(np.all(boxes[:, 2:] >= 0))

    def test_no_anchors_is_empty(self) -> None:
        dets = decode_detections(np.zeros((6, 0), dtype=np.float32), 0, 6, 0.25, 32, 32)
        self.assertEqual(dets, [])

    def test_all_below_threshold_is_empty(self) -> None:
        rows = _two_anchor_rows()
        dets = decode_detections(rows.T, 2, 6, conf_thres=0.99, img_w=32, img_h=32)
        self.assertEqual(dets, [])

    def test_higher_threshold_never_keeps_more(self) -> None:
        rng = np.random.default_rng(3)
        preds = rng.uniform(0, 1, size=(4 + 5, 300)).astype(np.float32)
        preds[:4] *= 64
        counts = [len(decode_detections(preds, 300, 9, t, 64, 64)) for t in (0.0, 0.2, 0.5, 0.8, 0.95, 1.0)]
        self.assertEqual(counts, sorted(counts, reverse=True))
        self.assertEqual(counts[-1], 0)

    def test_labels_within_range(self) -> None:
        rng = np.random.default_rng(4)
        preds = rng.uniform(0, 1, size=(4 + 3, 50)).astype(np.float32)
        _, _, labels = decode_arrays(preds, 50, 7, 0.0, 32, 32)
        self.assertTrue(np.all((labels >= 0) & (labels < 3)))

    def test_threshold_out_of_range(self) -> None:
        with self.assertRaises(InvalidThresholdError):
            decode_detections(_two_anchor_rows().T, 2, 6, conf_thres=1.5, img_w=32, img_h=32)
        with self.assertRaises(ValueError):
            decode_detections(_two_anchor_rows().T, 2, 6, conf_thres=-0.1, img_w=32, img_h=32)


if __name__ == "__main__":
    unittest.main()
