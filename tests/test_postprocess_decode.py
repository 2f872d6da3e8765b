import itertools
import unittest

import numpy as np

from detect_kit.errors import DecodeError, MissingInput, ShapeMismatch
from detect_kit.nms import box_iou
from detect_kit.postprocess import DetectionDecoder, DetectionPostConfig, decode


def _spread_coords(n: int) -> np.ndarray:
    # Non-overlapping boxes laid out left to right.
    return np.array([[0.1 * i + 0.05, 0.5, 0.05, 0.05] for i in range(n)], dtype=np.float64)


class TestDetectionDecode(unittest.TestCase):
    def test_score_at_threshold_is_dropped(self) -> None:
        conf = np.array([[0.1, 0.2, 0.25]])
        coords = np.array([[0.5, 0.5, 0.2, 0.2]])
        self.assertEqual(decode(conf, coords), [])

    def test_score_above_threshold_is_kept(self) -> None:
        conf = np.array([[0.1, 0.2, 0.26]])
        coords = np.array([[0.5, 0.5, 0.2, 0.2]])
        preds = decode(conf, coords)
        self.assertEqual(len(preds), 1)
        self.assertEqual(preds[0].label_index, 2)
        self.assertAlmostEqual(preds[0].confidence, 0.26)

    def test_argmax_tie_keeps_first_class(self) -> None:
        conf = np.array([[0.4, 0.4, 0.1]])
        coords = np.array([[0.5, 0.5, 0.2, 0.2]])
        preds = decode(conf, coords)
        self.assertEqual(len(preds), 1)
        self.assertEqual(preds[0].label_index, 0)

    def test_all_zero_row_never_produces_candidate(self) -> None:
        conf = np.zeros((2, 3))
        coords = _spread_coords(2)
        self.assertEqual(decode(conf, coords, confidence_threshold=0.0), [])

    def test_center_coordinates_become_top_left(self) -> None:
        conf = np.array([[0.9]])
        coords = np.array([[0.5, 0.5, 0.2, 0.4]])
        box = decode(conf, coords)[0].bounding_box
        self.assertAlmostEqual(box.x, 0.4)
        self.assertAlmostEqual(box.y, 0.3)
        self.assertAlmostEqual(box.width, 0.2)
        self.assertAlmostEqual(box.height, 0.4)

    def test_output_sorted_by_descending_confidence(self) -> None:
        conf = np.array([[0.3], [0.9], [0.6]])
        preds = decode(conf, _spread_coords(3))
        self.assertEqual([p.confidence for p in preds], [0.9, 0.6, 0.3])

    def test_equal_confidence_keeps_box_order(self) -> None:
        conf = np.array([[0.1], [0.2], [0.5], [0.1], [0.9], [0.5]])
        coords = _spread_coords(6)
        preds = decode(conf, coords)
        self.assertEqual([p.confidence for p in preds], [0.9, 0.5, 0.5])
        # Box 2 sits left of box 5.
        self.assertLess(preds[1].bounding_box.x, preds[2].bounding_box.x)
        self.assertAlmostEqual(preds[1].bounding_box.x, coords[2, 0] - coords[2, 2] / 2)
        self.assertAlmostEqual(preds[2].bounding_box.x, coords[5, 0] - coords[5, 2] / 2)

    def test_overlap_above_threshold_is_suppressed(self) -> None:
        # xywh (0, 0, 0.6, 1) and (0, 0, 1, 1): IoU = 0.6.
        conf = np.array([[0.8], [0.9]])
        coords = np.array([[0.3, 0.5, 0.6, 1.0], [0.5, 0.5, 1.0, 1.0]])
        preds = decode(conf, coords)
        self.assertEqual(len(preds), 1)
        self.assertEqual(preds[0].confidence, 0.9)
        self.assertAlmostEqual(preds[0].bounding_box.width, 1.0)

    def test_overlap_equal_to_threshold_is_kept(self) -> None:
        # xywh (0, 0, 1, 1) and (0, 0, 0.5, 1): IoU = 0.5 exactly.
        conf = np.array([[0.9], [0.8]])
        coords = np.array([[0.5, 0.5, 1.0, 1.0], [0.25, 0.5, 0.5, 1.0]])
        preds = decode(conf, coords, nms_threshold=0.5)
        self.assertEqual([p.confidence for p in preds], [0.9, 0.8])

    def test_suppressed_box_does_not_suppress_others(self) -> None:
        # A overlaps B, B overlaps C, A and C overlap below threshold.
        conf = np.array([[0.9], [0.8], [0.7]])
        coords = np.array(
            [
                [0.5, 0.5, 1.0, 1.0],
                [0.7, 0.5, 1.0, 1.0],
                [0.9, 0.5, 1.0, 1.0],
            ]
        )
        preds = decode(conf, coords)
        self.assertEqual([p.confidence for p in preds], [0.9, 0.7])

    def test_suppression_is_class_agnostic_by_default(self) -> None:
        conf = np.array([[0.9, 0.0], [0.0, 0.8]])
        coords = np.array([[0.5, 0.5, 0.4, 0.4], [0.5, 0.5, 0.4, 0.4]])
        preds = decode(conf, coords)
        self.assertEqual([p.label_index for p in preds], [0])

    def test_per_class_suppression_keeps_other_classes(self) -> None:
        conf = np.array([[0.9, 0.0], [0.0, 0.8], [0.7, 0.0]])
        coords = np.array([[0.5, 0.5, 0.4, 0.4], [0.5, 0.5, 0.4, 0.4], [0.5, 0.5, 0.4, 0.4]])
        post = DetectionDecoder(DetectionPostConfig(class_agnostic_nms=False))
        preds = post.process(conf, coords)
        self.assertEqual([(p.label_index, p.confidence) for p in preds], [(0, 0.9), (1, 0.8)])

    def test_max_detections_caps_output(self) -> None:
        conf = np.array([[0.3], [0.9], [0.6], [0.8]])
        post = DetectionDecoder(DetectionPostConfig(max_detections=2))
        preds = post.process(conf, _spread_coords(4))
        self.assertEqual([p.confidence for p in preds], [0.9, 0.8])

    def test_box_count_mismatch_raises(self) -> None:
        conf = np.full((3, 2), 0.9)
        coords = _spread_coords(4)
        with self.assertRaises(ShapeMismatch):
            decode(conf, coords)

    def test_empty_confidence_with_coordinates_raises(self) -> None:
        with self.assertRaises(ShapeMismatch):
            decode(np.array([]), _spread_coords(2))

    def test_wrong_coordinate_width_raises(self) -> None:
        with self.assertRaises(ShapeMismatch):
            decode(np.full((2, 3), 0.9), np.zeros((2, 3)))

    def test_wrong_rank_raises(self) -> None:
        with self.assertRaises(ShapeMismatch):
            decode(np.full((2, 2, 3), 0.9), np.zeros((2, 2, 4)))
        with self.assertRaises(ShapeMismatch):
            decode(np.full((3,), 0.9), np.zeros((3, 4)))

    def test_missing_tensor_raises(self) -> None:
        with self.assertRaises(MissingInput):
            decode(None, _spread_coords(1))
        with self.assertRaises(MissingInput):
            decode(np.array([[0.9]]), None)

    def test_decode_errors_are_value_errors(self) -> None:
        self.assertTrue(issubclass(ShapeMismatch, DecodeError))
        self.assertTrue(issubclass(MissingInput, DecodeError))
        self.assertTrue(issubclass(DecodeError, ValueError))

    def test_no_boxes_returns_empty(self) -> None:
        self.assertEqual(decode(np.zeros((0, 3)), np.zeros((0, 4))), [])
        self.assertEqual(decode([], []), [])

    def test_batch_axis_is_squeezed(self) -> None:
        conf = np.array([[[0.1, 0.9]]])
        coords = np.array([[[0.5, 0.5, 0.2, 0.2]]])
        preds = decode(conf, coords)
        self.assertEqual(len(preds), 1)
        self.assertEqual(preds[0].label_index, 1)

    def test_accepts_float32_and_lists(self) -> None:
        conf = np.array([[0.1, 0.9]], dtype=np.float32)
        preds = decode(conf, [[0.5, 0.5, 0.2, 0.2]])
        self.assertEqual(len(preds), 1)
        self.assertIsInstance(preds[0].confidence, float)
        self.assertIsInstance(preds[0].label_index, int)

    def test_invalid_thresholds_rejected(self) -> None:
        with self.assertRaises(ValueError):
            DetectionPostConfig(conf_threshold=1.0)
        with self.assertRaises(ValueError):
            DetectionPostConfig(nms_threshold=1.5)
        with self.assertRaises(ValueError):
            DetectionPostConfig(max_detections=0)

    def test_random_outputs_hold_invariants(self) -> None:
        rng = np.random.default_rng(7)
        conf = rng.uniform(0.0, 1.0, size=(200, 5)) ** 3
        coords = np.concatenate([rng.uniform(0, 1, size=(200, 2)), rng.uniform(0.05, 0.4, size=(200, 2))], axis=1)

        preds = decode(conf, coords, confidence_threshold=0.25, nms_threshold=0.5)
        self.assertTrue(preds)
        self.assertTrue(all(p.confidence > 0.25 for p in preds))
        confidences = [p.confidence for p in preds]
        self.assertEqual(confidences, sorted(confidences, reverse=True))
        for a, b in itertools.combinations(preds, 2):
            self.assertLessEqual(box_iou(a.bounding_box, b.bounding_box), 0.5)

    def test_inputs_are_not_modified(self) -> None:
        conf = np.array([[0.9, 0.1], [0.8, 0.2]])
        coords = np.array([[0.5, 0.5, 0.2, 0.2], [0.5, 0.5, 0.2, 0.2]])
        conf_before, coords_before = conf.copy(), coords.copy()
        decode(conf, coords)
        self.assertTrue(np.array_equal(conf, conf_before))
        self.assertTrue(np.array_equal(coords, coords_before))


if __name__ == "__main__":
    unittest.main()
