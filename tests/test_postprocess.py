import unittest
from typing import List, Sequence

import numpy as np

from acne_kit import ACNE_CLASSES, AcnePostConfig, AcnePostprocessor, PostprocessStats, ShapeMismatch, process
from acne_kit.nms import NMSConfig, nms, pairwise_iou


def _row(cx: float, cy: float, w: float, h: float, obj: float, class_scores: Sequence[float]) -> List[float]:
    return [cx, cy, w, h, obj, *class_scores]


def _tensor(rows: Sequence[Sequence[float]], dtype=np.float64) -> np.ndarray:
    return np.array([rows], dtype=dtype)


ONE_HOT_COMEDONE = [1.0, 0.0, 0.0, 0.0, 0.0]


class TestProcessScenarios(unittest.TestCase):
    def test_single_row(self) -> None:
        t = _tensor([_row(320, 320, 100, 100, 0.9, [0.1, 0.1, 0.1, 0.6, 0.1])])
        dets = process(t, ACNE_CLASSES, confidence_threshold=0.25, iou_threshold=0.5)

        self.assertEqual(len(dets), 1)
        det = dets[0]
        self.assertEqual(det.label, ACNE_CLASSES[3])
        self.assertEqual(det.class_id, 3)
        self.assertAlmostEqual(det.confidence, 0.54, places=6)
        self.assertEqual((det.box.x, det.box.y, det.box.width, det.box.height), (270.0, 270.0, 100.0, 100.0))

    def test_float32_tensor(self) -> None:
        t = _tensor([_row(320, 320, 100, 100, 0.9, [0.1, 0.1, 0.1, 0.6, 0.1])], dtype=np.float32)
        dets = process(t)
        self.assertEqual(len(dets), 1)
        self.assertAlmostEqual(dets[0].confidence, 0.54, places=5)
        self.assertAlmostEqual(dets[0].box.x, 270.0, places=4)

    def test_duplicate_box_suppressed(self) -> None:
        t = _tensor(
            [
                _row(100, 100, 50, 50, 0.7, ONE_HOT_COMEDONE),
                _row(100, 100, 50, 50, 0.9, ONE_HOT_COMEDONE),
            ]
        )
        dets = process(t, iou_threshold=0.5)
        self.assertEqual(len(dets), 1)
        self.assertAlmostEqual(dets[0].confidence, 0.9)

    def test_suppression_is_class_agnostic(self) -> None:
        t = _tensor(
            [
                _row(100, 100, 50, 50, 0.9, [0.0, 0.0, 0.0, 0.0, 1.0]),
                _row(100, 100, 50, 50, 0.8, ONE_HOT_COMEDONE),
            ]
        )
        dets = process(t, iou_threshold=0.5)
        self.assertEqual([d.label for d in dets], ["cyst"])

    def test_disjoint_boxes_both_survive(self) -> None:
        t = _tensor(
            [
                _row(50, 50, 20, 20, 0.9, ONE_HOT_COMEDONE),
                _row(500, 500, 20, 20, 0.8, ONE_HOT_COMEDONE),
            ]
        )
        for thr in (0.0, 0.5, 1.0):
            with self.subTest(iou_threshold=thr):
                self.assertEqual(len(process(t, iou_threshold=thr)), 2)

    def test_all_below_threshold_is_empty(self) -> None:
        t = _tensor(
            [
                _row(50, 50, 20, 20, 0.1, ONE_HOT_COMEDONE),
                _row(500, 500, 20, 20, 0.2, ONE_HOT_COMEDONE),
            ]
        )
        self.assertEqual(process(t, confidence_threshold=0.25), [])

    def test_threshold_is_strict(self) -> None:
        t = _tensor([_row(50, 50, 20, 20, 0.25, ONE_HOT_COMEDONE)])
        self.assertEqual(process(t, confidence_threshold=0.25), [])
        self.assertEqual(len(process(t, confidence_threshold=0.2499)), 1)

    def test_threshold_is_strict_for_float32_objectness(self) -> None:
        # 0.3 is not exactly representable; the comparison happens in float32.
        t = _tensor([_row(50, 50, 20, 20, 0.3, ONE_HOT_COMEDONE)], dtype=np.float32)
        self.assertEqual(process(t, confidence_threshold=0.3), [])
        self.assertEqual(len(process(t, confidence_threshold=0.29)), 1)

    def test_filter_uses_objectness_not_final_confidence(self) -> None:
        # 0.3 * 0.1 = 0.03 is below the threshold, but objectness alone passes.
        t = _tensor([_row(50, 50, 20, 20, 0.3, [0.1, 0.0, 0.0, 0.0, 0.0])])
        dets = process(t, confidence_threshold=0.25)
        self.assertEqual(len(dets), 1)
        self.assertAlmostEqual(dets[0].confidence, 0.03)

    def test_class_tie_picks_lowest_index(self) -> None:
        t = _tensor([_row(50, 50, 20, 20, 0.9, [0.1, 0.4, 0.4, 0.1, 0.0])])
        self.assertEqual(process(t)[0].label, ACNE_CLASSES[1])

    def test_equal_confidence_keeps_decode_order(self) -> None:
        t = _tensor(
            [
                _row(50, 50, 20, 20, 0.8, [0.0, 0.0, 1.0, 0.0, 0.0]),
                _row(300, 300, 20, 20, 0.8, [0.0, 1.0, 0.0, 0.0, 0.0]),
                _row(500, 500, 20, 20, 0.8, ONE_HOT_COMEDONE),
            ]
        )
        self.assertEqual([d.label for d in process(t)], ["pustule", "nodule", "comedone"])

    def test_empty_anchor_axis(self) -> None:
        t = np.zeros((1, 0, 10), dtype=np.float32)
        self.assertEqual(process(t), [])

    def test_custom_class_table(self) -> None:
        t = _tensor([_row(50, 50, 20, 20, 0.9, [0.2, 0.8])])
        dets = process(t, class_table=["a", "b"])
        self.assertEqual(dets[0].label, "b")

    def test_input_tensor_not_modified(self) -> None:
        t = _tensor([_row(320, 320, 100, 100, 0.9, [0.1, 0.1, 0.1, 0.6, 0.1])])
        before = t.copy()
        process(t)
        self.assertTrue(np.array_equal(t, before))


class TestProcessValidation(unittest.TestCase):
    def test_two_dimensional_tensor_rejected(self) -> None:
        with self.assertRaises(ShapeMismatch):
            process(np.zeros((10, 10), dtype=np.float32))

    def test_batch_greater_than_one_rejected(self) -> None:
        with self.assertRaises(ShapeMismatch):
            process(np.zeros((2, 10, 10), dtype=np.float32))

    def test_column_count_must_match_class_table(self) -> None:
        with self.assertRaises(ShapeMismatch) as ctx:
            process(np.zeros((1, 10, 9), dtype=np.float32))
        self.assertEqual(ctx.exception.actual, (1, 10, 9))
        self.assertIsInstance(ctx.exception, ValueError)

    def test_thresholds_out_of_range_rejected(self) -> None:
        t = np.zeros((1, 1, 10), dtype=np.float32)
        with self.assertRaises(ValueError):
            process(t, confidence_threshold=1.5)
        with self.assertRaises(ValueError):
            process(t, iou_threshold=-0.1)

    def test_empty_class_table_rejected(self) -> None:
        with self.assertRaises(ValueError):
            AcnePostConfig(class_names=())


class TestPostprocessorConfig(unittest.TestCase):
    def test_full_size_tensor_and_stats_hook(self) -> None:
        seen: List[PostprocessStats] = []
        t = np.zeros((1, 25200, 10), dtype=np.float32)
        t[0, 10] = _row(100, 100, 40, 40, 0.9, ONE_HOT_COMEDONE)
        t[0, 11] = _row(102, 101, 40, 40, 0.8, ONE_HOT_COMEDONE)
        t[0, 5000] = _row(400, 400, 40, 40, 0.6, [0.0, 0.0, 0.0, 0.0, 1.0])

        post = AcnePostprocessor(AcnePostConfig(on_stats=seen.append))
        dets = post.process(t)

        self.assertEqual([d.label for d in dets], ["comedone", "cyst"])
        self.assertEqual(seen, [PostprocessStats(num_anchors=25200, num_candidates=3, num_detections=2)])

    def test_max_detections_caps_result(self) -> None:
        rows = [_row(50 + 60 * i, 50, 20, 20, 0.9 - 0.05 * i, ONE_HOT_COMEDONE) for i in range(5)]
        post = AcnePostprocessor(AcnePostConfig(max_detections=2))
        dets = post.process(_tensor(rows))
        self.assertEqual(len(dets), 2)
        self.assertAlmostEqual(dets[0].confidence, 0.9)

    def test_max_detections_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            AcnePostConfig(max_detections=0)


class TestProcessProperties(unittest.TestCase):
    def _random_tensor(self, rng: np.random.Generator, n: int) -> np.ndarray:
        t = np.empty((1, n, 10), dtype=np.float32)
        t[0, :, 0:2] = rng.uniform(0, 640, size=(n, 2))
        t[0, :, 2:4] = rng.uniform(4, 120, size=(n, 2))
        t[0, :, 4] = rng.uniform(0, 1, size=n)
        t[0, :, 5:] = rng.uniform(0, 1, size=(n, 5))
        # clustered duplicates so suppression has work to do
        t[0, n // 2 :, 0:2] = t[0, : n - n // 2, 0:2] + rng.normal(0, 3, size=(n - n // 2, 2))
        return t

    def test_invariants_on_random_tensors(self) -> None:
        for seed in range(5):
            rng = np.random.default_rng(seed)
            t = self._random_tensor(rng, 400)
            iou_thr = float(rng.uniform(0.2, 0.7))
            seen: List[PostprocessStats] = []
            post = AcnePostprocessor(AcnePostConfig(iou_threshold=iou_thr, on_stats=seen.append))

            with self.subTest(seed=seed):
                dets = post.process(t)
                self.assertLessEqual(len(dets), seen[0].num_candidates)
                self.assertGreater(len(dets), 0)

                confs = [d.confidence for d in dets]
                self.assertEqual(confs, sorted(confs, reverse=True))

                boxes = np.array([d.box.as_xyxy() for d in dets], dtype=np.float64)
                for i in range(len(boxes) - 1):
                    overlaps = pairwise_iou(boxes[i], boxes[i + 1 :])
                    self.assertTrue(np.all(overlaps <= iou_thr + 1e-9))

                # NMS on its own output keeps everything, in order.
                keep = nms(boxes, np.array(confs), NMSConfig(iou_threshold=iou_thr))
                self.assertTrue(np.array_equal(keep, np.arange(len(dets))))


if __name__ == "__main__":
    unittest.main()
