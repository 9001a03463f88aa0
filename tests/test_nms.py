import unittest

import numpy as np

from yolo_native.nms import NMSConfig, box_iou, nms, nms_detections
from yolo_native.types import Detection


def _det(cls: int, conf: float, x: float, y: float, w: float = 20.0, h: float = 20.0) -> Detection:
    return Detection(class_id=cls, class_name=f"c{cls}", confidence=conf, x=x, y=y, width=w, height=h)


class TestDetection(unittest.TestCase):
    def test_box_forms_and_record(self) -> None:
        d = Detection(class_id=2, class_name="car", confidence=0.8, x=50.0, y=40.0, width=20.0, height=10.0)
        self.assertEqual(d.as_xyxy(), (40.0, 35.0, 60.0, 45.0))
        self.assertEqual(d.area(), 200.0)
        self.assertEqual(
            d.to_record(),
            {"classId": 2, "className": "car", "confidence": 0.8, "x": 50.0, "y": 40.0, "width": 20.0, "height": 10.0},
        )
        self.assertEqual(d, Detection(2, "car", 0.8, 50.0, 40.0, 20.0, 10.0))


class TestBoxIou(unittest.TestCase):
    def test_self_overlap_is_one(self) -> None:
        for box in [(0.0, 0.0, 2.0, 2.0), (123.4, 56.7, 33.3, 11.1), (0.5, 0.5, 0.2, 0.2)]:
            self.assertAlmostEqual(box_iou(box, box), 1.0, places=12)

    def test_disjoint_boxes_are_zero(self) -> None:
        self.assertEqual(box_iou((0, 0, 2, 2), (10, 10, 2, 2)), 0.0)
        # Touching edges share no area.
        self.assertEqual(box_iou((0, 0, 2, 2), (2, 0, 2, 2)), 0.0)

    def test_known_overlap(self) -> None:
        self.assertAlmostEqual(box_iou((0, 0, 2, 2), (1, 0, 2, 2)), 1.0 / 3.0, places=9)
        self.assertAlmostEqual(box_iou((0, 0, 2, 2), (0, 0, 2, 1)), 0.5, places=12)

    def test_empty_union_is_zero(self) -> None:
        self.assertEqual(box_iou((0, 0, 0, 0), (0, 0, 0, 0)), 0.0)

    def test_symmetric(self) -> None:
        a, b = (10.0, 12.0, 8.0, 6.0), (13.0, 10.0, 9.0, 9.0)
        self.assertAlmostEqual(box_iou(a, b), box_iou(b, a), places=12)


class TestNms(unittest.TestCase):
    def test_same_class_overlap_suppressed(self) -> None:
        dets = [_det(0, 0.8, 100, 100), _det(0, 0.9, 102, 100)]
        kept = nms_detections(dets, 0.45)
        self.assertEqual(kept, [dets[1]])

    def test_cross_class_overlap_kept(self) -> None:
        dets = [_det(0, 0.9, 100, 100), _det(1, 0.8, 101, 100)]
        kept = nms_detections(dets, 0.45)
        self.assertEqual(kept, dets)

    def test_class_agnostic_suppresses_across_classes(self) -> None:
        dets = [_det(0, 0.9, 100, 100), _det(1, 0.8, 101, 100)]
        kept = nms_detections(dets, 0.45, class_agnostic=True)
        self.assertEqual(kept, [dets[0]])

    def test_iou_equal_to_threshold_is_kept(self) -> None:
        dets = [_det(0, 0.9, 0, 0, 2, 2), _det(0, 0.8, 0, 0, 2, 1)]
        kept = nms_detections(dets, 0.5)
        self.assertEqual(len(kept), 2)

    def test_result_ordered_by_confidence(self) -> None:
        dets = [_det(0, 0.6, 0, 0), _det(1, 0.9, 100, 0), _det(2, 0.7, 200, 0)]
        kept = nms_detections(dets, 0.45)
        self.assertEqual([d.confidence for d in kept], [0.9, 0.7, 0.6])

    def test_equal_scores_keep_input_order(self) -> None:
        boxes = np.array([[0, 0, 2, 2], [50, 0, 2, 2], [100, 0, 2, 2]], dtype=np.float64)
        scores = np.array([0.5, 0.5, 0.5])
        keep = nms(boxes, scores, np.zeros(3, dtype=np.int64), NMSConfig())
        self.assertEqual(keep.tolist(), [0, 1, 2])

    def test_max_detections(self) -> None:
        boxes = np.array([[0, 0, 2, 2], [50, 0, 2, 2], [100, 0, 2, 2]], dtype=np.float64)
        scores = np.array([0.5, 0.9, 0.7])
        keep = nms(boxes, scores, np.zeros(3, dtype=np.int64), NMSConfig(max_detections=2))
        self.assertEqual(keep.tolist(), [1, 2])

    def test_empty_input(self) -> None:
        self.assertEqual(nms_detections([]), [])
        keep = nms(np.empty((0, 4)), np.empty((0,)), np.empty((0,), dtype=np.int64), NMSConfig())
        self.assertEqual(keep.size, 0)

    def test_no_same_class_pair_above_threshold_and_idempotent(self) -> None:
        rng = np.random.default_rng(7)
        dets = [
            _det(
                int(rng.integers(0, 3)),
                float(rng.uniform(0.5, 1.0)),
                float(rng.uniform(0, 200)),
                float(rng.uniform(0, 200)),
                float(rng.uniform(10, 60)),
                float(rng.uniform(10, 60)),
            )
            for _ in range(150)
        ]
        kept = nms_detections(dets, 0.45)
        self.assertTrue(0 < len(kept) < len(dets))
        for i, a in enumerate(kept):
            for b in kept[i + 1 :]:
                if a.class_id == b.class_id:
                    self.assertLessEqual(box_iou(a.as_cxcywh(), b.as_cxcywh()), 0.45)
        self.assertEqual(nms_detections(kept, 0.45), kept)


if __name__ == "__main__":
    unittest.main()
