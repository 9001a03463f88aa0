import unittest

from detector_host.alerts import HIGH, LOW, ConfidenceAlertConfig, classify_confidence, log_confidence_alerts
from yolo_native.types import Detection


def _det(conf: float) -> Detection:
    return Detection(class_id=0, class_name="person", confidence=conf, x=10, y=10, width=5, height=5)


class TestConfidenceAlerts(unittest.TestCase):
    def test_classify_bands(self) -> None:
        cfg = ConfidenceAlertConfig()
        self.assertEqual(classify_confidence(0.95, cfg), HIGH)
        self.assertEqual(classify_confidence(0.70, cfg), None)
        self.assertEqual(classify_confidence(0.55, cfg), None)
        self.assertEqual(classify_confidence(0.40, cfg), None)
        self.assertEqual(classify_confidence(0.2, cfg), LOW)

    def test_custom_bands(self) -> None:
        cfg = ConfidenceAlertConfig(high=0.9, low=0.6)
        self.assertIsNone(classify_confidence(0.8, cfg))
        self.assertEqual(classify_confidence(0.55, cfg), LOW)

    def test_log_alerts(self) -> None:
        dets = [_det(0.9), _det(0.5), _det(0.3)]
        with self.assertLogs("detector_host.alerts", level="INFO") as logs:
            alerts = log_confidence_alerts(dets, ConfidenceAlertConfig())
        self.assertEqual([level for _, level in alerts], [HIGH, LOW])
        self.assertEqual(len(logs.records), 2)
        self.assertEqual(logs.records[1].levelname, "WARNING")

    def test_invalid_config(self) -> None:
        with self.assertRaises(ValueError):
            ConfidenceAlertConfig(high=0.3, low=0.5)
        with self.assertRaises(ValueError):
            ConfidenceAlertConfig(high=1.5)


if __name__ == "__main__":
    unittest.main()
