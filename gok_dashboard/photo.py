"""
Photo hazard classification through a hosted object-detection model.

The model is opaque: it takes an image and a confidence floor and returns
labelled detections. This module only filters those detections and maps the
surviving labels onto hazard severities.
"""

import base64
import logging
import os
from dataclasses import dataclass

import requests

from .config import (
    CLASS_SEVERITY,
    PHOTO_CONFIDENCE_DEFAULT,
    PHOTO_TIMEOUT_SECONDS,
    ROBOFLOW_URL,
    SEVERITY_ORDER,
)

logger = logging.getLogger(__name__)


class PhotoClassifierError(Exception):
    """The classifier is unreachable, misconfigured or answered non-2xx."""

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.details = details


@dataclass(frozen=True)
class PhotoDetection:
    detected: list[str]
    confidence: float
    severity: str | None


def severity_from_detections(
    detections: list[tuple[str, float]],
    confidence_floor: float,
    class_severity: dict[str, str] = CLASS_SEVERITY,
) -> PhotoDetection:
    """Filter (label, confidence) pairs and pick the most severe mapped label.

    Labels are compared lower-cased; unmapped labels are reported but do not
    contribute a severity.
    """
    detected: list[str] = []
    for label, confidence in detections:
        name = str(label or "").lower()
        if name and confidence >= confidence_floor and name not in detected:
            detected.append(name)

    severity = None
    for name in detected:
        current = class_severity.get(name)
        if current is None:
            continue
        if severity is None or SEVERITY_ORDER[current] > SEVERITY_ORDER[severity]:
            severity = current

    return PhotoDetection(detected=detected, confidence=confidence_floor, severity=severity)


class RoboflowClassifier:
    """Client for a Roboflow hosted detection model."""

    def __init__(
        self,
        api_key: str,
        model_id: str,
        model_version: str,
        timeout: float = PHOTO_TIMEOUT_SECONDS,
        base_url: str = ROBOFLOW_URL,
    ):
        self.api_key = api_key
        self.model_id = model_id
        self.model_version = model_version
        self.timeout = timeout
        self.base_url = base_url

    @classmethod
    def from_env(cls) -> "RoboflowClassifier":
        api_key = os.environ.get("ROBOFLOW_API_KEY")
        model_id = os.environ.get("ROBOFLOW_MODEL_ID")
        model_version = os.environ.get("ROBOFLOW_MODEL_VERSION")
        if not api_key or not model_id or not model_version:
            raise PhotoClassifierError("Roboflow credentials are not configured")
        return cls(api_key, model_id, model_version)

    def classify(self, image: bytes, confidence: float) -> list[tuple[str, float]]:
        """Return (label, confidence) pairs reported by the model."""
        url = f"{self.base_url}/{self.model_id}/{self.model_version}"
        params = {"api_key": self.api_key, "confidence": confidence}
        body = {"image": base64.b64encode(image).decode("ascii")}

        try:
            response = requests.post(url, params=params, data=body, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Roboflow request failed: %s", exc)
            raise PhotoClassifierError("Roboflow request failed", details=str(exc)) from exc

        if not response.ok:
            logger.warning("Roboflow answered HTTP %s", response.status_code)
            raise PhotoClassifierError("Roboflow request failed", details=response.text[:200])

        try:
            payload = response.json()
        except ValueError as exc:
            raise PhotoClassifierError("Roboflow returned invalid JSON") from exc

        predictions = payload.get("predictions") if isinstance(payload, dict) else None
        if not isinstance(predictions, list):
            return []

        pairs = []
        for p in predictions:
            conf = p.get("confidence")
            pairs.append((str(p.get("class") or ""), conf if isinstance(conf, (int, float)) else 0.0))
        return pairs


def detect_photo_hazard(
    classifier: RoboflowClassifier,
    image: bytes,
    confidence: float = PHOTO_CONFIDENCE_DEFAULT,
) -> PhotoDetection:
    """Classify a photo and map the detections to a hazard severity."""
    detections = classifier.classify(image, confidence)
    result = severity_from_detections(detections, confidence)
    logger.info("Photo classified: %s -> %s", result.detected, result.severity)
    return result
