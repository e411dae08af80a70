# app/services/text_classifier.py
from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Protocol, Tuple


class TextClassifier(Protocol):
    """Screener fallback: text -> (label, score in [0, 1])."""

    def classify(self, text: str) -> Tuple[str, float]:
        ...


@dataclass
class TextClassifierConfig:
    model_name: str
    device: str = "cpu"  # "cuda" or "cpu"
    max_length: int = 512


class TransformersClassifier:
    """
    Hugging Face text-classification pipeline.
    The pipeline is built on first classify(), so an unavailable model only
    surfaces when the screener actually needs the fallback.
    """
    def __init__(self, cfg: TextClassifierConfig):
        self.cfg = cfg
        self._lock = threading.Lock()
        self._pipe: Any = None

    def _get_pipeline(self):
        with self._lock:
            if self._pipe is None:
                try:
                    from transformers import pipeline
                except ImportError as e:
                    raise RuntimeError(
                        "transformers is not installed. pip install transformers torch"
                    ) from e
                self._pipe = pipeline(
                    "text-classification",
                    model=self.cfg.model_name,
                    device=self.cfg.device,
                )
            return self._pipe

    def classify(self, text: str) -> Tuple[str, float]:
        pipe = self._get_pipeline()
        result = pipe(text, truncation=True, max_length=self.cfg.max_length, top_k=1)

        # [{"label", "score"}] or [[{"label", "score"}]] depending on the version
        pred = result[0] if isinstance(result, list) else result
        if isinstance(pred, list):
            pred = pred[0] if pred else {}

        return str(pred.get("label", "")), float(pred.get("score", 0.0))
