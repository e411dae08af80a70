import threading

from app.core.config import settings
from app.services.text_classifier import TextClassifier, TextClassifierConfig, TransformersClassifier

class ModelRegistry:
    """
    Classifier singleton/cache registry, one per language.
    - built on first request for a language (model weights load lazily inside)
    - tests and deployments can register their own implementation
    """
    classifiers: dict[str, TextClassifier] = {}
    _lock = threading.Lock()

    @classmethod
    def get_classifier(cls, lang: str) -> TextClassifier:
        with cls._lock:
            clf = cls.classifiers.get(lang)
            if clf is None:
                model_name = settings.SCREENER_TH_MODEL if lang == "th" else settings.SCREENER_EN_MODEL
                clf = TransformersClassifier(
                    TextClassifierConfig(model_name=model_name, device=settings.SCREENER_DEVICE)
                )
                cls.classifiers[lang] = clf
            return clf

    @classmethod
    def register(cls, lang: str, classifier: TextClassifier) -> None:
        with cls._lock:
            cls.classifiers[lang] = classifier

    @classmethod
    def clear(cls) -> None:
        with cls._lock:
            cls.classifiers.clear()
