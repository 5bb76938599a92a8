import zlib
from collections import deque

import numpy as np

from doodledash.adapters.classifier.base import ClassifierAdapter
from doodledash.orchestrator.labels import LABELS


def random_scorer(labels=LABELS, top_k: int | None = None):
    """Stand-in model: scores seeded from the image bytes, so the same crop
    always gets the same ranking."""
    labels = list(labels)

    def score(image) -> list[dict]:
        seed = zlib.crc32(np.ascontiguousarray(image).tobytes()) if image is not None else 0
        rng = np.random.default_rng(seed)
        raw = rng.random(len(labels)) ** 4
        probs = raw / raw.sum()
        order = np.argsort(-probs)
        if top_k is not None:
            order = order[:top_k]
        return [{"label": labels[i], "score": float(probs[i])} for i in order]

    return score


class MockClassifier(ClassifierAdapter):
    """In-process classifier. Replies are queued and only seen on poll()."""

    def __init__(self, status_store, scorer=None):
        self.status = status_store
        self._factory_scorer = scorer
        self._scorer = None
        self._outbox: deque[dict] = deque()
        self.posted: list[dict] = []

    def post(self, message: dict) -> None:
        self.posted.append(message)
        action = message.get("action")
        if action == "load":
            self.status.log("mock_classifier: loading")
            self._scorer = self._factory_scorer or random_scorer()
            self._outbox.append({"status": "update", "message": "mock model loaded"})
            self._outbox.append({"status": "ready"})
        elif action == "classify":
            token = message.get("token")
            if self._scorer is None:
                self._outbox.append({"status": "error", "token": token, "error": "model not loaded"})
                return
            try:
                data = self._scorer(message.get("image"))
            except Exception as e:
                self._outbox.append({"status": "error", "token": token, "error": f"{type(e).__name__}: {e}"})
                return
            self._outbox.append({"status": "result", "token": token, "data": data})
        else:
            self.status.log(f"mock_classifier: unknown action {action!r}")

    def poll(self) -> list[dict]:
        out = list(self._outbox)
        self._outbox.clear()
        return out
