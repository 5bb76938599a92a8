"""
Classifier running in a separate process.

The two queues are the only channel between the processes. The worker
imports its model factory on "load"; CLASSIFIER_MODEL selects it as
"package.module:function", where function(labels) returns a callable
mapping a crop to [{"label", "score"}, ...] ranked best first.
"""
import importlib
import multiprocessing as mp
import os
import queue

from doodledash.adapters.classifier.base import ClassifierAdapter
from doodledash.orchestrator.labels import LABELS

DEFAULT_MODEL = "doodledash.adapters.classifier.mock_classifier:random_scorer"


def load_model_factory(path: str):
    module_name, _, attr = path.partition(":")
    if not attr:
        raise ValueError(f"model path must look like 'module:function', got {path!r}")
    return getattr(importlib.import_module(module_name), attr)


def _worker_main(inbox, outbox, model_path: str):
    model = None
    while True:
        msg = inbox.get()
        if msg is None:
            break
        action = msg.get("action")
        token = msg.get("token")
        try:
            if action == "load":
                outbox.put({"status": "update", "message": f"loading {model_path}"})
                model = load_model_factory(model_path)(LABELS)
                outbox.put({"status": "ready"})
            elif action == "classify":
                if model is None:
                    raise RuntimeError("model not loaded")
                outbox.put({"status": "result", "token": token, "data": model(msg["image"])})
        except Exception as e:
            outbox.put({"status": "error", "token": token, "error": f"{type(e).__name__}: {e}"})


class ProcessClassifier(ClassifierAdapter):
    def __init__(self, status_store, model_path: str | None = None):
        self.status = status_store
        self.model_path = model_path or os.getenv("CLASSIFIER_MODEL", DEFAULT_MODEL)
        self._ctx = mp.get_context("spawn")
        self._inbox = None
        self._outbox = None
        self._proc = None
        self._reported_exit = False
        self._load_requested = False

    def _ensure_started(self) -> bool:
        """Spawn the worker if needed. True when a dead worker was replaced."""
        if self._proc is not None and self._proc.is_alive():
            return False
        respawn = self._proc is not None
        self._inbox = self._ctx.Queue()
        self._outbox = self._ctx.Queue()
        self._proc = self._ctx.Process(
            target=_worker_main,
            args=(self._inbox, self._outbox, self.model_path),
            daemon=True,
        )
        self._proc.start()
        self._reported_exit = False
        self.status.log(f"process_classifier: worker pid={self._proc.pid} model={self.model_path}")
        return respawn

    def post(self, message: dict) -> None:
        is_load = message.get("action") == "load"
        if self._ensure_started() and self._load_requested and not is_load:
            # a replacement worker starts without a model
            self.status.log("process_classifier: worker restarted, reloading model")
            self._inbox.put({"action": "load"})
        self._load_requested = self._load_requested or is_load
        self._inbox.put(message)

    def poll(self) -> list[dict]:
        if self._outbox is None:
            return []
        out = []
        while True:
            try:
                out.append(self._outbox.get_nowait())
            except queue.Empty:
                break
        if not self._proc.is_alive() and not self._reported_exit:
            self._reported_exit = True
            self.status.log(f"process_classifier: worker exited code={self._proc.exitcode}")
            out.append({"status": "error", "error": "classifier worker exited"})
        return out

    def close(self) -> None:
        if self._proc is None:
            return
        if self._proc.is_alive():
            self._inbox.put(None)
            self._proc.join(timeout=2.0)
            if self._proc.is_alive():
                self._proc.terminate()
        self._reported_exit = True
        self.status.log("process_classifier: worker stopped")
