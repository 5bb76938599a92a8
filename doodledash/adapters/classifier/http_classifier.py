"""
HTTP adapter for a remote classifier service.

Contract (see scripts/fake_classifier_server.py):
  GET  /health                              -> {"ok": true}
  POST /classify {"image": <b64 png>, "token": n}
                                            -> {"ok": true, "data": [{"label", "score"}, ...]}

Requests run one at a time on a background thread; replies are queued and
handed back on poll(), so the game loop never waits on the network.
"""
import base64
import queue
from concurrent.futures import ThreadPoolExecutor

import cv2
import httpx

from doodledash.adapters.classifier.base import ClassifierAdapter


def encode_png_b64(image) -> str:
    ok, buf = cv2.imencode(".png", image)
    if not ok:
        raise ValueError("png encode failed")
    return base64.standard_b64encode(buf.tobytes()).decode("ascii")


class HttpClassifier(ClassifierAdapter):
    def __init__(self, status_store, base_url: str = "http://127.0.0.1:9100", timeout: float = 10.0):
        self.status = status_store
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="http_classifier")
        self._replies: queue.SimpleQueue = queue.SimpleQueue()

    def post(self, message: dict) -> None:
        self._pool.submit(self._handle, message)

    def _handle(self, message: dict):
        action = message.get("action")
        token = message.get("token")
        try:
            if action == "load":
                resp = httpx.get(f"{self.base_url}/health", timeout=self.timeout)
                resp.raise_for_status()
                self._replies.put({"status": "ready"})
            elif action == "classify":
                payload = {"image": encode_png_b64(message["image"]), "token": token}
                resp = httpx.post(f"{self.base_url}/classify", json=payload, timeout=self.timeout)
                resp.raise_for_status()
                data = resp.json()
                if not data.get("ok", True):
                    raise RuntimeError(f"classifier error: {data.get('error', 'unknown')}")
                self._replies.put({"status": "result", "token": token, "data": data.get("data", [])})
        except Exception as e:
            self._replies.put({"status": "error", "token": token, "error": f"{type(e).__name__}: {e}"})

    def poll(self) -> list[dict]:
        out = []
        while True:
            try:
                out.append(self._replies.get_nowait())
            except queue.Empty:
                break
        return out

    def close(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)
        self.status.log("http_classifier: closed")
