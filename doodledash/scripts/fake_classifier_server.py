"""
Fake classifier server for testing HttpClassifier without a real model.

Decodes the PNG crop and scores it with the mock scorer.
Set FAKE_CLASSIFIER_DELAY to simulate slow inference.

Usage:
    python -m doodledash.scripts.fake_classifier_server
    CLASSIFIER_ADAPTER=http uvicorn doodledash.services.api:app
"""

import base64
import os
import time

import cv2
import numpy as np
import uvicorn
from fastapi import FastAPI, Request

from doodledash.adapters.classifier.mock_classifier import random_scorer

app = FastAPI(title="fake-classifier-server")

_score = random_scorer(top_k=int(os.getenv("FAKE_CLASSIFIER_TOP_K", "20")))
_DELAY_S = float(os.getenv("FAKE_CLASSIFIER_DELAY", "0.05"))


@app.get("/health")
async def health():
    return {"ok": True}


@app.post("/classify")
async def classify(request: Request):
    body = await request.json()
    try:
        raw = base64.b64decode(body["image"])
        image = cv2.imdecode(np.frombuffer(raw, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    except Exception as e:
        return {"ok": False, "error": f"bad image: {e}"}
    if image is None:
        return {"ok": False, "error": "bad image: decode failed"}
    time.sleep(_DELAY_S)
    data = _score(image)
    print(f"[classifier] token={body.get('token')} {image.shape} -> {data[0]['label']} ({data[0]['score']:.2f})")
    return {"ok": True, "data": data}


if __name__ == "__main__":
    print("Fake classifier server starting on http://localhost:9100")
    uvicorn.run(app, host="0.0.0.0", port=9100)
