import asyncio
import queue

import httpx
import numpy as np
import pytest

from doodledash.adapters.classifier import http_classifier
from doodledash.adapters.classifier.http_classifier import HttpClassifier
from doodledash.adapters.classifier.mock_classifier import MockClassifier, random_scorer
from doodledash.adapters.classifier.process_classifier import (
    DEFAULT_MODEL, ProcessClassifier, _worker_main, load_model_factory,
)
from doodledash.adapters.timer.asyncio_timer import AsyncioTimer
from doodledash.adapters.timer.manual_timer import ManualTimer

IMAGE = np.zeros((16, 16), np.uint8)


# ── Classifiers ────────────────────────────────────────────────────────────

def test_mock_classifier_protocol(status):
    clf = MockClassifier(status)
    clf.post({"action": "classify", "image": IMAGE, "token": 1})
    assert clf.poll() == [{"status": "error", "token": 1, "error": "model not loaded"}]

    clf.post({"action": "load"})
    assert [m["status"] for m in clf.poll()] == ["update", "ready"]

    clf.post({"action": "classify", "image": IMAGE, "token": 7})
    (reply,) = clf.poll()
    assert reply["status"] == "result"
    assert reply["token"] == 7
    assert clf.poll() == []


def test_random_scorer_is_ranked_distribution():
    score = random_scorer(["a", "b", "c", "d"])
    data = score(IMAGE)
    assert sorted(d["label"] for d in data) == ["a", "b", "c", "d"]
    values = [d["score"] for d in data]
    assert values == sorted(values, reverse=True)
    assert sum(values) == pytest.approx(1.0)
    assert score(IMAGE) == data


def test_random_scorer_top_k():
    assert len(random_scorer(top_k=5)(IMAGE)) == 5


def test_worker_loop_in_process():
    inbox, outbox = queue.Queue(), queue.Queue()
    inbox.put({"action": "classify", "image": IMAGE, "token": 1})
    inbox.put({"action": "load"})
    inbox.put({"action": "classify", "image": IMAGE, "token": 2})
    inbox.put(None)
    _worker_main(inbox, outbox, DEFAULT_MODEL)

    replies = []
    while not outbox.empty():
        replies.append(outbox.get())
    assert [r["status"] for r in replies] == ["error", "update", "ready", "result"]
    assert replies[0]["token"] == 1
    assert replies[-1]["token"] == 2
    assert replies[-1]["data"][0]["score"] >= replies[-1]["data"][-1]["score"]


def test_worker_reports_bad_model_path():
    inbox, outbox = queue.Queue(), queue.Queue()
    inbox.put({"action": "load"})
    inbox.put(None)
    _worker_main(inbox, outbox, "doodledash.adapters.classifier.mock_classifier:nope")
    statuses = []
    while not outbox.empty():
        statuses.append(outbox.get()["status"])
    assert statuses == ["update", "error"]


class FakeProcess:
    def __init__(self, target, args, daemon):
        self.pid = 4242
        self.exitcode = None
        self.alive = False

    def start(self):
        self.alive = True

    def is_alive(self):
        return self.alive


class FakeContext:
    """Stands in for a spawn context; the worker never actually runs."""

    def __init__(self):
        self.procs = []

    def Queue(self):
        return queue.Queue()

    def Process(self, **kwargs):
        proc = FakeProcess(**kwargs)
        self.procs.append(proc)
        return proc


def drain(q):
    out = []
    while not q.empty():
        out.append(q.get())
    return out


def test_replacement_worker_reloads_model(status):
    ctx = FakeContext()
    classifier = ProcessClassifier(status)
    classifier._ctx = ctx
    classifier.post({"action": "load"})
    classifier.post({"action": "classify", "image": IMAGE, "token": 1})
    assert [m["action"] for m in drain(classifier._inbox)] == ["load", "classify"]

    ctx.procs[0].alive = False
    assert classifier.poll()[-1]["status"] == "error"
    classifier.post({"action": "classify", "image": IMAGE, "token": 2})
    assert len(ctx.procs) == 2
    assert [m["action"] for m in drain(classifier._inbox)] == ["load", "classify"]
    assert any("reloading model" in line for line in status.logs)


def test_replacement_worker_before_load_waits_for_load(status):
    ctx = FakeContext()
    classifier = ProcessClassifier(status)
    classifier._ctx = ctx
    classifier.post({"action": "classify", "image": IMAGE, "token": 1})
    ctx.procs[0].alive = False
    classifier.post({"action": "load"})
    assert [m["action"] for m in drain(classifier._inbox)] == ["load"]


def test_load_model_factory_needs_function_name():
    with pytest.raises(ValueError):
        load_model_factory("doodledash.adapters.classifier.mock_classifier")


def test_http_classifier_round_trip(status, monkeypatch):
    def fake_get(url, timeout):
        return httpx.Response(200, json={"ok": True}, request=httpx.Request("GET", url))

    def fake_post(url, json, timeout):
        assert url.endswith("/classify")
        assert isinstance(json["image"], str)
        data = [{"label": "cat", "score": 1.0}]
        return httpx.Response(200, json={"ok": True, "data": data}, request=httpx.Request("POST", url))

    monkeypatch.setattr(http_classifier.httpx, "get", fake_get)
    monkeypatch.setattr(http_classifier.httpx, "post", fake_post)

    clf = HttpClassifier(status, base_url="http://classifier.test/")
    clf.post({"action": "load"})
    clf.post({"action": "classify", "image": IMAGE, "token": 3})
    clf._pool.shutdown(wait=True)

    assert clf.poll() == [
        {"status": "ready"},
        {"status": "result", "token": 3, "data": [{"label": "cat", "score": 1.0}]},
    ]


def test_http_classifier_turns_failures_into_errors(status, monkeypatch):
    def fake_post(url, json, timeout):
        return httpx.Response(503, request=httpx.Request("POST", url))

    monkeypatch.setattr(http_classifier.httpx, "post", fake_post)
    clf = HttpClassifier(status)
    clf.post({"action": "classify", "image": IMAGE, "token": 4})
    clf._pool.shutdown(wait=True)

    (reply,) = clf.poll()
    assert reply["status"] == "error"
    assert reply["token"] == 4


# ── Timers ─────────────────────────────────────────────────────────────────

def test_manual_timer_fires_until_cancelled():
    timer = ManualTimer()
    calls = []

    def tick():
        calls.append(1)
        if len(calls) == 2:
            timer.cancel("t")

    timer.start("t", 1.0, tick)
    assert timer.active("t")
    assert timer.fire("t", 5) == 2
    assert not timer.active("t")
    assert timer.fire("t") == 0


def test_manual_timer_cancel_all():
    timer = ManualTimer()
    timer.start("a", 1.0, lambda: None)
    timer.start("b", 1.0, lambda: None)
    timer.cancel_all()
    assert timer.names() == []


def test_asyncio_timer_repeats_and_survives_errors(status):
    calls = []

    def tick():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")

    async def run():
        timer = AsyncioTimer(status)
        timer.start("t", 0.01, tick)
        await asyncio.sleep(0.1)
        timer.cancel("t")
        seen = len(calls)
        await asyncio.sleep(0.05)
        return seen

    seen = asyncio.run(run())
    assert seen >= 2
    assert len(calls) == seen
    assert any("boom" in line for line in status.logs)
