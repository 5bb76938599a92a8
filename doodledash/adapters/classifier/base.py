class ClassifierAdapter:
    """
    Message-passing bridge to an out-of-process classifier.

    Outbound:  {"action": "load"}
               {"action": "classify", "image": <ndarray>, "token": int}
    Inbound:   {"status": "ready"}
               {"status": "update", ...}                       informational
               {"status": "result", "token": int, "data": [{"label", "score"}, ...]}
               {"status": "error", "token": int | None, "error": str}

    post() never blocks on inference; replies are collected by poll().
    """

    def post(self, message: dict) -> None:
        raise NotImplementedError

    def poll(self) -> list[dict]:
        """Drain every reply received since the last call, in arrival order."""
        raise NotImplementedError

    def close(self) -> None:
        pass
