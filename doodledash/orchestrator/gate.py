from doodledash.orchestrator.contracts import SketchImage


class ClassificationGate:
    """
    Admission control in front of the classifier: at most one request in
    flight. A submission is made on a poll tick only when new ink exists since
    the last submission, the classifier has reported ready and nothing is
    outstanding. Each request carries the round token so late results for an
    earlier target can be recognised and dropped.
    """

    def __init__(self, classifier, status_store):
        self.classifier = classifier
        self.status = status_store
        self.ready = False
        self.dirty = False               # ink changed since the last submission
        self.outstanding: int | None = None

    @property
    def busy(self) -> bool:
        return self.outstanding is not None

    def mark_ready(self):
        self.ready = True

    def note_change(self):
        self.dirty = True

    def request_load(self):
        self.classifier.post({"action": "load"})

    def tick(self, token: int, extract) -> bool:
        """Poll-timer hook. `extract` returns the current crop or None."""
        if not self.dirty or self.busy:
            return False
        if not self.ready:
            self.status.log("gate: classifier not ready, submission refused")
            return False
        image = extract()
        if image is None:
            return False
        return self.submit(image, token)

    def submit(self, image: SketchImage, token: int) -> bool:
        if not self.ready or self.busy:
            return False
        self.classifier.post({"action": "classify", "image": image, "token": token})
        self.outstanding = token
        self.dirty = False
        return True

    def complete(self, token) -> bool:
        """Clear the outstanding flag. False if the reply is stale."""
        if self.outstanding is None or token != self.outstanding:
            return False
        self.outstanding = None
        return True

    def fail(self, token) -> bool:
        """Error reply: clear the request and keep its ink pending for the next tick."""
        if not self.complete(token):
            return False
        self.dirty = True
        return True

    def reset(self):
        """Forget any in-flight request; its reply will be discarded as stale."""
        self.outstanding = None
        self.dirty = False
