import random
import time
from dataclasses import dataclass, field

from doodledash.orchestrator import labels as L
from doodledash.orchestrator.config import GameConfig
from doodledash.orchestrator.contracts import (
    Candidate, Prediction, GameState, MENU, LOADING, COUNTDOWN, PLAYING, END,
)
from doodledash.orchestrator.gate import ClassificationGate
from doodledash.orchestrator.shaper import DifficultyShaper
from doodledash.orchestrator.stroke_tracker import StrokeTracker
from doodledash.orchestrator.utils import format_time, monotonic_ms, shuffled

COUNTDOWN_TIMER = "countdown"
CLASSIFY_TIMER = "classify"
PUMP_TIMER = "pump"


@dataclass
class GameSession:
    """Everything that lives for one session. Mutated only by RoundStateMachine."""
    state: GameState = MENU
    lives: int = 0
    countdown: int = 0
    level_timer_ms: float = 0.0
    targets: list[str] = field(default_factory=list)
    target_index: int = 0
    responses: list[str] = field(default_factory=list)
    predictions: list[Prediction] = field(default_factory=list)
    output: list[Candidate] | None = None
    round_token: int = 0
    start_time: float | None = None
    current_time: float | None = None
    correct_until: float = 0.0

    @property
    def target(self) -> str | None:
        if 0 <= self.target_index < len(self.targets):
            return self.targets[self.target_index]
        return None

    @property
    def correct_count(self) -> int:
        return sum(1 for p in self.predictions if p.correct)


class RoundStateMachine:
    """
    menu -> loading -> countdown -> playing -> end

    Drives the countdown and classify timers, feeds classifier replies through
    the difficulty shaper, and resolves each target as correct, skipped or
    timed out. Every resolution bumps the round token so replies for an
    earlier target are dropped.
    """

    def __init__(self, config: GameConfig, classifier, timer, status_store,
                 clock=time.time, tracker_clock=monotonic_ms, rng: random.Random | None = None):
        self.config = config
        self.classifier = classifier
        self.timer = timer
        self.status = status_store
        self.clock = clock
        self.rng = rng or random.Random()

        self.session = GameSession(
            lives=config.lives,
            countdown=config.countdown,
            level_timer_ms=config.level_timer_ms,
        )
        self.tracker = StrokeTracker(config, status_store, on_change=self.on_sketch_changed, clock=tracker_clock)
        self.tracker.disabled = True
        self.gate = ClassificationGate(classifier, status_store)
        self.shaper = DifficultyShaper(config, status_store)

    # ── Transitions ────────────────────────────────────────────────────────

    def request_start(self) -> bool:
        """Main-menu button: load the classifier first if it is not ready yet."""
        if self.session.state != MENU:
            return False
        if not self.gate.ready:
            self.gate.request_load()
            self._set_state(LOADING)
            return True
        self.begin_countdown()
        return True

    def begin_countdown(self):
        c, s = self.config, self.session
        self._stop_round_timers()

        s.lives = c.lives
        s.countdown = c.countdown
        s.level_timer_ms = c.level_timer_ms
        pool = [label for label in dict.fromkeys(L.LABELS) if label not in c.banned_labels]
        s.targets = shuffled(pool, self.rng)
        s.target_index = 0
        s.responses = shuffled(L.RESPONSES, self.rng)
        s.output = None

        self._set_state(COUNTDOWN)
        self.timer.start(COUNTDOWN_TIMER, 1.0, self.tick_countdown)

    def tick_countdown(self):
        s = self.session
        if s.state != COUNTDOWN:
            return
        s.countdown -= 1
        if s.countdown > 0:
            return

        self.timer.cancel(COUNTDOWN_TIMER)
        s.start_time = s.current_time = self.clock()
        s.predictions = []
        self._new_round()
        self._set_state(PLAYING)
        self.timer.start(CLASSIFY_TIMER, self.config.prediction_refresh_ms / 1000.0, self.tick_classify)
        self.status.log(f"game: target #{s.target_index} = {s.target!r}")

    def tick_classify(self):
        s = self.session
        if s.state != PLAYING:
            return
        self.gate.tick(s.round_token, self.tracker.get_cropped_image)
        s.current_time = self.clock()

    def on_sketch_changed(self):
        if self.session.state != PLAYING:
            return
        self.gate.note_change()
        self.check_level_time()

    def check_level_time(self):
        s = self.session
        elapsed = self.tracker.get_elapsed_drawing_time()
        if s.level_timer_ms - elapsed < 0:
            self.status.log(f"game: time up on {s.target!r} ({elapsed:.0f}ms)")
            self.go_next(False)

    def skip(self) -> bool:
        if self.session.state != PLAYING:
            return False
        self.status.log(f"game: skipped {self.session.target!r}")
        self.go_next(False)
        return True

    def clear_canvas(self) -> bool:
        """Wipe the ink; the round clock keeps running."""
        if self.session.state != PLAYING:
            return False
        self.tracker.clear(reset_timer=False)
        return True

    def exit(self) -> bool:
        """Abandon the round without penalty."""
        if self.session.state != PLAYING:
            return False
        self.end_game(cancelled=True)
        return True

    def game_over_choice(self, play_again: bool) -> bool:
        s = self.session
        if s.state != END:
            return False
        if play_again:
            self.begin_countdown()
        else:
            s.predictions = []
            self._set_state(MENU)
        return True

    def go_next(self, correct: bool):
        """Resolve the current target and move on to the next one."""
        c, s = self.config, self.session
        if correct:
            s.level_timer_ms = max(s.level_timer_ms - c.level_timer_reducer_ms, c.level_timer_floor_ms)
            s.correct_until = self.clock() + c.correct_flash_ms / 1000.0
        else:
            s.lives = max(s.lives - 1, 0)
            self.status.log(f"game: miss, lives={s.lives}")

        # the miss that uses up the last life is not recorded
        if s.lives > 0:
            self._record_prediction(correct)

        s.target_index += 1
        s.output = None
        self._new_round()

        if s.lives <= 0:
            self.end_game()
        elif s.target is None:
            self.status.log("game: target pool exhausted")
            self.end_game()
        else:
            self.status.log(f"game: target #{s.target_index} = {s.target!r}")

    def end_game(self, cancelled: bool = False):
        s = self.session
        self._stop_round_timers()
        s.output = None
        s.round_token += 1
        self.gate.reset()
        self.tracker.clear(reset_timer=True)
        s.countdown = self.config.countdown
        if cancelled:
            s.predictions = []
            self._set_state(MENU)
        else:
            self._set_state(END)

    # ── Classifier replies ─────────────────────────────────────────────────

    def pump(self):
        """Idle hook: apply every classifier reply received since the last call."""
        for msg in self.classifier.poll():
            self.handle_message(msg)

    def handle_message(self, msg: dict):
        status = msg.get("status")
        if status == "ready":
            self.gate.mark_ready()
            self.status.log("game: classifier ready")
            if self.session.state == LOADING:
                self.begin_countdown()
        elif status == "update":
            pass
        elif status == "result":
            self.on_result(msg.get("token", self.gate.outstanding), msg.get("data") or [])
        elif status == "error":
            self.status.error(f"game: classifier error: {msg.get('error')}")
            self.gate.fail(msg.get("token", self.gate.outstanding))
            if self.session.state == LOADING and not self.gate.ready:
                self._set_state(MENU)
        else:
            self.status.log(f"game: unknown classifier message {status!r}")

    def on_result(self, token, data: list[dict]) -> bool:
        s = self.session
        if not self.gate.complete(token) or s.state != PLAYING or token != s.round_token:
            self.status.log(f"game: stale result token={token} dropped (round={s.round_token})")
            return False

        raw = [Candidate(label=str(d["label"]), score=float(d["score"])) for d in data]
        shaped = self.shaper.shape(raw, self.tracker.get_elapsed_drawing_time(), s.target)
        if not shaped:
            return False
        s.output = shaped

        if shaped[0].label == s.target:
            self.status.log(f"game: correct {s.target!r} ({shaped[0].score:.2f})")
            self.go_next(True)
        return True

    # ── Views ──────────────────────────────────────────────────────────────

    @property
    def correct_flash(self) -> bool:
        return self.clock() < self.session.correct_until

    def time_left_pct(self) -> float:
        budget = self.session.level_timer_ms
        if budget <= 0:
            return 0.0
        return max(0.0, budget - self.tracker.get_elapsed_drawing_time()) / budget * 100.0

    def response_line(self) -> str | None:
        s = self.session
        if not s.output or not s.responses:
            return None
        top = s.output[0]
        phrase = s.responses[s.target_index % len(s.responses)]
        return f"{phrase} {top.label} ({100 * top.score:.1f}%)"

    def elapsed_s(self) -> float:
        s = self.session
        if s.start_time is None or s.current_time is None:
            return 0.0
        return s.current_time - s.start_time

    def summary(self) -> dict:
        s = self.session
        correct = s.correct_count
        return {
            "won": correct >= self.config.win_threshold,
            "correct": correct,
            "total": len(s.predictions),
            "duration_s": self.elapsed_s(),
            "duration": format_time(self.elapsed_s()),
        }

    # ── Internal ───────────────────────────────────────────────────────────

    def _record_prediction(self, correct: bool):
        s = self.session
        top = s.output[0] if s.output else None
        s.predictions.append(Prediction(
            output=Candidate(top.label, top.score) if top else None,
            image=self.tracker.get_cropped_image(),
            correct=correct,
            target=s.target,
        ))

    def _new_round(self):
        self.session.round_token += 1
        self.gate.reset()
        self.tracker.clear(reset_timer=True)

    def _stop_round_timers(self):
        self.timer.cancel(COUNTDOWN_TIMER)
        self.timer.cancel(CLASSIFY_TIMER)

    def _set_state(self, state: GameState):
        old = self.session.state
        self.session.state = state
        self.tracker.disabled = state != PLAYING
        self.status.log(f"game: {old} -> {state}")
