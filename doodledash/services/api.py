import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from dotenv import load_dotenv

from doodledash.services.models import (
    PointerIn, PointerResponse, ActionResponse, StatusResponse,
    CandidateOut, BoxOut, PredictionOut, SummaryResponse,
)
from doodledash.services.status_store import StatusStore
from doodledash.orchestrator import errors
from doodledash.orchestrator.config import GameConfig
from doodledash.orchestrator.contracts import PointerEvent, LOADING, PLAYING
from doodledash.orchestrator.state_machine import RoundStateMachine, PUMP_TIMER

load_dotenv(dotenv_path=".env", override=False)

status = StatusStore()
config = GameConfig.from_env()


def build_classifier(status_store):
    # Values: mock | process | http  (default: mock)
    adapter = os.getenv("CLASSIFIER_ADAPTER", "mock").lower()
    if adapter == "process":
        from doodledash.adapters.classifier.process_classifier import ProcessClassifier
        classifier = ProcessClassifier(status_store)
    elif adapter == "http":
        from doodledash.adapters.classifier.http_classifier import HttpClassifier
        url = os.getenv("CLASSIFIER_HTTP_BASE_URL", "http://127.0.0.1:9100")
        classifier = HttpClassifier(status_store, base_url=url)
        status_store.log(f"classifier adapter: http -> {url}")
    else:
        from doodledash.adapters.classifier.mock_classifier import MockClassifier
        classifier = MockClassifier(status_store)
    status_store.log(f"classifier adapter: {type(classifier).__name__}")
    return classifier


def build_timer(status_store):
    # Values: asyncio | manual  (default: asyncio)
    if os.getenv("TIMER_ADAPTER", "asyncio").lower() == "manual":
        from doodledash.adapters.timer.manual_timer import ManualTimer
        return ManualTimer(status_store)
    from doodledash.adapters.timer.asyncio_timer import AsyncioTimer
    return AsyncioTimer(status_store)


def build_game(classifier=None, timer=None, **kwargs) -> RoundStateMachine:
    return RoundStateMachine(
        config,
        classifier or build_classifier(status),
        timer or build_timer(status),
        status,
        **kwargs,
    )


game = build_game()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    game.timer.start(PUMP_TIMER, config.pump_ms / 1000.0, game.pump)
    status.log("service: started")
    yield
    game.timer.cancel_all()
    game.classifier.close()
    status.log("service: stopped")


# Handlers are async so they run on the event loop thread, the same thread
# the timers fire on.
app = FastAPI(title="doodledash", lifespan=lifespan)


def _action(name: str, fn, error_code: str = errors.ERR_BAD_STATE) -> ActionResponse:
    try:
        ok = fn()
    except Exception as e:
        status.error(f"{name}: {type(e).__name__}: {e}")
        return ActionResponse(ok=False, state=game.session.state, error_code=errors.ERR_UNKNOWN)
    return ActionResponse(ok=ok, state=game.session.state, error_code=None if ok else error_code)


def _pointer(accepted: bool) -> PointerResponse:
    playing = game.session.state == PLAYING
    return PointerResponse(
        ok=playing,
        accepted=accepted,
        state=game.session.state,
        error_code=None if playing else errors.ERR_BAD_STATE,
    )


@app.post("/start", response_model=ActionResponse)
async def start():
    code = errors.ERR_NOT_READY if game.session.state == LOADING else errors.ERR_BAD_STATE
    return _action("start", game.request_start, code)


@app.post("/pointer/start", response_model=PointerResponse)
async def pointer_start(p: PointerIn):
    return _pointer(game.tracker.start(PointerEvent(p.x, p.y, p.touch, p.safe_area_offset)))


@app.post("/pointer/move", response_model=PointerResponse)
async def pointer_move(p: PointerIn):
    return _pointer(game.tracker.move(PointerEvent(p.x, p.y, p.touch, p.safe_area_offset)))


@app.post("/pointer/stop", response_model=PointerResponse)
async def pointer_stop():
    game.tracker.stop()
    return _pointer(True)


@app.post("/clear", response_model=ActionResponse)
async def clear():
    return _action("clear", game.clear_canvas)


@app.post("/skip", response_model=ActionResponse)
async def skip():
    return _action("skip", game.skip)


@app.post("/exit", response_model=ActionResponse)
async def exit_round():
    return _action("exit", game.exit)


@app.post("/game_over", response_model=ActionResponse)
async def game_over(play_again: bool = True):
    """End screen buttons: play again (countdown) or main menu."""
    return _action("game_over", lambda: game.game_over_choice(play_again))


@app.get("/status", response_model=StatusResponse)
async def get_status():
    s = game.session
    box = game.tracker.bbox
    return StatusResponse(
        state=s.state,
        ready=game.gate.ready,
        predicting=game.gate.busy,
        target=s.target if s.state == PLAYING else None,
        target_index=s.target_index,
        lives=s.lives,
        countdown=s.countdown,
        level_timer_ms=s.level_timer_ms,
        elapsed_drawing_ms=game.tracker.get_elapsed_drawing_time(),
        time_left_pct=game.time_left_pct(),
        elapsed_s=game.elapsed_s(),
        output=[CandidateOut(label=c.label, score=c.score) for c in s.output[:5]] if s.output else None,
        response_line=game.response_line(),
        correct_flash=game.correct_flash,
        bbox=BoxOut(min_x=box.min_x, min_y=box.min_y, max_x=box.max_x, max_y=box.max_y) if box else None,
        predictions=len(s.predictions),
        last_error=status.last_error,
        logs=status.logs,
    )


@app.get("/summary", response_model=SummaryResponse)
async def summary():
    """Game-over review: score, time and every resolved target."""
    s = game.session
    info = game.summary()
    return SummaryResponse(
        state=s.state,
        predictions=[
            PredictionOut(
                target=p.target,
                correct=p.correct,
                output=CandidateOut(label=p.output.label, score=p.output.score) if p.output else None,
                has_image=p.image is not None,
            )
            for p in s.predictions
        ],
        **info,
    )


@app.get("/health")
async def health():
    return {
        "ok": True,
        "classifier_adapter": type(game.classifier).__name__,
        "classifier_ready": game.gate.ready,
        "timer_adapter": type(game.timer).__name__,
        "timers": game.timer.names(),
    }
