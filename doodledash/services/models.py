from pydantic import BaseModel
from typing import Literal, Optional

GameStateName = Literal["menu", "loading", "countdown", "playing", "end"]

class PointerIn(BaseModel):
    x: float
    y: float
    touch: bool = False
    # touch only: (target height - body height) / 2, the iOS notch correction
    safe_area_offset: float = 0.0

class CandidateOut(BaseModel):
    label: str
    score: float

class BoxOut(BaseModel):
    min_x: float
    min_y: float
    max_x: float
    max_y: float

class ActionResponse(BaseModel):
    ok: bool
    state: GameStateName
    error_code: Optional[str] = None

class PointerResponse(BaseModel):
    ok: bool
    accepted: bool          # False when filtered (edge margin, throttled, no stroke)
    state: GameStateName
    error_code: Optional[str] = None

class StatusResponse(BaseModel):
    state: GameStateName
    ready: bool
    predicting: bool
    target: Optional[str] = None
    target_index: int
    lives: int
    countdown: int
    level_timer_ms: float
    elapsed_drawing_ms: float
    time_left_pct: float
    elapsed_s: float
    output: Optional[list[CandidateOut]] = None
    response_line: Optional[str] = None
    correct_flash: bool = False
    bbox: Optional[BoxOut] = None
    predictions: int
    last_error: Optional[str] = None
    logs: list[str]

class PredictionOut(BaseModel):
    target: str
    correct: bool
    output: Optional[CandidateOut] = None
    has_image: bool

class SummaryResponse(BaseModel):
    state: GameStateName
    won: bool
    correct: int
    total: int
    duration_s: float
    duration: str           # m:ss
    predictions: list[PredictionOut]
