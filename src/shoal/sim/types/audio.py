from __future__ import annotations

from enum import Enum
from typing import Callable


class AudioCue(str, Enum):
    COLLECT = "collect"
    BUBBLE = "bubble"
    PREDATOR_SPAWN = "predator_spawn"
    PREDATOR_VICTORY = "predator_victory"


AudioSink = Callable[[AudioCue], None]
