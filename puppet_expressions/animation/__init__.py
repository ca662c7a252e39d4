"""Animation package - Parameter state, blending and fades.

Provides:
- Parameter store (double-buffered committed values)
- Blend resolver (overwrite/add/multiply layering)
- Transition scheduler (IDLE/FADING state machine)
- Frame clock
"""

from puppet_expressions.animation.blend import (
    BlendLayer,
    BlendResult,
    blend_value,
    clamp_unit,
    lerp,
    resolve,
    resolve_layers,
)
from puppet_expressions.animation.clock import FrameClock, ManualClock
from puppet_expressions.animation.store import ParameterStore
from puppet_expressions.animation.transition import (
    TransitionPhase,
    TransitionRecord,
    TransitionScheduler,
    TransitionState,
)

__all__ = [
    # Blend
    "BlendLayer",
    "BlendResult",
    "blend_value",
    "clamp_unit",
    "lerp",
    "resolve",
    "resolve_layers",
    # Clock
    "FrameClock",
    "ManualClock",
    # Store
    "ParameterStore",
    # Transition
    "TransitionPhase",
    "TransitionRecord",
    "TransitionScheduler",
    "TransitionState",
]
