"""Engine Constants - Authoritative thresholds and contracts.

These constants define the behavioral contracts of the blending engine:
fade timing, validation limits and descriptor defaults.
"""

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True)
class EngineConstants:
    """Immutable engine contract values.

    All timing values in milliseconds unless otherwise noted.
    """

    # Transitions
    DEFAULT_FADE_MS: Final[int] = 500  # Fade used when no duration is given
    MAX_FADE_MS: Final[int] = 60_000  # Upper bound accepted from commands
    TRANSITION_HISTORY_SIZE: Final[int] = 100  # Completed/interrupted fades kept

    # Frame driver
    TARGET_FPS: Final[int] = 30  # Default animation tick rate

    # Validation
    MAX_NAME_LENGTH: Final[int] = 50  # Longer names are a warning
    UNIT_RANGE_MIN: Final[float] = 0.0  # Designed weight/target range
    UNIT_RANGE_MAX: Final[float] = 1.0

    # Descriptor defaults (CDI3 files may omit value ranges)
    DESCRIPTOR_DEFAULT_VALUE: Final[float] = 0.0
    DESCRIPTOR_MIN_VALUE: Final[float] = 0.0
    DESCRIPTOR_MAX_VALUE: Final[float] = 1.0

    # Classifier statistics
    CONTINUOUS_SPAN: Final[float] = 2.0  # Range span above which a parameter is continuous

    # Expression library
    EXPRESSION_CONFIG_VERSION: Final[int] = 1  # Import/export format version
    CAPTURE_TOLERANCE: Final[float] = 0.001  # Smallest offset from default that a capture keeps

    # Readiness
    READY_TIMEOUT_S: Final[float] = 5.0  # Default bounded wait for a model


# Singleton instance for import convenience
ENGINE = EngineConstants()
