from .marker_vision import (
    Cluster,
    ColorSample,
    Detection,
    GeometryValidator,
    MarkerCameraError,
    MarkerColor,
    MarkerConfigurationError,
    MarkerDetector,
    MarkerError,
    MarkerInputError,
    MarkerResult,
    OrientationCalculator,
    OrientationResult,
    PixelClassifier,
    Point,
    SpatialClusterer,
    ValidationPolicy,
    ValidationReason,
    ValidationResult,
)
from .marker_config import (
    THRESHOLD_PRESETS,
    default_config,
    load_config,
    save_config,
    validate_config,
)
from .marker_display import (
    CameraManager,
    PointerTracker,
    Visualizer,
)

__all__ = [
    "Cluster",
    "ColorSample",
    "Detection",
    "GeometryValidator",
    "MarkerCameraError",
    "MarkerColor",
    "MarkerConfigurationError",
    "MarkerDetector",
    "MarkerError",
    "MarkerInputError",
    "MarkerResult",
    "OrientationCalculator",
    "OrientationResult",
    "PixelClassifier",
    "Point",
    "SpatialClusterer",
    "ValidationPolicy",
    "ValidationReason",
    "ValidationResult",
    "THRESHOLD_PRESETS",
    "default_config",
    "load_config",
    "save_config",
    "validate_config",
    "CameraManager",
    "PointerTracker",
    "Visualizer",
]
