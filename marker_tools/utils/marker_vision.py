"""
Tri-marker Vision Module
------------------------

Locates three coloured markers (red, pink, green) in an image frame,
checks that they sit on a straight line in the expected order, and
computes an orientation angle from the marker arrangement.

Classes:
    MarkerVisionBase: Shared default constants for every component
    PixelClassifier: Fixed-threshold colour classification
    SpatialClusterer: Greedy single-pass proximity clustering
    GeometryValidator: Order and collinearity checks (policy A or B)
    OrientationCalculator: Signed angle computation
    MarkerDetector: Full per-frame pipeline
    MarkerError: Base exception for marker vision errors
    MarkerConfigurationError: Invalid configuration values
    MarkerInputError: Malformed frame input
    MarkerCameraError: Camera source failures

Pipeline:
    frame -> PixelClassifier -> SpatialClusterer (one centroid per
    colour) -> GeometryValidator -> OrientationCalculator -> MarkerResult

Usage:
    detector = MarkerDetector(policy="B", scan_stride=1)
    result = detector.process_frame(frame, pointer=(320, 240))

    if result.validation.valid:
        print(result.orientation.angle_degrees)

Note:
    Every call is independent. Nothing is cached between frames, so the
    same frame always gives the same result.
"""

import math
from enum import Enum, IntEnum
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

import numpy as np


def tested(func):
    """
    Decorator that marks a function or method as tested by adding a
    'tested' attribute set to True.

    Args:
        func (callable): The function or method to mark as tested.

    Returns:
        callable: The original function with a 'tested' attribute.
    """

    func.tested = True
    return func


# -----------------------------------------------------------------------------
# Data Types
# -----------------------------------------------------------------------------


class Point(NamedTuple):
    """Pixel coordinate or centroid in image space."""

    x: float
    y: float


class ColorSample(NamedTuple):
    """Single pixel colour, one byte per channel."""

    r: int
    g: int
    b: int


class MarkerColor(IntEnum):
    """
    Classification labels. The integer value is the label written into
    the label map produced by PixelClassifier.classify_frame.
    """

    NONE = 0
    RED = 1
    PINK = 2
    GREEN = 3


class ValidationReason(Enum):
    OK = "ok"
    NOT_ALL_DETECTED = "not_all_detected"
    NOT_COLLINEAR = "not_collinear"
    WRONG_ORDER = "wrong_order"


class ValidationPolicy(Enum):
    """
    How the middle marker is chosen.

    Attributes:
        NEAREST_TO_RED_IS_MIDDLE ("A"): Whichever of pink and green is
            closer to red is the middle marker, the other is the back.
            Only collinearity is checked.
        FIXED_PINK_MIDDLE ("B"): Pink is always the middle marker.
            Collinearity and ordering (pink between red and green) are
            both checked.
    """

    NEAREST_TO_RED_IS_MIDDLE = "A"
    FIXED_PINK_MIDDLE = "B"


class Detection(NamedTuple):
    """One centroid per colour, or None when the colour was not found."""

    red: Optional[Point]
    pink: Optional[Point]
    green: Optional[Point]

    @property
    def all_detected(self) -> bool:
        return (
            self.red is not None
            and self.pink is not None
            and self.green is not None
        )


class ValidationResult(NamedTuple):
    valid: bool
    middle: Optional[Point]
    back: Optional[Point]
    reason: ValidationReason
    line_distance: Optional[float] = None


class OrientationResult(NamedTuple):
    """
    Orientation angle in degrees, in the range (-180, 180].

    target is the point the angle was measured against, or None when the
    angle is the fixed-axis angle of the middle->red direction.
    """

    angle_degrees: float
    target: Optional[Point] = None


class MarkerResult(NamedTuple):
    detection: Detection
    validation: ValidationResult
    orientation: Optional[OrientationResult]


class Cluster:
    """
    Running sums for a group of same-coloured pixels.

    A cluster is always created from its first pixel, so count starts at
    one and the centroid is always defined.
    """

    __slots__ = ("sum_x", "sum_y", "count")

    def __init__(self, x: float, y: float) -> None:
        self.sum_x = float(x)
        self.sum_y = float(y)
        self.count = 1

    def add(self, x: float, y: float) -> None:
        self.sum_x += x
        self.sum_y += y
        self.count += 1

    @property
    def centroid(self) -> Point:
        return Point(self.sum_x / self.count, self.sum_y / self.count)

    def __repr__(self) -> str:
        cx, cy = self.centroid
        return f"Cluster(centroid=({cx:.2f}, {cy:.2f}), count={self.count})"


# -----------------------------------------------------------------------------
# Shared Constants
# -----------------------------------------------------------------------------


class MarkerVisionBase:
    """
    Default constants shared by all marker vision components. Every
    value can be overridden through the component constructors.
    """

    # -------------------------------------------------------------------------
    # Colour Classification Constants
    # -------------------------------------------------------------------------

    # RGB channel thresholds (0-255). All comparisons are strict except
    # pink_min_g, which is inclusive so a preset can admit g == 0. See
    # PixelClassifier.classify for how each key is used.
    DEFAULT_COLOR_THRESHOLDS = {
        "red_min_r": 180,
        "red_max_g": 100,
        "red_max_b": 100,
        "pink_min_r": 180,
        "pink_min_b": 150,
        "pink_min_g": 81,
        "pink_max_g": 170,
        "pink_max_rb_gap": 50,
        "green_min_g": 180,
        "green_max_r": 100,
        "green_max_b": 100,
    }

    CHANNEL_MIN_VALUE = 0
    CHANNEL_MAX_VALUE = 255

    # -------------------------------------------------------------------------
    # Clustering Constants
    # -------------------------------------------------------------------------

    DEFAULT_CLUSTER_RADIUS_PX = 50.0

    # Sample every Nth row and column. 1 scans every pixel.
    DEFAULT_SCAN_STRIDE = 2

    # -------------------------------------------------------------------------
    # Geometry Constants
    # -------------------------------------------------------------------------

    DEFAULT_COLINEARITY_THRESHOLD_PX = 30.0

    # Allowed slack in d(red, pink) + d(pink, green) - d(red, green)
    DEFAULT_ORDER_TOLERANCE_PX = 5.0

    DEFAULT_POLICY = ValidationPolicy.NEAREST_TO_RED_IS_MIDDLE

    # -------------------------------------------------------------------------
    # Frame Constants
    # -------------------------------------------------------------------------

    DEFAULT_CHANNEL_ORDER = "BGR"
    CHANNEL_ORDERS = {
        "BGR": (2, 1, 0),
        "RGB": (0, 1, 2),
    }
    VALID_CHANNEL_COUNTS = (3, 4)

    # -------------------------------------------------------------------------
    # Validation Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_positive(name: str, value, where: str) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MarkerConfigurationError(
                f"{where}: '{name}' must be a number, got {type(value)}"
            )
        if not math.isfinite(value) or value <= 0:
            raise MarkerConfigurationError(
                f"{where}: '{name}' must be positive, got {value}"
            )
        return float(value)

    @staticmethod
    def _resolve_policy(policy, where: str) -> ValidationPolicy:
        if isinstance(policy, ValidationPolicy):
            return policy

        if isinstance(policy, str):
            key = policy.strip()
            for candidate in ValidationPolicy:
                if key.upper() in (candidate.value, candidate.name):
                    return candidate

        valid = [p.value for p in ValidationPolicy] + [
            p.name for p in ValidationPolicy
        ]
        raise MarkerConfigurationError(
            f"{where}: 'policy' must be one of {valid}, got '{policy}'"
        )


# -----------------------------------------------------------------------------
# Pixel Classifier
# -----------------------------------------------------------------------------


class PixelClassifier(MarkerVisionBase):
    """
    Maps a pixel colour to RED, PINK, GREEN or NONE with fixed
    threshold rules.

    Rules are applied in priority order, first match wins:

        RED:   r > red_min_r and g < red_max_g and b < red_max_b
        PINK:  r > pink_min_r and b > pink_min_b
               and pink_min_g <= g < pink_max_g
               and abs(r - b) < pink_max_rb_gap
        GREEN: g > green_min_g and r < green_max_r and b < green_max_b
        NONE:  anything else

    The thresholds are tunable constants, not a calibrated colour model.
    """

    @tested
    def __init__(self, thresholds: Optional[Dict[str, int]] = None) -> None:
        """
        Args:
            thresholds (dict, optional): Overrides for any of the keys in
                DEFAULT_COLOR_THRESHOLDS. Missing keys keep their default.

        Raises:
            MarkerConfigurationError: Unknown key, or a value that is not
                a number between 0 and 255.
        """

        merged = dict(self.DEFAULT_COLOR_THRESHOLDS)

        if thresholds is not None:
            if not isinstance(thresholds, dict):
                raise MarkerConfigurationError(
                    "PixelClassifier.__init__: 'thresholds' must be a dict, "
                    f"got {type(thresholds)}"
                )

            for key, value in thresholds.items():
                if key not in merged:
                    raise MarkerConfigurationError(
                        f"PixelClassifier.__init__: Unknown threshold '{key}'. "
                        f"Valid keys: {sorted(merged)}"
                    )
                if isinstance(value, bool) or not isinstance(
                    value, (int, float)
                ):
                    raise MarkerConfigurationError(
                        f"PixelClassifier.__init__: Threshold '{key}' must be "
                        f"a number, got {type(value)}"
                    )
                if not (
                    self.CHANNEL_MIN_VALUE <= value <= self.CHANNEL_MAX_VALUE
                ):
                    raise MarkerConfigurationError(
                        f"PixelClassifier.__init__: Threshold '{key}' must be "
                        f"between {self.CHANNEL_MIN_VALUE} and "
                        f"{self.CHANNEL_MAX_VALUE}, got {value}"
                    )
                merged[key] = value

        self.thresholds = merged

    @tested
    def is_red(self, sample: ColorSample) -> bool:
        t = self.thresholds
        r, g, b = sample
        return r > t["red_min_r"] and g < t["red_max_g"] and b < t["red_max_b"]

    @tested
    def is_pink(self, sample: ColorSample) -> bool:
        t = self.thresholds
        r, g, b = sample
        return (
            r > t["pink_min_r"]
            and b > t["pink_min_b"]
            and t["pink_min_g"] <= g < t["pink_max_g"]
            and abs(r - b) < t["pink_max_rb_gap"]
        )

    @tested
    def is_green(self, sample: ColorSample) -> bool:
        t = self.thresholds
        r, g, b = sample
        return (
            g > t["green_min_g"]
            and r < t["green_max_r"]
            and b < t["green_max_b"]
        )

    @tested
    def classify(self, sample: ColorSample) -> MarkerColor:
        """
        Classify a single colour sample.

        Args:
            sample (ColorSample): Pixel colour, or any (r, g, b) triple.

        Returns:
            MarkerColor: The first matching class in RED, PINK, GREEN
                order, or MarkerColor.NONE.
        """

        sample = ColorSample(*(int(c) for c in sample[:3]))

        if self.is_red(sample):
            return MarkerColor.RED
        if self.is_pink(sample):
            return MarkerColor.PINK
        if self.is_green(sample):
            return MarkerColor.GREEN
        return MarkerColor.NONE

    @tested
    def classify_frame(
        self,
        frame: np.ndarray,
        stride: int = 1,
        channel_order: str = MarkerVisionBase.DEFAULT_CHANNEL_ORDER,
    ) -> np.ndarray:
        """
        Classify every sampled pixel of a frame at once.

        Applies the same rules as classify() with numpy masks. Row i,
        column j of the returned label map corresponds to pixel
        (x=j*stride, y=i*stride) of the frame.

        Args:
            frame (np.ndarray): Image of shape (H, W, 3) or (H, W, 4).
            stride (int): Sampling step in both axes.
            channel_order (str): "BGR" or "RGB". Alpha is ignored.

        Returns:
            np.ndarray: uint8 label map of MarkerColor values.

        Raises:
            MarkerConfigurationError: Unknown channel order or a stride
                that is not an integer >= 1.
        """

        if channel_order not in self.CHANNEL_ORDERS:
            raise MarkerConfigurationError(
                "PixelClassifier.classify_frame: 'channel_order' must be one "
                f"of {list(self.CHANNEL_ORDERS)}, got '{channel_order}'"
            )
        if (
            isinstance(stride, bool)
            or not isinstance(stride, int)
            or stride < 1
        ):
            raise MarkerConfigurationError(
                "PixelClassifier.classify_frame: 'stride' must be an "
                f"integer >= 1, got {stride}"
            )

        r_idx, g_idx, b_idx = self.CHANNEL_ORDERS[channel_order]
        sampled = frame[::stride, ::stride]

        # Widen so abs(r - b) cannot wrap around
        r = sampled[:, :, r_idx].astype(np.int16)
        g = sampled[:, :, g_idx].astype(np.int16)
        b = sampled[:, :, b_idx].astype(np.int16)
        t = self.thresholds

        red = (
            (r > t["red_min_r"]) & (g < t["red_max_g"]) & (b < t["red_max_b"])
        )
        pink = (
            (r > t["pink_min_r"])
            & (b > t["pink_min_b"])
            & (g >= t["pink_min_g"])
            & (g < t["pink_max_g"])
            & (np.abs(r - b) < t["pink_max_rb_gap"])
        )
        green = (
            (g > t["green_min_g"])
            & (r < t["green_max_r"])
            & (b < t["green_max_b"])
        )

        labels = np.zeros(r.shape, dtype=np.uint8)

        # Assign lowest priority first so higher priorities overwrite it
        labels[green] = MarkerColor.GREEN
        labels[pink] = MarkerColor.PINK
        labels[red] = MarkerColor.RED

        return labels


# -----------------------------------------------------------------------------
# Spatial Clusterer
# -----------------------------------------------------------------------------


class SpatialClusterer(MarkerVisionBase):
    """
    Groups same-coloured pixel coordinates into proximity clusters and
    returns the centroid of the dominant (largest) cluster.

    This is an online, order-dependent greedy pass. Each pixel joins the
    earliest created cluster whose current centroid is within the radius,
    otherwise it starts a new cluster. The result is deterministic for a
    fixed scan order but is not a global optimum.

    Ties on count go to the cluster that reached the maximum count first
    during the scan.
    """

    @tested
    def __init__(self, radius: Optional[float] = None) -> None:
        """
        Args:
            radius (float, optional): Merge distance in pixels. Defaults
                to DEFAULT_CLUSTER_RADIUS_PX.

        Raises:
            MarkerConfigurationError: If radius is not a positive number.
        """

        if radius is None:
            radius = self.DEFAULT_CLUSTER_RADIUS_PX

        self.radius = self._require_positive(
            "radius", radius, "SpatialClusterer.__init__"
        )

    @tested
    def build_clusters(
        self, coordinates: Iterable[Tuple[float, float]]
    ) -> Tuple[List[Cluster], Optional[Cluster]]:
        """
        Run the clustering pass.

        Args:
            coordinates: (x, y) pairs in scan order.

        Returns:
            tuple: (clusters in creation order, dominant cluster or None)
        """

        clusters: List[Cluster] = []
        dominant: Optional[Cluster] = None
        radius_sq = self.radius * self.radius

        for x, y in coordinates:
            target = None

            for cluster in clusters:
                cx = cluster.sum_x / cluster.count
                cy = cluster.sum_y / cluster.count
                if (x - cx) ** 2 + (y - cy) ** 2 <= radius_sq:
                    target = cluster
                    break

            if target is None:
                target = Cluster(x, y)
                clusters.append(target)
            else:
                target.add(x, y)

            # Strictly greater, so the first cluster to reach a count
            # keeps the lead on ties
            if dominant is None or target.count > dominant.count:
                dominant = target

        return clusters, dominant

    @tested
    def cluster_coordinates(
        self, coordinates: Iterable[Tuple[float, float]]
    ) -> Optional[Point]:
        """
        Centroid of the dominant cluster for already-classified pixels,
        or None when no coordinates were given.
        """

        _, dominant = self.build_clusters(coordinates)

        if dominant is None:
            return None

        return dominant.centroid

    @tested
    def cluster(
        self,
        pixels: Iterable[Tuple[float, float, ColorSample]],
        color_test: Callable[[ColorSample], bool],
    ) -> Optional[Point]:
        """
        Cluster the pixels whose colour passes color_test.

        Args:
            pixels: Lazily produced (x, y, sample) triples in scan order.
            color_test: Predicate on a ColorSample.

        Returns:
            Point | None: Dominant cluster centroid, or None if no pixel
                matched.
        """

        return self.cluster_coordinates(
            (x, y) for x, y, sample in pixels if color_test(sample)
        )


# -----------------------------------------------------------------------------
# Geometry Validator
# -----------------------------------------------------------------------------


class GeometryValidator(MarkerVisionBase):
    """
    Checks that three marker centroids form a valid arrangement.

    Policy A (NEAREST_TO_RED_IS_MIDDLE): the marker closer to red is the
    middle. Valid when the middle is within the collinearity threshold of
    the line through red and the back marker.

    Policy B (FIXED_PINK_MIDDLE): pink is the middle. Valid when pink is
    within the collinearity threshold of the red-green line AND lies
    between red and green:

        |d(red, pink) + d(pink, green) - d(red, green)| < order_tolerance

    Collinearity is checked first, so a frame failing both checks
    reports NOT_COLLINEAR.
    """

    @tested
    def __init__(
        self,
        policy=None,
        colinearity_threshold_px: Optional[float] = None,
        order_tolerance_px: Optional[float] = None,
    ) -> None:
        if policy is None:
            policy = self.DEFAULT_POLICY
        if colinearity_threshold_px is None:
            colinearity_threshold_px = self.DEFAULT_COLINEARITY_THRESHOLD_PX
        if order_tolerance_px is None:
            order_tolerance_px = self.DEFAULT_ORDER_TOLERANCE_PX

        self.policy = self._resolve_policy(
            policy, "GeometryValidator.__init__"
        )
        self.colinearity_threshold_px = self._require_positive(
            "colinearity_threshold_px",
            colinearity_threshold_px,
            "GeometryValidator.__init__",
        )
        self.order_tolerance_px = self._require_positive(
            "order_tolerance_px",
            order_tolerance_px,
            "GeometryValidator.__init__",
        )

    @staticmethod
    @tested
    def distance(p1: Point, p2: Point) -> float:
        return math.hypot(p1[0] - p2[0], p1[1] - p2[1])

    @staticmethod
    @tested
    def point_line_distance(p: Point, p1: Point, p2: Point) -> float:
        """
        Perpendicular distance from p to the infinite line through p1
        and p2. A zero-length segment gives 0.0.
        """

        den = GeometryValidator.distance(p1, p2)
        if den == 0:
            return 0.0

        num = abs(
            (p2[1] - p1[1]) * p[0]
            - (p2[0] - p1[0]) * p[1]
            + p2[0] * p1[1]
            - p2[1] * p1[0]
        )
        return num / den

    @tested
    def validate(
        self,
        red: Optional[Point],
        pink: Optional[Point],
        green: Optional[Point],
    ) -> ValidationResult:
        """
        Validate the marker arrangement with the configured policy.

        Args:
            red, pink, green (Point | None): Marker centroids.

        Returns:
            ValidationResult: valid flag, middle and back markers, and
                the reason (OK, NOT_ALL_DETECTED, NOT_COLLINEAR or
                WRONG_ORDER).
        """

        if red is None or pink is None or green is None:
            return ValidationResult(
                False, None, None, ValidationReason.NOT_ALL_DETECTED
            )

        if self.policy is ValidationPolicy.NEAREST_TO_RED_IS_MIDDLE:
            return self._validate_nearest_to_red(red, pink, green)

        return self._validate_fixed_pink(red, pink, green)

    def _validate_nearest_to_red(
        self, red: Point, pink: Point, green: Point
    ) -> ValidationResult:
        # Equal distances make green the middle
        if self.distance(red, pink) < self.distance(red, green):
            middle, back = pink, green
        else:
            middle, back = green, pink

        line_distance = self.point_line_distance(middle, red, back)

        if line_distance < self.colinearity_threshold_px:
            return ValidationResult(
                True, middle, back, ValidationReason.OK, line_distance
            )

        return ValidationResult(
            False, middle, back, ValidationReason.NOT_COLLINEAR, line_distance
        )

    def _validate_fixed_pink(
        self, red: Point, pink: Point, green: Point
    ) -> ValidationResult:
        line_distance = self.point_line_distance(pink, red, green)

        if line_distance >= self.colinearity_threshold_px:
            return ValidationResult(
                False,
                pink,
                green,
                ValidationReason.NOT_COLLINEAR,
                line_distance,
            )

        detour = (
            self.distance(red, pink)
            + self.distance(pink, green)
            - self.distance(red, green)
        )
        if abs(detour) >= self.order_tolerance_px:
            return ValidationResult(
                False, pink, green, ValidationReason.WRONG_ORDER, line_distance
            )

        return ValidationResult(
            True, pink, green, ValidationReason.OK, line_distance
        )


# -----------------------------------------------------------------------------
# Orientation Calculator
# -----------------------------------------------------------------------------


class OrientationCalculator(MarkerVisionBase):
    """
    Signed angle between the middle->reference direction and the
    middle->target direction, in degrees within (-180, 180].

    Angles follow image coordinates: x to the right, y downward.
    """

    @staticmethod
    @tested
    def normalize_angle(angle_deg: float) -> float:
        """Wrap an angle in degrees into (-180, 180]."""

        while angle_deg > 180.0:
            angle_deg -= 360.0
        while angle_deg <= -180.0:
            angle_deg += 360.0
        return angle_deg

    @tested
    def compute_angle(
        self,
        middle: Point,
        reference: Point,
        target: Optional[Point] = None,
    ) -> float:
        """
        Args:
            middle (Point): Pivot point.
            reference (Point): Current heading point (the red marker).
            target (Point, optional): Point to face. When omitted the
                result is the fixed-axis angle of middle->reference,
                measured from the +x image axis.

        Returns:
            float: Angle in degrees within (-180, 180].
        """

        current = math.atan2(
            reference[1] - middle[1], reference[0] - middle[0]
        )

        if target is None:
            return self.normalize_angle(math.degrees(current))

        wanted = math.atan2(target[1] - middle[1], target[0] - middle[0])
        return self.normalize_angle(math.degrees(wanted - current))


# -----------------------------------------------------------------------------
# Detector Pipeline
# -----------------------------------------------------------------------------


class MarkerDetector(MarkerVisionBase):
    """
    Runs the full per-frame pipeline: classification, clustering,
    validation and orientation.

    Usage:
        detector = MarkerDetector(policy="A")

        result = detector.process_frame(frame)
        if result.validation.valid:
            print(f"Angle: {result.orientation.angle_degrees:.2f}")

    Note:
        All configuration is validated in __init__. Frames that do not
        contain a valid marker arrangement never raise; they produce a
        ValidationResult with valid=False.
    """

    @tested
    def __init__(
        self,
        thresholds: Optional[Dict[str, int]] = None,
        cluster_radius_px: Optional[float] = None,
        colinearity_threshold_px: Optional[float] = None,
        order_tolerance_px: Optional[float] = None,
        scan_stride: Optional[int] = None,
        policy=None,
        channel_order: Optional[str] = None,
        debug: bool = False,
    ) -> None:
        """
        Initialise the detector. Any argument left as None uses the
        matching MarkerVisionBase default.

        Args:
            thresholds (dict, optional): Colour threshold overrides.
            cluster_radius_px (float, optional): Cluster merge radius.
            colinearity_threshold_px (float, optional): Maximum distance
                of the middle marker from the reference line.
            order_tolerance_px (float, optional): Ordering slack used by
                policy B.
            scan_stride (int, optional): Pixel sampling step.
            policy (ValidationPolicy | str, optional): "A" or "B".
            channel_order (str, optional): "BGR" or "RGB".
            debug (bool): Print a summary of every processed frame.

        Raises:
            MarkerConfigurationError: If any argument is invalid.
        """

        if scan_stride is None:
            scan_stride = self.DEFAULT_SCAN_STRIDE
        if channel_order is None:
            channel_order = self.DEFAULT_CHANNEL_ORDER

        if (
            isinstance(scan_stride, bool)
            or not isinstance(scan_stride, int)
            or scan_stride < 1
        ):
            raise MarkerConfigurationError(
                "MarkerDetector.__init__: 'scan_stride' must be an integer "
                f">= 1, got {scan_stride}"
            )

        if channel_order not in self.CHANNEL_ORDERS:
            raise MarkerConfigurationError(
                "MarkerDetector.__init__: 'channel_order' must be one of "
                f"{list(self.CHANNEL_ORDERS)}, got '{channel_order}'"
            )

        self.scan_stride = scan_stride
        self.channel_order = channel_order
        self.debug = bool(debug)

        self.classifier = PixelClassifier(thresholds)
        self.clusterer = SpatialClusterer(cluster_radius_px)
        self.validator = GeometryValidator(
            policy, colinearity_threshold_px, order_tolerance_px
        )
        self.orientation_calculator = OrientationCalculator()

    @tested
    def __str__(self) -> str:
        return (
            f"MarkerDetector(policy={self.validator.policy.value}, "
            f"stride={self.scan_stride}, "
            f"radius={self.clusterer.radius:.1f}px, "
            f"colinearity={self.validator.colinearity_threshold_px:.1f}px)"
        )

    @classmethod
    def from_config(cls, config: dict) -> "MarkerDetector":
        """
        Build a detector from a configuration dictionary, see
        marker_config.validate_config for the accepted keys.
        """

        # Imported here, marker_config depends on this module
        from .marker_config import detector_kwargs

        return cls(**detector_kwargs(config))

    @classmethod
    def from_config_file(cls, config_path: str) -> "MarkerDetector":
        from .marker_config import load_config

        return cls.from_config(load_config(config_path))

    # -------------------------------------------------------------------------
    # Private helper functions
    # -------------------------------------------------------------------------

    def _check_frame(self, frame) -> None:
        if frame is None:
            raise MarkerInputError(
                "MarkerDetector._check_frame: Frame must not be None."
            )

        if not isinstance(frame, np.ndarray):
            raise MarkerInputError(
                "MarkerDetector._check_frame: Frame must be a numpy array, "
                f"got {type(frame)}"
            )

        if frame.ndim != 3 or frame.shape[2] not in self.VALID_CHANNEL_COUNTS:
            raise MarkerInputError(
                "MarkerDetector._check_frame: Expected frame of shape "
                f"(H, W, 3) or (H, W, 4), got {frame.shape}"
            )

        if frame.dtype != np.uint8:
            raise MarkerInputError(
                "MarkerDetector._check_frame: Expected uint8 frame, got "
                f"{frame.dtype}"
            )

    def _color_coordinates(
        self, labels: np.ndarray, color: MarkerColor
    ) -> Iterable[Tuple[int, int]]:
        # np.nonzero walks the label map row by row, which is the scan
        # order the clusterer depends on
        rows, cols = np.nonzero(labels == color)
        stride = self.scan_stride

        return zip(
            (cols * stride).tolist(),
            (rows * stride).tolist(),
        )

    # -------------------------------------------------------------------------
    # Public Interface
    # -------------------------------------------------------------------------

    @tested
    def detect_markers(self, frame: np.ndarray) -> Detection:
        """
        Locate the red, pink and green marker centroids.

        Args:
            frame (np.ndarray): uint8 image of shape (H, W, 3|4).

        Returns:
            Detection: One Point per colour, None where no pixel matched.

        Raises:
            MarkerInputError: If the frame is None or malformed.
        """

        self._check_frame(frame)

        labels = self.classifier.classify_frame(
            frame, self.scan_stride, self.channel_order
        )

        centroids = {}
        for color in (MarkerColor.RED, MarkerColor.PINK, MarkerColor.GREEN):
            centroids[color] = self.clusterer.cluster_coordinates(
                self._color_coordinates(labels, color)
            )

        return Detection(
            red=centroids[MarkerColor.RED],
            pink=centroids[MarkerColor.PINK],
            green=centroids[MarkerColor.GREEN],
        )

    @tested
    def validate(self, detection: Detection) -> ValidationResult:
        return self.validator.validate(
            detection.red, detection.pink, detection.green
        )

    @tested
    def process_frame(
        self,
        frame: np.ndarray,
        pointer: Optional[Tuple[float, float]] = None,
    ) -> MarkerResult:
        """
        Run the full pipeline on one frame.

        Args:
            frame (np.ndarray): uint8 image of shape (H, W, 3|4).
            pointer (tuple, optional): Last known pointer position. When
                given, the orientation is the rotation needed for the
                middle->red direction to face the pointer. Otherwise it
                is the fixed-axis angle of middle->red.

        Returns:
            MarkerResult: Detection, validation, and orientation (None
                unless the validation passed).

        Raises:
            MarkerInputError: If the frame is None or malformed.
        """

        detection = self.detect_markers(frame)
        validation = self.validate(detection)

        orientation = None
        if validation.valid:
            target = None if pointer is None else Point(*pointer)
            angle = self.orientation_calculator.compute_angle(
                validation.middle, detection.red, target
            )
            orientation = OrientationResult(angle, target)

        if self.debug:
            print(
                f"MarkerDetector.process_frame: {detection}, "
                f"reason={validation.reason.name}, "
                f"orientation={orientation}"
            )

        return MarkerResult(detection, validation, orientation)


# -----------------------------------------------------------------------------
# Exceptions
# -----------------------------------------------------------------------------


class MarkerError(Exception):
    """
    Base exception for all marker vision errors.

    Example:
        try:
            detector = MarkerDetector(scan_stride=0)
        except MarkerError as e:
            print(f"Marker vision error: {e}")
    """

    @tested
    def __init__(self, message: str) -> None:
        super().__init__(message)


class MarkerConfigurationError(MarkerError):
    """
    Raised for invalid configuration values such as a negative radius,
    unknown threshold key or unknown policy. Raised when a component is
    constructed or a config file is loaded, never per frame.
    """

    @tested
    def __init__(self, message: str) -> None:
        super().__init__(f"MarkerConfig: {message}")


class MarkerInputError(MarkerError):
    """
    Raised for malformed frames (None, wrong shape or dtype).
    """

    @tested
    def __init__(self, message: str) -> None:
        super().__init__(f"MarkerDetector: {message}")


class MarkerCameraError(MarkerError):
    """
    Raised when a camera cannot be opened or stops delivering frames.
    """

    @tested
    def __init__(self, message: str) -> None:
        super().__init__(f"CameraManager: {message}")
