"""
Frame sources and overlays around the marker detector.

CameraManager reads frames from an OpenCV camera, PointerTracker keeps
the last mouse position reported by an OpenCV window, and Visualizer
draws a MarkerResult onto a frame. None of these take part in the
detection itself.
"""

from types import TracebackType
from typing import List, Optional, Tuple, Type

import cv2 as cv
import numpy as np

from .marker_vision import (
    MarkerCameraError,
    MarkerResult,
    MarkerVisionBase,
    Point,
    ValidationReason,
    tested,
)


class DisplayBase(MarkerVisionBase):
    """
    Constants for camera capture and drawing.
    """

    # -------------------------------------------------------------------------
    # Camera Configuration Constants
    # -------------------------------------------------------------------------

    DEFAULT_CAMERA_CHANNEL = 0
    DEFAULT_CAMERA_WIDTH = 1280
    DEFAULT_CAMERA_HEIGHT = 720

    # Frames discarded after opening while auto exposure settles
    NUM_INIT_FRAMES = 5

    # -------------------------------------------------------------------------
    # Window Constants
    # -------------------------------------------------------------------------

    MAIN_DISPLAY_WINDOW_NAME = "Marker Orientation"
    DISPLAY_REFRESH_RATE_MS = 1
    EXIT_KEY = "q"

    # -------------------------------------------------------------------------
    # Visualization Color Constants (BGR format for OpenCV)
    # -------------------------------------------------------------------------

    RED = (0, 0, 255)
    PINK = (203, 192, 255)
    GREEN = (0, 255, 0)
    YELLOW = (0, 255, 255)
    CYAN = (255, 255, 0)
    WHITE = (255, 255, 255)

    MARKER_RADIUS_PX = 10
    MARKER_OUTLINE_THICKNESS = 2
    LINE_THICKNESS = 3

    TEXT_SIZE = 0.6
    TEXT_THICKNESS = 1
    TEXT_ORIGIN = (10, 25)
    TEXT_LINE_SPACING_PX = 25

    STATUS_MESSAGES = {
        ValidationReason.NOT_ALL_DETECTED: "Not all dots detected.",
        ValidationReason.NOT_COLLINEAR: (
            "Dots detected but not collinear within threshold."
        ),
        ValidationReason.WRONG_ORDER: (
            "Dots detected but not in the expected order."
        ),
    }


class CameraManager(DisplayBase):
    """
    Synchronous OpenCV camera source. Each capture_frame() call reads one
    frame, so the caller decides the frame rate.

    Usage:
        with CameraManager(0) as camera:
            frame = camera.capture_frame()
    """

    @tested
    def __init__(
        self,
        camera_index: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> None:
        """
        Open the camera and discard the first few frames.

        Raises:
            ValueError: If width or height are not positive.
            MarkerCameraError: If the camera cannot be opened or does not
                deliver a first frame.
        """

        if camera_index is None:
            camera_index = self.DEFAULT_CAMERA_CHANNEL
        if width is None:
            width = self.DEFAULT_CAMERA_WIDTH
        if height is None:
            height = self.DEFAULT_CAMERA_HEIGHT

        if width <= 0 or height <= 0:
            raise ValueError(
                "CameraManager.__init__: width and height must be positive, "
                f"got {width}x{height}"
            )

        self.camera_index = camera_index
        self._camera = cv.VideoCapture(camera_index)

        if not self._camera.isOpened():
            raise MarkerCameraError(
                f"Failed to open camera {camera_index}."
            )

        self._camera.set(cv.CAP_PROP_FRAME_WIDTH, width)
        self._camera.set(cv.CAP_PROP_FRAME_HEIGHT, height)

        for _ in range(self.NUM_INIT_FRAMES):
            grabbed, _ = self._camera.read()
            if not grabbed:
                self._camera.release()
                raise MarkerCameraError(
                    f"Failed to grab initial frame from camera {camera_index}."
                )

    def __enter__(self) -> "CameraManager":
        return self

    def __exit__(
        self,
        exception_type: Optional[Type[BaseException]],
        exception_value: Optional[BaseException],
        exception_traceback: Optional[TracebackType],
    ) -> None:
        self.release()

    def __str__(self) -> str:
        return f"CameraManager(camera_index={self.camera_index})"

    @tested
    def capture_frame(self) -> np.ndarray:
        """
        Read the next BGR frame.

        Raises:
            MarkerCameraError: If the camera stopped delivering frames.
        """

        grabbed, frame = self._camera.read()

        if not grabbed or frame is None:
            raise MarkerCameraError(
                f"No frame available from camera {self.camera_index}. "
                "The stream may be stopped."
            )

        return frame

    @tested
    def release(self) -> None:
        if self._camera is not None and self._camera.isOpened():
            self._camera.release()
            print("CameraManager.release: Camera released.")


class PointerTracker:
    """
    Last known mouse position inside an OpenCV window.

    The detector only ever sees a snapshot of the position, taken once
    per frame through the position property.
    """

    def __init__(self) -> None:
        self._position: Optional[Point] = None

    @property
    def position(self) -> Optional[Point]:
        return self._position

    def clear(self) -> None:
        self._position = None

    def on_mouse(self, event: int, x: int, y: int, flags: int, param) -> None:
        # Signature required by cv.setMouseCallback
        if event == cv.EVENT_MOUSEMOVE:
            self._position = Point(float(x), float(y))

    def attach(self, window_name: str) -> None:
        cv.namedWindow(window_name)
        cv.setMouseCallback(window_name, self.on_mouse)


class Visualizer(DisplayBase):
    """
    Draws detected markers, the heading line and status text.
    """

    def _draw_text(
        self,
        frame: np.ndarray,
        text: str,
        position: Tuple[int, int],
        color: Tuple[int, int, int] = None,
    ) -> None:
        if color is None:
            color = self.WHITE

        cv.putText(
            frame,
            text,
            position,
            cv.FONT_HERSHEY_SIMPLEX,
            self.TEXT_SIZE,
            color,
            self.TEXT_THICKNESS,
        )

    def _draw_marker(
        self, frame: np.ndarray, point: Point, color: Tuple[int, int, int]
    ) -> None:
        center = (int(round(point.x)), int(round(point.y)))
        cv.circle(frame, center, self.MARKER_RADIUS_PX, color, -1)
        cv.circle(
            frame,
            center,
            self.MARKER_RADIUS_PX,
            self.WHITE,
            self.MARKER_OUTLINE_THICKNESS,
        )

    def _draw_line(
        self,
        frame: np.ndarray,
        p1: Point,
        p2: Point,
        color: Tuple[int, int, int],
    ) -> None:
        cv.line(
            frame,
            (int(round(p1.x)), int(round(p1.y))),
            (int(round(p2.x)), int(round(p2.y))),
            color,
            self.LINE_THICKNESS,
        )

    @tested
    def format_status_lines(self, result: MarkerResult) -> List[str]:
        """
        Human readable summary of a pipeline result.

        Returns:
            list: One or two lines. Valid results give the marker
                coordinates and the angle, both with two decimals.
        """

        validation = result.validation

        if not validation.valid:
            return [self.STATUS_MESSAGES[validation.reason]]

        red = result.detection.red
        middle = validation.middle
        back = validation.back

        coords = (
            f"Red: ({red.x:.2f}, {red.y:.2f}), "
            f"Middle: ({middle.x:.2f}, {middle.y:.2f}), "
            f"Back: ({back.x:.2f}, {back.y:.2f})"
        )

        orientation = result.orientation
        if orientation.target is None:
            angle = (
                "Rotation Angle (from middle to red): "
                f"{orientation.angle_degrees:.2f} deg"
            )
        else:
            angle = (
                "Rotation to pointer: "
                f"{orientation.angle_degrees:.2f} deg"
            )

        return [coords, angle]

    @tested
    def visualize_result(
        self, frame: np.ndarray, result: MarkerResult
    ) -> np.ndarray:
        """
        Draw a result on a copy of a BGR frame.

        Markers are drawn whenever they were detected. The red-to-middle
        line is drawn once all three markers are found, valid or not, and
        a line to the pointer when the angle was measured against one.
        """

        vis_frame = frame.copy()
        detection = result.detection
        validation = result.validation

        if validation.middle is not None:
            self._draw_line(
                vis_frame, detection.red, validation.middle, self.YELLOW
            )

        if result.orientation is not None:
            target = result.orientation.target
            if target is not None:
                self._draw_line(
                    vis_frame, validation.middle, target, self.CYAN
                )

        for point, color in (
            (detection.red, self.RED),
            (detection.pink, self.PINK),
            (detection.green, self.GREEN),
        ):
            if point is not None:
                self._draw_marker(vis_frame, point, color)

        x, y = self.TEXT_ORIGIN
        for line in self.format_status_lines(result):
            self._draw_text(vis_frame, line, (x, y))
            y += self.TEXT_LINE_SPACING_PX

        return vis_frame
