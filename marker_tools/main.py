"""
Command line driver for the tri-marker detector.

Usage:
    python -m marker_tools.main --image photo.png
    python -m marker_tools.main --image photo.png --output out.png --no-display
    python -m marker_tools.main --camera 0 --policy B

In camera mode, move the mouse over the window to measure the rotation
needed to face the pointer. Press 'q' to quit.
"""

import argparse
import sys
from typing import List, Optional

import cv2 as cv

from marker_tools import (
    CameraManager,
    MarkerDetector,
    MarkerError,
    PointerTracker,
    Visualizer,
    load_config,
)
from marker_tools.utils.marker_config import detector_kwargs

# -----------------------------------------------------------------------------
# Setup Functions
# -----------------------------------------------------------------------------


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Detect red/pink/green markers and report orientation.",
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument("--image", help="Process a single image file.")
    source.add_argument(
        "--camera",
        type=int,
        default=None,
        help="Camera index for live processing (default 0).",
    )

    parser.add_argument("--config", help="JSON configuration file.")
    parser.add_argument(
        "--policy",
        choices=["A", "B"],
        help="A: nearest-to-red is middle. B: pink is middle, order checked.",
    )
    parser.add_argument("--stride", type=int, help="Pixel scan stride.")
    parser.add_argument(
        "--output", help="Save the annotated image (image mode only)."
    )
    parser.add_argument(
        "--no-display",
        action="store_true",
        help="Do not open a window (image mode only).",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Print every frame result."
    )

    return parser.parse_args(argv)


def build_detector(args: argparse.Namespace) -> MarkerDetector:
    """
    Configuration file values first, command line flags on top.
    """

    config = load_config(args.config) if args.config else {}
    kwargs = detector_kwargs(config)

    if args.policy is not None:
        kwargs["policy"] = args.policy
    if args.stride is not None:
        kwargs["scan_stride"] = args.stride
    if args.debug:
        kwargs["debug"] = True

    return MarkerDetector(**kwargs)


# -----------------------------------------------------------------------------
# Run Modes
# -----------------------------------------------------------------------------


def run_image(
    detector: MarkerDetector,
    image_path: str,
    output_path: Optional[str] = None,
    display: bool = True,
) -> int:
    frame = cv.imread(image_path, cv.IMREAD_COLOR)
    if frame is None:
        print(f"run_image: Could not read image {image_path}")
        return 1

    visualizer = Visualizer()
    result = detector.process_frame(frame)

    for line in visualizer.format_status_lines(result):
        print(line)

    annotated = visualizer.visualize_result(frame, result)

    if output_path:
        if not cv.imwrite(output_path, annotated):
            print(f"run_image: Could not write {output_path}")
            return 1
        print(f"run_image: Annotated image saved to {output_path}")

    if display:
        cv.imshow(visualizer.MAIN_DISPLAY_WINDOW_NAME, annotated)
        cv.waitKey(0)
        cv.destroyAllWindows()

    return 0 if result.validation.valid else 2


def run_camera(detector: MarkerDetector, camera_index: Optional[int]) -> int:
    visualizer = Visualizer()
    pointer = PointerTracker()
    window = visualizer.MAIN_DISPLAY_WINDOW_NAME

    with CameraManager(camera_index) as camera:
        pointer.attach(window)
        print(f"run_camera: Started {camera}. Press 'q' to quit.")

        while True:
            frame = camera.capture_frame()
            result = detector.process_frame(frame, pointer.position)

            cv.imshow(window, visualizer.visualize_result(frame, result))

            key = cv.waitKey(visualizer.DISPLAY_REFRESH_RATE_MS) & 0xFF
            if key == ord(visualizer.EXIT_KEY):
                break

    cv.destroyAllWindows()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        detector = build_detector(args)
        print(f"main: {detector}")

        if args.image:
            return run_image(
                detector, args.image, args.output, not args.no_display
            )

        return run_camera(detector, args.camera)

    except MarkerError as e:
        print(f"main: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
