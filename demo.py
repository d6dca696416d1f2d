#!/usr/bin/env python3
"""
Optical Measurement Demo Script

Run the measurement engine on a landmark JSON file or on a photo.

Usage:
    python demo.py <landmarks.json|image_path> [options]

Examples:
    python demo.py landmarks.json --calibration credit_card --confidence 0.95
    python demo.py photo.jpg --card-points 120,80,420,86
    python demo.py photo.jpg --card-points 300,200,354,200 --calibration coin --size 27.0
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import List, Optional

import cv2

from measurement_service import MeasurementService


def print_header(title: str) -> None:
    """Print formatted header."""
    line = "=" * 70
    print(f"\n{line}")
    print(f"  {title}")
    print(line)


def print_section(title: str) -> None:
    """Print formatted section header."""
    print(f"\n{'-' * 40}")
    print(f"  {title}")
    print(f"{'-' * 40}")


def parse_card_points(value: str) -> List[List[float]]:
    """Parse 'x1,y1,x2,y2' into two points."""
    parts = [float(v) for v in value.split(",")]
    if len(parts) != 4:
        raise argparse.ArgumentTypeError("expected x1,y1,x2,y2")
    return [parts[:2], parts[2:]]


def print_result(result: dict) -> None:
    """Print a service response."""
    print_section("RESULT")

    if not result['success']:
        error = result['error']
        print("  ✗ Measurement FAILED")
        print(f"    Code: {error['code']}")
        print(f"    Error: {error['message']}")
        for key, value in error['details'].items():
            print(f"    {key}: {value}")
        return

    m = result['measurement']
    print(f"  ✓ PD: {m['pupillary_distance']} mm "
          f"(L {m['monocular_pd_left']} / R {m['monocular_pd_right']})")
    print(f"    Optical center L: x={m['optical_center_left']['x']} y={m['optical_center_left']['y']} mm")
    print(f"    Optical center R: x={m['optical_center_right']['x']} y={m['optical_center_right']['y']} mm")
    estimated = " (estimated)" if m['segment_height_estimated'] else ""
    print(f"    Segment height: L {m['segment_height_left']} / R {m['segment_height_right']} mm{estimated}")
    print(f"    Face: {m['face_width']} x {m['face_height']} mm, bridge {m['nose_bridge_width']} mm")
    if m['frame_width'] is not None:
        print(f"    Frame: {m['frame_width']} x {m['frame_height']} mm")
    print(f"    Scale: {m['mm_per_pixel']:.4f} mm/px ({m['calibration_object']})")
    print(f"    Quality: {m['measurement_quality']:.0%}, lighting {m['lighting_condition']}")
    print(f"    Reliable: {'Yes' if m['is_reliable'] else 'No'}")

    if result['warnings']:
        print("    Warnings:")
        for w in result['warnings']:
            print(f"      ⚠️ {w}")


def run_landmarks(path: str, args: argparse.Namespace, service: MeasurementService) -> dict:
    """Measure from a landmark JSON file."""
    with open(path) as f:
        payload = json.load(f)

    confidence = args.confidence
    if confidence is None:
        confidence = payload.get("detection_confidence", 0.0)
    lighting = args.lighting or payload.get("lighting")
    landmarks = payload.get("landmarks", payload)

    return service.measure_landmarks(landmarks, args.calibration, confidence, lighting, args.size)


def run_image(path: str, args: argparse.Namespace, service: MeasurementService) -> Optional[dict]:
    """Detect landmarks on a photo and measure."""
    image = cv2.imread(path)
    if image is None:
        print(f"Error: Could not load image: {path}")
        return None

    h, w = image.shape[:2]
    print(f"  Size: {w}x{h}")
    return service.measure_image(image, args.calibration, args.card_points, args.size)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run optical measurements on landmarks or images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("input_path", help="Landmark JSON file or image")
    parser.add_argument("-c", "--calibration", default="credit_card",
                        choices=["credit_card", "id_card", "coin", "ruler"],
                        help="Calibration object in the photo")
    parser.add_argument("--size", type=float, default=None,
                        help="Real size in mm (coin/ruler only)")
    parser.add_argument("--card-points", type=parse_card_points, default=None,
                        help="Calibration edge endpoints x1,y1,x2,y2 (image mode)")
    parser.add_argument("--confidence", type=float, default=None,
                        help="Detection confidence (landmark mode)")
    parser.add_argument("--lighting", default=None,
                        help="Lighting label (landmark mode)")

    args = parser.parse_args()

    # Validate input
    if not os.path.exists(args.input_path):
        print(f"Error: File not found: {args.input_path}")
        sys.exit(1)

    landmark_mode = args.input_path.lower().endswith(".json")

    print_header("OPTICAL MEASUREMENT DEMO")
    print(f"  Input: {args.input_path}")
    print(f"  Mode: {'Landmarks' if landmark_mode else 'Image'}")
    print(f"  Calibration: {args.calibration}")

    service = MeasurementService()

    try:
        if landmark_mode:
            result = run_landmarks(args.input_path, args, service)
        else:
            if args.card_points is None:
                print("Error: --card-points is required in image mode")
                sys.exit(1)
            result = run_image(args.input_path, args, service)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    if result is None:
        sys.exit(1)

    print_result(result)
    sys.exit(0 if result['success'] else 2)


if __name__ == "__main__":
    main()
