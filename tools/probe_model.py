#!/usr/bin/env python3
"""
Send one image to the face detection model and print what comes back.

This utility helps verify that:
1. The inference service is reachable with the configured model spec
2. The output tensor names match the model signature
3. The thresholds and box format produce sensible rectangles

Nothing is written to disk unless --save-dir is given.

Usage:
    python tools/probe_model.py --image path/to/frame.jpg
    python tools/probe_model.py --image frame.jpg --backend rest --address localhost:8501
    python tools/probe_model.py --image frame.jpg --box-format xywh --save-dir /tmp/faces
"""

import argparse
import os
import sys
import time

# Add project directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from codec import decode_image
from errors import DecodeError, InferenceError
from inference import create_inference_from_config
from main import load_config
from pipeline.stages.artifacts import ArtifactWriter, ArtifactWriterConfig
from pipeline.stages.boxes import BoxFormat, map_box
from pipeline.stages.encode import encode_tensor
from pipeline.stages.select import SelectionConfig, is_accepted, select_detections


def main():
    parser = argparse.ArgumentParser(description="Probe the face detection model with one image")
    parser.add_argument("--image", required=True, help="JPEG/PNG file to send")
    parser.add_argument("--config", default="config/config.yaml", help="Path to configuration file")
    parser.add_argument("--backend", choices=["grpc", "rest"], help="Override inference.backend")
    parser.add_argument("--address", help="Override inference.address")
    parser.add_argument("--box-format", choices=[f.value for f in BoxFormat], help="Override detection.box_format")
    parser.add_argument("--top", type=int, default=10, help="Number of leading slots to print")
    parser.add_argument("--save-dir", help="Write accepted crops to this directory")
    args = parser.parse_args()

    config = load_config(args.config)
    inference_cfg = dict(config.get("inference", {}) or {})
    if args.backend:
        inference_cfg["backend"] = args.backend
    if args.address:
        inference_cfg["address"] = args.address
    detection_cfg = config.get("detection", {}) or {}
    box_format = BoxFormat(args.box_format or detection_cfg.get("box_format", "legacy"))
    selection = SelectionConfig.from_detection_config(detection_cfg)

    with open(args.image, "rb") as f:
        data = f.read()
    try:
        pixels = decode_image(data)
    except DecodeError as e:
        print(f"❌ {e}")
        return 1
    print(f"🖼️  {args.image}: {pixels.width}x{pixels.height}")

    tensor = encode_tensor(pixels, inference_cfg.get("input_name", "image_tensor"))
    print(f"   Tensor {tensor.name}: shape={list(tensor.shape)}, {len(tensor.content)} bytes")

    client = create_inference_from_config(inference_cfg)
    start = time.time()
    try:
        result = client.infer(tensor)
    except InferenceError as e:
        print(f"❌ {e}")
        return 1
    finally:
        client.close()
    print(f"   Inference took {(time.time() - start) * 1000:.1f}ms, {result.slot_count} slots")
    if result.num_detections is not None:
        print(f"   num_detections={result.num_detections}")

    print(f"\n{'slot':>4} {'class':>6} {'score':>6}  box")
    for i in range(min(args.top, result.slot_count)):
        mark = "✅" if is_accepted(float(result.classes[i]), float(result.scores[i]), selection) else "  "
        box = " ".join(f"{v:.4f}" for v in result.box(i))
        print(f"{i:>4} {result.classes[i]:>6.2f} {result.scores[i]:>6.3f}  {box} {mark}")

    detections = select_detections(result, selection)
    print(f"\n{len(detections)} accepted ({box_format.value} boxes)")

    writer = None
    counter = 0
    if args.save_dir:
        writer = ArtifactWriter(ArtifactWriterConfig(output_dir=args.save_dir))
        writer.prepare()
        counter = writer.initial_counter()

    for det in detections:
        try:
            rect = map_box(det.box, pixels.width, pixels.height, box_format)
        except ValueError as e:
            print(f"   slot {det.slot}: ❌ {e}")
            continue
        print(f"   slot {det.slot}: score={det.score:.3f} rect={rect.as_tuple()}")
        if writer is not None:
            counter = writer.write(pixels, rect, counter)

    if writer is not None:
        print(f"   Crops saved to {args.save_dir} (next index {counter})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
