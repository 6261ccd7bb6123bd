#!/usr/bin/env python3
"""Interactive progressive render of a preset scene.

This script opens a preview window that follows a render as it accumulates.
The window advances the render one batch per frame and shows the newest
snapshot, so the whole session runs on the window thread.

Usage:
    python -m examples.interactive_scene [--scene NAME] [--width W] [--height H] [--samples N]

Controls:
    - Cancel: Stop the render, keeping the samples gathered so far
    - Export PNG: Save the image on screen with a timestamp
    - Close the window to exit (cancels a running render)
"""

from __future__ import annotations

import argparse
import logging
import platform
import sys

import taichi as ti


def initialize_taichi() -> str:
    """Initialize Taichi with the best available backend.

    On macOS, prefers Metal. Falls back to CPU if GPU is unavailable.

    Returns:
        Name of the backend being used.
    """
    if platform.system() == "Darwin":
        try:
            ti.init(arch=ti.metal)
            return "Metal (GPU)"
        except Exception:
            pass

    # CUDA on Linux/Windows, Vulkan as fallback
    try:
        ti.init(arch=ti.gpu)
        return "GPU"
    except Exception:
        pass

    ti.init(arch=ti.cpu)
    return "CPU"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interactive progressive render.")
    parser.add_argument("--scene", type=str, default="three_body", help="Preset scene name")
    parser.add_argument("--width", type=int, default=640, help="Window width (default: 640)")
    parser.add_argument("--height", type=int, default=360, help="Window height (default: 360)")
    parser.add_argument("--samples", type=int, default=500, help="Samples per pixel (default: 500)")
    return parser.parse_args()


def main() -> int:
    """Main entry point for the interactive renderer.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s: %(message)s")

    backend = initialize_taichi()
    print(f"Taichi backend: {backend}")

    # Import after Taichi initialization
    from glint.core.config import ConfigurationError, RenderConfig
    from glint.core.progressive import ProgressiveRenderer
    from glint.preview.interactive import InteractivePreview

    if not InteractivePreview.is_display_available():
        print("Error: No display available. Cannot run interactive preview.")
        print("This script requires a graphical display environment.")
        return 1

    try:
        renderer = ProgressiveRenderer(
            RenderConfig(
                width=args.width,
                height=args.height,
                samples_per_pixel=args.samples,
                scene=args.scene,
            )
        )
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Creating interactive preview window ({args.width}x{args.height})...")
    preview = InteractivePreview(args.width, args.height, title=f"glint - {args.scene}")

    print("Starting progressive render...")
    print("  - Click 'Cancel' to stop accumulating")
    print("  - Click 'Export PNG' to save current render")
    print("  - Close window to exit")
    print()

    try:
        preview.run(renderer)
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        preview.close()
        print(f"Preview window closed ({renderer.sample_count} SPP).")

    return 0


if __name__ == "__main__":
    sys.exit(main())
