#!/usr/bin/env python3
"""Render a preset scene to a PNG.

This script renders one of the preset scenes with progressive refinement,
printing progress as samples accumulate. Settings come from the command line
or from a JSON file written by --save-config.

Usage:
    python -m examples.render_scene [options]

Options:
    --scene NAME        Preset scene (default: three_body, see --list-scenes)
    --width WIDTH       Image width in pixels (default: 400)
    --height HEIGHT     Image height in pixels (default: 225)
    --samples SAMPLES   Number of samples per pixel (default: 100)
    --max-depth DEPTH   Maximum bounces per path (default: 50)
    --mode MODE         material, normal, depth or block_color (default: material)
    --batch-size SIZE   Samples per progress update (default: 10)
    --config PATH       Load settings from a JSON file (overrides other options)
    --save-config PATH  Write the effective settings to a JSON file
    --output OUTPUT     Output file path (default: <scene>.png)
    --list-scenes       Print the preset scenes and exit
    --verbose           Show log messages
    --quiet             Suppress progress output

Example:
    python -m examples.render_scene --scene many_balls --width 320 --height 180 --samples 32
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a preset scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--scene", type=str, default="three_body", help="Preset scene name")
    parser.add_argument("--width", type=int, default=400, help="Image width in pixels (default: 400)")
    parser.add_argument("--height", type=int, default=225, help="Image height in pixels (default: 225)")
    parser.add_argument(
        "--samples",
        type=int,
        default=100,
        help="Number of samples per pixel (default: 100)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=50,
        help="Maximum bounces per path (default: 50)",
    )
    parser.add_argument(
        "--mode",
        type=str,
        default="material",
        help="material, normal, depth or block_color (default: material)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=10,
        help="Samples per progress update (default: 10)",
    )
    parser.add_argument("--config", type=Path, default=None, help="Load settings from JSON")
    parser.add_argument("--save-config", type=Path, default=None, help="Save settings to JSON")
    parser.add_argument("--output", type=str, default=None, help="Output file path")
    parser.add_argument("--list-scenes", action="store_true", help="List preset scenes and exit")
    parser.add_argument("--verbose", action="store_true", help="Show log messages")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_scene(args: argparse.Namespace) -> Path:
    """Render the configured scene and save it.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from glint.core.config import RenderConfig
    from glint.core.progressive import ProgressiveRenderer

    if args.config is not None:
        config = RenderConfig.load(args.config)
    else:
        config = RenderConfig(
            width=args.width,
            height=args.height,
            samples_per_pixel=args.samples,
            max_depth=args.max_depth,
            mode=args.mode,
            scene=args.scene,
            batch_size=args.batch_size,
        )

    renderer = ProgressiveRenderer(config)
    if args.save_config is not None:
        config.save(args.save_config)

    if not args.quiet:
        print(
            f"Rendering '{config.scene}' at {config.width}x{config.height}, "
            f"{config.samples_per_pixel} samples per pixel..."
        )

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not args.quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100
            samples_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} samples "
                f"({progress_pct:.1f}%) - {samples_per_sec:.1f} spp/s",
                end="",
                flush=True,
            )

    try:
        renderer.render(callback=progress_callback)
    except KeyboardInterrupt:
        # Keep the samples gathered so far
        if not args.quiet:
            print("\n  Interrupted, saving partial image")

    if not args.quiet:
        print()

    output_file = Path(args.output or f"{config.scene}.png")
    renderer.save_image(output_file)

    if not args.quiet:
        print(f"Saved to: {output_file.absolute()} ({renderer.sample_count} SPP)")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    # Use GPU if available, fall back to CPU
    try:
        ti.init(arch=ti.gpu)
        if not args.quiet:
            print("Using GPU backend")
    except Exception:
        ti.init(arch=ti.cpu)
        if not args.quiet:
            print("Using CPU backend")

    if args.list_scenes:
        from glint.scene.presets import PRESET_SCENES

        for preset in PRESET_SCENES.values():
            print(f"  {preset.name:<20} {preset.description}")
        return 0

    from glint.core.config import ConfigurationError

    try:
        render_scene(args)
        return 0
    except (ConfigurationError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
