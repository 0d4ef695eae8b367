#!/usr/bin/env python
"""
Particle Burst CLI - Render or preview launcher particle bursts

Usage:
    python main.py <style> [options]

Examples:
    python main.py game                          # Export game burst to game_burst.gif
    python main.py media -o out/media.gif        # Custom output path
    python main.py media --format frames         # Numbered PNG frames
    python main.py game --width 800 --height 600 --pixel-ratio 2
    python main.py --preview                     # Interactive two-panel launcher
    python main.py --list-styles                 # Show all styles
"""

import argparse
import logging
import sys
from pathlib import Path


def _parse_pair(text: str, label: str):
    parts = [p.strip() for p in text.split(',')]
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"{label} must be X,Y")
    try:
        return (float(parts[0]), float(parts[1]))
    except ValueError:
        raise argparse.ArgumentTypeError(f"{label} must be two numbers, got {text!r}") from None


def _origin(text: str):
    return _parse_pair(text, "Origin")


def _color(text: str):
    from burst.core.styles import parse_color
    try:
        return parse_color(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render short particle burst animations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Built-in Styles:
  game   - White pixel cubes that spin and fall
  media  - Pink and magenta circles, some hollow

Examples:
  %(prog)s game                              # Export to game_burst.gif
  %(prog)s media --format spritesheet        # Spritesheet + JSON metadata
  %(prog)s game --seed 7 --origin 200,250    # Reproducible burst, custom origin
  %(prog)s --styles my_styles.yaml confetti  # Style from a YAML file
  %(prog)s --preview                         # Open the launcher window
        """
    )

    parser.add_argument(
        'style',
        type=str,
        nargs='?',  # Optional for --list-styles, --style-info and --preview
        default=None,
        help='Burst style to render (game, media, or a user style)'
    )

    parser.add_argument(
        '-o', '--output',
        type=str,
        default=None,
        help='Output path (auto-generated if not specified)'
    )

    parser.add_argument(
        '--format',
        type=str,
        default='gif',
        choices=['gif', 'spritesheet', 'frames'],
        help='Output format (default: gif)'
    )

    parser.add_argument('--width', type=int, default=400, help='Canvas width in logical units (default: 400)')
    parser.add_argument('--height', type=int, default=300, help='Canvas height in logical units (default: 300)')
    parser.add_argument('--fps', type=float, default=60.0, help='Simulation frame rate (default: 60)')

    parser.add_argument(
        '--pixel-ratio',
        type=float,
        default=1.0,
        help='Device pixels per logical unit (default: 1.0)'
    )

    parser.add_argument(
        '--frame-step',
        type=int,
        default=1,
        metavar='N',
        help='Keep every N-th frame in the output (default: 1)'
    )

    parser.add_argument(
        '--max-frames',
        type=int,
        default=600,
        help='Stop after this many frames (default: 600)'
    )

    parser.add_argument('--seed', type=int, default=None, help='Random seed for a reproducible burst')

    parser.add_argument(
        '--origin',
        type=_origin,
        default=None,
        metavar='X,Y',
        help='Emission point (default: canvas centre)'
    )

    parser.add_argument(
        '--background',
        type=_color,
        default=(16, 16, 20),
        metavar='COLOR',
        help='Background colour as R,G,B or #rrggbb (default: 16,16,20)'
    )

    parser.add_argument(
        '--styles',
        type=str,
        action='append',
        default=[],
        metavar='FILE',
        help='Load extra styles from a YAML file (repeatable)'
    )

    parser.add_argument(
        '--styles-dir',
        type=str,
        default=None,
        help='User styles directory (default: ~/.particle-burst/styles)'
    )

    parser.add_argument('--list-styles', action='store_true', help='List available styles and exit')
    parser.add_argument('--style-info', type=str, default=None, metavar='NAME', help='Show a style and exit')

    parser.add_argument(
        '--preview',
        action='store_true',
        help='Open the interactive two-panel launcher (requires pygame)'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Debug logging and tracebacks'
    )

    return parser


def _print_style(style):
    print(f"Style: {style.name}")
    print(f"Description: {style.description}")
    print(f"\nSpawn:")
    print(f"  Count: {style.count}")
    print(f"  Speed: {style.speed_range[0]:g} - {style.speed_range[1]:g}")
    print(f"  Size: {style.size_range[0]:g} - {style.size_range[1]:g}")
    print(f"  Spin: {style.spin_range[0]:g} - {style.spin_range[1]:g} rad/s")
    if style.hollow_chance:
        print(f"  Hollow chance: {style.hollow_chance:.0%}")
    print(f"\nPhysics:")
    print(f"  Gravity: {style.gravity:g}")
    print(f"  Drag: {style.drag:g}")
    print(f"  Fade rate: {style.fade_rate:g}/s")
    print(f"\nShape: {style.shape_policy.value}")
    if style.tags:
        print(f"\nTags: {', '.join(style.tags)}")


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )

    from burst.core.styles import StyleManager

    try:
        manager = StyleManager(Path(args.styles_dir) if args.styles_dir else None)
        for style_file in args.styles:
            names = manager.add_file(style_file)
            print(f"Loaded styles from {style_file}: {', '.join(names)}")
        manager.register_all()
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)

    # Style listing/info (no rendering)
    if args.list_styles:
        print("Available Burst Styles:\n")
        for name in manager.list_all():
            style = manager.get(name)
            desc = style.description[:50] + "..." if len(style.description) > 50 else style.description
            print(f"  {name:<16} - {desc}")
        print(f"\nTotal: {len(manager.list_all())} styles")
        print("Details: --style-info <name>")
        sys.exit(0)

    if args.style_info:
        style = manager.get(args.style_info)
        if not style:
            print(f"Error: Style '{args.style_info}' not found")
            print("Use --list-styles to see available styles")
            sys.exit(1)
        _print_style(style)
        sys.exit(0)

    if args.preview:
        from burst.core.preview import preview_bursts, check_pygame_available

        if not check_pygame_available():
            print("Error: Preview requires pygame. Install with: pip install pygame")
            sys.exit(1)

        print("Opening launcher (click a panel, ENTER/SPACE to press, ESC to quit)...")
        preview_bursts(width=max(args.width * 2, 320), height=max(args.height, 240))
        print("Preview closed.")
        return

    if not args.style:
        print("Error: A style is required")
        print("Usage: python main.py <style> [options]")
        print("       python main.py --list-styles")
        sys.exit(1)

    from burst import export, ExportConfig

    try:
        config = ExportConfig(
            width=args.width,
            height=args.height,
            fps=args.fps,
            pixel_ratio=args.pixel_ratio,
            background=args.background,
            max_frames=args.max_frames,
            seed=args.seed,
            frame_step=args.frame_step,
        )

        print(f"Rendering: {args.style} ({args.width}x{args.height} @ {args.fps:g} fps)")
        output = export(
            args.style,
            output_path=args.output,
            format=args.format,
            config=config,
            origin=args.origin,
        )

        print(f"Output: {output}")
        print("Done!")

    except Exception as e:
        print(f"Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
