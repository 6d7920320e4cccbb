#!/usr/bin/env python3
"""ProShot Studio — AI product photography in the terminal."""

import argparse
import logging


def main() -> None:
    parser = argparse.ArgumentParser(
        description="ProShot Studio — Upload. Direct. Rate.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Controls:
  U                 Upload images
  Space             Start / pause the queue
  M                 Cycle material
  , / .             Rotate shadow angle
  S                 Cycle shadow intensity
  J / K             Lower / raise the product
  P / V / T         Patina, patina variant, texture intensity
  R / L             Aspect ratio, enhanced lighting
  1-5               Rate the selected result
  G                 Regenerate the selected job with current settings
  X / C             Remove the selected job / clear history
  O                 Export completed images
  F / N             Save preset / browse presets
  A                 Enter API key
  Q                 Quit

Examples:
  python main.py              Start normally (requires GEMINI_API_KEY)
  python main.py --demo       Echo images back without calling the API
""",
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Run in demo mode with an offline generator (no API key needed)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Write debug logs to this file (the terminal is owned by the UI)",
    )
    args = parser.parse_args()

    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    from ui.app import StudioApp

    app = StudioApp(demo=args.demo)
    app.run()


if __name__ == "__main__":
    main()
