#!/usr/bin/env python3
# Copyright 2026 Firefly Software Solutions Inc
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
ReplayCast CLI.

Usage:
    replaycast --input session.json
    replaycast --input session.json --output demo.mp4 --fps 30
    replaycast --input session.json --config player.json --timeout 600

The --config file holds rrweb-player options (width, height, speed,
skipInactive, ...) and may also set startDelayTime. Environment variables
named REPLAYCAST_* provide defaults for every option (see
RecordingConfig.from_env).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from replaycast.config import PlayerAssets, RecordingConfig
from replaycast.core.orchestrator import transform_to_video
from replaycast.exceptions import ConfigurationError, ReplayCastError
from replaycast.utils.logger import logger, setup_logger

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BAD_CONFIG = 2


def get_version() -> str:
    """Get the ReplayCast version."""
    import replaycast
    return getattr(replaycast, "__version__", "unknown")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="replaycast",
        description="ReplayCast - Render recorded rrweb sessions to video",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  replaycast --input session.json                     # writes replaycast-output.mp4
  replaycast --input session.json --output demo.mp4   # custom output
  replaycast --input session.json --config player.json --fps 30

  # Or via environment variables:
  REPLAYCAST_FFMPEG=/opt/ffmpeg/bin/ffmpeg replaycast --input session.json
""",
    )
    parser.add_argument("--input", "-i", help="Path to the rrweb trace (JSON)")
    parser.add_argument("--output", "-o", help="Output video path")
    parser.add_argument("--fps", type=int, help="Frames per second (default: 15)")
    parser.add_argument(
        "--config",
        help="JSON file with rrweb-player options (width, height, speed, ...)",
    )
    parser.add_argument(
        "--start-delay",
        type=int,
        metavar="MS",
        help="Delay before playback starts in milliseconds (default: 1000)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        help="Abort if the recording has not finished after this long",
    )
    parser.add_argument(
        "--browser",
        choices=["chromium", "firefox", "webkit"],
        help="Browser used to replay the trace (default: chromium)",
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window while recording",
    )
    parser.add_argument("--ffmpeg", help="Path to the ffmpeg binary")
    parser.add_argument("--player-script", help="Local rrweb-player dist/index.js to inline")
    parser.add_argument("--player-style", help="Local rrweb-player dist/style.css to inline")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set logging level (default: INFO)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {get_version()}",
    )
    return parser


def load_player_options(path: str) -> Dict[str, Any]:
    """Read the --config JSON file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return data


def build_config(args: argparse.Namespace) -> RecordingConfig:
    """Merge environment defaults, the --config file and flags."""
    config = RecordingConfig.from_env()
    overrides: Dict[str, Any] = {}

    if args.config:
        player = load_player_options(args.config)
        from_file = RecordingConfig.from_dict({"rrwebPlayer": player})
        overrides["player"] = from_file.player
        if "startDelayTime" in player:
            overrides["start_delay_ms"] = from_file.start_delay_ms

    for attr, value in (
        ("input", args.input),
        ("output", args.output),
        ("fps", args.fps),
        ("start_delay_ms", args.start_delay),
        ("timeout", args.timeout),
        ("browser_type", args.browser),
        ("ffmpeg_path", args.ffmpeg),
    ):
        if value is not None:
            overrides[attr] = value
    if args.headed:
        overrides["headless"] = False
    if args.player_script or args.player_style:
        overrides["assets"] = PlayerAssets(
            script_path=args.player_script or config.assets.script_path,
            style_path=args.player_style or config.assets.style_path,
        )

    config = config.with_overrides(**overrides)
    if not config.input:
        raise ConfigurationError("No input trace given (use --input or REPLAYCAST_INPUT)")
    return config


def cmd_render(args: argparse.Namespace) -> int:
    """Run one recording and print the produced path."""
    try:
        config = build_config(args)
    except ConfigurationError as e:
        logger.error(str(e))
        return EXIT_BAD_CONFIG

    try:
        output_path = asyncio.run(transform_to_video(config))
    except ReplayCastError as e:
        logger.error(f"Recording failed ({type(e).__name__}): {e}")
        return EXIT_FAILED

    print(output_path)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logger(level=getattr(logging, args.log_level))
    sys.exit(cmd_render(args))


if __name__ == "__main__":
    main()
