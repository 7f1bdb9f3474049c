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
Recording configuration for ReplayCast.

This module provides the immutable configuration consumed by the recording
orchestrator:

- RecordingConfig: frame rate, browser, input/output paths, start delay
- PlayerOptions: display options passed verbatim to rrweb-player
- PlayerAssets: where the rrweb-player script and stylesheet are loaded from

Configuration can be built directly, from a mapping using the camelCase keys
of rrweb tooling (RecordingConfig.from_dict), or from REPLAYCAST_* environment
variables (RecordingConfig.from_env).
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from replaycast.exceptions import ConfigurationError

DEFAULT_FPS = 15
DEFAULT_OUTPUT = "replaycast-output.mp4"
DEFAULT_START_DELAY_MS = 1000
SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")

RRWEB_PLAYER_SCRIPT_URL = "https://cdn.jsdelivr.net/npm/rrweb-player@latest/dist/index.js"
RRWEB_PLAYER_STYLE_URL = "https://cdn.jsdelivr.net/npm/rrweb-player@latest/dist/style.css"


class PlayerOptions(BaseModel):
    """Display options forwarded to rrweb-player as its ``props``.

    Known options are validated; unknown options are kept and passed
    through untouched so newer player features need no code change.
    """

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    width: Optional[int] = Field(None, gt=0, description="Player width in pixels")
    height: Optional[int] = Field(None, gt=0, description="Player height in pixels")
    auto_play: bool = Field(False, alias="autoPlay", description="Start playback on load")
    show_controller: bool = Field(
        False, alias="showController", description="Render the player control bar"
    )
    speed: Optional[float] = Field(None, gt=0, description="Playback speed multiplier")
    skip_inactive: Optional[bool] = Field(
        None, alias="skipInactive", description="Fast-forward idle periods"
    )
    mouse_tail: Optional[Any] = Field(None, alias="mouseTail", description="Mouse tail style")

    @property
    def has_fixed_size(self) -> bool:
        """Whether both width and height were configured."""
        return bool(self.width and self.height)

    def to_props(self) -> Dict[str, Any]:
        """Serialize with rrweb's camelCase names, dropping unset options."""
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class PlayerAssets:
    """Location of the rrweb-player bundle.

    Local paths win over URLs; a local bundle is inlined into the payload
    so the page loads without network access.

    Attributes:
        script_path: Local path to rrweb-player's ``dist/index.js``
        style_path: Local path to rrweb-player's ``dist/style.css``
        script_url: Script URL used when no local path is set
        style_url: Stylesheet URL used when no local path is set
    """

    script_path: Optional[str] = None
    style_path: Optional[str] = None
    script_url: str = RRWEB_PLAYER_SCRIPT_URL
    style_url: str = RRWEB_PLAYER_STYLE_URL


@dataclass(frozen=True)
class RecordingConfig:
    """Configuration for one trace-to-video run.

    Attributes:
        fps: Capture cadence and encoder frame rate (frames per second)
        headless: Whether the browser runs without a visible window
        input: Path to the JSON trace
        output: Destination video path
        start_delay_ms: Delay between player readiness and playback start;
            ignored when the player autoplays
        player: Display options passed through to rrweb-player
        browser_type: Playwright browser to launch
        ffmpeg_path: Encoder binary, ``ffmpeg`` on PATH when None
        timeout: Optional overall deadline in seconds; None waits forever
        assets: Where the rrweb-player bundle is loaded from
    """

    fps: int = DEFAULT_FPS
    headless: bool = True
    input: str = ""
    output: str = DEFAULT_OUTPUT
    start_delay_ms: int = DEFAULT_START_DELAY_MS
    player: PlayerOptions = field(default_factory=PlayerOptions)
    browser_type: str = "chromium"
    ffmpeg_path: Optional[str] = None
    timeout: Optional[float] = None
    assets: PlayerAssets = field(default_factory=PlayerAssets)

    def __post_init__(self) -> None:
        """Validate values and coerce a plain player mapping."""
        if isinstance(self.player, Mapping):
            object.__setattr__(self, "player", _build_player(self.player))
        if "startDelayTime" in (self.player.model_extra or {}):
            raise ConfigurationError(
                "startDelayTime is not a player option; set start_delay_ms "
                "(or use RecordingConfig.from_dict)"
            )

        if isinstance(self.fps, bool) or not isinstance(self.fps, int) or self.fps <= 0:
            raise ConfigurationError(f"fps must be a positive integer, got {self.fps!r}")
        if self.start_delay_ms < 0:
            raise ConfigurationError(
                f"start_delay_ms must not be negative, got {self.start_delay_ms!r}"
            )
        if self.browser_type not in SUPPORTED_BROWSERS:
            raise ConfigurationError(
                f"Unsupported browser type: {self.browser_type} "
                f"(expected one of {', '.join(SUPPORTED_BROWSERS)})"
            )
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout!r}")
        if not self.output:
            raise ConfigurationError("output path must not be empty")

    @property
    def output_path(self) -> str:
        """Absolute output path, relative paths resolved against the cwd."""
        return os.path.abspath(self.output)

    def with_overrides(self, **changes: Any) -> "RecordingConfig":
        """Return a validated copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RecordingConfig":
        """Create a RecordingConfig from a camelCase mapping.

        Recognized keys: fps, headless, input, output, startDelayTime,
        rrwebPlayer (or player), browserType, ffmpegPath, timeout.
        ``startDelayTime`` is also accepted inside the player options.

        Raises:
            ConfigurationError: On unknown value types or invalid values
        """
        player = dict(data.get("rrwebPlayer") or data.get("player") or {})
        start_delay = data.get("startDelayTime", player.pop("startDelayTime", None))

        kwargs: Dict[str, Any] = {"player": _build_player(player)}
        for key, attr in (
            ("fps", "fps"),
            ("headless", "headless"),
            ("input", "input"),
            ("output", "output"),
            ("browserType", "browser_type"),
            ("ffmpegPath", "ffmpeg_path"),
            ("timeout", "timeout"),
        ):
            if data.get(key) is not None:
                kwargs[attr] = data[key]
        if start_delay is not None:
            kwargs["start_delay_ms"] = _to_int("startDelayTime", start_delay)

        return cls(**kwargs)

    @classmethod
    def from_env(cls) -> "RecordingConfig":
        """Create a RecordingConfig from environment variables.

        Environment variables:
            REPLAYCAST_FPS: Frames per second
            REPLAYCAST_HEADLESS: "0", "false" or "no" to show the browser
            REPLAYCAST_INPUT: Trace path
            REPLAYCAST_OUTPUT: Output video path
            REPLAYCAST_START_DELAY: Start delay in milliseconds
            REPLAYCAST_BROWSER: chromium, firefox or webkit
            REPLAYCAST_FFMPEG: Path to the ffmpeg binary
            REPLAYCAST_TIMEOUT: Overall deadline in seconds
            REPLAYCAST_PLAYER_SCRIPT: Local rrweb-player script to inline
            REPLAYCAST_PLAYER_STYLE: Local rrweb-player stylesheet to inline

        Returns:
            RecordingConfig with values from environment, defaults elsewhere
        """
        env = os.environ
        kwargs: Dict[str, Any] = {}

        if env.get("REPLAYCAST_FPS"):
            kwargs["fps"] = _to_int("REPLAYCAST_FPS", env["REPLAYCAST_FPS"])
        if env.get("REPLAYCAST_HEADLESS"):
            kwargs["headless"] = env["REPLAYCAST_HEADLESS"].lower() not in ("0", "false", "no")
        if env.get("REPLAYCAST_INPUT"):
            kwargs["input"] = env["REPLAYCAST_INPUT"]
        if env.get("REPLAYCAST_OUTPUT"):
            kwargs["output"] = env["REPLAYCAST_OUTPUT"]
        if env.get("REPLAYCAST_START_DELAY"):
            kwargs["start_delay_ms"] = _to_int(
                "REPLAYCAST_START_DELAY", env["REPLAYCAST_START_DELAY"]
            )
        if env.get("REPLAYCAST_BROWSER"):
            kwargs["browser_type"] = env["REPLAYCAST_BROWSER"]
        if env.get("REPLAYCAST_FFMPEG"):
            kwargs["ffmpeg_path"] = env["REPLAYCAST_FFMPEG"]
        if env.get("REPLAYCAST_TIMEOUT"):
            kwargs["timeout"] = _to_float("REPLAYCAST_TIMEOUT", env["REPLAYCAST_TIMEOUT"])
        if env.get("REPLAYCAST_PLAYER_SCRIPT") or env.get("REPLAYCAST_PLAYER_STYLE"):
            kwargs["assets"] = PlayerAssets(
                script_path=env.get("REPLAYCAST_PLAYER_SCRIPT") or None,
                style_path=env.get("REPLAYCAST_PLAYER_STYLE") or None,
            )

        return cls(**kwargs)


def _build_player(options: Union[Mapping[str, Any], PlayerOptions]) -> PlayerOptions:
    if isinstance(options, PlayerOptions):
        return options
    try:
        return PlayerOptions.model_validate(dict(options))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid player options: {e}") from e


def _to_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def _to_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e
