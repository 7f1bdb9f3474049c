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
HTML payload that replays a trace with rrweb-player.

The page built here is the other half of the bridge protocol:

- it calls ``window.onReplayStart()`` and then ``play()`` once the start
  delay has elapsed (immediately when the player autoplays)
- it calls ``window.onReplayFinish()`` on the player's ``finish`` event
- it reports a failing player construction with ``console.error`` and the
  ``Replayer Uncaught Error:`` marker, since such an exception never
  reaches Python otherwise
"""

from __future__ import annotations

import json
from string import Template
from typing import Any

from replaycast.config import PlayerAssets, PlayerOptions
from replaycast.core.bridge import ERROR_MARKER, FINISH_BINDING, START_BINDING
from replaycast.exceptions import SetupError, TraceError

WRAPPER_SELECTOR = ".replayer-wrapper"
PLAYER_SELECTOR = ".rr-player"

_PAGE = Template("""<html>
  <head>
    $style
  </head>
  <body>
    $script
    <script>
      const events = $events;
      const userConfig = $props;
      const startDelay = $delay;
      try {
        window.replayer = new rrwebPlayer({
          target: document.body,
          props: Object.assign({ events: events }, userConfig),
        });
        window.replayer.addEventListener("finish", () => window.$finish());
        const begin = () => {
          window.$start();
          window.replayer.play();
        };
        if (startDelay > 0) {
          setTimeout(begin, startDelay);
        } else {
          begin();
        }
      } catch (e) {
        console.error("$marker" + e.message);
      }
    </script>
  </body>
</html>
""")


def capture_selector(player: PlayerOptions) -> str:
    """Selector of the element frames are captured from.

    With an explicit size the whole player is captured, otherwise only
    the replay viewport.
    """
    return PLAYER_SELECTOR if player.has_fixed_size else WRAPPER_SELECTOR


def to_script_json(value: Any) -> str:
    """JSON for embedding in a <script> element.

    ``</`` is escaped so recorded markup such as ``</script>`` cannot close
    the element early; ``<\\/`` decodes to the same string.
    """
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")


def build_replay_html(
    events: Any,
    player: PlayerOptions,
    start_delay_ms: int,
    assets: PlayerAssets,
) -> str:
    """
    Render the replay page.

    Args:
        events: Decoded trace, embedded verbatim
        player: Display options merged over the defaults
            ``showController: false`` and ``autoPlay: false``
        start_delay_ms: Delay before playback; ignored when autoplaying
        assets: Where the rrweb-player bundle comes from

    Returns:
        Complete HTML document

    Raises:
        TraceError: If the trace cannot be serialized back to JSON
        SetupError: If a local player asset cannot be read
    """
    delay = 0 if player.auto_play else max(int(start_delay_ms), 0)
    try:
        events_json = to_script_json(events)
    except (TypeError, ValueError) as e:
        raise TraceError(f"Trace cannot be embedded in the replay page: {e}") from e

    return _PAGE.substitute(
        style=_style_tag(assets),
        script=_script_tag(assets),
        events=events_json,
        props=to_script_json(player.to_props()),
        delay=delay,
        start=START_BINDING,
        finish=FINISH_BINDING,
        marker=ERROR_MARKER,
    )


def _style_tag(assets: PlayerAssets) -> str:
    if assets.style_path:
        return f"<style>{_read_asset(assets.style_path)}</style>"
    return f'<link rel="stylesheet" href="{assets.style_url}" />'


def _script_tag(assets: PlayerAssets) -> str:
    if assets.script_path:
        source = _read_asset(assets.script_path).replace("</script", "<\\/script")
        return f"<script>{source}</script>"
    return f'<script src="{assets.script_url}"></script>'


def _read_asset(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise SetupError(f"Failed to read player asset {path}: {e}") from e
