from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import requests
from urllib3.util.retry import Retry

from radiocast.adapters.http_session import build_retry, build_session, get_with_retry
from radiocast.domain.errors import AnimationError
from radiocast.utils.context import RequestContext

logger = logging.getLogger(__name__)

HELIOVIEWER_API = "https://api.helioviewer.org/v2"
FRAME_COUNT = 24
FRAME_WIDTH = 1024
GIF_FILTER = (
    "scale=512:-1:flags=lanczos,split[s0][s1];"
    "[s0]palettegen=max_colors=64:stats_mode=diff[p];"
    "[s1][p]paletteuse=dither=bayer:bayer_scale=5:diff_mode=rectangle"
)
FFMPEG_STEP_TIMEOUT = 60.0


class Animator:
    """Builds the sun animation for a report timestamp. Failures raise AnimationError."""

    def build(self, ctx: RequestContext, ts: datetime) -> bytes:
        raise NotImplementedError


def _image_ext(data: bytes) -> Optional[str]:
    if data.startswith(b"\x89PNG"):
        return "png"
    if data.startswith(b"\xff\xd8"):
        return "jpg"
    return None


def _parse_image_id(value) -> int:
    if isinstance(value, str):
        try:
            value = int(value)
        except ValueError:
            raise AnimationError(f"invalid image id: {value!r}") from None
    if isinstance(value, float):
        value = int(value)
    if not isinstance(value, int) or value == 0:
        raise AnimationError(f"no image id in response: {value!r}")
    return value


@dataclass
class HelioviewerAnimator(Animator):
    """
    SDO/AIA 304 frames from Helioviewer, one per hour for the last day,
    stamped and assembled into a looping GIF with ffmpeg.
    """
    session: requests.Session = field(default_factory=build_session)
    ffmpeg: str = "ffmpeg"
    timeout_seconds: float = 30.0
    api_base: str = HELIOVIEWER_API
    retry: Optional[Retry] = None

    def _get(self, ctx: RequestContext, url: str, params: Optional[dict] = None) -> requests.Response:
        ctx.check()
        try:
            resp = get_with_retry(self.session, ctx, url, retry=self.retry, budget=self.timeout_seconds, params=params)
        except requests.RequestException as e:
            raise AnimationError(f"helioviewer request failed: {e}") from e
        if resp.status_code != 200:
            raise AnimationError(f"helioviewer {url} returned status {resp.status_code}")
        return resp

    def _json(self, ctx: RequestContext, url: str, params: Optional[dict] = None):
        try:
            return self._get(ctx, url, params).json()
        except ValueError as e:
            raise AnimationError(f"helioviewer {url} returned invalid JSON") from e

    def lookup_source_id(self, ctx: RequestContext) -> int:
        data = self._json(ctx, f"{self.api_base}/getDataSources/")
        try:
            source_id = int(data["SDO"]["AIA"]["304"]["sourceId"])
        except (KeyError, TypeError, ValueError) as e:
            raise AnimationError(f"SDO/AIA/304 source id not found: {e}") from e
        if source_id == 0:
            raise AnimationError("SDO/AIA/304 source id is zero")
        return source_id

    def closest_image_id(self, ctx: RequestContext, when: datetime, source_id: int) -> int:
        params = {"date": when.strftime("%Y-%m-%dT%H:%M:%SZ"), "sourceId": source_id}
        data = self._json(ctx, f"{self.api_base}/getClosestImage/", params)
        return _parse_image_id(data.get("id") if isinstance(data, dict) else None)

    def download_image(self, ctx: RequestContext, image_id: int) -> tuple[bytes, str]:
        resp = self._get(ctx, f"{self.api_base}/downloadImage/", params={"id": image_id, "width": FRAME_WIDTH})
        ext = _image_ext(resp.content)
        if ext is None:
            raise AnimationError(f"unexpected image content for id {image_id}")
        return resp.content, ext

    def _ffmpeg(self, ctx: RequestContext, *args: str) -> None:
        ctx.check()
        cmd = [self.ffmpeg, "-y", "-loglevel", "error", *args]
        try:
            subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
                timeout=max(ctx.timeout(FFMPEG_STEP_TIMEOUT), 0.1),
            )
        except subprocess.TimeoutExpired as e:
            ctx.check()
            raise AnimationError("ffmpeg timed out") from e
        except subprocess.CalledProcessError as e:
            raise AnimationError(f"ffmpeg failed: {(e.stderr or '').strip()[:500]}") from e

    def _annotate(self, ctx: RequestContext, src: Path, dst: Path, when: datetime) -> None:
        label = when.strftime("%b %d %H:%M UTC").replace(":", r"\:")
        drawtext = (
            f"drawtext=text='{label}':fontcolor=white:fontsize=24:box=1:boxcolor=black@0.5:"
            "boxborderw=5:x=(w-text_w)/2:y=h-th-10"
        )
        self._ffmpeg(ctx, "-i", str(src), "-vf", drawtext, str(dst))

    def build(self, ctx: RequestContext, ts: datetime) -> bytes:
        base = ts.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)
        hours = [base - timedelta(hours=i) for i in range(FRAME_COUNT - 1, -1, -1)]

        source_id = self.lookup_source_id(ctx)
        logger.info("SunGIF: using SDO/AIA 304 source id %d", source_id)

        with tempfile.TemporaryDirectory(prefix="helio_gif_") as tmp:
            tmp_dir = Path(tmp)
            frames = 0
            for when in hours:
                try:
                    image_id = self.closest_image_id(ctx, when, source_id)
                    data, ext = self.download_image(ctx, image_id)
                    raw = tmp_dir / f"raw_{frames:02d}.{ext}"
                    raw.write_bytes(data)
                    self._annotate(ctx, raw, tmp_dir / f"frame{frames:02d}.jpg", when)
                except AnimationError as e:
                    logger.warning("SunGIF: frame for %s skipped: %s", when.isoformat(), e)
                    continue
                frames += 1

            if frames == 0:
                raise AnimationError("no frames were successfully processed")
            logger.info("SunGIF: assembling %d frames", frames)

            out = tmp_dir / "sun_72h.gif"
            self._ffmpeg(
                ctx,
                "-framerate", "2",
                "-i", str(tmp_dir / "frame%02d.jpg"),
                "-vf", GIF_FILTER,
                "-loop", "10",
                str(out),
            )
            if not out.is_file():
                raise AnimationError("GIF not created")
            return out.read_bytes()


def create_animator(session: Optional[requests.Session] = None) -> Optional[Animator]:
    """Helioviewer animator when ffmpeg is installed, otherwise None (animation disabled)."""
    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg:
        logger.info("ffmpeg not found on PATH; sun animation disabled")
        return None
    return HelioviewerAnimator(session=session or build_session(), ffmpeg=ffmpeg, retry=build_retry())
