import logging
import shutil
import subprocess

from fileforge.core.config import get_settings
from fileforge.core.errors import ProcessingError

logger = logging.getLogger(__name__)


def ffmpeg_binary() -> str:
    binary = shutil.which("ffmpeg")
    if not binary:
        raise ProcessingError("ffmpeg is not installed on this server")
    return binary


def run_ffmpeg(
    input_path: str, output_path: str, extra_args: list[str] | None = None, timeout: float | None = None
) -> None:
    """Run ffmpeg once; ``timeout`` defaults to the per-job limit (0 means none)."""
    if timeout is None:
        timeout = get_settings().job_timeout_seconds or None
    command = [ffmpeg_binary(), "-y", "-hide_banner", "-loglevel", "error", "-i", input_path, *(extra_args or []), output_path]
    logger.debug("ffmpeg_invoked", extra={"command": command[1:], "timeout": timeout})
    try:
        completed = subprocess.run(command, capture_output=True, text=True, check=False, timeout=timeout)
    except subprocess.TimeoutExpired as exc:
        raise ProcessingError(f"ffmpeg timed out after {timeout:g} seconds", exc) from exc
    except OSError as exc:
        raise ProcessingError(f"Unable to start ffmpeg: {exc}", exc) from exc
    if completed.returncode != 0:
        detail = (completed.stderr or "").strip().splitlines()
        reason = detail[-1] if detail else f"exit code {completed.returncode}"
        raise ProcessingError(f"ffmpeg failed: {reason}")
