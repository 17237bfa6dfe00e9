"""
Cover image inspection and conversion through ImageMagick.

`identify -verbose` reports "Interlace: None" for a baseline JPEG and
"Interlace: JPEG" (or "Line"/"Plane") for a progressive one; `convert`
writes the target format implied by the destination extension and, unless
told otherwise, a baseline JPEG.
"""

import subprocess
from pathlib import Path
import logging

from utils.exceptions import ExternalToolError

logger = logging.getLogger(__name__)

JPEG_EXTENSIONS = {'.jpg', '.jpeg'}


def is_jpeg(path: Path) -> bool:
    return path.suffix.lower() in JPEG_EXTENSIONS


class ImageTool:
    """Blocking wrapper around the ImageMagick command line tools."""

    def __init__(
        self,
        identify_command: str = "identify",
        convert_command: str = "convert",
        timeout: float = 120.0
    ):
        self.identify_command = identify_command
        self.convert_command = convert_command
        self.timeout = timeout

    def is_baseline_jpeg(self, path: Path) -> bool:
        """
        Check whether a JPEG image is baseline (not progressive).

        Raises:
            ExternalToolError: If identify cannot run or fails
        """
        result = self._run([self.identify_command, "-verbose", str(path)])

        for line in result.stdout.splitlines():
            if "Interlace:" in line:
                return "None" in line
        return False

    def convert(self, source: Path, destination: Path):
        """
        Convert source into destination and wait for completion.

        source and destination may be the same file.

        Raises:
            ExternalToolError: If convert cannot run, fails, or produces nothing
        """
        self._run([self.convert_command, str(source), str(destination)])

        if not destination.exists():
            raise ExternalToolError(self.convert_command, f"{destination} was not created")

        logger.info(f"Converted {source} -> {destination}")

    def _run(self, cmd: list) -> subprocess.CompletedProcess:
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, errors="replace", timeout=self.timeout)
        except FileNotFoundError as e:
            raise ExternalToolError(cmd[0], f"not installed: {e}")
        except subprocess.TimeoutExpired:
            raise ExternalToolError(cmd[0], f"timed out after {self.timeout} seconds")
        except (subprocess.SubprocessError, OSError) as e:
            raise ExternalToolError(cmd[0], str(e))

        if result.returncode != 0:
            raise ExternalToolError(cmd[0], result.stderr.strip() or None, result.returncode)

        return result
