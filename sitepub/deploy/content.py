"""
Content processing step run before every build and preview.

The actual normalisation (front matter, category layout, images) belongs to
the content layer; the core only invokes it through this contract.
"""

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Protocol

from sitepub.lib.constants import STAGE_CONTENT
from sitepub.lib.errors import ContentProcessingError

logger = logging.getLogger(__name__)


class ContentProcessor(Protocol):
    """Normalises raw content into the layout the site builder expects."""

    def process(self) -> None:
        """Run once; raise ContentProcessingError on failure."""
        ...


class NullContentProcessor:
    """Used when no content processing command is configured."""

    def process(self) -> None:
        logger.debug("No content processing command configured, skipping")


class CommandContentProcessor:
    """Runs an external command (e.g. `npm run process-content`)."""

    def __init__(self, command: str, cwd: Path, timeout: int = 600):
        self.argv = shlex.split(command)
        self.cwd = Path(cwd)
        self.timeout = timeout

    def process(self) -> None:
        logger.info(f"Processing content: {shlex.join(self.argv)}")
        try:
            result = subprocess.run(
                self.argv,
                cwd=str(self.cwd),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise ContentProcessingError(
                f"Content processing timed out after {self.timeout}s", stage=STAGE_CONTENT
            ) from None
        except OSError as e:
            raise ContentProcessingError(
                f"Could not run content processor: {e}", stage=STAGE_CONTENT
            ) from None

        for line in result.stdout.splitlines():
            logger.debug(f"[content] {line}")
        if result.returncode != 0:
            detail = result.stderr.strip() or result.stdout.strip()
            raise ContentProcessingError(
                f"Content processing failed (exit {result.returncode}): {detail}",
                stage=STAGE_CONTENT,
            )


def make_content_processor(command: str | None, cwd: Path, timeout: int) -> ContentProcessor:
    if command:
        return CommandContentProcessor(command, cwd, timeout)
    return NullContentProcessor()
