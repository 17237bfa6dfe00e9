"""
Fire-and-forget launching of the operator's file manager and text editor.
"""

import subprocess
from pathlib import Path
from typing import Optional
import logging

from utils.exceptions import ExternalToolError
from utils.terminal import Terminal, WARNING

logger = logging.getLogger(__name__)


class ProcessLauncher:
    """Opens paths in external programs without waiting for them."""

    def __init__(
        self,
        terminal: Terminal,
        file_manager: Optional[str] = None,
        text_editor: Optional[str] = None
    ):
        self.terminal = terminal
        self.file_manager = file_manager
        self.text_editor = text_editor

    def open_path(self, command: str, path: Path, indent: int = 0) -> bool:
        """
        Start `command path` in the background.

        Returns:
            True if the process could be started; failures are reported, not raised
        """
        try:
            self._spawn(command, path)
        except ExternalToolError as e:
            logger.error(str(e))
            self.terminal.error(f"Cannot open {command}", indent)
            return False
        return True

    def signal_path(self, message: str, path: Path, indent: int = 0):
        """
        Tell the operator that something at path needs manual attention.

        When a file manager is configured the operator is offered to open it
        on path; otherwise the message is a plain warning.
        """
        if self.file_manager is None:
            self.terminal.warning(f"{message}.", indent)
            return

        if self.terminal.ask_yes_no(f"{message}. Open? (Y/n)", indent, level=WARNING):
            self.open_path(self.file_manager, path, indent)

    def open_in_editor(self, path: Path) -> bool:
        if self.text_editor is None:
            return False
        return self.open_path(self.text_editor, path)

    @staticmethod
    def _spawn(command: str, path: Path):
        try:
            subprocess.Popen(
                [command, str(path)],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True
            )
        except (OSError, ValueError) as e:
            raise ExternalToolError(command, str(e))
        logger.debug(f"Launched {command} on {path}")
