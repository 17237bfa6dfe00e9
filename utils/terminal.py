"""
Operator-facing terminal: coloured, indented messages and yes/no questions.

Indentation reflects the depth of the item being handled: artist (0),
album (1), song (2). Every question defaults to yes; only a literal "n" or
"N" answers no.
"""

import sys
from typing import Optional, TextIO

from utils.logging_config import RunLog

ANSI_RESET = "\u001B[0m"
ANSI_RED = "\u001B[31m"
ANSI_GREEN = "\u001B[32m"
ANSI_YELLOW = "\u001B[33m"
ANSI_BLUE = "\u001B[34m"

INFO = "info"
WARNING = "warning"
ERROR = "error"
QUESTION = "question"
CONFIRMATION = "confirmation"

LEVEL_COLORS = {
    INFO: None,
    WARNING: ANSI_YELLOW,
    ERROR: ANSI_RED,
    QUESTION: ANSI_BLUE,
    CONFIRMATION: ANSI_GREEN,
}

# Questions are not part of the run log, only their consequences are.
UNLOGGED_LEVELS = {QUESTION}


class Terminal:
    """Blocking interaction sink reading answers from a single input stream."""

    def __init__(
        self,
        input_stream: Optional[TextIO] = None,
        output_stream: Optional[TextIO] = None,
        run_log: Optional[RunLog] = None,
        use_colors: bool = True
    ):
        self.input_stream = input_stream or sys.stdin
        self.output_stream = output_stream or sys.stdout
        self.run_log = run_log
        self.use_colors = use_colors

    def notify(self, level: str, message: str, indent: int = 0):
        """Print a message at the given indentation, mirrored to the run log."""
        if level not in LEVEL_COLORS:
            raise ValueError(f"Unknown message level: {level}")

        output = "\t" * indent + message
        color = LEVEL_COLORS[level]
        if color and self.use_colors:
            print(color + output + ANSI_RESET, file=self.output_stream)
        else:
            print(output, file=self.output_stream)
        self.output_stream.flush()

        if self.run_log is not None and level not in UNLOGGED_LEVELS:
            self.run_log.logger.info(output)

    def info(self, message: str, indent: int = 0):
        self.notify(INFO, message, indent)

    def warning(self, message: str, indent: int = 0):
        self.notify(WARNING, message, indent)

    def error(self, message: str, indent: int = 0):
        self.notify(ERROR, message, indent)

    def question(self, message: str, indent: int = 0):
        self.notify(QUESTION, message, indent)

    def confirmation(self, message: str, indent: int = 0):
        self.notify(CONFIRMATION, message, indent)

    def read_answer(self) -> str:
        """Block until the operator answers; end of input reads as an empty answer."""
        line = self.input_stream.readline()
        return line.strip()

    def ask_yes_no(self, prompt: str, indent: int = 0, level: str = QUESTION) -> bool:
        self.notify(level, prompt, indent)
        return self.read_answer().lower() != "n"

    def ask_to_retry(self, indent: int = 0) -> bool:
        return self.ask_yes_no("Retry? (Y/n)", indent)

    def ask_to_continue(self, indent: int = 0):
        """Pause until the operator agrees to go on."""
        while not self.ask_yes_no("Continue? (Y/n)", indent):
            pass

    def confirm(self, prompt: str, indent: int, force: bool) -> bool:
        """Ask a destructive-action question unless auto-confirm is on."""
        if force:
            return True
        return self.ask_yes_no(prompt, indent)
