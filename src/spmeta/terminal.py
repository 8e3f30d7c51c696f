"""
Line based interaction with the operator running the command.
"""

import sys
from enum import IntEnum

from spmeta.exceptions import InputException
from spmeta.logs import get_log

log = get_log(__name__)


class Verbosity(IntEnum):
    SILENT = 0
    NORMAL = 1
    VERBOSE = 2


class Terminal(object):
    """
    Writes messages that are at or below the configured verbosity and reads answers one line at a time.
    Any pair of text streams can be used which makes it possible to script a session in tests.
    """

    def __init__(self, stdin=None, stdout=None, stderr=None, verbosity=Verbosity.NORMAL):
        self._stdin = stdin if stdin is not None else sys.stdin
        self._stdout = stdout if stdout is not None else sys.stdout
        self._stderr = stderr if stderr is not None else sys.stderr
        self.verbosity = verbosity

    def _is_printable(self, verbosity):
        return self.verbosity >= verbosity

    def println(self, msg='', verbosity=Verbosity.NORMAL):
        if self._is_printable(verbosity):
            self._stdout.write("{}\n".format(msg))
            self._stdout.flush()

    def error_println(self, msg='', verbosity=Verbosity.NORMAL):
        if self._is_printable(verbosity):
            self._stderr.write("{}\n".format(msg))
            self._stderr.flush()

    def read_line(self):
        return self._stdin.readline()

    def read_text(self, prompt):
        """
        Print the prompt and return one line of input without the line terminator.

        :raise InputException: if the input stream is exhausted
        """
        self._stdout.write(prompt)
        self._stdout.flush()
        line = self.read_line()
        if not line:
            raise InputException("unable to read from standard input; is standard input open and a tty attached?")
        return line.rstrip('\r\n')

    def prompt_yes_no(self, prompt, default_yes):
        while True:
            answer = self.read_text("{} [{}] ".format(prompt, "Y/n" if default_yes else "y/N")).strip().lower()
            if not answer:
                return default_yes
            if answer in ('y', 'yes'):
                return True
            if answer in ('n', 'no'):
                return False
            log.debug("unparseable yes/no answer {}".format(repr(answer)))
            self.println("Did not understand answer '{}'".format(answer))


def require_text(terminal, prompt):
    """Prompt until a non-empty answer is given."""
    value = None
    while not value:
        value = terminal.read_text(prompt)
    return value
