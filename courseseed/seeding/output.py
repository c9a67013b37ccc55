from __future__ import annotations

import sys
from typing import Optional, TextIO


class SeedOutput:
    """Plain-text progress sink for whoever runs the seeders.

    Independent of logging: these lines are meant to be read by a person.
    Without an explicit stream, lines go to whatever ``sys.stdout`` is at
    write time.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def info(self, message: str) -> None:
        print(message, file=self.stream or sys.stdout)

    def warn(self, message: str) -> None:
        print(f"WARNING: {message}", file=self.stream or sys.stdout)
