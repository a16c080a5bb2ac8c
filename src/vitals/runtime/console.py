from __future__ import annotations

import sys
from typing import Callable

Echo = Callable[[str], None]
PrintErr = Callable[[str], None]


def print_stderr(message: str) -> None:
    print(message, file=sys.stderr)
