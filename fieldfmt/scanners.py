from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Pattern

from .types import LineResult

logger = logging.getLogger(__name__)


def split_lines(text: str) -> list[str]:
    """Split text into lines on '\\n', dropping one trailing '\\r' per line.

    A final newline does not start an extra empty line.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


class Scanner:
    """Abstract base for turning input text into per-line fields.

    Implementations only decide how a single line is split; scan() keeps
    one LineResult per input line, in input order.
    """
    def scan_line(self, line: str) -> LineResult:
        raise NotImplementedError

    def scan(self, text: str) -> list[LineResult]:
        results = [self.scan_line(line) for line in split_lines(text)]
        logger.debug("%s scanned %d line(s)", type(self).__name__, len(results))
        return results


@dataclass
class PatternScanner(Scanner):
    """Capture fields from the first match of a regex on each line.

    Every participating group is stored under its index, and also under
    its name when the group is named. Lines that do not match yield no fields.
    """
    pattern: Pattern[str]

    def __post_init__(self) -> None:
        self._names: dict[int, str] = {index: name for name, index in self.pattern.groupindex.items()}

    def scan_line(self, line: str) -> LineResult:
        m = self.pattern.search(line)
        if m is None:
            return LineResult()
        values: dict[str, str] = {}
        for index in range(self.pattern.groups + 1):
            captured = m.group(index)
            if captured is None:
                continue
            name = self._names.get(index)
            if name is not None:
                values[name] = captured
            values[str(index)] = captured
        return LineResult(values=values)


@dataclass
class DelimiterScanner(Scanner):
    """Split each line wherever the delimiter regex matches.

    "0" holds the whole line; the parts are numbered from "1". Empty parts
    are kept, and groups inside the delimiter never become fields.
    """
    delimiter: Pattern[str]

    def split(self, line: str) -> list[str]:
        parts: list[str] = []
        start = 0
        for m in self.delimiter.finditer(line):
            parts.append(line[start:m.start()])
            start = m.end()
        parts.append(line[start:])
        return parts

    def scan_line(self, line: str) -> LineResult:
        values: dict[str, str] = {"0": line}
        for i, part in enumerate(self.split(line)):
            values[str(i + 1)] = part
        return LineResult(values=values)
