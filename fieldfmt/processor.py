from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, TextIO

from .errors import InputDecodeError
from .formatter import Formatter
from .scanners import Scanner

logger = logging.getLogger(__name__)


@dataclass
class Processor:
    scanner: Scanner
    formatter: Formatter
    encoding: str = "utf-8"

    def process_text(self, text: str) -> str:
        results = self.scanner.scan(text)
        return self.formatter.format(results)

    def process_bytes(self, data: bytes) -> str:
        try:
            text = data.decode(self.encoding)
        except UnicodeDecodeError as e:
            raise InputDecodeError(f"input is not valid {self.encoding}: {e}")
        return self.process_text(text)

    def process_stream(self, src: BinaryIO, dst: TextIO) -> None:
        # Input is read to completion before anything is scanned or written
        data = src.read()
        logger.debug("Read %d byte(s) of input", len(data))
        output = self.process_bytes(data)
        dst.write(output + "\n")
