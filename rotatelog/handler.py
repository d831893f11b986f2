"""logging.Handler that sends formatted records through a RotateWriter."""

import logging

from rotatelog.writer import RotateWriter


class RotateHandler(logging.Handler):
    terminator = "\n"

    def __init__(self, writer: RotateWriter, level: int = logging.NOTSET, encoding: str = "utf-8"):
        super().__init__(level)
        self.writer = writer
        self.encoding = encoding

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record) + self.terminator
            self.writer.write(msg.encode(self.encoding))
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        self.acquire()
        try:
            self.writer.close()
        finally:
            self.release()
            super().close()
