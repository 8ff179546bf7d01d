"""Line framing for the multilang protocol.

Each message is one line of compact JSON followed by a line holding ``end``:

    {"command":"sync"}
    end

Newline is the only delimiter, so payloads are always written on a single
line. There is no resynchronization point: a payload that fails to parse
leaves the stream unusable.
"""
from __future__ import annotations
import json
from typing import Any, Optional, TextIO, Tuple

from .errors import DecodeFailure, TransportFailure
from .logging import core_logger, summarize_for_log

SENTINEL = "end"


def encode_payload(payload: Any) -> str:
    try:
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise DecodeFailure(f"payload is not JSON serializable: {e}") from e


def utf8_stream(stream: TextIO) -> TextIO:
    """Switch a process stream to UTF-8 regardless of locale."""
    encoding = (getattr(stream, "encoding", None) or "").lower().replace("_", "-")
    if encoding in ("utf-8", "utf8") or not hasattr(stream, "reconfigure"):
        return stream
    stream.reconfigure(encoding="utf-8")
    return stream


def decode_payload(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as e:
        raise DecodeFailure(f"malformed frame {text[:80]!r}: {e}") from e


class FrameCodec:
    """Reads and writes framed JSON messages on a text stream pair."""

    def __init__(self, input: TextIO, output: TextIO, strict_sentinel: bool = False):
        self.input = input
        self.output = output
        self.strict_sentinel = strict_sentinel

    def _readline(self) -> str:
        try:
            return self.input.readline()
        except UnicodeError as e:
            raise DecodeFailure(f"input is not valid UTF-8: {e}") from e
        except OSError as e:
            raise TransportFailure(f"read failed: {e}") from e

    def read_frame(self) -> Tuple[Optional[Any], bool]:
        """Return ``(payload, eof)``.

        EOF on the payload line yields ``(None, True)`` without decoding. EOF on
        the sentinel line still returns the payload that was read, with
        ``eof`` set.
        """
        line = self._readline()
        if not line:
            return None, True
        text = line.rstrip("\r\n")
        if not text.strip():
            raise DecodeFailure("empty payload line")
        end = self._readline()
        eof = not end
        if not eof and self.strict_sentinel and end.rstrip("\r\n") != SENTINEL:
            raise DecodeFailure(f"expected {SENTINEL!r} after payload, got {end.rstrip()!r}")
        payload = decode_payload(text)
        core_logger.debug(f"frame in eof={eof} payload={summarize_for_log(payload)}")
        return payload, eof

    def write_frame(self, payload: Any) -> None:
        text = encode_payload(payload)
        try:
            self.output.write(text + "\n")
            self.output.write(SENTINEL + "\n")
            self.output.flush()
        except UnicodeError as e:
            raise DecodeFailure(f"output stream cannot encode payload: {e}") from e
        except OSError as e:
            raise TransportFailure(f"write failed: {e}") from e
        core_logger.debug(f"frame out payload={summarize_for_log(payload)}")


__all__ = ["FrameCodec", "SENTINEL", "encode_payload", "decode_payload", "utf8_stream"]
