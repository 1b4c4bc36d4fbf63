from __future__ import annotations
import codecs
import json
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class LineBuffer:
    """Reassembles newline-delimited text from arbitrarily split byte chunks.

    Only the trailing partial line is held between calls to ``feed``.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    def feed(self, chunk: bytes) -> List[str]:
        text = self._pending + self._decoder.decode(chunk)
        lines = text.split("\n")
        # The last element is incomplete (or empty when the chunk ended on a newline)
        self._pending = lines.pop()
        return lines

    def flush(self) -> List[str]:
        tail = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        return tail.split("\n") if tail else []


def parse_data_line(line: str) -> Optional[Dict[str, Any]]:
    """Decode one frame; None for blank, sentinel, non-data and malformed lines."""
    line = line.strip()
    if not line or not line.startswith(DATA_PREFIX):
        return None
    data = line[len(DATA_PREFIX):].strip()
    if data == DONE_SENTINEL:
        return None
    try:
        obj = json.loads(data)
    except ValueError:
        logger.debug("dropping malformed frame: %.200s", data)
        return None
    if not isinstance(obj, dict):
        return None
    return obj


def delta_content(obj: Dict[str, Any]) -> Optional[str]:
    choices = obj.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None
