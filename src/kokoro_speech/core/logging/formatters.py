"""
Log Formatters for JSON and Console Output.

    JsonlFormatter: one JSON object per line, for files and log shippers
    ColoredConsoleFormatter: human-readable terminal lines

Output Examples:
    JSONL:
        {"ts":"2026-01-15T14:30:05+03:00","level":2,"tag":"INFO","message":"speech_request","request_id":"abc123","extra":{"model":"model_q8f16"}}

    Console:
        14:30:05 [ INFO  ] (abc123) speech_request model=model_q8f16 voice=af_heart
        14:30:06 [SUCCESS] (abc123) speech_done bytes=40812 0.842s
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict

from . import colors
from .colors import Colors, colorize, get_tag_color


class JsonlFormatter(logging.Formatter):
    """
    Format log records as single-line JSON objects.

    Keys: ts, level, tag, message, request_id, and when present event,
    seconds and extra (the structured fields passed to the log helpers).
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": getattr(record, "numeric_level", 2),
            "tag": getattr(record, "tag", record.levelname),
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        event = getattr(record, "event", None)
        if event:
            payload["event"] = event

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            payload["seconds"] = seconds

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = extra_data

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """
    Format log records for the terminal.

    Format:
        HH:MM:SS [ TAG   ] (rid) message key=value 0.123s

    Durations are green under 0.5s, yellow under 2s and red above; speech
    synthesis on CPU is usually in the yellow band.
    """

    def format(self, record: logging.LogRecord) -> str:
        enabled = colors.USE_COLORS
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tag = getattr(record, "tag", record.levelname)
        rid = getattr(record, "request_id", "-")

        parts = [
            colorize(ts, Colors.DIM, enabled),
            colorize(f"[{tag:^7}]", get_tag_color(tag), enabled),
        ]
        if rid != "-":
            parts.append(colorize(f"({rid})", Colors.DIM + Colors.CYAN, enabled))
        parts.append(record.getMessage())

        event = getattr(record, "event", None)
        if event:
            parts.append(colorize(f"event={event}", Colors.BLUE, enabled))

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            parts.append(colorize(f"{seconds:.3f}s", self._duration_color(seconds), enabled))

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            for k, v in extra_data.items():
                parts.append(colorize(f"{k}={v}", self._field_color(k), enabled))

        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line

    @staticmethod
    def _duration_color(seconds: float) -> str:
        if seconds < 0.5:
            return Colors.GREEN
        if seconds < 2.0:
            return Colors.YELLOW
        return Colors.RED

    @staticmethod
    def _field_color(key: str) -> str:
        if key in ("status", "code", "error", "error_type"):
            return Colors.MAGENTA
        return Colors.DIM
