from __future__ import annotations

from typing import Tuple
import re


_S3_URI_RE = re.compile(r"^s3://([^/]+)/?(.*)$")


def parse_s3_uri(uri: str) -> Tuple[str, str]:
    """Parse s3://bucket[/key] -> (bucket, key). The key may be empty."""
    m = _S3_URI_RE.match((uri or "").strip())
    if not m:
        raise ValueError(f"Invalid S3 URI: {uri}")
    return m.group(1), m.group(2)


def format_bytes(num_bytes: int) -> str:
    """Human-readable byte count using binary units, e.g. 1.50 MiB."""
    size = float(num_bytes or 0)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if size < 1024 or unit == "TiB":
            if unit == "B":
                return f"{int(size)} B"
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} PiB"


def format_duration(millis: int) -> str:
    """Render milliseconds as e.g. '1m 3s 250ms'."""
    ms = int(millis or 0)
    if ms <= 0:
        return "0ms"
    parts = []
    hours, ms = divmod(ms, 3_600_000)
    minutes, ms = divmod(ms, 60_000)
    seconds, ms = divmod(ms, 1000)
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds:
        parts.append(f"{seconds}s")
    if ms:
        parts.append(f"{ms}ms")
    return " ".join(parts)
