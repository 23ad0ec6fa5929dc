# infrastructure/persistence.py

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List


def _atomic_write_bytes(path: str, data: bytes) -> None:
    """
    Write to a temp file in the same directory, fsync, then os.replace.
    Readers see either the old snapshot or the new one, never a torn file.
    """
    target_dir = os.path.dirname(os.path.abspath(path)) or "."
    os.makedirs(target_dir, exist_ok=True)

    fd = None
    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", dir=target_dir)
        with os.fdopen(fd, "wb") as f:
            fd = None
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        tmp_path = None
    finally:
        if fd is not None:
            try:
                os.close(fd)
            except OSError:
                pass
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass


def to_jsonable(x: Any) -> Any:
    """
    Convert market records (dataclasses, enums, tuples) into
    JSON-serializable primitives.
    """
    if x is None or isinstance(x, (str, int, float, bool)):
        return x
    if isinstance(x, Enum):
        return x.value
    if is_dataclass(x):
        return to_jsonable(asdict(x))
    if isinstance(x, dict):
        return {str(k): to_jsonable(v) for k, v in x.items()}
    if isinstance(x, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in x]
    return str(x)


def atomic_write_json(path: str, obj: Dict[str, Any]) -> None:
    payload = json.dumps(to_jsonable(obj), ensure_ascii=False, indent=2, sort_keys=True)
    _atomic_write_bytes(path, payload.encode("utf-8"))


def read_json(path: str) -> Dict[str, Any]:
    with open(path, "rb") as f:
        return json.loads(f.read().decode("utf-8"))


def atomic_write_jsonl(path: str, records: Iterable[Dict[str, Any]]) -> None:
    lines = [json.dumps(to_jsonable(r), ensure_ascii=False, separators=(",", ":")) for r in records]
    data = ("\n".join(lines) + ("\n" if lines else "")).encode("utf-8")
    _atomic_write_bytes(path, data)


def read_jsonl(path: str) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    with open(path, "rb") as f:
        for raw in f:
            s = raw.decode("utf-8").strip()
            if s:
                out.append(json.loads(s))
    return out
