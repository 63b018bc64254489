"""Persisted sync watermark.

The state is a single JSON document ``{"k": ms|null, "wind": ms|null, "mag": ms|null}``
stored through fsspec, so the same code writes to a local file during
development and to ``gs://`` in production.
"""

from __future__ import annotations

import json
import numbers
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import fsspec

STATE_KEY = "noaa_state"
STATE_FIELDS = ("k", "wind", "mag")


class StateStoreError(RuntimeError):
    pass


@dataclass(frozen=True)
class SyncState:
    k: Optional[int] = None
    wind: Optional[int] = None
    mag: Optional[int] = None

    def is_cold(self) -> bool:
        return self.k is None and self.wind is None and self.mag is None

    def get(self, key: str) -> Optional[int]:
        return getattr(self, key)

    def to_dict(self) -> Dict[str, Optional[int]]:
        return {key: getattr(self, key) for key in STATE_FIELDS}

    @classmethod
    def from_dict(cls, payload: Any) -> "SyncState":
        if not isinstance(payload, dict):
            raise StateStoreError(f"Estado inválido: se esperaba un objeto JSON, llegó {type(payload).__name__}")
        values = {}
        for key in STATE_FIELDS:
            raw = payload.get(key)
            if raw is None:
                values[key] = None
            elif isinstance(raw, numbers.Real) and not isinstance(raw, bool) and float(raw).is_integer():
                values[key] = int(raw)
            else:
                raise StateStoreError(f"Estado inválido: {key}={raw!r} no es un timestamp en ms")
        return cls(**values)


class StateStore(Protocol):
    def get(self) -> Optional[SyncState]: ...

    def put(self, state: SyncState) -> None: ...


class FsspecStateStore:
    def __init__(self, url: str):
        if not url:
            raise RuntimeError("STATE_URL no configurado")
        self.url = url

    def get(self) -> Optional[SyncState]:
        fs, path = fsspec.core.url_to_fs(self.url)
        if not fs.exists(path):
            return None
        with fs.open(path, "r", encoding="utf-8") as f:
            text = f.read()
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise StateStoreError(f"No se pudo leer el estado en {self.url}: {e}") from e
        return SyncState.from_dict(payload)

    def put(self, state: SyncState) -> None:
        """Replace the state document in one step.

        The JSON is written to a sibling ``.tmp`` file and then moved over the
        previous document, so a failed write leaves the old watermark readable.
        """
        text = json.dumps(state.to_dict(), indent=2) + "\n"
        fs, path = fsspec.core.url_to_fs(self.url)
        parent = path.rsplit("/", 1)[0] if "/" in path else ""
        if parent:
            fs.makedirs(parent, exist_ok=True)
        tmp_path = path + ".tmp"
        try:
            with fs.open(tmp_path, "w", encoding="utf-8") as f:
                f.write(text)
            fs.mv(tmp_path, path)
        except Exception:
            if fs.exists(tmp_path):
                fs.rm(tmp_path)
            raise
