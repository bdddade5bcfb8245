from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .timeout_event import TimeoutEvent

logger = logging.getLogger(__name__)


@dataclass
class TimeoutArtifactsOptions:
    output_dir: str = ".nextdeed/artifacts"
    run_id: str = "probe"
    max_repr_length: int = 2_000
    """Truncate item/last_result reprs beyond this many characters (0 = no limit)."""
    on_before_persist: Callable[[RedactionContext], RedactionResult] | None = None


@dataclass
class RedactionContext:
    run_id: str
    description: str
    payload: dict[str, Any]
    metadata: dict[str, Any]


@dataclass
class RedactionResult:
    payload: dict[str, Any] | None = None
    drop_payload: bool = False


class TimeoutArtifactRecorder:
    """
    Probe timeout observer that writes diagnostics to disk.

    Every timeout event becomes one directory below `output_dir`:

        <run_id>-<ms>-<n>/
            event.json      description, timing, item and last result
            manifest.json   what was written and why

    Register it with ProbeBuilder.on_timeout(recorder).
    """

    def __init__(
        self,
        options: TimeoutArtifactsOptions | None = None,
        *,
        metadata: dict[str, Any] | None = None,
        time_fn: Callable[[], float] = time.time,
    ) -> None:
        self.options = options or TimeoutArtifactsOptions()
        self.metadata = dict(metadata or {})
        self._time_fn = time_fn
        self._count = 0
        self.persisted: list[Path] = []

    def __call__(self, event: TimeoutEvent[Any, Any]) -> None:
        self.persist(event)

    def _truncate(self, text: str) -> str:
        limit = self.options.max_repr_length
        if limit > 0 and len(text) > limit:
            return text[:limit] + f"... ({len(text) - limit} more chars)"
        return text

    def _write_json_atomic(self, path: Path, data: Any) -> None:
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2))
        tmp_path.replace(path)

    def persist(self, event: TimeoutEvent[Any, Any]) -> Path:
        self._count += 1
        ts = int(self._time_fn() * 1000)
        run_dir = Path(self.options.output_dir) / f"{self.options.run_id}-{ts}-{self._count}"
        run_dir.mkdir(parents=True, exist_ok=True)

        payload = event.to_dict()
        payload["item"] = self._truncate(payload["item"])
        payload["last_result"] = self._truncate(payload["last_result"])
        description = payload["description"]
        drop_payload = False

        if self.options.on_before_persist is not None:
            try:
                result = self.options.on_before_persist(
                    RedactionContext(
                        run_id=self.options.run_id,
                        description=description,
                        payload=dict(payload),
                        metadata=dict(self.metadata),
                    )
                )
                if result.payload is not None:
                    payload = result.payload
                drop_payload = result.drop_payload
            except Exception:  # pylint: disable=broad-exception-caught
                logger.warning("Redaction hook failed; dropping event payload", exc_info=True)
                drop_payload = True

        if not drop_payload:
            self._write_json_atomic(run_dir / "event.json", payload)

        manifest = {
            "run_id": self.options.run_id,
            "created_at_ms": ts,
            "sequence": self._count,
            "consumed_ms": event.consumed_ms,
            "timeout_ms": event.source.config.timeout_ms,
            "event": None if drop_payload else "event.json",
            "payload_dropped": drop_payload,
            "redacted": not drop_payload and self.options.on_before_persist is not None,
            "metadata": self.metadata,
        }
        self._write_json_atomic(run_dir / "manifest.json", manifest)

        logger.info(f"Wrote timeout artifacts: {run_dir}")
        self.persisted.append(run_dir)
        return run_dir
