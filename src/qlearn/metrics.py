"""Console logging and structured JSONL metrics.

``setup_logging`` installs a compact formatter on the ``qlearn`` logger;
``MetricsLogger`` appends one JSON object per line for later analysis::

    from qlearn.metrics import MetricsLogger, setup_logging

    setup_logging()
    with MetricsLogger("runs/two_state/metrics.jsonl") as metrics:
        metrics.write({"episode": 1, "return": 3.0, "epsilon": 0.9})
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import IO, Any

import jax.numpy as jnp
import numpy as np

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Structured console logging
# ---------------------------------------------------------------------------

_LEVEL_ABBREV = {
    logging.DEBUG: "D",
    logging.INFO: "I",
    logging.WARNING: "W",
    logging.ERROR: "E",
    logging.CRITICAL: "C",
}


class _TrainFormatter(logging.Formatter):
    """Abbreviated level + millisecond timestamp.

    Example output::

        I 2026-02-15 14:30:22.123 [qlearn.runner.learner] phase exploring -> learning
    """

    def format(self, record: logging.LogRecord) -> str:
        lvl = _LEVEL_ABBREV.get(record.levelno, "?")
        ts = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        msg = record.getMessage()
        return f"{lvl} {ts}.{int(record.msecs):03d} [{record.name}] {msg}"


def setup_logging(level: int = logging.INFO) -> None:
    """Configure the ``qlearn`` logger. Safe to call repeatedly."""
    logger = logging.getLogger("qlearn")
    logger.setLevel(level)
    for h in logger.handlers[:]:
        logger.removeHandler(h)

    handler = logging.StreamHandler()
    handler.setFormatter(_TrainFormatter())
    logger.addHandler(handler)
    logger.propagate = False


def log_episode_progress(
    episode: int,
    max_episodes: int,
    metrics: dict[str, Any] | None = None,
    logger_name: str = "qlearn",
) -> None:
    """Log a one-line progress message.

    Example output::

        I 2026-02-15 14:30:22.123 [qlearn] episode 40/500 | return=7.2 epsilon=0.61
    """
    parts = [f"episode {episode}/{max_episodes}"]
    if metrics:
        kv = " ".join(
            f"{k}={v:.4g}" if isinstance(v, float) else f"{k}={v}"
            for k, v in ((k, _to_python(v)) for k, v in metrics.items())
            if k not in ("episode", "wall_time")
        )
        if kv:
            parts.append(kv)
    logging.getLogger(logger_name).info(" | ".join(parts))


# ---------------------------------------------------------------------------
# JSONL metrics
# ---------------------------------------------------------------------------


class MetricsLogger:
    """Append-only JSONL writer, one record per episode.

    Parameters
    ----------
    path:
        Destination file; parent directories are created and existing
        content is kept, so a resumed run appends to the same file.
    context:
        Fields stamped onto every record, e.g. the environment name and
        seed, so files from several runs can be concatenated.
    """

    def __init__(self, path: str | Path, context: dict[str, Any] | None = None) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._context = {k: _to_python(v) for k, v in (context or {}).items()}
        self._file: IO[str] = self._path.open("a")
        self._start_time = time.monotonic()
        self._records = 0

    def write(self, record: dict[str, Any]) -> None:
        """Append *record*; ``wall_time`` is seconds since the logger opened."""
        row = dict(self._context)
        row.update((k, _to_python(v)) for k, v in record.items())
        row.setdefault("wall_time", round(time.monotonic() - self._start_time, 3))
        self._file.write(json.dumps(row, default=str) + "\n")
        self._file.flush()
        self._records += 1

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()
            logger.debug("wrote %d records to %s", self._records, self._path)

    @property
    def path(self) -> Path:
        return self._path

    def __enter__(self) -> MetricsLogger:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"MetricsLogger({self._path}, records={self._records})"


def read_metrics(path: str | Path, *, key: str | None = None) -> list[dict[str, Any]]:
    """Load a JSONL metrics file; a missing file reads as empty.

    With *key*, only records containing that field are returned (e.g.
    ``key="eval_return"`` for the evaluation rows).
    """
    p = Path(path)
    if not p.exists():
        return []
    with p.open() as f:
        records = [json.loads(line) for line in f if line.strip()]
    if key is not None:
        records = [r for r in records if key in r]
    return records


def _to_python(val: Any) -> Any:
    """Convert JAX/numpy scalars to plain Python types for JSON."""
    if isinstance(val, (jnp.ndarray, np.ndarray)):
        return val.item()
    if isinstance(val, (np.integer, np.floating)):
        return val.item()
    return val
