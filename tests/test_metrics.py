"""Tests for qlearn.metrics."""

from __future__ import annotations

import logging
from pathlib import Path

import jax.numpy as jnp
import numpy as np

from qlearn.metrics import MetricsLogger, log_episode_progress, read_metrics, setup_logging


class TestMetricsLogger:
    def test_write_and_read(self, tmp_path: Path) -> None:
        path = tmp_path / "metrics.jsonl"
        with MetricsLogger(path) as logger:
            logger.write({"episode": 1, "loss": 0.5})
            logger.write({"episode": 2, "loss": 0.3, "reward": 8.0})

        records = read_metrics(path)
        assert len(records) == 2
        assert records[0]["episode"] == 1
        assert records[1]["reward"] == 8.0

    def test_auto_wall_time(self, tmp_path: Path) -> None:
        path = tmp_path / "metrics.jsonl"
        with MetricsLogger(path) as logger:
            logger.write({"episode": 1})
        assert read_metrics(path)[0]["wall_time"] >= 0.0

    def test_converts_array_scalars(self, tmp_path: Path) -> None:
        path = tmp_path / "metrics.jsonl"
        with MetricsLogger(path) as logger:
            logger.write({"loss": jnp.float32(0.25), "steps": np.int64(3)})
        record = read_metrics(path)[0]
        assert record["loss"] == 0.25
        assert record["steps"] == 3

    def test_context_stamped_on_every_record(self, tmp_path: Path) -> None:
        path = tmp_path / "metrics.jsonl"
        with MetricsLogger(path, context={"env": "TwoState", "seed": np.int32(3)}) as logger:
            logger.write({"episode": 1})
            logger.write({"episode": 2, "seed": 9})
        first, second = read_metrics(path)
        assert first["env"] == "TwoState" and first["seed"] == 3
        assert second["seed"] == 9

    def test_read_filters_by_key(self, tmp_path: Path) -> None:
        path = tmp_path / "metrics.jsonl"
        with MetricsLogger(path) as logger:
            logger.write({"episode": 1})
            logger.write({"episode": 2, "eval_return": 4.0})
        assert [r["episode"] for r in read_metrics(path, key="eval_return")] == [2]

    def test_appends_across_loggers(self, tmp_path: Path) -> None:
        path = tmp_path / "metrics.jsonl"
        for episode in (1, 2):
            with MetricsLogger(path) as logger:
                logger.write({"episode": episode})
        assert len(read_metrics(path)) == 2

    def test_creates_parent_dirs(self, tmp_path: Path) -> None:
        path = tmp_path / "a" / "b" / "metrics.jsonl"
        MetricsLogger(path).close()
        assert path.exists()

    def test_read_missing_file(self, tmp_path: Path) -> None:
        assert read_metrics(tmp_path / "missing.jsonl") == []


class TestLogging:
    def test_setup_is_idempotent(self) -> None:
        setup_logging()
        setup_logging()
        logger = logging.getLogger("qlearn")
        assert len(logger.handlers) == 1
        assert not logger.propagate

    def test_progress_line(self, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="progress_test"):
            log_episode_progress(
                4, 10, {"episode": 4, "return": 1.5, "phase": "learning"},
                logger_name="progress_test",
            )
        assert "episode 4/10" in caplog.text
        assert "return=1.5" in caplog.text
        assert "phase=learning" in caplog.text
