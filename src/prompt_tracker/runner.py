"""Run several evaluator configs against one payload: fan out, join, aggregate."""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import threading
from dataclasses import dataclass
from functools import partial
from multiprocessing.pool import ThreadPool
from typing import Any, Callable, Optional

from tqdm import tqdm

from prompt_tracker.config import Settings
from prompt_tracker.judge import Judge
from prompt_tracker.models import EvaluationMode, EvaluationResult, EvaluatorConfig
from prompt_tracker.registry import EvaluatorRegistry, normalizer_for

logger = logging.getLogger(__name__)


@dataclass
class EvaluationOutcome:
    """One evaluator config's result, or the error it raised."""

    evaluator_key: str
    evaluation_mode: str = EvaluationMode.SCORED.value
    result: Optional[EvaluationResult] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "evaluator_key": self.evaluator_key,
            "evaluation_mode": self.evaluation_mode,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }


def map_with_progress(
    f: Callable,
    xs: list[Any],
    num_threads: int = 10,
    pbar: bool = True,
    desc: str = "evaluators",
) -> list[Any]:
    """Apply *f* to each of *xs* on a thread pool; results keep input order.

    A single thread, or ``debug`` in the environment, runs serially.
    """
    progress = partial(tqdm, total=len(xs), desc=desc, disable=not pbar)
    if not xs:
        return []
    if num_threads <= 1 or os.getenv("debug"):
        return [f(x) for x in progress(xs)]
    with ThreadPool(min(num_threads, len(xs))) as pool:
        return list(progress(pool.imap(f, xs)))


def apply_mode(result: EvaluationResult, mode: EvaluationMode) -> EvaluationResult:
    """Binary mode reports 100 for a pass and 0 for a fail."""
    if mode == EvaluationMode.BINARY:
        return dataclasses.replace(result, score=100.0 if result.passed else 0.0)
    return result


def normalize_payload(raw: Any, api: Any, single_turn: bool = False) -> Any:
    normalizer = normalizer_for(api)
    if single_turn:
        return normalizer.normalize_single_response(raw)
    return normalizer.normalize_conversation(raw)


def run_evaluations(
    data: Any,
    configs: list[EvaluatorConfig],
    *,
    api: Any = None,
    single_turn: bool = False,
    registry: Optional[EvaluatorRegistry] = None,
    settings: Optional[Settings] = None,
    judge: Optional[Judge] = None,
    store: Any = None,
    num_threads: Optional[int] = None,
    pbar: bool = False,
    raise_errors: bool = True,
) -> list[EvaluationOutcome]:
    """Evaluate *data* with every enabled config concurrently.

    When *api* is given, *data* is a raw provider payload and is normalized
    once up front.  Configs whose evaluator does not support *api* are
    skipped.  Outcomes come back in config order.  Without an injected
    *judge* each evaluator builds its own, so mock scores do not depend on
    which other evaluators ran.
    """
    registry = registry or EvaluatorRegistry()
    settings = settings or Settings.from_env()

    if api is not None:
        data = normalize_payload(data, api, single_turn=single_turn)

    runnable = []
    for cfg in configs:
        if not cfg.enabled:
            logger.debug("Skipping disabled evaluator %s", cfg.evaluator_key)
            continue
        entry = registry.get(cfg.evaluator_key)
        if entry is None:
            raise ValueError(f"Evaluator '{cfg.evaluator_key}' not found in registry")
        if api is not None and not entry["evaluator_class"].compatible_with_api(api):
            logger.warning("Skipping %s: not compatible with %s", cfg.evaluator_key, api)
            continue
        runnable.append(cfg)

    def _run(cfg: EvaluatorConfig) -> EvaluationOutcome:
        outcome = EvaluationOutcome(cfg.evaluator_key, cfg.evaluation_mode.value)
        try:
            evaluator = registry.build(
                cfg.evaluator_key, data, cfg.merged_config(), settings=settings, judge=judge
            )
            outcome.result = apply_mode(evaluator.evaluate(), cfg.evaluation_mode)
        except Exception as e:
            if raise_errors:
                raise
            logger.error("Evaluator %s failed: %s", cfg.evaluator_key, e)
            outcome.error = f"{type(e).__name__}: {e}"
            return outcome
        if store is not None:
            store.save(outcome.result)
        return outcome

    return map_with_progress(_run, runnable, num_threads=num_threads or settings.max_workers, pbar=pbar)


def aggregate_results(outcomes: list[EvaluationOutcome]) -> dict[str, float]:
    """Mean/std of scores and the pass rate over successful outcomes."""
    import numpy as np

    results = [o.result for o in outcomes if o.result is not None]
    summary: dict[str, float] = {
        "n_evaluations": float(len(outcomes)),
        "n_errors": float(sum(1 for o in outcomes if o.error)),
    }
    if not results:
        return summary
    scores = np.array([r.score for r in results], dtype=float)
    passed = np.array([r.passed for r in results], dtype=float)
    summary["score"] = float(np.mean(scores))
    summary["score:std"] = float(np.std(scores))
    summary["score:min"] = float(np.min(scores))
    summary["pass_rate"] = float(np.mean(passed))
    return summary


class JsonlEvaluationStore:
    """Appends each saved result as one JSON line."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def save(self, result: EvaluationResult) -> None:
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        line = json.dumps(result.to_dict(), default=str)
        with self._lock, open(self.path, "a") as f:
            f.write(line + "\n")

    def load(self) -> list[dict]:
        if not os.path.exists(self.path):
            return []
        rows = []
        with open(self.path) as f:
            for line in f:
                line = line.strip()
                if line:
                    rows.append(json.loads(line))
        return rows
