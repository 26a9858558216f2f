"""
Runtime checks and error types for grid-approximation analyses.

Every check fails closed: a violated condition raises immediately. When an
analysis runs under a CheckContext, pass/fail outcomes are also recorded so the
runner can write them into the run manifest.
"""

from __future__ import annotations

import hashlib
import json
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type


class BayesGridError(RuntimeError):
    """Base error for failed bayesgrid checks."""

    def __init__(self, check_id: str, message: str, data: Optional[Dict[str, Any]] = None):
        self.check_id = check_id
        self.data = data or {}
        super().__init__(f"[{check_id}] {message} | data={self.data}")


class GridValidationError(BayesGridError, ValueError):
    """Raised for malformed grids, priors, likelihoods or sample requests."""


class DegeneratePosteriorError(BayesGridError, ZeroDivisionError):
    """Raised when a posterior cannot be normalized."""


@dataclass
class CheckRecord:
    check_id: str
    status: str  # "pass" or "fail"
    detail: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CheckContext:
    """Holds the check log of a single analysis run."""

    analysis_name: Optional[str]
    seed: Optional[int]
    config_hash: Optional[str]
    check_log: List[CheckRecord] = field(default_factory=list)

    def record(self, rec: CheckRecord) -> None:
        self.check_log.append(rec)

    def summary(self) -> Dict[str, Any]:
        failed = [r.check_id for r in self.check_log if r.status == "fail"]
        return {
            "n_checks": len(self.check_log),
            "n_failed": len(failed),
            "failed": failed,
        }


_ctx: ContextVar[Optional[CheckContext]] = ContextVar("bayesgrid_check_ctx", default=None)


def set_check_context(ctx: Optional[CheckContext]):
    return _ctx.set(ctx)


def reset_check_context(token) -> None:
    _ctx.reset(token)


def current_context() -> Optional[CheckContext]:
    return _ctx.get()


def _build_data(extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    ctx = current_context()
    data = dict(extra or {})
    if ctx:
        data.setdefault("analysis_name", ctx.analysis_name)
        data.setdefault("seed", ctx.seed)
    return data


def require(
    condition: bool,
    check_id: str,
    message: str,
    error: Type[BayesGridError] = GridValidationError,
    data: Optional[Dict[str, Any]] = None,
) -> None:
    """Record the outcome of a check and raise ``error`` when it fails."""

    ctx = current_context()
    if condition:
        if ctx:
            ctx.record(CheckRecord(check_id=check_id, status="pass", detail=message))
        return
    payload = _build_data(data)
    if ctx:
        ctx.record(CheckRecord(check_id=check_id, status="fail", detail=message, data=payload))
    raise error(check_id, message, data=payload)


def stable_config_hash(cfg: Dict) -> str:
    """Deterministic hash for config snapshots."""

    payload = json.dumps(cfg, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()
