"""
AIC comparison of fitted models.

AIC = 2k - 2 ln L, where k counts the coefficients (intercept included)
plus the error variance. Lower is better; equal scores are reported as ties.
"""
from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .errors import IncomparableModels
from .regression import FittedModel


TIE_RTOL = 1e-9


@dataclass(frozen=True)
class ModelScore:
    name: str
    formula: str
    k: int
    log_likelihood: float
    aic: float
    rank: int
    tied_with: list = field(default_factory=list)


def aic(model: FittedModel) -> float:
    k = model.n_params + 1
    return 2 * k - 2 * model.llf


def compare_models(models: list[FittedModel]) -> list[ModelScore]:
    """Rank models by AIC, ascending. Tied models share a rank and list each other."""
    if len(models) < 2:
        raise IncomparableModels(f"Need at least two models to compare, got {len(models)}")
    ref = models[0]
    for m in models[1:]:
        if m.response != ref.response:
            raise IncomparableModels(f"Model {m.name!r} predicts {m.response!r}, {ref.name!r} predicts {ref.response!r}")
        if m.nobs != ref.nobs:
            raise IncomparableModels(f"Model {m.name!r} has {m.nobs} observations, {ref.name!r} has {ref.nobs}")
        if set(m.ids.tolist()) != set(ref.ids.tolist()):
            only = sorted(set(m.ids.tolist()) ^ set(ref.ids.tolist()), key=str)
            raise IncomparableModels(
                f"Models {m.name!r} and {ref.name!r} were fit on different observations (ids {only[:10]})"
            )

    scored = sorted(((aic(m), i, m) for i, m in enumerate(models)), key=lambda t: (t[0], t[1]))

    out = []
    rank = 0
    prev = None
    for pos, (score, _, m) in enumerate(scored):
        if prev is None or not np.isclose(score, prev, rtol=TIE_RTOL, atol=0.0):
            rank = pos + 1
        prev = score
        tied = [o.name for s, _, o in scored if o is not m and np.isclose(s, score, rtol=TIE_RTOL, atol=0.0)]
        out.append(ModelScore(m.name, m.formula, m.n_params + 1, m.llf, float(score), rank, tied))
    return out
