"""
Regression diagnostics for a FittedModel.

Each check returns a frozen result with `passed` = the assumption is not
rejected at the given threshold:

  influence           Cook's distance > numerator / n
  normality           Shapiro-Wilk on residuals
  linearity           Ramsey RESET (fitted^2, fitted^3), F-test
  homoscedasticity    Breusch-Pagan, LM = n * R^2 of resid^2 on the design
  multicollinearity   VIF per design predictor
  robust_inference    HC3 covariance, t-tests redone with it
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy import stats
from statsmodels.stats.diagnostic import het_breuschpagan, linear_reset
from statsmodels.stats.outliers_influence import OLSInfluence, variance_inflation_factor

from .regression import INTERCEPT, FittedModel


DEFAULT_ALPHA = 0.05
DEFAULT_COOKS_NUMERATOR = 4
DEFAULT_VIF_THRESHOLD = 5
RESET_POWER = 3  # adds fitted^2 and fitted^3


@dataclass(frozen=True)
class InfluenceResult:
    name: ClassVar[str] = "influence"
    cooks_distance: pd.Series
    threshold: float
    influential: list
    passed: bool

    @property
    def message(self) -> str:
        if self.passed:
            return f"No observation has Cook's distance above {self.threshold:.4f}."
        return (f"{len(self.influential)} influential observation(s) with Cook's distance > "
                f"{self.threshold:.4f}: ids {self.influential}")


@dataclass(frozen=True)
class NormalityResult:
    name: ClassVar[str] = "normality"
    statistic: float
    p_value: float
    alpha: float
    passed: bool

    @property
    def message(self) -> str:
        verdict = "not rejected" if self.passed else "rejected"
        return f"Shapiro-Wilk W={self.statistic:.4f}, p={self.p_value:.4f}: normal residuals {verdict} at {self.alpha}."


@dataclass(frozen=True)
class LinearityResult:
    name: ClassVar[str] = "linearity"
    f_statistic: float
    p_value: float
    df_num: int
    df_denom: int
    alpha: float
    passed: bool

    @property
    def message(self) -> str:
        verdict = "no omitted nonlinearity" if self.passed else "omitted nonlinearity detected"
        return (f"RESET F({self.df_num},{self.df_denom})={self.f_statistic:.4f}, "
                f"p={self.p_value:.4f}: {verdict} at {self.alpha}.")


@dataclass(frozen=True)
class HomoscedasticityResult:
    name: ClassVar[str] = "homoscedasticity"
    lm_statistic: float
    p_value: float
    df: int
    f_statistic: float
    f_pvalue: float
    alpha: float
    passed: bool

    @property
    def message(self) -> str:
        verdict = "constant variance not rejected" if self.passed else "heteroscedasticity detected"
        return f"Breusch-Pagan LM={self.lm_statistic:.4f} (df={self.df}), p={self.p_value:.4f}: {verdict} at {self.alpha}."


@dataclass(frozen=True)
class MulticollinearityResult:
    name: ClassVar[str] = "multicollinearity"
    vif: pd.Series
    threshold: float
    flagged: list
    passed: bool

    @property
    def message(self) -> str:
        if self.passed:
            return f"All VIF below {self.threshold} (max {self.vif.max():.2f})."
        return f"VIF >= {self.threshold} for {self.flagged}."


@dataclass(frozen=True)
class RobustInferenceResult:
    name: ClassVar[str] = "robust_inference"
    coefficients: pd.DataFrame
    alpha: float
    changed: list
    passed: bool

    @property
    def message(self) -> str:
        if self.passed:
            return f"HC3 standard errors leave every significance verdict at {self.alpha} unchanged."
        return f"HC3 standard errors change the significance verdict at {self.alpha} for {self.changed}."


@dataclass(frozen=True)
class DiagnosticsReport:
    model: str
    influence: InfluenceResult
    normality: NormalityResult
    linearity: LinearityResult
    homoscedasticity: HomoscedasticityResult
    multicollinearity: MulticollinearityResult
    robust_inference: RobustInferenceResult

    def checks(self) -> list:
        return [self.influence, self.normality, self.linearity,
                self.homoscedasticity, self.multicollinearity, self.robust_inference]


def influence(model: FittedModel, numerator: float = DEFAULT_COOKS_NUMERATOR) -> InfluenceResult:
    cooks = np.asarray(OLSInfluence(model.results).cooks_distance[0], dtype=float)
    cooks = pd.Series(cooks, index=model.ids.to_numpy(), name="cooks_distance")
    threshold = numerator / model.nobs
    influential = cooks.index[cooks > threshold].tolist()
    return InfluenceResult(cooks, threshold, influential, passed=not influential)


def normality(model: FittedModel, alpha: float = DEFAULT_ALPHA) -> NormalityResult:
    stat, p = stats.shapiro(model.residuals.to_numpy())
    return NormalityResult(float(stat), float(p), alpha, passed=bool(p >= alpha))


def linearity(model: FittedModel, alpha: float = DEFAULT_ALPHA) -> LinearityResult:
    test = linear_reset(model.results, power=RESET_POWER, test_type="fitted", use_f=True)
    f = float(np.squeeze(test.fvalue))
    p = float(np.squeeze(test.pvalue))
    return LinearityResult(f, p, int(test.df_num), int(test.df_denom), alpha, passed=bool(p >= alpha))


def homoscedasticity(model: FittedModel, alpha: float = DEFAULT_ALPHA) -> HomoscedasticityResult:
    # robust=True is the studentized (Koenker) form: LM = n * R^2 of resid^2 on exog
    lm, lm_p, f, f_p = het_breuschpagan(model.residuals.to_numpy(), model.X.to_numpy(), robust=True)
    return HomoscedasticityResult(
        float(lm), float(lm_p), model.X.shape[1] - 1, float(f), float(f_p), alpha, passed=bool(lm_p >= alpha)
    )


def variance_inflation(X: pd.DataFrame, threshold: float = DEFAULT_VIF_THRESHOLD) -> MulticollinearityResult:
    """
    VIF for every non-intercept column of X. An intercept is added when X has none,
    so R^2_i is the centred R^2 of column i on the others.
    Exact linear dependence gives inf (or a very large value).
    """
    exog = X.astype(float)
    if INTERCEPT not in exog.columns:
        exog = exog.copy()
        exog.insert(0, INTERCEPT, 1.0)
    cols = [c for c in exog.columns if c != INTERCEPT]
    mat = exog.to_numpy()
    with np.errstate(divide="ignore"):
        vif = pd.Series(
            [float(variance_inflation_factor(mat, exog.columns.get_loc(c))) for c in cols],
            index=cols, name="vif",
        )
    flagged = [c for c in cols if vif[c] >= threshold]
    return MulticollinearityResult(vif, threshold, flagged, passed=not flagged)


def vif_table(df: pd.DataFrame, columns: list[str], threshold: float = DEFAULT_VIF_THRESHOLD) -> MulticollinearityResult:
    """VIF straight from numeric table columns; works where an OLS fit would be singular."""
    return variance_inflation(df[columns].dropna(), threshold)


def multicollinearity(model: FittedModel, threshold: float = DEFAULT_VIF_THRESHOLD) -> MulticollinearityResult:
    return variance_inflation(model.X, threshold)


def robust_inference(model: FittedModel, alpha: float = DEFAULT_ALPHA) -> RobustInferenceResult:
    hc3 = sm.OLS(model.y, model.X).fit(cov_type="HC3", use_t=True)
    ci = hc3.conf_int(alpha=1 - model.confidence_level)
    coefs = pd.DataFrame({
        "estimate": hc3.params,
        "std_error": hc3.bse,
        "t_value": hc3.tvalues,
        "p_value": hc3.pvalues,
        "ci_lower": ci[0],
        "ci_upper": ci[1],
        "classical_std_error": model.coefficients["std_error"],
        "classical_p_value": model.coefficients["p_value"],
    })
    coefs["significant"] = coefs["p_value"] < alpha
    coefs["classical_significant"] = coefs["classical_p_value"] < alpha
    changed = coefs.index[coefs["significant"] != coefs["classical_significant"]].tolist()
    return RobustInferenceResult(coefs, alpha, changed, passed=not changed)


def run_diagnostics(
    model: FittedModel,
    alpha: float = DEFAULT_ALPHA,
    cooks_numerator: float = DEFAULT_COOKS_NUMERATOR,
    vif_threshold: float = DEFAULT_VIF_THRESHOLD,
) -> DiagnosticsReport:
    return DiagnosticsReport(
        model=model.name,
        influence=influence(model, cooks_numerator),
        normality=normality(model, alpha),
        linearity=linearity(model, alpha),
        homoscedasticity=homoscedasticity(model, alpha),
        multicollinearity=multicollinearity(model, vif_threshold),
        robust_inference=robust_inference(model, alpha),
    )
