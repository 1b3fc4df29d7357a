"""
OLS fitting.

fit_ols builds the design matrix (intercept + numeric predictors + indicator
columns for categorical predictors, first sorted level dropped as reference),
checks the fit preconditions and wraps the statsmodels results in an
immutable FittedModel.
"""
from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import statsmodels.api as sm
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from .errors import InsufficientData, SingularDesign


INTERCEPT = "Intercept"
DEFAULT_CONFIDENCE_LEVEL = 0.95

COEFFICIENT_COLUMNS = ["estimate", "std_error", "t_value", "p_value", "ci_lower", "ci_upper", "std_beta"]


@dataclass(frozen=True, eq=False)
class FittedModel:
    name: str
    response: str
    predictors: tuple[str, ...]
    design_columns: tuple[str, ...]
    coefficients: pd.DataFrame
    fitted: pd.Series
    residuals: pd.Series
    r2: float
    adj_r2: float
    f_statistic: float
    f_pvalue: float
    df_model: int
    df_resid: int
    resid_std_err: float
    nobs: int
    llf: float
    confidence_level: float
    X: pd.DataFrame = field(repr=False)
    y: pd.Series = field(repr=False)
    ids: pd.Series = field(repr=False)
    results: object = field(repr=False, compare=False)

    @property
    def n_params(self) -> int:
        """Estimated coefficients, intercept included."""
        return len(self.design_columns)

    @property
    def formula(self) -> str:
        return f"{self.response} ~ {' + '.join(self.predictors)}"

    def summary_dict(self) -> dict:
        return {
            "name": self.name,
            "formula": self.formula,
            "nobs": self.nobs,
            "r2": self.r2,
            "adj_r2": self.adj_r2,
            "f_statistic": self.f_statistic,
            "f_pvalue": self.f_pvalue,
            "df_model": self.df_model,
            "df_resid": self.df_resid,
            "resid_std_err": self.resid_std_err,
            "log_likelihood": self.llf,
            "confidence_level": self.confidence_level,
        }


def _is_categorical(s: pd.Series) -> bool:
    return is_bool_dtype(s) or not is_numeric_dtype(s)


def build_design(df: pd.DataFrame, predictors: list[str]) -> pd.DataFrame:
    """Intercept + one column per numeric predictor + one indicator per non-reference level."""
    parts = [pd.Series(1.0, index=df.index, name=INTERCEPT)]
    for col in predictors:
        s = df[col]
        if not _is_categorical(s):
            parts.append(s.astype(float).rename(col))
            continue
        labels = s.astype(str)
        levels = sorted(labels.unique())
        if len(levels) == 1:
            raise SingularDesign(
                f"Categorical predictor {col!r} has a single level {levels} and no contrast to estimate"
            )
        for level in levels[1:]:
            parts.append((labels == level).astype(float).rename(f"{col}[T.{level}]"))
    return pd.concat(parts, axis=1)


def standardized_betas(X: pd.DataFrame, y: pd.Series, params: pd.Series) -> pd.Series:
    """Coefficients rescaled as if predictors and response were z-scored."""
    sd_y = float(y.std(ddof=1))
    betas = params * X.std(ddof=1) / sd_y
    betas[INTERCEPT] = np.nan
    return betas


def fit_ols(
    df: pd.DataFrame,
    response: str,
    predictors: list[str],
    name: str | None = None,
    confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
) -> FittedModel:
    if not predictors:
        raise ValueError("At least one predictor is required")
    missing = [c for c in [response, *predictors] if c not in df.columns]
    if missing:
        raise KeyError(f"Columns not in table: {missing}")
    name = name or f"{response} ~ {' + '.join(predictors)}"

    data = df.dropna(subset=[response, *predictors])
    try:
        X = build_design(data, predictors)
    except SingularDesign as exc:
        raise SingularDesign(f"Model {name!r}: {exc}") from exc
    y = data[response].astype(float)

    n, k = X.shape
    if n - k <= 0:
        raise InsufficientData(
            f"Model {name!r}: {n} observations for {k - 1} predictor column(s) "
            f"leaves {n - k} residual degrees of freedom"
        )
    if np.linalg.matrix_rank(X.to_numpy()) < k:
        raise SingularDesign(
            f"Model {name!r}: design matrix is rank-deficient (columns: {list(X.columns)})"
        )

    res = sm.OLS(y, X).fit()

    ci = res.conf_int(alpha=1 - confidence_level)
    coefs = pd.DataFrame({
        "estimate": res.params,
        "std_error": res.bse,
        "t_value": res.tvalues,
        "p_value": res.pvalues,
        "ci_lower": ci[0],
        "ci_upper": ci[1],
        "std_beta": standardized_betas(X, y, res.params),
    })[COEFFICIENT_COLUMNS]

    ids = data["id"] if "id" in data.columns else pd.Series(data.index, index=data.index, name="id")

    return FittedModel(
        name=name,
        response=response,
        predictors=tuple(predictors),
        design_columns=tuple(X.columns),
        coefficients=coefs,
        fitted=res.fittedvalues,
        residuals=res.resid,
        r2=float(res.rsquared),
        adj_r2=float(res.rsquared_adj),
        f_statistic=float(res.fvalue),
        f_pvalue=float(res.f_pvalue),
        df_model=int(res.df_model),
        df_resid=int(res.df_resid),
        resid_std_err=float(np.sqrt(res.scale)),
        nobs=int(res.nobs),
        llf=float(res.llf),
        confidence_level=confidence_level,
        X=X,
        y=y,
        ids=ids,
        results=res,
    )
