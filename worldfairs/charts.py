"""
PNG charts for the report:
  * bar charts of grouped sums
  * response vs predictor scatter, annotated with Pearson r
  * observed vs fitted, influential observations highlighted
  * Q-Q plot and histogram of residuals (with normal density)
"""
from __future__ import annotations

import os

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from scipy import stats

from .diagnostics import InfluenceResult
from .regression import FittedModel


def bar_chart(pairs: list[tuple], title: str, path: str, top: int = 15) -> str:
    pairs = pairs[:top]
    plt.figure(figsize=(9, 5))
    plt.bar([str(k) for k, _ in pairs], [v for _, v in pairs])
    plt.title(title)
    plt.xticks(rotation=45, ha="right")
    plt.tight_layout()
    plt.savefig(path)
    plt.close()
    return path


def scatter_with_r(df: pd.DataFrame, x: str, y: str, r: float, path: str) -> str:
    plt.figure()
    plt.scatter(df[x], df[y], alpha=0.7)
    label = "r = n/a" if np.isnan(r) else f"r = {r:.3f}"
    plt.annotate(label, xy=(0.05, 0.92), xycoords="axes fraction")
    plt.xlabel(x)
    plt.ylabel(y)
    plt.title(f"{y} vs {x}")
    plt.tight_layout()
    plt.savefig(path)
    plt.close()
    return path


def fit_plot(model: FittedModel, infl: InfluenceResult, path: str) -> str:
    flagged = model.ids.isin(infl.influential).to_numpy()
    fitted = model.fitted.to_numpy()
    observed = model.y.to_numpy()

    plt.figure()
    plt.scatter(fitted[~flagged], observed[~flagged], alpha=0.7, label="observation")
    plt.scatter(fitted[flagged], observed[flagged], color="red", label=f"Cook's D > {infl.threshold:.3f}")
    for fid, fx, fy in zip(model.ids.to_numpy()[flagged], fitted[flagged], observed[flagged]):
        plt.annotate(str(fid), (fx, fy), textcoords="offset points", xytext=(4, 4), fontsize=8)
    lo, hi = float(min(fitted.min(), observed.min())), float(max(fitted.max(), observed.max()))
    plt.plot([lo, hi], [lo, hi], linestyle="--", color="grey")
    plt.xlabel(f"fitted {model.response}")
    plt.ylabel(f"observed {model.response}")
    plt.title(model.formula)
    plt.legend()
    plt.tight_layout()
    plt.savefig(path)
    plt.close()
    return path


def qq_plot(model: FittedModel, path: str) -> str:
    fig, ax = plt.subplots()
    stats.probplot(model.residuals.to_numpy(), dist="norm", plot=ax)
    ax.set_title(f"Normal Q-Q: {model.name}")
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    return path


def residual_histogram(model: FittedModel, path: str) -> str:
    resid = model.residuals.to_numpy()
    grid = np.linspace(resid.min(), resid.max(), 200)

    plt.figure()
    plt.hist(resid, bins="auto", density=True, alpha=0.6)
    plt.plot(grid, stats.norm.pdf(grid, loc=resid.mean(), scale=resid.std(ddof=1)))
    plt.xlabel("residual")
    plt.title(f"Residuals: {model.name}")
    plt.tight_layout()
    plt.savefig(path)
    plt.close()
    return path


def write_charts(results: dict, df: pd.DataFrame, charts_dir: str) -> list[str]:
    os.makedirs(charts_dir, exist_ok=True)
    paths = []

    value = results["value_column"]
    for key, pairs in results["aggregates"].items():
        paths.append(bar_chart(pairs, f"{value} by {key}", os.path.join(charts_dir, f"{value}_by_{key}.png")))

    response = results["response"]
    for row in results["correlations"].itertuples(index=False):
        paths.append(scatter_with_r(df, row.predictor, response, row.r,
                                    os.path.join(charts_dir, f"scatter_{row.predictor}.png")))

    for name, m in results["models"].items():
        diag = results["diagnostics"].get(name)
        if diag is None:
            continue
        paths.append(fit_plot(m, diag.influence, os.path.join(charts_dir, f"fit_{name}.png")))
        paths.append(qq_plot(m, os.path.join(charts_dir, f"qq_{name}.png")))
        paths.append(residual_histogram(m, os.path.join(charts_dir, f"residuals_{name}.png")))

    return paths
