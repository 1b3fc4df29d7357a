"""
Report writing: findings, JSON document and Markdown summary.

Outputs (in output_dir):
  analysis_report.json  every numeric result
  analysis_report.md    human-readable summary
"""
from __future__ import annotations

import dataclasses
import json
import math
import os
from dataclasses import dataclass

import numpy as np
import pandas as pd

from .compare import ModelScore, aic
from .diagnostics import DiagnosticsReport
from .regression import FittedModel


SEVERITY_ORDER = {"INFO": 0, "WARN": 1, "ERROR": 2}


@dataclass
class Finding:
    severity: str  # ERROR, WARN, INFO
    check: str
    message: str
    context: dict | None = None


def diagnostic_findings(report: DiagnosticsReport) -> list[Finding]:
    """WARN for each rejected assumption, INFO for each one that holds."""
    return [
        Finding("INFO" if c.passed else "WARN", f"{report.model}:{c.name}", c.message)
        for c in report.checks()
    ]


def sort_findings(findings: list[Finding]) -> list[Finding]:
    return sorted(findings, key=lambda f: (-SEVERITY_ORDER.get(f.severity, 0), f.check))


def _series_dict(s: pd.Series) -> dict:
    return {str(k): v for k, v in s.items()}


def to_jsonable(obj):
    """Plain JSON types; NaN and +/-inf become None so the output is strict JSON."""
    if isinstance(obj, pd.DataFrame):
        return {str(idx): to_jsonable(_series_dict(row)) for idx, row in obj.iterrows()}
    if isinstance(obj, pd.Series):
        return to_jsonable(_series_dict(obj))
    if isinstance(obj, np.generic):
        return to_jsonable(obj.item())
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        out = {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
        if hasattr(obj, "message"):
            out["message"] = obj.message
        return to_jsonable(out)
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    if isinstance(obj, float):
        return obj if math.isfinite(obj) else None
    if obj is None or isinstance(obj, (str, int, bool)):
        return obj
    return str(obj)


def model_payload(model: FittedModel) -> dict:
    return {
        **model.summary_dict(),
        "aic": aic(model),
        "coefficients": model.coefficients,
    }


def build_payload(results: dict) -> dict:
    return {
        "source": results["source"],
        "rows_raw": results["rows_raw"],
        "rows_clean": results["rows_clean"],
        "aggregates": {k: [{"key": str(key), "sum": total} for key, total in v]
                       for k, v in results["aggregates"].items()},
        "correlations": results["correlations"].to_dict(orient="records"),
        "models": {name: model_payload(m) for name, m in results["models"].items()},
        "diagnostics": {name: {c.name: c for c in d.checks()} for name, d in results["diagnostics"].items()},
        "comparison": results["comparison"],
        "findings": results["findings"],
    }


def _fmt(v, digits: int = 4) -> str:
    return "n/a" if v is None or (isinstance(v, float) and np.isnan(v)) else f"{v:.{digits}f}"


def _comparison_table(scores: list[ModelScore]) -> str:
    df = pd.DataFrame([{
        "rank": s.rank,
        "model": s.name,
        "formula": s.formula,
        "k": s.k,
        "log_likelihood": s.log_likelihood,
        "aic": s.aic,
        "tied_with": ", ".join(s.tied_with),
    } for s in scores])
    return df.to_markdown(index=False, floatfmt=".4f")


def render_markdown(results: dict) -> str:
    findings = results["findings"]
    by_sev = {"ERROR": [], "WARN": [], "INFO": []}
    for f in findings:
        by_sev.setdefault(f.severity, []).append(f)

    lines = []
    lines.append("# World's Fairs Visitor Analysis\n")
    lines.append("## Summary\n")
    lines.append(f"- Source: `{results['source']}`")
    lines.append(f"- Rows loaded: **{results['rows_raw']}**, after cleaning: **{results['rows_clean']}**")
    lines.append(f"- Models fitted: **{len(results['models'])}**")
    lines.append(f"- Findings: **{len(findings)}** (ERROR: {len(by_sev['ERROR'])}, WARN: {len(by_sev['WARN'])})\n")

    for key, pairs in results["aggregates"].items():
        lines.append(f"## {results['value_column']} by {key}\n")
        top = pd.DataFrame(pairs[:10], columns=[key, "total"])
        lines.append(top.to_markdown(index=False, floatfmt=".2f"))
        lines.append("\n")

    lines.append("## Correlations\n")
    lines.append(results["correlations"].to_markdown(index=False, floatfmt=".4f"))
    lines.append("\n")

    for name, m in results["models"].items():
        lines.append(f"## Model `{name}`: {m.formula}\n")
        lines.append(f"- n = {m.nobs}, R² = {_fmt(m.r2)}, adjusted R² = {_fmt(m.adj_r2)}")
        lines.append(f"- F({m.df_model}, {m.df_resid}) = {_fmt(m.f_statistic)}, p = {_fmt(m.f_pvalue)}")
        lines.append(f"- Residual standard error = {_fmt(m.resid_std_err)}, AIC = {_fmt(aic(m), 2)}\n")
        lines.append(m.coefficients.to_markdown(floatfmt=".5g"))
        lines.append("\n")

        diag = results["diagnostics"].get(name)
        if diag is not None:
            lines.append("### VIF\n")
            lines.append(diag.multicollinearity.vif.to_frame().to_markdown(floatfmt=".3f"))
            lines.append("\n")
            lines.append("### HC3 robust inference\n")
            cols = ["estimate", "std_error", "p_value", "classical_p_value", "significant"]
            lines.append(diag.robust_inference.coefficients[cols].to_markdown(floatfmt=".5g"))
            lines.append("\n")

    if results["comparison"]:
        lines.append("## Model comparison (AIC, lower is better)\n")
        lines.append(_comparison_table(results["comparison"]))
        lines.append("\n")

    for sev in ["ERROR", "WARN", "INFO"]:
        if by_sev.get(sev):
            lines.append(f"## {sev}\n")
            for f in by_sev[sev]:
                lines.append(f"- **{f.check}**: {f.message}")
            lines.append("\n")

    return "\n".join(lines)


def write_reports(results: dict, output_dir: str) -> tuple[str, str]:
    os.makedirs(output_dir, exist_ok=True)

    json_path = os.path.join(output_dir, "analysis_report.json")
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(to_jsonable(build_payload(results)), f, indent=2, allow_nan=False)

    md_path = os.path.join(output_dir, "analysis_report.md")
    with open(md_path, "w", encoding="utf-8") as f:
        f.write(render_markdown(results))

    return json_path, md_path
