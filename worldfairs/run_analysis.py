#!/usr/bin/env python3
"""
World's fairs visitor analysis: one pass, top to bottom.

Run:
  python -m worldfairs.run_analysis --output_dir reports [--source PATH_OR_URL] [--rules config/analysis.yml]

This script:
1) Loads the world's fairs CSV and drops rows missing cost / visitors / area / attending_countries
2) Sums visitors by country and by category, correlates visitors with each numeric predictor
3) Fits the configured OLS models (a model that cannot be fit is reported and skipped)
4) Runs influence, normality, RESET, Breusch-Pagan, VIF and HC3 checks on every fitted model
5) Ranks the fitted models by AIC
6) Writes analysis_report.json / analysis_report.md and PNG charts to --output_dir
"""
from __future__ import annotations

import argparse
import os

import pandas as pd

from .charts import write_charts
from .compare import compare_models
from .config import load_rules
from .data import REQUIRED_COLUMNS, clean_fairs, load_fairs
from .describe import aggregate_by, correlation_table
from .diagnostics import run_diagnostics
from .errors import DataUnavailable, IncomparableModels, InsufficientData, SingularDesign
from .regression import fit_ols
from .report import Finding, diagnostic_findings, sort_findings, write_reports


def print_findings(findings: list[Finding], limit: int = 10) -> None:
    by_sev = {"ERROR": [], "WARN": [], "INFO": []}
    for f in findings:
        by_sev.setdefault(f.severity, []).append(f)
    for sev, items in by_sev.items():
        if not items:
            continue
        print(f"[{sev}] {len(items)} finding(s)")
        for f in items[:limit]:
            print(f"  - {f.check}: {f.message}")
        if len(items) > limit:
            print(f"  ... (+{len(items) - limit} more)")


def analyze(raw, rules: dict) -> dict:
    """Every stage after loading. Returns the results dict consumed by the report writers."""
    df = clean_fairs(raw)
    findings: list[Finding] = []

    value = rules["describe"]["value"]
    aggregates = {key: aggregate_by(df, key, value) for key in rules["describe"]["group_keys"]}
    predictors = [c for c in REQUIRED_COLUMNS if c != value]
    correlations = correlation_table(df, value, predictors)
    for row in correlations.itertuples(index=False):
        if pd.isna(row.r):
            findings.append(Finding("WARN", f"correlation:{row.predictor}",
                                    f"Correlation of {value} with {row.predictor} is not computable (zero variance or too few values)."))

    # every model is fit on the same rows so their AIC values stay comparable
    model_columns = {c for cfg in rules["models"].values() for c in [cfg["response"], *cfg["predictors"]]}
    shared = df.dropna(subset=sorted(model_columns & set(df.columns)))
    if len(shared) < len(df):
        findings.append(Finding("INFO", "models:rows",
                                f"{len(df) - len(shared)} row(s) with a missing model column excluded from model fits.",
                                context={"rows": int(len(shared))}))

    models = {}
    for name, model_cfg in rules["models"].items():
        try:
            models[name] = fit_ols(shared, model_cfg["response"], list(model_cfg["predictors"]), name=name,
                                   confidence_level=float(rules["confidence_level"]))
        except KeyError as exc:
            findings.append(Finding("ERROR", f"{name}:fit", f"Model {name!r}: {exc.args[0]}",
                                    context={"error": "KeyError"}))
        except (InsufficientData, SingularDesign) as exc:
            findings.append(Finding("ERROR", f"{name}:fit", str(exc), context={"error": type(exc).__name__}))

    diagnostics = {}
    for name, m in models.items():
        diagnostics[name] = run_diagnostics(
            m,
            alpha=float(rules["alpha"]),
            cooks_numerator=float(rules["influence"]["cooks_numerator"]),
            vif_threshold=float(rules["multicollinearity"]["vif_threshold"]),
        )
        findings.extend(diagnostic_findings(diagnostics[name]))

    comparison = []
    if len(models) >= 2:
        try:
            comparison = compare_models(list(models.values()))
        except IncomparableModels as exc:
            findings.append(Finding("ERROR", "models:compare", str(exc), context={"error": "IncomparableModels"}))
    for score in comparison:
        if score.tied_with:
            findings.append(Finding("INFO", f"{score.name}:aic_tie",
                                    f"AIC {score.aic:.4f} ties with {score.tied_with}; no preferred model."))

    return {
        "rows_raw": int(len(raw)),
        "rows_clean": int(len(df)),
        "value_column": value,
        "response": value,
        "aggregates": aggregates,
        "correlations": correlations,
        "models": models,
        "diagnostics": diagnostics,
        "comparison": comparison,
        "findings": sort_findings(findings),
        "table": df,
    }


def run(source: str, rules: dict, output_dir: str, fail_on_error: bool) -> int:
    raw = load_fairs(source)
    print(f"Loaded {len(raw)} rows from {source}")

    results = analyze(raw, rules)
    results["source"] = source
    print(f"Kept {results['rows_clean']} rows with cost, visitors, area and attending_countries")
    print(f"Fitted {len(results['models'])} of {len(rules['models'])} model(s)")
    for s in results["comparison"]:
        print(f"  #{s.rank} {s.name}: AIC={s.aic:.2f}")

    print_findings(results["findings"])

    json_path, md_path = write_reports(results, output_dir)
    charts = write_charts(results, results["table"], os.path.join(output_dir, "charts"))
    print(f"Reports written to: {json_path}, {md_path}")
    print(f"Charts written to: {os.path.join(output_dir, 'charts')} ({len(charts)} files)")

    if fail_on_error and any(f.severity == "ERROR" for f in results["findings"]):
        return 2
    return 0


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--output_dir", default="reports")
    ap.add_argument("--rules", default=None, help="Path to YAML settings file (built-in defaults when omitted)")
    ap.add_argument("--source", default=None, help="CSV path or URL; overrides the settings file")
    ap.add_argument("--fail_on_error", action="store_true", help="Exit non-zero if any model failed to fit")
    args = ap.parse_args()

    try:
        rules = load_rules(args.rules)
    except FileNotFoundError as exc:
        raise SystemExit(str(exc)) from exc
    source = args.source or rules["source"]
    try:
        code = run(source, rules, args.output_dir, args.fail_on_error)
    except DataUnavailable as exc:
        raise SystemExit(f"Data unavailable: {exc}") from exc
    raise SystemExit(code)


if __name__ == "__main__":
    main()
