import json

import numpy as np
import pandas as pd
import pytest

from worldfairs.config import load_rules
from worldfairs.errors import DataUnavailable
from worldfairs.run_analysis import analyze, run


def _fairs(n=40, seed=21):
    rng = np.random.default_rng(seed)
    df = pd.DataFrame({
        "name_of_exposition": [f"Expo {i}" for i in range(n)],
        "country": rng.choice(["France", "Japan", "United States", "Belgium"], n),
        "category": rng.choice(["World Expo", "Specialised Expo"], n),
        "cost": rng.uniform(1, 2000, n),
        "area": rng.uniform(5, 500, n),
        "attending_countries": rng.integers(10, 200, n).astype(float),
    })
    df["visitors"] = 5 + 0.005 * df["cost"] + 0.05 * df["area"] + rng.normal(0, 5, n)
    # a few incomplete rows, dropped by the cleaner
    df.loc[[0, 5], "cost"] = np.nan
    df.loc[7, "visitors"] = np.nan
    return df


def test_analyze_end_to_end_on_synthetic_table():
    raw = _fairs()
    raw.insert(0, "id", np.arange(1, len(raw) + 1))
    results = analyze(raw, load_rules(None))

    assert results["rows_raw"] == 40
    assert results["rows_clean"] == 37
    assert set(results["models"]) == {"full", "area_category"}
    assert set(results["diagnostics"]) == {"full", "area_category"}
    assert [s.rank for s in results["comparison"]] == [1, 2]
    assert results["correlations"]["predictor"].tolist() == ["cost", "area", "attending_countries"]
    assert [k for k, _ in results["aggregates"]["category"]] != []
    # every diagnostic becomes a finding
    assert len([f for f in results["findings"] if f.severity in ("INFO", "WARN")]) == 12


def test_model_that_cannot_be_fit_is_reported_and_omitted():
    raw = _fairs()
    raw["area_copy"] = raw["area"] * 2
    rules = load_rules(None)
    rules["models"] = {
        "full": rules["models"]["full"],
        "collinear": {"response": "visitors", "predictors": ["area", "area_copy"]},
    }
    results = analyze(raw, rules)
    assert list(results["models"]) == ["full"]
    assert "collinear" not in results["diagnostics"]
    # only one model left, nothing to compare
    assert results["comparison"] == []
    errors = [f for f in results["findings"] if f.severity == "ERROR"]
    assert [f.check for f in errors] == ["collinear:fit"]
    assert errors[0].context == {"error": "SingularDesign"}
    # errors sort first
    assert results["findings"][0].severity == "ERROR"


def test_run_writes_reports_and_charts(tmp_path):
    src = tmp_path / "fairs.csv"
    _fairs().to_csv(src, index=False)
    out = tmp_path / "reports"

    code = run(str(src), load_rules(None), str(out), fail_on_error=True)
    assert code == 0

    payload = json.loads((out / "analysis_report.json").read_text())
    assert payload["rows_clean"] == 37
    assert set(payload["models"]) == {"full", "area_category"}
    assert "Intercept" in payload["models"]["full"]["coefficients"]
    assert payload["comparison"][0]["rank"] == 1
    assert set(payload["diagnostics"]["full"]) == {
        "influence", "normality", "linearity", "homoscedasticity", "multicollinearity", "robust_inference",
    }

    md = (out / "analysis_report.md").read_text()
    assert "# World's Fairs Visitor Analysis" in md
    assert "Model comparison" in md

    charts = sorted(p.name for p in (out / "charts").glob("*.png"))
    assert "qq_full.png" in charts
    assert "fit_area_category.png" in charts
    assert "visitors_by_country.png" in charts


def test_run_fail_on_error_exit_code(tmp_path):
    src = tmp_path / "fairs.csv"
    _fairs().head(3).to_csv(src, index=False)
    # two complete rows: neither model can be fit
    code = run(str(src), load_rules(None), str(tmp_path / "reports"), fail_on_error=True)
    assert code == 2


def test_run_missing_source_raises(tmp_path):
    with pytest.raises(DataUnavailable):
        run(str(tmp_path / "missing.csv"), load_rules(None), str(tmp_path / "reports"), fail_on_error=False)


def test_missing_category_keeps_models_comparable():
    raw = _fairs()
    raw.loc[10, "category"] = np.nan
    results = analyze(raw, load_rules(None))

    # row 10 stays in the cleaned table but leaves every model fit
    assert results["rows_clean"] == 37
    assert {m.nobs for m in results["models"].values()} == {36}
    assert [s.rank for s in results["comparison"]] == [1, 2]
    assert not [f for f in results["findings"] if f.severity == "ERROR"]
    rows = [f for f in results["findings"] if f.check == "models:rows"]
    assert rows and rows[0].context == {"rows": 36}


def test_unknown_model_column_is_reported_and_run_continues():
    rules = load_rules(None)
    rules["models"]["typo"] = {"response": "visitors", "predictors": ["aera"]}
    results = analyze(_fairs(), rules)

    assert set(results["models"]) == {"full", "area_category"}
    errors = [f for f in results["findings"] if f.severity == "ERROR"]
    assert [f.check for f in errors] == ["typo:fit"]
    assert "aera" in errors[0].message
    assert errors[0].context == {"error": "KeyError"}
    assert len(results["comparison"]) == 2


def test_report_json_is_strict(tmp_path):
    src = tmp_path / "fairs.csv"
    _fairs().to_csv(src, index=False)
    out = tmp_path / "reports"
    run(str(src), load_rules(None), str(out), fail_on_error=False)

    text = (out / "analysis_report.json").read_text()

    def reject(token):
        raise ValueError(f"non-standard JSON constant {token}")

    payload = json.loads(text, parse_constant=reject)
    # the intercept has no standardized beta
    assert payload["models"]["full"]["coefficients"]["Intercept"]["std_beta"] is None
    assert payload["models"]["full"]["coefficients"]["cost"]["std_beta"] is not None
