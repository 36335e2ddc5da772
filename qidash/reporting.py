from typing import Dict, List

from qidash.frames import measurements_frame
from qidash.missingness import missingness_by_field
from qidash.models import VITAL_FIELDS, Participant
from qidash.stats import (
    classify_correlation,
    correlation,
    describe,
    group_counts,
    grouped_summary,
    linear_regression,
    rate,
    treatment_effectiveness_by,
)


def cohort_report(cohort: List[Participant]) -> Dict:
    report: Dict = {}

    n = int(len(cohort))
    mf = measurements_frame(cohort)
    report["row_counts"] = {
        "participants": n,
        "measurements": int(len(mf)),
        "treatments": int(sum(len(p.treatments) for p in cohort)),
    }
    report["n_participants"] = n

    # Share of participants that have a measurement at each position
    if len(mf) == 0:
        report["completion_by_index"] = {}
    else:
        per_index = mf.groupby("index")["participant_id"].nunique()
        report["completion_by_index"] = {str(int(i)): float(c) / float(n) if n else 0.0 for i, c in per_index.items()}

    report["missingness_pct"] = missingness_by_field(cohort)
    report["vitals"] = {name: describe(mf[name].dropna().tolist()) for name in VITAL_FIELDS}

    report["risk_score"] = describe([p.risk_score for p in cohort])
    report["length_of_stay"] = describe([p.length_of_stay for p in cohort])
    report["readmission_risk"] = describe([p.readmission_risk for p in cohort])

    outcomes = group_counts(cohort, "outcome")
    report["outcome_counts"] = outcomes
    report["outcome_fraction"] = {k: float(v) / float(n) for k, v in outcomes.items()} if n else {}
    report["improvement_rate_pct"] = rate(cohort, lambda p: p.outcome == "Improved")
    report["high_risk_rate_pct"] = rate(cohort, lambda p: p.risk_band == "high")

    risk = [p.risk_score for p in cohort]
    los = [float(p.length_of_stay) for p in cohort]
    readmission = [p.readmission_risk for p in cohort]
    r_los = correlation(risk, los)
    r_readmission = correlation(risk, readmission)
    report["correlations"] = {
        "risk_score_vs_length_of_stay": {"r": r_los, "strength": classify_correlation(r_los)},
        "risk_score_vs_readmission_risk": {"r": r_readmission, "strength": classify_correlation(r_readmission)},
    }
    fit = linear_regression(risk, los)
    report["los_on_risk_regression"] = {"slope": fit.slope, "intercept": fit.intercept, "r_squared": fit.r_squared}

    report["by_condition"] = grouped_summary(cohort, "condition")
    report["by_unit"] = grouped_summary(cohort, "unit")
    report["treatment_effectiveness_by_condition"] = treatment_effectiveness_by(cohort, "condition")

    return report
