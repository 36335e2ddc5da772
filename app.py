import json
import logging
from datetime import date, datetime

import pandas as pd
import streamlit as st

from qidash.config import Config
from qidash.errors import QIDashError
from qidash.frames import measurements_frame, participants_frame
from qidash.imputation import ImputationOptions, ImputationStrategy, strategy_description
from qidash.missingness import missingness_table
from qidash.models import VITAL_FIELDS, VITAL_LABELS, DependencyRelation, SimulationConfig
from qidash.narrative import clinical_note
from qidash.reporting import cohort_report
from qidash.stats import confidence_band, monthly_vital_trends
from qidash.store import CohortStore

logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------
# Store (one per browser session)
# ---------------------------

def _store() -> CohortStore:
    if "store" not in st.session_state:
        st.session_state["store"] = CohortStore(Config.store_path())
    return st.session_state["store"]


def _parse_dependencies(text: str):
    if not text.strip():
        return ()
    raw = json.loads(text)
    if isinstance(raw, dict):
        raw = [raw]
    return tuple(DependencyRelation.from_dict(d) for d in raw)


# ---------------------------
# Streamlit UI
# ---------------------------

st.set_page_config(page_title="QI Cohort Dashboard", layout="wide")
st.title("QI Cohort Dashboard")
st.caption("Synthetic quality-improvement cohorts: generation, summaries, missingness and imputation.")

store = _store()

with st.sidebar:
    st.header("Controls")

    seed = st.number_input("Seed", min_value=0, max_value=10_000_000, value=Config.DEFAULT_SEED, step=1)
    n_participants = st.slider(
        "Number of participants", min_value=10, max_value=500, value=Config.DEFAULT_PARTICIPANTS, step=10
    )
    start_date = st.date_input("Start date", value=date(2023, 1, 1))
    end_date = st.date_input("End date", value=date(2023, 12, 31))
    min_age, max_age = st.slider("Age range", min_value=0, max_value=100, value=(18, 90))

    st.subheader("Measurements")
    frequency = st.radio("Measurement frequency", options=["low", "medium", "high"], index=1, horizontal=True)
    time_patterns = st.radio("Time patterns", options=["realistic", "random"], index=0, horizontal=True)
    variability = st.radio("Data variability", options=["low", "medium", "high"], index=1, horizontal=True)

    st.subheader("Cohort")
    outcome_distribution = st.radio(
        "Outcome distribution", options=["balanced", "positive", "negative"], index=0, horizontal=True
    )
    include_comorbidities = st.checkbox("Include comorbidities", value=True)
    enable_deep = st.checkbox("Enable deep phenotyping", value=False)
    include_missing = st.checkbox("Include missing data", value=False)
    missing_probability = st.slider("Missing data probability", 0.01, 0.30, value=0.05, step=0.01)

    with st.expander("Custom dependencies (JSON)"):
        dependencies_text = st.text_area(
            "Relations",
            value="",
            placeholder='[{"targetVariable": "frailtyScore", "dependsOn": ["age", "riskScore"], '
                        '"coefficients": [0.5, 0.3], "noiseLevel": 0.1}]',
            height=120,
        )

colA, colB, colC = st.columns([1, 1, 1])

if colA.button("Generate cohort", type="primary"):
    try:
        cfg = SimulationConfig(
            num_participants=int(n_participants),
            start_date=start_date,
            end_date=end_date,
            include_comorbidities=bool(include_comorbidities),
            include_missing_data=bool(include_missing),
            missing_data_probability=float(missing_probability),
            measurement_frequency=frequency,
            time_patterns=time_patterns,
            data_variability=variability,
            outcome_distribution=outcome_distribution,
            enable_deep_phenotyping=bool(enable_deep),
            min_age=int(min_age),
            max_age=int(max_age),
            custom_dependencies=_parse_dependencies(dependencies_text),
        )
        store.generate(cfg, seed=int(seed))
        st.success(f"Generated {len(store.cohort)} participants.")
    except (QIDashError, json.JSONDecodeError) as e:
        logger.warning("Generation rejected: %s", e)
        st.error(str(e))

uploaded = colB.file_uploader("Import cohort (JSON)", type=["json"], label_visibility="collapsed")
if uploaded is not None and colB.button("Import"):
    try:
        records = json.loads(uploaded.getvalue().decode("utf-8"))
        if isinstance(records, dict) and "cohort" in records:
            records = records["cohort"]
        store.import_records(records)
        st.success(f"Imported {len(store.cohort)} participants.")
    except json.JSONDecodeError as e:
        st.error(f"Not valid JSON: {e}")
    except QIDashError as e:
        st.error(str(e))
        for it in getattr(e, "issues", [])[:20]:
            st.write(f"- {it}")

if colC.button("Clear cohort"):
    store.clear()
    st.info("Cohort cleared.")

if not store.is_loaded:
    st.info("No cohort loaded. Generate or import one to begin.")
    st.stop()

cohort = store.cohort

st.download_button(
    "Download cohort (JSON)",
    data=json.dumps(store.to_dict(), indent=2).encode("utf-8"),
    file_name=f"qi_cohort_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}.json",
    mime="application/json",
)

tab_report, tab_trends, tab_missing, tab_notes = st.tabs(["Report card", "Trends", "Missingness", "Clinical notes"])

with tab_report:
    report = cohort_report(cohort)
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Participants", report["n_participants"])
    m2.metric("Mean risk score", f"{report['risk_score']['mean']:.1f}")
    m3.metric("Mean length of stay", f"{report['length_of_stay']['mean']:.1f} d")
    m4.metric("Improvement rate", f"{report['improvement_rate_pct']:.1f}%")

    st.subheader("By condition")
    st.dataframe(pd.DataFrame(report["by_condition"]), use_container_width=True)
    st.subheader("Report card")
    st.json(report)

    with st.expander("Preview: participants"):
        st.dataframe(participants_frame(cohort).head(50), use_container_width=True)
    with st.expander("Preview: measurements"):
        st.dataframe(measurements_frame(cohort).head(200), use_container_width=True)

with tab_trends:
    trends = monthly_vital_trends(cohort)
    if trends:
        df = pd.DataFrame(trends).set_index("month")
        vital = st.selectbox("Vital sign", options=list(VITAL_FIELDS), format_func=lambda k: VITAL_LABELS[k])
        st.line_chart(df[[vital]])

        band = pd.DataFrame(confidence_band(cohort, vital))
        if not band.empty:
            st.caption("Mean with 95% confidence band by measurement number")
            st.line_chart(band.set_index("index")[["lower", "mean", "upper"]])
    else:
        st.info("No dated measurements to chart.")

with tab_missing:
    st.dataframe(pd.DataFrame(missingness_table(cohort)), use_container_width=True)

    st.subheader("Imputation")
    strategy = st.selectbox(
        "Strategy",
        options=[s.value for s in ImputationStrategy],
        format_func=strategy_description,
    )
    apply_to_all = st.checkbox("Apply to all vital fields", value=True)
    fields = ()
    if not apply_to_all:
        fields = tuple(
            st.multiselect("Fields", options=list(VITAL_FIELDS), format_func=lambda k: VITAL_LABELS[k])
        )
    options = ImputationOptions(strategy=strategy, apply_to_all=apply_to_all, fields=fields)

    p1, p2 = st.columns(2)
    if p1.button("Preview imputation"):
        preview = store.impute(options)
        st.dataframe(pd.DataFrame(missingness_table(preview)), use_container_width=True)
    if p2.button("Apply imputation"):
        store.impute(options, replace=True)
        st.success("Imputed cohort stored.")
        st.dataframe(pd.DataFrame(missingness_table(store.cohort)), use_container_width=True)

with tab_notes:
    ids = [p.id for p in cohort]
    pid = st.selectbox("Participant", options=ids)
    participant = next(p for p in cohort if p.id == pid)
    st.text(clinical_note(participant))
