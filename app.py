import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Any, Dict, Optional

from agridash.aggregate import prepare_context
from agridash.data import DataLoadError, format_value, load_dashboard_data
from agridash.datasets import DATASET_ORDER, DATASETS
from agridash.filters import normalize_selection
from agridash.metrics_correlation import compute_correlation
from agridash.metrics_debug import compute_debug
from agridash.metrics_geo import compute_geo
from agridash.metrics_insights import compute_insights
from agridash.metrics_overview import compute_overview
from agridash.metrics_trends import compute_trends


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def render_page_header(title: str, breadcrumb: str, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if export_df is not None and not export_df.empty:
            st.download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    chips = selection.label().split(" • ")
    st.markdown(
        "<div class='chip-row'>" + "".join(f"<span class='chip'>{c}</span>" for c in chips) + "</div>",
        unsafe_allow_html=True,
    )


def render_chart(spec: Dict[str, Any], *, plotly: bool = False):
    if spec.get("empty"):
        st.info(spec.get("message") or "No data available")
        return
    if plotly:
        st.plotly_chart(spec, use_container_width=True)
    else:
        st.vega_lite_chart(spec, use_container_width=True)


# ---------- UI setup ----------
st.set_page_config(page_title="Agricultural Resource Dashboard", layout="wide")
inject_base_styles()
st.title("Agricultural Resource Dashboard")
st.caption("Water use, nutrient balance, energy use and agricultural land across countries and years.")

try:
    data_ctx = load_dashboard_data()
except DataLoadError as exc:
    st.error(f"Error loading data: {exc}")
    st.stop()

years = data_ctx.get("years", [])
countries = data_ctx.get("countries", [])

# ----- Sidebar: navigation + selection -----
with st.sidebar:
    st.markdown("### Navigate")
    nav_choice = st.radio("Navigate", ["Overview", "Trends", "Correlation", "Map", "Insights", "Data Quality"], index=0)

    st.markdown("---")
    st.markdown("### Selection")
    year_options = ["All Years"] + [str(y) for y in years]
    default_year = len(year_options) - 1 if years else 0
    year_choice = st.selectbox("Year", options=year_options, index=default_year)
    country_names = {c["code"]: c["name"] for c in countries}
    country_choice = st.selectbox(
        "Country",
        options=["all"] + list(country_names),
        format_func=lambda code: "All Countries" if code == "all" else country_names.get(code, code),
    )
    dataset_choice = st.radio(
        "Dataset",
        options=list(DATASET_ORDER),
        format_func=lambda key: f"{DATASETS[key].icon} {DATASETS[key].name}",
    )

    st.markdown("---")
    with st.expander("Advanced settings", expanded=False):
        top_series = st.slider("Countries in trend lines", 1, 10, 3)
        top_bar = st.slider("Countries in bar charts", 5, 30, 10, step=5)
        top_pie = st.slider("Countries in pie chart", 3, 10, 5)

selection = normalize_selection(
    {
        "year": None if year_choice == "All Years" else year_choice,
        "country": country_choice,
        "dataset": dataset_choice,
        "limits": {"top_series": top_series, "top_bar": top_bar, "top_pie": top_pie},
    },
    available_years=years,
)
ctx = prepare_context(selection, data_ctx)
active = DATASETS[selection.dataset]


def render_overview_page():
    payload = compute_overview(selection, ctx)
    render_page_header("Overview", "Home / Overview", export_df=ctx["filtered"][selection.dataset], export_name=f"{selection.dataset}.csv")
    cols = st.columns(4)
    for col, key in zip(cols, DATASET_ORDER):
        kpi = payload["kpis"][key]
        col.metric(
            kpi["label"],
            kpi["value_text"],
            delta=kpi["trend_text"] if kpi["trend_pct"] is not None else None,
            help=f"Regional Avg: {kpi['regional_average_text']}" if kpi["regional_average_text"] else "No regional data",
        )
    with card("Datasets"):
        cols = st.columns(4)
        for col, c in zip(cols, payload["cards"]):
            with col:
                st.markdown(f"**{c['icon']} {c['name']}**" + (" (active)" if c["active"] else ""))
                st.caption(c["description"])
                if c["stats"] is None:
                    st.info(c["message"])
                else:
                    decimals = 2 if c["dataset"] == "nutrient" else 0
                    st.write(f"Total: {format_value(c['stats']['total'], decimals)} {c['unit']}")
                    st.write(f"Average: {format_value(c['stats']['average'], decimals)} {c['unit']}")
                    st.write(f"Records: {c['stats']['count']}")
    with card("Totals by Year"):
        if "totals_trend" in payload["charts"]:
            render_chart(payload["charts"]["totals_trend"])
        else:
            st.info("No data available")
    with card("Country Comparison"):
        if "country_comparison" in payload["charts"]:
            render_chart(payload["charts"]["country_comparison"])
        else:
            st.info("Select a single year to compare countries.")


def render_trends_page():
    payload = compute_trends(selection, ctx)
    render_page_header(f"Trends: {active.name}", "Home / Trends")
    with card("Resource Consumption Trends"):
        render_chart(payload["charts"]["time_series"])
    c1, c2 = st.columns(2)
    with c1:
        with card("Country Comparison"):
            render_chart(payload["charts"]["bar"])
    with c2:
        with card("Resource Composition"):
            render_chart(payload["charts"]["stacked_bar"])


def render_correlation_page():
    payload = compute_correlation(selection, ctx)
    render_page_header("Correlation", "Home / Correlation")
    with card(f"{payload['axes']['x']['name']} vs {payload['axes']['y']['name']}"):
        render_chart(payload["charts"]["scatter"])
    with card("Resource Correlation Matrix"):
        render_chart(payload["charts"]["heatmap"])
        matrix = pd.DataFrame(payload["matrix"]["values"], index=payload["matrix"]["labels"], columns=payload["matrix"]["labels"])
        st.dataframe(matrix.round(2), use_container_width=True)


def render_map_page():
    payload = compute_geo(selection, ctx)
    render_page_header(f"Map: {active.name}", "Home / Map")
    with card("Global Resource Distribution"):
        render_chart(payload["charts"]["choropleth"], plotly=True)
    with card("Global Heat Map"):
        tiles = payload["heat_tree"]
        if not tiles:
            st.info(payload["heat_tree_message"])
        else:
            cols = st.columns(4)
            for i, tile in enumerate(tiles):
                alpha = 0.25 + 0.75 * float(tile["intensity"])
                cols[i % 4].markdown(
                    f"<div style='background: rgba(239,68,68,{alpha:.2f});border-radius:8px;padding:10px;margin-bottom:8px;'>"
                    f"<b>{tile['name']}</b><br>{format_value(tile['value'])} {active.unit}</div>",
                    unsafe_allow_html=True,
                )


def render_insights_page():
    payload = compute_insights(selection, ctx)
    render_page_header(payload["title"], "Home / Insights")
    c1, c2 = st.columns(2)
    with c1:
        with card("Top Countries Distribution"):
            render_chart(payload["charts"]["pie"])
    with c2:
        with card("Multi-Year Comparison"):
            render_chart(payload["charts"]["radar"], plotly=True)
    with card("Insight"):
        st.write(payload["insight"])
        if payload["stats"]:
            cols = st.columns(4)
            cols[0].metric("Average", format_value(payload["stats"]["average"]))
            cols[1].metric("Maximum", format_value(payload["stats"]["maximum"]))
            cols[2].metric("Minimum", format_value(payload["stats"]["minimum"]))
            cols[3].metric("Records", payload["stats"]["count"])


def render_debug_page():
    payload = compute_debug(selection, ctx)
    render_page_header("Data Quality", "Home / Data Quality")
    with card("Data Quality"):
        st.markdown("**Files**")
        st.write(payload["files"])
        st.markdown("**Row counts**")
        st.write(payload["row_counts"])
        st.markdown("**Rows after selection**")
        st.write(payload["filtered_counts"])
        st.markdown("**Missing values**")
        st.write(payload["missing_values"])
        st.markdown("**Duplicate country+year rows**")
        st.write(payload["duplicate_keys"])
        if payload["year_coverage"]:
            st.markdown("**Year coverage**")
            st.dataframe(pd.DataFrame(payload["year_coverage"]), hide_index=True)


if nav_choice == "Overview":
    render_overview_page()
elif nav_choice == "Trends":
    render_trends_page()
elif nav_choice == "Correlation":
    render_correlation_page()
elif nav_choice == "Map":
    render_map_page()
elif nav_choice == "Insights":
    render_insights_page()
else:
    render_debug_page()
