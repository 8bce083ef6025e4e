import streamlit as st
import requests

API = st.sidebar.text_input("Backend API URL", "http://localhost:8000")
USER = st.sidebar.text_input("User id", "analyst")
HEADERS = {"X-User-Id": USER}

st.title("📊 SOC Reports")


def api_get(path, **params):
    r = requests.get(f"{API}{path}", params=params, headers=HEADERS, timeout=30)
    r.raise_for_status()
    return r.json()


def render_widget(widget, data):
    kind = widget["type"]
    st.markdown(f"#### {widget['title']}")

    if kind == "kpi":
        item = data[0]
        trend = item.get("trend") or {}
        arrow = "+" if trend.get("direction") == "up" else "-"
        st.metric(widget["title"], item["value"], f"{arrow}{trend.get('value', 0)}%")
    elif kind in ("bar-chart", "pie-chart", "funnel"):
        st.bar_chart(data, x="name", y="value")
    elif kind in ("line-chart", "area-chart"):
        if kind == "area-chart":
            st.area_chart(data, x="x", y="y")
        else:
            st.line_chart(data, x="x", y="y")
    elif kind == "gauge":
        value = data[0]["value"]
        st.progress(value / 100, text=f"Health score {value}/100")
    elif kind == "timeline":
        for entry in data:
            st.write(f"- `{entry['timestamp']}` **[{entry['type'].upper()}]** {entry['title']}: {entry['description']}")
    else:
        # data-table, heatmap and anything without a dedicated view
        st.dataframe(data, use_container_width=True)


try:
    templates = api_get("/reports/templates")
    ranges = api_get("/reports/time-ranges")
except requests.RequestException as e:
    st.error(f"Backend unreachable: {e}")
    st.stop()

if not templates:
    st.info("No templates yet. Run `python -m socreport.seed` to load the predefined ones.")
    st.stop()

by_name = {t["name"]: t for t in templates}
col1, col2 = st.columns([3, 1])
with col1:
    name = st.selectbox("Template", list(by_name))
with col2:
    labels = [r["label"] for r in ranges]
    time_range = st.selectbox("Time range", labels, index=labels.index("24h") if "24h" in labels else 0)

template = by_name[name]
st.caption(template.get("description", ""))

if st.button("▶️ Generate Report"):
    with st.spinner("Running widgets..."):
        resp = requests.post(
            f"{API}/reports/generate",
            json={"templateId": template["id"], "timeRange": time_range},
            headers=HEADERS,
            timeout=120,
        )
    if resp.ok:
        st.session_state["report"] = resp.json()
    else:
        st.session_state.pop("report", None)
        st.error(f"Report generation failed: {resp.status_code} {resp.text}")

report = st.session_state.get("report")
if report and report["templateName"] == template["name"] and report["timeRange"] == time_range:
    meta = report["metadata"]
    c1, c2, c3 = st.columns(3)
    c1.metric("Alerts in range", meta["alertsInRange"])
    c2.metric("Widgets", len(report["data"]))
    c3.metric("Run time (ms)", meta["executionTime"])
    st.caption(meta["filtersSummary"])

    # widget degradation is a warning, never a blank tile
    for notice in report.get("notices", []):
        st.warning(notice)

    st.divider()

    data_by_widget = {w["widgetId"]: w["data"] for w in report["data"]}
    widgets = sorted(template["widgets"], key=lambda w: (w["position"]["y"], w["position"]["x"]))
    for widget in widgets:
        data = data_by_widget.get(widget["id"])
        if data:
            render_widget(widget, data)
