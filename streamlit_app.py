import streamlit as st
from pathlib import Path
import sys
import logging

sys.path.insert(0, str(Path(__file__).parent / "src"))

from analysis_errors import is_user_error
from main_processor import EVENT_TYPES, analyze
from reporting import build_report_tables, generate_report

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

st.set_page_config(page_title="Event & Donor Analytics", layout="wide")

st.title("🎓 Event & Donor Analytics")
st.markdown("---")

project_root = Path(__file__).parent
output_dir = project_root / "output"
output_dir.mkdir(exist_ok=True)

col1, col2 = st.columns(2)
with col1:
    file1 = st.file_uploader("Registration export (required)", type=["csv", "xlsx", "xls"])
with col2:
    file2 = st.file_uploader("Donor CRM export (optional)", type=["csv", "xlsx", "xls"])

event_type = st.selectbox("Event type:", EVENT_TYPES)
fuzzy_threshold = st.slider("Fuzzy name matching threshold", 0, 100, 90)

st.markdown("---")

if st.button("Analyze", disabled=file1 is None):
    try:
        with st.spinner("Analyzing exports..."):
            config = {
                'event_type': event_type,
                'fuzzy_threshold': fuzzy_threshold
            }
            result = analyze(
                file1.getvalue(),
                file2.getvalue() if file2 is not None else None,
                config
            )
    except Exception as e:
        if is_user_error(e):
            st.error(str(e))
        else:
            st.error("An unexpected error occurred during analysis.")
            logger.exception("Error in analyze")
        st.stop()

    for warning in result['warnings']:
        st.warning(warning)

    reg = result['stats2025']
    st.success("✅ Analysis complete!")

    m1, m2, m3, m4 = st.columns(4)
    with m1:
        st.metric("Registrants", reg['total'])
    with m2:
        st.metric("Total Alumni", reg['totalAlumni'])
    with m3:
        st.metric("Sub-Events", len(reg['subEvents']))
    with m4:
        if result['hasRE']:
            st.metric("Matched to CRM", result['cross']['matchedRegistrants'])
        else:
            st.metric("Ohio %", reg['ohioPct'])

    st.header("💡 Insights")
    for insight in result['insights']:
        st.markdown(f"**{insight['icon']} {insight['title']}** ({insight['priority']})")
        st.write(insight['body'])

    tables = build_report_tables(result)
    if not tables['Sub-Events'].empty:
        st.header("🎪 Sub-Events")
        st.bar_chart(tables['Sub-Events'].set_index('Event')['Attending'])

    for name, table in tables.items():
        if name in ('Sub-Events', 'Insights'):
            continue
        st.subheader(name)
        st.dataframe(table, use_container_width=True)

    report_path = generate_report(result, output_dir, 'xlsx')
    with open(report_path, 'rb') as f:
        st.download_button(
            label="Download Excel Report",
            data=f,
            file_name=report_path.name,
            mime='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        )

st.markdown("---")
st.markdown("### 📁 File Locations")
st.write(f"**Output Directory:** `{output_dir}`")
