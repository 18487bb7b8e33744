import json

import requests
import streamlit as st

from utils.config import Settings
from utils.report_formatter import ordered_criteria, score_band, status_badge

settings = Settings.from_env(require_credential=False)

# Page config
st.set_page_config(page_title="素養導向評量審題系統", page_icon="📝", layout="wide")

st.title("📝 社會領域素養導向評量審題系統")
st.markdown("""
請輸入題幹文字，或直接上傳整份試題 PDF 檔案。系統將依據「真實情境」、「問題解決」及「核心素養」等指標進行分析。
""")

# Sidebar for configuration
st.sidebar.header("⚙️ Configuration")
api_url = st.sidebar.text_input(
    "API Endpoint", value="http://localhost:8000/analyze", help="FastAPI backend URL"
)

col1, col2 = st.columns([2, 1])

with col1:
    st.subheader("📄 題目內容")
    question_text = st.text_area(
        "貼上題幹或補充說明：",
        height=200,
        placeholder="請問...",
    )

with col2:
    st.subheader("📁 上傳試題")
    uploaded_file = st.file_uploader(
        "PDF 或圖片檔：",
        type=["pdf", "jpg", "jpeg", "png"],
        help=f"單一檔案，上限 {settings.max_upload_mb} MB",
    )
    if uploaded_file is not None:
        size_mb = uploaded_file.size / 1024 / 1024
        if uploaded_file.type == "application/pdf":
            st.caption(f"PDF 文件 • {size_mb:.2f} MB")
        else:
            st.image(uploaded_file, use_container_width=True)

st.markdown("---")
col_btn1, col_btn2, col_btn3 = st.columns([1, 1, 4])

with col_btn1:
    analyze_button = st.button("🚀 開始分析", type="primary", use_container_width=True)

with col_btn2:
    clear_button = st.button("🔄 Clear", use_container_width=True)

if clear_button:
    st.rerun()


def render_report(report: dict):
    st.markdown("---")
    st.subheader("📊 分析結果")

    col_score, col_bloom = st.columns(2)
    with col_score:
        icon, label = score_band(report["overallScore"])
        st.metric("綜合評分", f"{icon} {report['overallScore']}/100", help=label)
    with col_bloom:
        st.metric("Bloom 認知層次", report["bloomsLevel"])

    st.progress(min(max(report["overallScore"], 0), 100) / 100)
    st.info(report["summary"])

    st.subheader("📋 指標細項")
    criteria = ordered_criteria(report)
    for _key, heading, criterion in criteria:
        with st.expander(
            f"{heading}：{criterion['title']} ({criterion['score']}/100) {status_badge(criterion['status'])}",
            expanded=criterion["status"] in ("warning", "critical"),
        ):
            st.progress(min(max(criterion["score"], 0), 100) / 100)
            st.markdown(criterion["description"])

    col_good, col_bad = st.columns(2)
    with col_good:
        st.markdown("**✅ 優點**")
        for item in report["strengths"]:
            st.markdown(f"- {item}")
    with col_bad:
        st.markdown("**⚠️ 待改進**")
        for item in report["weaknesses"]:
            st.markdown(f"- {item}")

    st.markdown("**💡 整體建議**")
    for item in report["suggestions"]:
        st.markdown(f"- {item}")

    fixes = report.get("questionImprovements", [])
    if fixes:
        st.subheader("🛠️ 逐題修正建議")
        for fix in fixes:
            with st.container(border=True):
                st.markdown(f"**{fix['questionId']}**")
                st.markdown(f"問題：{fix['issue']}")
                st.success(f"建議：{fix['suggestion']}")

    st.markdown("---")
    st.download_button(
        label="📥 下載分析結果 (JSON)",
        data=json.dumps(report, ensure_ascii=False, indent=2),
        file_name="assessment_report.json",
        mime="application/json",
    )


if analyze_button:
    if not question_text.strip() and uploaded_file is None:
        st.error("❌ 請輸入題目文字或上傳檔案")
    elif uploaded_file is not None and uploaded_file.size > settings.max_upload_bytes:
        st.error(f"❌ 檔案超過 {settings.max_upload_mb} MB 上限")
    else:
        with st.spinner("🔄 分析中..."):
            try:
                data = {"text": question_text}
                files = {}
                if uploaded_file is not None:
                    files["file"] = (
                        uploaded_file.name,
                        uploaded_file.getvalue(),
                        uploaded_file.type,
                    )

                response = requests.post(api_url, data=data, files=files or None)

                if response.status_code == 200:
                    st.success("✅ 分析完成！")
                    render_report(response.json())
                else:
                    st.error(f"❌ 分析過程發生錯誤 ({response.status_code})")
                    try:
                        error = response.json()["detail"]["error"]
                        st.warning(f"{error['code']}: {error['message']}")
                    except (ValueError, KeyError, TypeError):
                        st.code(response.text)

            except requests.exceptions.ConnectionError:
                st.error(
                    "❌ Cannot connect to API. Make sure the FastAPI server is running on http://localhost:8000"
                )

st.markdown("---")
st.markdown(
    """
<div style='text-align: center; color: gray;'>
    <small>Social Studies Assessment Analyst • Based on principles by NAER • Powered by Google Gemini</small>
</div>
""",
    unsafe_allow_html=True,
)
