import streamlit as st
import base64
import html
import os

from medicine_utils import format_date

THEMES = {
    "Light": {
        "text_color": "#111827",
        "metric_bg": "#f9fafb",
        "button_text": "#ffffff",
        "button_bg": "#2563eb",
        "header_color": "#1e3a8a",
    },
    "Dark": {
        "text_color": "#f9fafb",
        "metric_bg": "#1f2937",
        "button_text": "#ffffff",
        "button_bg": "#4f46e5",
        "header_color": "#c7d2fe",
    },
}

# colour hints returned by the status classifiers
STATUS_COLORS = {
    "danger": "#dc2626",
    "warning": "#f59e0b",
    "success": "#16a34a",
}

PRIORITY_ICONS = {
    "high": "🔴",
    "medium": "🟠",
    "low": "🟢",
}


# ===============================
# Theme & Layout
# ===============================
def apply_theme():
    """Inject CSS for the theme chosen in Settings (session state ``theme_choice``)."""
    if "theme_choice" not in st.session_state:
        st.session_state.theme_choice = "Light"
    theme = THEMES.get(st.session_state.theme_choice, THEMES["Light"])

    st.markdown(f"""
        <style>
            html, body, [class*="css"] {{
                color: {theme['text_color']} !important;
            }}
            .stMetric {{
                background: {theme['metric_bg']};
                padding: 15px;
                border-radius: 12px;
                box-shadow: 0 2px 4px rgba(0,0,0,0.08);
            }}
            .stButton>button {{
                border-radius: 10px;
                font-weight: bold;
                color: {theme['button_text']} !important;
                background-color: {theme['button_bg']} !important;
            }}
            h1, h2, h3, h4, h5, h6 {{
                color: {theme['header_color']} !important;
            }}
        </style>
    """, unsafe_allow_html=True)


def apply_global_css():
    st.markdown("""
        <style>
            .block-container { padding-top: 1.5rem !important; }
            footer { visibility: hidden !important; height: 0 !important; }

            .med-card {
                background: #ffffff;
                padding: 12px 16px;
                border-radius: 12px;
                margin-bottom: 10px;
                border: 1px solid #e5e7eb;
            }
            .med-card small { color: #6b7280; }
            .badge {
                padding: 2px 8px;
                border-radius: 9px;
                color: white;
                font-size: 0.75rem;
                font-weight: 600;
            }
        </style>
    """, unsafe_allow_html=True)


def status_badge(info):
    """HTML pill for a StatusInfo."""
    color = STATUS_COLORS.get(info.color, "#6b7280")
    return f"<span class='badge' style='background-color:{color}'>{html.escape(info.label)}</span>"


def medicine_card_html(med, info):
    """Dashboard card HTML for one medicine, with name and batch escaped."""
    return (
        f"<div class='med-card'><b>{html.escape(med.name)}</b> {status_badge(info)}<br>"
        f"<small>Batch: {html.escape(med.batch_number or '—')} • Qty: {med.quantity} • "
        f"Expires: {format_date(med.expiry_date) or '—'}</small></div>"
    )


# ===============================
# LOGO
# ===============================
def show_logo(logo_file):
    """Centered sidebar logo, when the file exists."""
    if os.path.exists(logo_file):
        with open(logo_file, "rb") as f:
            encoded = base64.b64encode(f.read()).decode()

        st.sidebar.markdown(
            f"""
            <div style="display: flex; justify-content: center; margin-bottom: 12px;">
                <img src="data:image/png;base64,{encoded}" width="120">
            </div>
            """,
            unsafe_allow_html=True
        )
