import logging
import os
from datetime import date, datetime

import pandas as pd
import plotly.express as px
import streamlit as st

import db
from login import end_session, login_router
from password_reset import password_reset
from styles import apply_theme, apply_global_css, show_logo, medicine_card_html, PRIORITY_ICONS
from user_database import init_user_db
from medicine_utils import (
    EXPIRY_WINDOW_DAYS,
    DEFAULT_MIN_STOCK,
    MEDICINE_TYPES,
    ExpiryStatus,
    StockStatus,
    FilterCriteria,
    calculate_stats,
    days_until_expiry,
    expiring_medicines,
    expiring_within,
    expiry_status,
    export_filename,
    filter_medicines,
    format_date,
    filter_alerts,
    generate_alerts,
    generate_csv,
    is_expired,
    recent_medicines,
    sort_medicines,
    stock_status,
)

SESSION_TIMEOUT_SECONDS = 1800  # 30 min

logging.basicConfig(
    level=os.getenv("PHARMACY_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("pharmacare")

st.set_page_config(page_title="PharmaCare", page_icon="🧪", layout="wide")


# --------------------------
# Database Connection
# --------------------------
@st.cache_resource
def get_store():
    try:
        url = st.secrets["DATABASE"]["URL"]
    except (KeyError, FileNotFoundError):
        url = os.getenv("PHARMACY_DB_URL", "sqlite:///pharmacy.db")

    if not url:
        st.error("Missing database configuration.")
        st.stop()

    db.configure(url)
    db.init_db()
    seeded = db.seed_sample_medicines()
    if seeded:
        logger.info("Seeded %d sample medicines", seeded)
    return url


get_store()

# --------------------------
# Authentication
# --------------------------
init_user_db()

if "authenticated" not in st.session_state:
    st.session_state.update({
        "authenticated": False,
        "username": None,
        "role": None,
        "last_active": None,
    })


def session_timeout():
    last = st.session_state["last_active"]
    if not last:
        return False
    return (datetime.now() - datetime.fromisoformat(last)).total_seconds() > SESSION_TIMEOUT_SECONDS


if not st.session_state["authenticated"]:
    login_router()
    st.stop()

if session_timeout():
    end_session()
    st.warning("Session timed out.")
    st.rerun()

st.session_state["last_active"] = datetime.now().isoformat()

# --------------------------
# Settings (session scoped) + UI Setup
# --------------------------
st.session_state.setdefault("expiry_warning_days", EXPIRY_WINDOW_DAYS)
st.session_state.setdefault("low_stock_threshold", DEFAULT_MIN_STOCK)
st.session_state.setdefault("expiry_alerts", True)
st.session_state.setdefault("stock_alerts", True)

apply_theme()
apply_global_css()
show_logo("logo.png")

username = st.session_state["username"]
role = st.session_state["role"]
today = date.today()
window = int(st.session_state["expiry_warning_days"])

medicines = db.fetch_all_medicines()


def medicines_frame(records):
    """Tabular view of a snapshot with derived status columns."""
    rows = []
    for m in records:
        rows.append({
            "Name": m.name,
            "Batch No.": m.batch_number,
            "Type": m.category,
            "Quantity": m.quantity,
            "Min Stock": m.effective_min_stock,
            "Price": m.price,
            "Expiry Date": format_date(m.expiry_date),
            "Days Left": days_until_expiry(m.expiry_date, today),
            "Expiry Status": expiry_status(m.expiry_date, today, window).label,
            "Stock Status": stock_status(m.quantity, m.effective_min_stock).label,
        })
    return pd.DataFrame(rows, columns=[
        "Name", "Batch No.", "Type", "Quantity", "Min Stock", "Price",
        "Expiry Date", "Days Left", "Expiry Status", "Stock Status",
    ])


def medicine_card(m):
    info = expiry_status(m.expiry_date, today, window)
    st.markdown(medicine_card_html(m, info), unsafe_allow_html=True)


def csv_download(records, prefix, label="⬇️ Export CSV"):
    st.download_button(
        label,
        data=generate_csv(records, today, window).encode("utf-8"),
        file_name=export_filename(prefix, today),
        mime="text/csv",
    )


# --------------------
# Sidebar with user + logout + role menu
# --------------------
with st.sidebar:
    st.markdown("<h3 style='color:#7494ec;margin-bottom:6px;'>🧪 PharmaCare</h3>", unsafe_allow_html=True)
    st.sidebar.write(f"**{username or 'User'}**")
    st.sidebar.write(f"Role: **{role or 'guest'}**")
    st.sidebar.markdown("---")

    if st.sidebar.button("Logout 🔒"):
        end_session()
        st.rerun()

    pages = [
        "📊 Dashboard",
        "💊 All Medicines",
        "➕ Add Medicine",
        "⏰ Expiry Tracker",
        "🏥 Pharmacy Profile",
        "⚙️ Settings",
        "🔑 Change Password",
    ]
    menu = st.sidebar.radio("📌 Navigation", pages)

    st.sidebar.markdown("---")
    st.sidebar.write(f"© {today.year} PharmaCare")


# =========================================================
# 📊 DASHBOARD
# =========================================================
if menu == "📊 Dashboard":
    st.header("📊 Dashboard")
    stats = calculate_stats(medicines, today, window)

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total Medicines", stats.total)
    c2.metric("Out of Stock", stats.out_of_stock, help="Needs attention" if stats.out_of_stock else "All good!")
    c3.metric("Expiring Soon", stats.expiring_soon, help=f"Within {window} days")
    c4.metric("Expired", stats.expired, help="Requires action" if stats.expired else "None expired")

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Stock Distribution")
        pie = pd.DataFrame({
            "Status": ["In Stock", "Low Stock", "Out of Stock", "Expired"],
            "Count": [stats.in_stock, stats.low_stock, stats.out_of_stock, stats.expired],
        })
        if pie["Count"].sum() == 0:
            st.info("No medicines yet.")
        else:
            fig = px.pie(pie, names="Status", values="Count", hole=0.4, color="Status",
                         color_discrete_map={"In Stock": "#22c55e", "Low Stock": "#f59e0b",
                                             "Out of Stock": "#ef4444", "Expired": "#dc2626"})
            st.plotly_chart(fig, use_container_width=True)

    with col2:
        st.subheader("Monthly Overview")
        months = pd.period_range(end=pd.Period(today, freq="M"), periods=6, freq="M")
        added = pd.Series(
            [pd.Period(m.created_at, freq="M") for m in medicines if m.created_at is not None], dtype=object
        ).value_counts()
        expiring = pd.Series(
            [pd.Period(m.expiry_date, freq="M") for m in medicines if m.expiry_date is not None], dtype=object
        ).value_counts()
        bars = pd.DataFrame({
            "Month": [m.strftime("%b") for m in months],
            "Added": [int(added.get(m, 0)) for m in months],
            "Expired": [int(expiring.get(m, 0)) for m in months],
        })
        fig = px.bar(bars, x="Month", y=["Added", "Expired"], barmode="group")
        st.plotly_chart(fig, use_container_width=True)

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Recently Added")
        for m in recent_medicines(medicines, limit=5):
            medicine_card(m)
    with col2:
        st.subheader("Expiring Medicines")
        soon = expiring_medicines(medicines, today, limit=5, window_days=window)
        if not soon:
            st.success("No medicines expiring soon.")
        for m in soon:
            medicine_card(m)

    st.subheader("🔔 Alerts")
    alerts = generate_alerts(medicines, today, window_days=window)
    alerts = filter_alerts(alerts, expiry=st.session_state["expiry_alerts"],
                           stock=st.session_state["stock_alerts"])
    if not alerts:
        st.info("No alerts.")
    for a in alerts:
        st.write(f"{PRIORITY_ICONS[a.priority.value]} **{a.priority.value.title()}** — {a.message}")


# =========================================================
# 💊 ALL MEDICINES
# =========================================================
elif menu == "💊 All Medicines":
    st.header("💊 All Medicines")

    search = st.text_input("🔎 Search by name or batch number")
    with st.expander("Filters & Sorting", expanded=False):
        col1, col2, col3 = st.columns(3)
        f_expiry = col1.selectbox("Expiry status", [None] + list(ExpiryStatus),
                                  format_func=lambda s: "All" if s is None else s.label)
        f_stock = col2.selectbox("Stock status", [None] + list(StockStatus),
                                 format_func=lambda s: "All" if s is None else s.label)
        f_type = col3.selectbox("Type", ["All"] + MEDICINE_TYPES)
        col4, col5 = st.columns(2)
        sort_by = col4.selectbox("Sort by", ["name", "expiry_date", "quantity", "created_at"],
                                 format_func=lambda k: k.replace("_", " ").title())
        sort_order = col5.radio("Order", ["asc", "desc"], horizontal=True)

    criteria = FilterCriteria(
        search=search,
        expiry_status=f_expiry,
        stock_status=f_stock,
        category=None if f_type == "All" else f_type,
    )
    shown = sort_medicines(filter_medicines(medicines, criteria, today, window), sort_by, sort_order)

    st.caption(f"{len(shown)} of {len(medicines)} medicines")
    if not shown:
        st.info("No medicines found for the selected filters.")
    else:
        st.dataframe(medicines_frame(shown), use_container_width=True)
        csv_download(shown, "medicines")

        st.markdown("### ✏️ Edit / Delete")
        labels = {m.id: f"{m.name} | Batch:{m.batch_number}" for m in shown}
        sel_id = st.selectbox("Select medicine", list(labels), format_func=lambda i: labels[i])
        rec = next(m for m in shown if m.id == sel_id)

        with st.form("edit_med"):
            col1, col2, col3 = st.columns(3)
            new_name = col1.text_input("Name", rec.name)
            new_batch = col1.text_input("Batch No.", rec.batch_number)
            new_type = col2.selectbox("Type", MEDICINE_TYPES,
                                      index=MEDICINE_TYPES.index(rec.category) if rec.category in MEDICINE_TYPES else 0)
            new_qty = col2.number_input("Quantity", min_value=0, value=rec.quantity, step=1)
            new_min = col3.number_input("Min Stock", min_value=0, value=rec.effective_min_stock, step=1)
            new_exp = col3.date_input("Expiry Date", rec.expiry_date)
            new_price = st.number_input("Price", min_value=0.0, value=float(rec.price or 0.0), step=0.5)
            if st.form_submit_button("Save Changes"):
                try:
                    db.update_medicine(
                        rec.id, name=new_name.strip(), batch_number=new_batch.strip(),
                        category=new_type, quantity=int(new_qty), min_stock=int(new_min),
                        expiry_date=new_exp, price=new_price if new_price or rec.price is not None else None,
                    )
                    st.success("Updated.")
                    st.rerun()
                except ValueError as e:
                    st.error(str(e))

        if st.button("🗑 Delete Medicine"):
            st.session_state["confirm_delete"] = rec.id
        if st.session_state.get("confirm_delete") == rec.id:
            st.warning(f"Delete **{rec.name}**? This cannot be undone.")
            c1, c2 = st.columns(2)
            if c1.button("Yes, delete"):
                db.delete_medicine(rec.id)
                st.session_state.pop("confirm_delete", None)
                st.success("Deleted.")
                st.rerun()
            if c2.button("Cancel"):
                st.session_state.pop("confirm_delete", None)
                st.rerun()


# =========================================================
# ➕ ADD MEDICINE
# =========================================================
elif menu == "➕ Add Medicine":
    st.header("➕ Add Medicine")
    st.caption("Fill in the details below to add a new medicine to your inventory")

    with st.form("add_med", clear_on_submit=True):
        name = st.text_input("Medicine Name *")
        col1, col2 = st.columns(2)
        batch = col1.text_input("Batch Number *")
        kind = col2.selectbox("Type *", MEDICINE_TYPES)
        qty = col1.number_input("Quantity *", min_value=0, value=0, step=1)
        expiry = col2.date_input("Expiry Date *", value=None)
        price = col1.text_input("Price (optional)")
        min_stock = col2.number_input("Minimum Stock", min_value=0,
                                      value=int(st.session_state["low_stock_threshold"]), step=1)
        description = st.text_area("Description")
        submitted = st.form_submit_button("💾 Save Medicine")

    if submitted:
        errors = []
        if len(name.strip()) < 2:
            errors.append("Medicine name must be at least 2 characters.")
        if not batch.strip():
            errors.append("Batch number is required.")
        if expiry is None:
            errors.append("Expiry date is required.")
        price_value = None
        if price.strip():
            try:
                price_value = float(price)
            except ValueError:
                errors.append("Price must be a number.")
        if errors:
            for e in errors:
                st.error(e)
        else:
            try:
                db.add_medicine(
                    name=name.strip(), batch_number=batch.strip(), category=kind,
                    quantity=int(qty), price=price_value, expiry_date=expiry,
                    min_stock=int(min_stock), description=description.strip(),
                )
                st.success(f"✅ {name.strip()} added to inventory.")
            except ValueError as e:
                st.error(str(e))


# =========================================================
# ⏰ EXPIRY TRACKER
# =========================================================
elif menu == "⏰ Expiry Tracker":
    st.header("⏰ Expiry Tracker")

    col1, col2 = st.columns([2, 1])
    search = col1.text_input("🔎 Search by name or batch number")
    bucket = col2.selectbox("Show", ["All", "Expired", "Within 7 days", "Within 15 days", "Within 30 days"])

    tracked = filter_medicines(medicines, {"search": search})
    if bucket == "Expired":
        tracked = [m for m in tracked if is_expired(m.expiry_date, today)]
    elif bucket.startswith("Within"):
        tracked = expiring_within(tracked, today, int(bucket.split()[1]))
    tracked = sort_medicines(tracked, "expiry_date", "asc")

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Expired", sum(1 for m in medicines if is_expired(m.expiry_date, today)))
    c2.metric("Within 7 days", len(expiring_within(medicines, today, 7)))
    c3.metric("Within 15 days", len(expiring_within(medicines, today, 15)))
    c4.metric("Within 30 days", len(expiring_within(medicines, today, 30)))

    if not tracked:
        st.info("No medicines match this view.")
    else:
        st.dataframe(medicines_frame(tracked), use_container_width=True)
        csv_download(tracked, "expiry-report", "⬇️ Export Expiry Report")


# =========================================================
# 🏥 PHARMACY PROFILE
# =========================================================
elif menu == "🏥 Pharmacy Profile":
    st.header("🏥 Pharmacy Profile")
    profile = db.get_pharmacy_profile()

    if (role or "").lower() != "admin":
        for label, key in [("Name", "name"), ("Owner", "owner"), ("Email", "email"), ("Phone", "phone"),
                           ("Address", "address"), ("License No.", "license_number"), ("Established", "established")]:
            st.write(f"**{label}:** {profile[key] or '—'}")
    else:
        with st.form("profile"):
            col1, col2 = st.columns(2)
            p_name = col1.text_input("Pharmacy Name", profile["name"])
            p_owner = col2.text_input("Owner", profile["owner"])
            p_email = col1.text_input("Email", profile["email"])
            p_phone = col2.text_input("Phone", profile["phone"])
            p_license = col1.text_input("License Number", profile["license_number"])
            p_est = col2.text_input("Established", profile["established"])
            p_addr = st.text_area("Address", profile["address"])
            if st.form_submit_button("💾 Save Profile"):
                if not p_name.strip():
                    st.error("Pharmacy name is required.")
                else:
                    db.update_pharmacy_profile(name=p_name, owner=p_owner, email=p_email, phone=p_phone,
                                               license_number=p_license, established=p_est, address=p_addr)
                    st.success("Profile updated.")


# =========================================================
# ⚙️ SETTINGS
# =========================================================
elif menu == "⚙️ Settings":
    st.header("⚙️ Settings")

    st.subheader("🔔 Alerts")
    st.session_state["expiry_alerts"] = st.toggle("Expiry alerts", st.session_state["expiry_alerts"])
    st.session_state["stock_alerts"] = st.toggle("Stock alerts", st.session_state["stock_alerts"])
    st.session_state["expiry_warning_days"] = st.number_input(
        "Expiry warning (days)", min_value=1, max_value=365, value=int(st.session_state["expiry_warning_days"]))
    st.session_state["low_stock_threshold"] = st.number_input(
        "Default low-stock threshold for new medicines", min_value=0,
        value=int(st.session_state["low_stock_threshold"]))

    st.subheader("🎨 Appearance")
    st.session_state["theme_choice"] = st.radio(
        "Theme", ["Light", "Dark"], index=["Light", "Dark"].index(st.session_state.get("theme_choice", "Light")),
        horizontal=True)

    st.subheader("📤 Data")
    csv_download(medicines, "pharmacy-data", "⬇️ Export All Data")
    st.caption("Data export includes all medicines, expiry dates, and inventory information. "
               "Keep your exports secure and backed up regularly.")


# =========================================================
# 🔑 CHANGE PASSWORD PAGE
# =========================================================
elif menu == "🔑 Change Password":
    password_reset(username)
