# login.py
import streamlit as st
from user_database import get_user, verify_password, create_user
from datetime import datetime

MIN_PASSWORD_LENGTH = 6

LOGIN_CSS = """
<style>
    .login-card {
        max-width: 480px;
        margin: 70px auto;
        padding: 36px 42px;
        background: rgba(255,255,255,0.12);
        border-radius: 18px;
        backdrop-filter: blur(8px);
        box-shadow: 0 10px 30px rgba(0,0,0,0.25);
    }
    .login-title { text-align:center; font-size:26px; font-weight:800; color:#7494ec; margin-bottom:8px;}
    .login-sub { text-align:center; color:#6b7280; margin-bottom:18px; }
</style>
"""


def login_router():
    """Renders the login or sign-up form. When login succeeds, sets session_state and reruns."""
    if "auth_mode" not in st.session_state:
        st.session_state["auth_mode"] = "login"

    st.markdown(LOGIN_CSS, unsafe_allow_html=True)
    st.markdown("<div class='login-card'>", unsafe_allow_html=True)
    st.markdown("<div class='login-title'>🧪 PharmaCare</div>", unsafe_allow_html=True)
    st.markdown("<div class='login-sub'>Advanced Pharmacy Management System</div>", unsafe_allow_html=True)

    if st.session_state["auth_mode"] == "signup":
        signup_page()
    else:
        login_page()

    st.markdown("</div>", unsafe_allow_html=True)


def _start_session(username, role):
    st.session_state["authenticated"] = True
    st.session_state["username"] = username
    st.session_state["role"] = role
    # set last_active for timeout
    st.session_state["last_active"] = datetime.now().isoformat()


def end_session():
    for key in ("username", "role", "last_active"):
        st.session_state[key] = None
    st.session_state["authenticated"] = False


def login_page():
    username = st.text_input("Username or email", placeholder="Enter your username", key="login_username")
    password = st.text_input("Password", type="password", placeholder="Enter your password", key="login_password")

    col1, col2 = st.columns([1, 1])
    login_btn = col1.button("Sign in", key="login_btn")
    if col2.button("Create an account", key="to_signup_btn"):
        st.session_state["auth_mode"] = "signup"
        st.rerun()

    if login_btn:
        if not username or not password:
            st.error("Enter both username and password.")
            return

        row = get_user(username)
        if row is None:
            st.error("User not found.")
            return

        stored_hash = row[2]
        role = row[3]

        if verify_password(password, stored_hash):
            _start_session(row[0], role)
            st.success("Login successful — redirecting...")
            st.rerun()
        else:
            st.error("Incorrect password.")


def signup_page():
    name = st.text_input("Full name", key="signup_name")
    username = st.text_input("Email address", key="signup_username")
    password = st.text_input("Password", type="password", key="signup_password")
    confirm = st.text_input("Confirm password", type="password", key="signup_confirm")

    col1, col2 = st.columns([1, 1])
    signup_btn = col1.button("Sign up", key="signup_btn")
    if col2.button("Already have an account?", key="to_login_btn"):
        st.session_state["auth_mode"] = "login"
        st.rerun()

    if signup_btn:
        if not username or not password:
            st.error("Email and password are required.")
            return
        if len(password) < MIN_PASSWORD_LENGTH:
            st.error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
            return
        if password != confirm:
            st.error("Passwords do not match.")
            return
        if not create_user(username, password, name=name.strip()):
            st.error("An account with that email already exists.")
            return
        _start_session(username.strip().lower(), "pharmacist")
        st.success("Account created — redirecting...")
        st.rerun()
