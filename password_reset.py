# password_reset.py
import logging

import streamlit as st
from login import MIN_PASSWORD_LENGTH, end_session
from user_database import get_user, update_password, verify_password

logger = logging.getLogger(__name__)


def validate_password_change(current, new, confirm):
    """Return the message to show for an unacceptable change, or None."""
    if not current or not new or not confirm:
        return "Please fill all fields."
    if new != confirm:
        return "New passwords do not match."
    if len(new) < MIN_PASSWORD_LENGTH:
        return f"New password must be at least {MIN_PASSWORD_LENGTH} characters."
    if new == current:
        return "New password must be different from the current one."
    return None


def change_password(username, current, new, confirm):
    """
    Check the form input against the stored account and store the new hash.

    Returns None on success, otherwise the error message for the form.
    """
    problem = validate_password_change(current, new, confirm)
    if problem:
        return problem

    row = get_user(username)
    if row is None:
        return "User not found."
    if not verify_password(current, row[2]):
        logger.warning("Password change for %s rejected: wrong current password", username)
        return "Current password is incorrect."
    if not update_password(username, new):
        return "Could not update password. Try again."
    return None


def password_reset(username: str):
    """Change-password page; offers to sign out once the new password is stored."""
    st.subheader("🔑 Change Password")

    if not username:
        st.error("No user logged in.")
        return

    st.write(f"User: **{username}**")

    if st.session_state.get("password_changed"):
        st.success("✅ Password updated. Sign in again to use the new password everywhere.")
        col1, col2 = st.columns(2)
        if col1.button("Sign out now"):
            st.session_state.pop("password_changed", None)
            end_session()
            st.rerun()
        if col2.button("Stay signed in"):
            st.session_state.pop("password_changed", None)
            st.rerun()
        return

    with st.form("change_password", clear_on_submit=True):
        curr = st.text_input("Current password", type="password")
        new = st.text_input("New password", type="password",
                            help=f"At least {MIN_PASSWORD_LENGTH} characters")
        confirm = st.text_input("Confirm new password", type="password")
        submitted = st.form_submit_button("Update Password")

    if submitted:
        problem = change_password(username, curr, new, confirm)
        if problem:
            st.error(problem)
        else:
            st.session_state["password_changed"] = True
            st.rerun()
