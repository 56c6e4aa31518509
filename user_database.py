# user_database.py
import logging
import os
import sqlite3
from passlib.context import CryptContext

logger = logging.getLogger(__name__)

DB_PATH = os.getenv("USERS_DB_PATH", "users.db")
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ROLES = ("admin", "pharmacist")


def _connect():
    return sqlite3.connect(DB_PATH)


def init_user_db():
    """
    Create the users DB and insert the default admin user if it doesn't exist.
    Default credentials (change after first login):
      - admin / admin123
    """
    conn = _connect()
    cur = conn.cursor()

    cur.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT UNIQUE NOT NULL,
            name TEXT,
            password_hash TEXT NOT NULL,
            role TEXT NOT NULL
        )
    """)
    # only inserted if the username is free
    cur.execute(
        "INSERT OR IGNORE INTO users (username, name, password_hash, role) VALUES (?, ?, ?, ?)",
        ("admin", "Administrator", pwd_context.hash("admin123"), "admin"),
    )

    conn.commit()
    conn.close()


def create_user(username, password, name="", role="pharmacist"):
    """
    Register a new account. Returns False when the username is already taken.
    Raises ValueError for an empty username/password or an unknown role.
    """
    username = (username or "").strip().lower()
    if not username or not password:
        raise ValueError("Username and password are required.")
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role!r}")

    conn = _connect()
    try:
        conn.execute(
            "INSERT INTO users (username, name, password_hash, role) VALUES (?, ?, ?, ?)",
            (username, name, pwd_context.hash(password), role),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        logger.info("Sign-up rejected, username %s already exists", username)
        return False
    finally:
        conn.close()
    logger.info("Created user %s (%s)", username, role)
    return True


def get_user(username):
    """
    Return user row as tuple: (username, name, password_hash, role) or None if not found.
    """
    conn = _connect()
    cur = conn.cursor()
    cur.execute(
        "SELECT username, name, password_hash, role FROM users WHERE username = ?",
        ((username or "").strip().lower(),),
    )
    row = cur.fetchone()
    conn.close()
    return row  # None or tuple


def update_password(username, new_plain_password):
    """
    Hashes the new password and updates the user's password_hash.
    Returns True on success, False if user not found.
    """
    new_hash = pwd_context.hash(new_plain_password)
    conn = _connect()
    cur = conn.cursor()
    cur.execute(
        "UPDATE users SET password_hash = ? WHERE username = ?",
        (new_hash, (username or "").strip().lower()),
    )
    conn.commit()
    changed = cur.rowcount
    conn.close()
    if changed:
        logger.info("Password changed for %s", username)
    return changed > 0


def verify_password(plain_password, stored_hash):
    """
    Verify plain password against stored hash. Returns True/False.
    """
    try:
        return pwd_context.verify(plain_password, stored_hash)
    except (ValueError, TypeError):
        return False
