# db.py
import logging
import os
import uuid
from datetime import date, datetime, timedelta

import pandas as pd
from sqlalchemy import create_engine, Column, Integer, String, Date, DateTime, Float, Text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from medicine_utils import MedicineRecord, DEFAULT_MIN_STOCK

logger = logging.getLogger(__name__)

# DB URL (file-based SQLite unless overridden)
DB_URL = os.getenv("PHARMACY_DB_URL", "sqlite:///pharmacy.db")

Base = declarative_base()
engine = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)


def configure(url=DB_URL):
    """(Re)bind the module to a database URL. Tests use ``sqlite://``."""
    global engine
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connect_args)
    SessionLocal.configure(bind=engine)
    return engine


configure(DB_URL)


# ---------- Models ----------
class Medicine(Base):
    __tablename__ = "medicines"
    id = Column(String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    seq = Column(Integer, index=True)  # insertion order
    name = Column(String, nullable=False, index=True)
    batch_number = Column(String, index=True, default="")
    category = Column(String, default="")
    quantity = Column(Integer, nullable=False, default=0)
    price = Column(Float, nullable=True)
    expiry_date = Column(Date, nullable=True)
    min_stock = Column(Integer, nullable=True, default=DEFAULT_MIN_STOCK)
    description = Column(Text, default="")
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now)


class PharmacyProfile(Base):
    __tablename__ = "pharmacy_profile"
    id = Column(Integer, primary_key=True)
    name = Column(String)
    owner = Column(String)
    email = Column(String)
    phone = Column(String)
    address = Column(Text)
    license_number = Column(String)
    established = Column(String)


MEDICINE_FIELDS = [
    "name", "batch_number", "category", "quantity", "price",
    "expiry_date", "min_stock", "description",
]
PROFILE_FIELDS = ["name", "owner", "email", "phone", "address", "license_number", "established"]

DEFAULT_PROFILE = {
    "name": "PharmaCare Pharmacy",
    "owner": "",
    "email": "",
    "phone": "",
    "address": "",
    "license_number": "",
    "established": "",
}


# ---------- Init ----------
def init_db():
    Base.metadata.create_all(bind=engine)


def get_session():
    return SessionLocal()


def _to_record(m):
    return MedicineRecord(
        id=m.id,
        name=m.name,
        batch_number=m.batch_number or "",
        category=m.category or "",
        quantity=m.quantity or 0,
        price=m.price,
        expiry_date=m.expiry_date,
        min_stock=m.min_stock,
        description=m.description or "",
        created_at=m.created_at,
        updated_at=m.updated_at,
    )


def _validated(medicine_id, fields):
    """Run the fields through MedicineRecord so invalid input never reaches the DB."""
    rec = MedicineRecord(id=medicine_id, **{k: fields.get(k) for k in MEDICINE_FIELDS if k in fields})
    return {k: getattr(rec, k) for k in MEDICINE_FIELDS if k in fields}


# ---------- Medicine CRUD ----------
def fetch_all_medicines():
    """Snapshot of every medicine, oldest first."""
    with get_session() as session:
        rows = session.query(Medicine).order_by(Medicine.seq).all()
        return [_to_record(r) for r in rows]


def get_medicine(medicine_id):
    with get_session() as session:
        m = session.get(Medicine, medicine_id)
        return _to_record(m) if m is not None else None


def add_medicine(**fields):
    """Insert a medicine and return its id. Raises ValueError for invalid fields."""
    fields.setdefault("min_stock", DEFAULT_MIN_STOCK)
    new_id = uuid.uuid4().hex
    values = _validated(new_id, fields)
    now = datetime.now()
    with get_session() as session:
        try:
            last = session.query(Medicine.seq).order_by(Medicine.seq.desc()).first()
            m = Medicine(id=new_id, seq=(last[0] + 1) if last and last[0] is not None else 1,
                         created_at=now, updated_at=now, **values)
            session.add(m)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Could not add medicine %r", fields.get("name"))
            raise
    logger.info("Added medicine %s (%s)", values["name"], new_id)
    return new_id


def update_medicine(medicine_id, **fields):
    """Update the given fields. Returns False if the medicine does not exist."""
    with get_session() as session:
        try:
            m = session.get(Medicine, medicine_id)
            if m is None:
                return False
            merged = {k: getattr(m, k) for k in MEDICINE_FIELDS}
            merged.update({k: v for k, v in fields.items() if k in MEDICINE_FIELDS})
            for k, v in _validated(medicine_id, merged).items():
                setattr(m, k, v)
            m.updated_at = datetime.now()
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Could not update medicine %s", medicine_id)
            raise
    logger.info("Updated medicine %s", medicine_id)
    return True


def delete_medicine(medicine_id):
    with get_session() as session:
        try:
            m = session.get(Medicine, medicine_id)
            if m is None:
                return False
            session.delete(m)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Could not delete medicine %s", medicine_id)
            raise
    logger.info("Deleted medicine %s", medicine_id)
    return True


# ---------- Pharmacy profile ----------
def get_pharmacy_profile():
    with get_session() as session:
        p = session.get(PharmacyProfile, 1)
        if p is None:
            p = PharmacyProfile(id=1, **DEFAULT_PROFILE)
            session.add(p)
            session.commit()
        return {k: getattr(p, k) or "" for k in PROFILE_FIELDS}


def update_pharmacy_profile(**fields):
    get_pharmacy_profile()
    with get_session() as session:
        try:
            p = session.get(PharmacyProfile, 1)
            for k, v in fields.items():
                if k in PROFILE_FIELDS:
                    setattr(p, k, (v or "").strip() if isinstance(v, str) else v)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Could not update pharmacy profile")
            raise
    return get_pharmacy_profile()


# ---------- Sample data ----------
def seed_sample_medicines(today=None):
    """Load a few demo medicines when the store is empty. Returns rows added."""
    if fetch_all_medicines():
        return 0
    today = today or date.today()
    samples = [
        ("Paracetamol 500mg", "PCM-2401", "Tablet", 120, 2.5, 240),
        ("Amoxicillin 250mg", "AMX-1187", "Capsule", 8, 6.0, 20),
        ("Cough Syrup", "CSY-0932", "Syrup", 0, 4.75, 45),
        ("Insulin Glargine", "INS-5521", "Injection", 15, 32.0, 5),
        ("Hydrocortisone Cream", "HCC-3310", "Cream", 40, 3.2, -10),
        ("Salbutamol Inhaler", "SAL-7702", "Inhaler", 25, None, 400),
    ]
    for name, batch, kind, qty, price, days in samples:
        add_medicine(name=name, batch_number=batch, category=kind, quantity=qty,
                     price=price, expiry_date=today + timedelta(days=days))
    return len(samples)


# Utility: import a CSV of medicines (one-off migration helper)
CSV_COLUMNS = {
    "Name": "name",
    "Batch No.": "batch_number",
    "Batch": "batch_number",
    "Type": "category",
    "Quantity": "quantity",
    "Price": "price",
    "Expiry Date": "expiry_date",
    "Min Stock": "min_stock",
    "Description": "description",
}


def import_csv_to_db(medicine_csv):
    """Import medicines from a CSV file. Invalid rows are skipped. Returns rows imported."""
    df = pd.read_csv(medicine_csv, dtype={"Batch No.": str, "Batch": str})
    df = df.rename(columns={c: CSV_COLUMNS[c] for c in df.columns if c in CSV_COLUMNS})
    imported = 0
    for idx, r in df.iterrows():
        try:
            expiry = None
            if pd.notna(r.get("expiry_date")):
                expiry = pd.to_datetime(r["expiry_date"]).date()
            quantity = r.get("quantity")
            price = r.get("price")
            min_stock = r.get("min_stock")
            add_medicine(
                name=str(r["name"]) if pd.notna(r.get("name")) else "",
                batch_number=str(r["batch_number"]) if pd.notna(r.get("batch_number")) else "",
                category=str(r["category"]) if pd.notna(r.get("category")) else "",
                quantity=quantity if quantity is not None and pd.notna(quantity) else 0,
                price=float(price) if price is not None and pd.notna(price) else None,
                expiry_date=expiry,
                min_stock=min_stock if min_stock is not None and pd.notna(min_stock) else DEFAULT_MIN_STOCK,
                description=str(r["description"]) if pd.notna(r.get("description")) else "",
            )
            imported += 1
        except (ValueError, TypeError) as e:
            logger.warning("Skipping CSV row %s: %s", idx, e)
    logger.info("Imported %d medicines from %s", imported, medicine_csv)
    return imported
