# medicine_utils.py
"""
Medicine classification and aggregation helpers.

Everything in here is a pure function of a snapshot of medicine records and an
explicit ``now`` date. Nothing reads the clock, touches the database or keeps
state between calls, so the same inputs always give the same outputs.
"""

import csv
import io
import numbers
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, Mapping, Optional, Union

EXPIRY_WINDOW_DAYS = 30
URGENT_EXPIRY_DAYS = 7
DEFAULT_MIN_STOCK = 10
DATE_FORMAT = "%b %d, %Y"

MEDICINE_TYPES = [
    "Tablet",
    "Capsule",
    "Syrup",
    "Injection",
    "Ointment",
    "Drop",
    "Inhaler",
    "Cream",
    "Gel",
    "Powder",
    "Other",
]

CSV_HEADERS = ["Name", "Batch No.", "Type", "Quantity", "Expiry Date", "Status", "Days Until Expiry"]


# ---------------------------
# Records
# ---------------------------
@dataclass(frozen=True)
class MedicineRecord:
    """
    One medicine line in the pharmacy inventory.

    Attributes:
        id: Store-assigned identifier.
        name: Display name, never empty.
        batch_number: Manufacturer batch, searched together with the name.
        category: Medicine type (Tablet, Syrup, ...). Descriptive only.
        quantity: Units on hand, >= 0.
        price: Unit price, or None when unknown.
        expiry_date: Calendar expiry date, or None when not recorded.
        min_stock: Low-stock threshold, or None to use DEFAULT_MIN_STOCK.
    """

    id: str
    name: str
    batch_number: str = ""
    category: str = ""
    quantity: int = 0
    price: Optional[float] = None
    expiry_date: Optional[date] = None
    min_stock: Optional[int] = None
    description: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError(f"Medicine name must be non-empty, got {self.name!r}")
        quantity = _as_count(self.quantity)
        if quantity is None:
            raise ValueError(f"Quantity must be a whole number >= 0, got {self.quantity!r}")
        min_stock = None if self.min_stock is None else _as_count(self.min_stock)
        if self.min_stock is not None and min_stock is None:
            raise ValueError(f"Minimum stock must be a whole number >= 0, got {self.min_stock!r}")
        if self.price is not None and float(self.price) < 0:
            raise ValueError(f"Price must be >= 0, got {self.price!r}")
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "quantity", quantity)
        object.__setattr__(self, "min_stock", min_stock)
        object.__setattr__(self, "expiry_date", _as_date(self.expiry_date))

    @property
    def effective_min_stock(self) -> int:
        return DEFAULT_MIN_STOCK if self.min_stock is None else int(self.min_stock)


class ExpiryStatus(Enum):
    EXPIRED = "expired"
    EXPIRING_SOON = "expiring_soon"
    SAFE = "safe"

    @property
    def label(self) -> str:
        return _EXPIRY_LABELS[self]


class StockStatus(Enum):
    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"
    IN_STOCK = "in_stock"

    @property
    def label(self) -> str:
        return _STOCK_LABELS[self]


_EXPIRY_LABELS = {
    ExpiryStatus.EXPIRED: "Expired",
    ExpiryStatus.EXPIRING_SOON: "Expiring Soon",
    ExpiryStatus.SAFE: "Safe",
}

_STOCK_LABELS = {
    StockStatus.OUT_OF_STOCK: "Out of Stock",
    StockStatus.LOW_STOCK: "Low Stock",
    StockStatus.IN_STOCK: "In Stock",
}


@dataclass(frozen=True)
class StatusInfo:
    """Classification result: the status, its display label and a colour hint."""
    status: Union[ExpiryStatus, StockStatus]
    label: str
    color: str


class AlertKind(Enum):
    EXPIRED = "expired"
    EXPIRING_SOON = "expiring_soon"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


class Priority(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


_ALERT_ID_PREFIX = {
    AlertKind.EXPIRED: "expired",
    AlertKind.EXPIRING_SOON: "expiring",
    AlertKind.LOW_STOCK: "low-stock",
    AlertKind.OUT_OF_STOCK: "out-stock",
}


EXPIRY_ALERT_KINDS = frozenset({AlertKind.EXPIRED, AlertKind.EXPIRING_SOON})
STOCK_ALERT_KINDS = frozenset({AlertKind.LOW_STOCK, AlertKind.OUT_OF_STOCK})


@dataclass(frozen=True)
class Alert:
    kind: AlertKind
    priority: Priority
    medicine_id: str
    message: str
    medicine: Optional[MedicineRecord] = field(default=None, compare=False, repr=False)

    @property
    def alert_id(self) -> str:
        return f"{_ALERT_ID_PREFIX[self.kind]}-{self.medicine_id}"


@dataclass(frozen=True)
class Stats:
    total: int = 0
    out_of_stock: int = 0
    expiring_soon: int = 0
    expired: int = 0
    low_stock: int = 0
    in_stock: int = 0


@dataclass
class FilterCriteria:
    """Optional filters; an empty value means no constraint."""
    search: str = ""
    expiry_status: Optional[Union[ExpiryStatus, str]] = None
    stock_status: Optional[Union[StockStatus, str]] = None
    category: Optional[str] = None


# ---------------------------
# Date helpers
# ---------------------------
def _as_date(value):
    if isinstance(value, datetime):
        return value.date()
    return value


def _as_count(value) -> Optional[int]:
    """Whole, non-negative count as an int; None for anything else (2.9, -0.5, "abc")."""
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Integral):
        return int(value) if value >= 0 else None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer() or number < 0:
        return None
    return int(number)


def format_date(value, fmt: str = DATE_FORMAT) -> str:
    """Render a date for display; blank when absent."""
    if value is None:
        return ""
    return _as_date(value).strftime(fmt)


def export_filename(prefix: str, now: date) -> str:
    return f"{prefix}-{_as_date(now).isoformat()}.csv"


# ---------------------------
# Expiry classification
# ---------------------------
def days_until_expiry(expiry_date, now) -> Optional[int]:
    """Signed whole days from ``now`` to ``expiry_date``; negative once past."""
    if expiry_date is None:
        return None
    return (_as_date(expiry_date) - _as_date(now)).days


def is_expired(expiry_date, now) -> bool:
    """
    True once the expiry date has been reached.

    A medicine expiring today is already expired, so ``days_until_expiry == 0``
    classifies as expired everywhere (stats, filters, tracker and alerts).
    """
    if expiry_date is None:
        return False
    return _as_date(expiry_date) <= _as_date(now)


def is_expiring_soon(expiry_date, now, window_days: int = EXPIRY_WINDOW_DAYS) -> bool:
    """True when ``now < expiry_date < now + window_days``."""
    if expiry_date is None:
        return False
    expiry = _as_date(expiry_date)
    today = _as_date(now)
    return today < expiry < today + timedelta(days=window_days)


def expiry_status(expiry_date, now, window_days: int = EXPIRY_WINDOW_DAYS) -> StatusInfo:
    if is_expired(expiry_date, now):
        return StatusInfo(ExpiryStatus.EXPIRED, ExpiryStatus.EXPIRED.label, "danger")
    if is_expiring_soon(expiry_date, now, window_days):
        return StatusInfo(ExpiryStatus.EXPIRING_SOON, ExpiryStatus.EXPIRING_SOON.label, "warning")
    return StatusInfo(ExpiryStatus.SAFE, ExpiryStatus.SAFE.label, "success")


# ---------------------------
# Stock classification
# ---------------------------
def stock_status(quantity: int, min_stock: Optional[int] = DEFAULT_MIN_STOCK) -> StatusInfo:
    """
    Out of stock at zero, low stock up to and including ``min_stock``, in stock above it.
    Negative quantities are reported as out of stock.
    """
    threshold = DEFAULT_MIN_STOCK if min_stock is None else min_stock
    if quantity <= 0:
        return StatusInfo(StockStatus.OUT_OF_STOCK, StockStatus.OUT_OF_STOCK.label, "danger")
    if quantity <= threshold:
        return StatusInfo(StockStatus.LOW_STOCK, StockStatus.LOW_STOCK.label, "warning")
    return StatusInfo(StockStatus.IN_STOCK, StockStatus.IN_STOCK.label, "success")


def _is_low_stock(record: MedicineRecord) -> bool:
    return 0 < record.quantity <= record.effective_min_stock


# ---------------------------
# Statistics
# ---------------------------
def calculate_stats(records: Iterable[MedicineRecord], now, window_days: int = EXPIRY_WINDOW_DAYS) -> Stats:
    """
    Roll the snapshot up into dashboard counts.

    ``in_stock`` is ``total - out_of_stock - expired`` rather than an
    independent count, so a low-stock item that has not expired is counted in
    both ``low_stock`` and ``in_stock``.
    """
    records = list(records)
    total = len(records)
    out_of_stock = sum(1 for r in records if r.quantity == 0)
    expired = sum(1 for r in records if is_expired(r.expiry_date, now))
    expiring_soon = sum(
        1 for r in records
        if is_expiring_soon(r.expiry_date, now, window_days) and not is_expired(r.expiry_date, now)
    )
    low_stock = sum(1 for r in records if _is_low_stock(r))

    return Stats(
        total=total,
        out_of_stock=out_of_stock,
        expiring_soon=expiring_soon,
        expired=expired,
        low_stock=low_stock,
        in_stock=total - out_of_stock - expired,
    )


# ---------------------------
# Filtering
# ---------------------------
_NO_MATCH = object()


def _status_key(text) -> str:
    return "".join(ch for ch in str(text).lower() if ch not in " _-")


def _coerce_status(value, enum_cls):
    """
    Resolve a status criterion given as a member, its value ("expiring_soon"),
    its label ("Expiring Soon") or a camel-case name ("ExpiringSoon").
    Anything unrecognised resolves to _NO_MATCH, which no record satisfies.
    """
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value
    key = _status_key(value)
    for member in enum_cls:
        if key in (_status_key(member.value), _status_key(member.label)):
            return member
    return _NO_MATCH


def _criteria_from(criteria) -> FilterCriteria:
    if criteria is None:
        return FilterCriteria()
    if isinstance(criteria, FilterCriteria):
        return criteria
    if isinstance(criteria, Mapping):
        return FilterCriteria(
            search=criteria.get("search") or "",
            expiry_status=criteria.get("expiry_status"),
            stock_status=criteria.get("stock_status"),
            category=criteria.get("category") or criteria.get("type"),
        )
    raise TypeError(f"Unsupported filter criteria: {type(criteria).__name__}")


def filter_medicines(records: Iterable[MedicineRecord], criteria=None, now=None,
                     window_days: int = EXPIRY_WINDOW_DAYS) -> list:
    """
    Keep the records matching every provided criterion, in their original order.

    ``now`` is only needed when filtering on expiry status.
    """
    crit = _criteria_from(criteria)
    term = (crit.search or "").strip().lower()
    wanted_expiry = _coerce_status(crit.expiry_status, ExpiryStatus)
    wanted_stock = _coerce_status(crit.stock_status, StockStatus)
    if wanted_expiry is _NO_MATCH or wanted_stock is _NO_MATCH:
        return []
    if wanted_expiry is not None and now is None:
        raise ValueError("now is required to filter on expiry status")

    out = []
    for med in records:
        if term:
            in_name = term in med.name.lower()
            in_batch = term in (med.batch_number or "").lower()
            if not in_name and not in_batch:
                continue
        if wanted_expiry is not None:
            if expiry_status(med.expiry_date, now, window_days).status is not wanted_expiry:
                continue
        if wanted_stock is not None:
            if stock_status(med.quantity, med.effective_min_stock).status is not wanted_stock:
                continue
        if crit.category and med.category != crit.category:
            continue
        out.append(med)
    return out


def expiring_within(records: Iterable[MedicineRecord], now, days: int) -> list:
    """Records not yet expired that expire within ``days`` days (inclusive)."""
    out = []
    for med in records:
        left = days_until_expiry(med.expiry_date, now)
        if left is not None and 0 < left <= days:
            out.append(med)
    return out


def expiring_medicines(records: Iterable[MedicineRecord], now, limit: int = 5,
                       window_days: int = EXPIRY_WINDOW_DAYS) -> list:
    """Expired or expiring-soon records, soonest first."""
    hits = [
        med for med in records
        if is_expired(med.expiry_date, now) or is_expiring_soon(med.expiry_date, now, window_days)
    ]
    return sort_medicines(hits, "expiry_date", "asc")[:limit]


def recent_medicines(records: Iterable[MedicineRecord], limit: int = 5) -> list:
    return sort_medicines(records, "created_at", "desc")[:limit]


# ---------------------------
# Sorting
# ---------------------------
_SORT_ALIASES = {
    "expiryDate": "expiry_date",
    "createdAt": "created_at",
}

_SORT_KEYS = {
    "name": lambda m: m.name.lower(),
    "expiry_date": lambda m: m.expiry_date,
    "quantity": lambda m: m.quantity,
    "created_at": lambda m: m.created_at,
}


def sort_medicines(records: Iterable[MedicineRecord], key: str, order: str = "asc") -> list:
    """
    Return a new list sorted by ``key`` (name, expiry_date, quantity, created_at).

    Ties keep their input order. Unknown keys return the input order unchanged.
    Records with no value for the key go after the others when ascending.
    """
    records = list(records)
    getter = _SORT_KEYS.get(_SORT_ALIASES.get(key, key))
    if getter is None:
        return records

    descending = str(order).lower() == "desc"
    present = [m for m in records if getter(m) is not None]
    missing = [m for m in records if getter(m) is None]
    present.sort(key=getter, reverse=descending)
    if descending:
        return missing + present
    return present + missing


# ---------------------------
# CSV export
# ---------------------------
def generate_csv(records: Iterable[MedicineRecord], now, window_days: int = EXPIRY_WINDOW_DAYS) -> str:
    """
    Serialise records to CSV text, one row per record in input order.

    Values containing a comma, quote or newline are quoted; the rest are
    written as-is. Rows are separated by ``\\n`` with no trailing newline.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for med in records:
        days = days_until_expiry(med.expiry_date, now)
        writer.writerow([
            med.name,
            med.batch_number or "",
            med.category or "",
            med.quantity,
            format_date(med.expiry_date),
            expiry_status(med.expiry_date, now, window_days).label,
            "N/A" if days is None else days,
        ])
    return buf.getvalue().rstrip("\n")


# ---------------------------
# Alerts
# ---------------------------
def generate_alerts(records: Iterable[MedicineRecord], now,
                    window_days: int = EXPIRY_WINDOW_DAYS,
                    urgent_days: int = URGENT_EXPIRY_DAYS) -> list:
    """
    Build expiry and stock alerts for every record, highest priority first.

    A record can raise more than one alert. Alerts of equal priority keep the
    order they were generated in.
    """
    alerts = []
    for med in records:
        if is_expired(med.expiry_date, now):
            alerts.append(Alert(AlertKind.EXPIRED, Priority.HIGH, med.id,
                                f"{med.name} has expired", med))
        elif is_expiring_soon(med.expiry_date, now, window_days):
            left = days_until_expiry(med.expiry_date, now)
            priority = Priority.HIGH if left <= urgent_days else Priority.MEDIUM
            alerts.append(Alert(AlertKind.EXPIRING_SOON, priority, med.id,
                                f"{med.name} expires in {left} days", med))

        if _is_low_stock(med):
            alerts.append(Alert(AlertKind.LOW_STOCK, Priority.MEDIUM, med.id,
                                f"{med.name} is running low ({med.quantity} left)", med))

        if med.quantity == 0:
            alerts.append(Alert(AlertKind.OUT_OF_STOCK, Priority.HIGH, med.id,
                                f"{med.name} is out of stock", med))

    return sorted(alerts, key=lambda a: a.priority.rank, reverse=True)


def filter_alerts(alerts: Iterable[Alert], expiry: bool = True, stock: bool = True) -> list:
    """Drop expiry and/or stock alerts according to the user's alert settings, keeping order."""
    kinds = set()
    if expiry:
        kinds |= EXPIRY_ALERT_KINDS
    if stock:
        kinds |= STOCK_ALERT_KINDS
    return [a for a in alerts if a.kind in kinds]
