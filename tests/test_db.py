from datetime import date

import pytest
from medicine_utils import DEFAULT_MIN_STOCK, ExpiryStatus, MedicineRecord, expiry_status


def test_add_and_fetch_snapshot(store):
    first = store.add_medicine(name="Paracetamol", batch_number="P-1", category="Tablet",
                               quantity=20, price=1.5, expiry_date=date(2026, 1, 1))
    second = store.add_medicine(name="Cough Syrup", quantity=0)

    meds = store.fetch_all_medicines()
    assert [m.id for m in meds] == [first, second]
    assert all(isinstance(m, MedicineRecord) for m in meds)
    para = meds[0]
    assert para.expiry_date == date(2026, 1, 1)
    assert para.price == 1.5
    assert para.min_stock == DEFAULT_MIN_STOCK
    assert para.created_at is not None and para.updated_at is not None


def test_missing_price_stays_unknown(store):
    med_id = store.add_medicine(name="Gauze", quantity=3)
    assert store.get_medicine(med_id).price is None


def test_invalid_medicine_is_rejected(store):
    with pytest.raises(ValueError):
        store.add_medicine(name="", quantity=1)
    with pytest.raises(ValueError):
        store.add_medicine(name="Bad", quantity=-4)
    assert store.fetch_all_medicines() == []


def test_update_medicine(store):
    med_id = store.add_medicine(name="Insulin", quantity=5)
    before = store.get_medicine(med_id)

    assert store.update_medicine(med_id, quantity=25, price=30.0)
    after = store.get_medicine(med_id)
    assert after.quantity == 25
    assert after.price == 30.0
    assert after.name == "Insulin"
    assert after.updated_at >= before.updated_at
    assert after.created_at == before.created_at


def test_update_rejects_negative_quantity(store):
    med_id = store.add_medicine(name="Insulin", quantity=5)
    with pytest.raises(ValueError):
        store.update_medicine(med_id, quantity=-1)
    assert store.get_medicine(med_id).quantity == 5


def test_update_rejects_fractional_quantity(store):
    med_id = store.add_medicine(name="Insulin", quantity=5)
    with pytest.raises(ValueError):
        store.update_medicine(med_id, quantity=2.9)
    assert store.get_medicine(med_id).quantity == 5


def test_update_keeps_missing_expiry_date(store, today):
    med_id = store.add_medicine(name="Gauze", quantity=3)
    assert store.update_medicine(med_id, quantity=8, expiry_date=None)
    after = store.get_medicine(med_id)
    assert after.quantity == 8
    assert after.expiry_date is None
    assert expiry_status(after.expiry_date, today).status is ExpiryStatus.SAFE


def test_update_can_clear_expiry_date(store):
    med_id = store.add_medicine(name="Gauze", quantity=3, expiry_date=date(2026, 1, 1))
    assert store.update_medicine(med_id, expiry_date=None)
    assert store.get_medicine(med_id).expiry_date is None


def test_update_and_delete_unknown_id(store):
    assert store.update_medicine("missing", quantity=1) is False
    assert store.delete_medicine("missing") is False


def test_delete_medicine(store):
    keep = store.add_medicine(name="Keep", quantity=1)
    drop = store.add_medicine(name="Drop", quantity=1)
    assert store.delete_medicine(drop)
    assert [m.id for m in store.fetch_all_medicines()] == [keep]
    assert store.get_medicine(drop) is None


def test_pharmacy_profile_defaults_and_update(store):
    profile = store.get_pharmacy_profile()
    assert profile["name"] == store.DEFAULT_PROFILE["name"]

    updated = store.update_pharmacy_profile(name="  Corner Chemist ", phone="555-0100", unknown="ignored")
    assert updated["name"] == "Corner Chemist"
    assert updated["phone"] == "555-0100"
    assert "unknown" not in updated
    assert store.get_pharmacy_profile() == updated


def test_seed_sample_medicines_only_when_empty(store, today):
    added = store.seed_sample_medicines(today)
    assert added > 0
    assert len(store.fetch_all_medicines()) == added
    assert store.seed_sample_medicines(today) == 0


def test_import_csv_skips_invalid_rows(store, tmp_path):
    path = tmp_path / "medicines.csv"
    path.write_text(
        "Name,Batch No.,Type,Quantity,Price,Expiry Date,Min Stock\n"
        "Aspirin,AS-1,Tablet,30,2.5,2026-02-01,5\n"
        ",NO-NAME,Tablet,3,,2026-02-01,\n"
        "Saline,SL-9,Injection,12,,2025-12-31,\n"
        "Broken,BR-1,Tablet,-2,,2026-01-01,\n"
        "Half,HF-1,Tablet,2.5,,2026-01-01,\n"
    )
    assert store.import_csv_to_db(path) == 2

    meds = {m.name: m for m in store.fetch_all_medicines()}
    assert set(meds) == {"Aspirin", "Saline"}
    assert meds["Aspirin"].min_stock == 5
    assert meds["Aspirin"].expiry_date == date(2026, 2, 1)
    assert meds["Saline"].price is None
    assert meds["Saline"].min_stock == DEFAULT_MIN_STOCK
