from click.testing import CliRunner

import db
from migrate_csv_to_db import main


def test_migrate_imports_rows(tmp_path):
    csv_path = tmp_path / "stock.csv"
    csv_path.write_text(
        "Name,Batch No.,Type,Quantity,Expiry Date\n"
        "Cetirizine,CZ-1,Tablet,40,2026-05-01\n"
        "Ibuprofen,IB-2,Tablet,0,2025-01-01\n"
    )
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"

    runner = CliRunner()
    result = runner.invoke(main, [str(csv_path), "--db-url", db_url])
    assert result.exit_code == 0, result.output
    assert "Imported 2 medicines" in result.output
    assert [m.name for m in db.fetch_all_medicines()] == ["Cetirizine", "Ibuprofen"]
    db.engine.dispose()


def test_migrate_missing_file_fails(tmp_path):
    runner = CliRunner()
    result = runner.invoke(main, [str(tmp_path / "nope.csv")])
    assert result.exit_code != 0
