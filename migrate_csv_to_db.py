# migrate_csv_to_db.py
import logging

import click

from db import configure, init_db, import_csv_to_db, DB_URL


@click.command()
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--db-url",
    default=DB_URL,
    show_default=True,
    help="database URL to import into",
)
def main(csv_path: str, db_url: str):
    """
    Import medicines from CSV_PATH (Name, Batch No., Type, Quantity, Price,
    Expiry Date, Min Stock columns) into the pharmacy database.
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    configure(db_url)
    init_db()
    count = import_csv_to_db(csv_path)
    click.echo(f"Migration finished. Imported {count} medicines into {db_url}")


if __name__ == "__main__":
    main()
