"""
Example 02: Transactions and Events

This example shows that a failed save leaves no partial writes behind, and
how lifecycle listeners can veto a save.
"""

import tempfile
from pathlib import Path

from row_mapper import (
    ConnectionConfig,
    MapperEvent,
    Schema,
    Session,
    SimpleMapper,
    SqlRecordStore,
    TransactionFailure,
    model,
    one2many_simple,
)


def main():
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    schema = Schema(
        model("invoice").columns("number").has_many("lines", "line").build(),
        model("line").columns("invoice_id", "amount").build(),
    )
    config = ConnectionConfig(driver="sqlite", database=db_path)
    store = SqlRecordStore.from_config(config, schema)
    store.execute("CREATE TABLE invoice (id INTEGER PRIMARY KEY, number TEXT NOT NULL UNIQUE)")
    store.execute(
        "CREATE TABLE line (id INTEGER PRIMARY KEY, invoice_id INTEGER, "
        "amount INTEGER NOT NULL CHECK (amount > 0))"
    )
    session = Session(store)

    def make_invoice():
        return SimpleMapper(
            session,
            "invoice",
            ["id", "number", "lines"],
            links={"lines": one2many_simple("lines", "line", ["amount"])},
        )

    print("=== Transactions ===\n")

    # Example 1: Successful save
    print("1. Successful save:")
    invoice = make_invoice()
    invoice.set_many({"number": "INV-1", "lines": [{"amount": 10}, {"amount": 5}]})
    invoice.save()
    print(f"   Lines stored: {store.fetch_one('SELECT COUNT(*) AS n FROM line')['n']}\n")

    # Example 2: A failing line rolls back the invoice too
    print("2. Save with an invalid line (automatic rollback):")
    invoice = make_invoice()
    invoice.set_many({"number": "INV-2", "lines": [{"amount": 7}, {"amount": -1}]})
    try:
        invoice.save()
    except TransactionFailure as e:
        print(f"   Error occurred: {e} ({type(e.__cause__).__name__})")
    count = store.fetch_one("SELECT COUNT(*) AS n FROM invoice")["n"]
    print(f"   Invoices after rollback: {count} (INV-2 was not added)\n")

    # Example 3: Vetoing a save from a listener
    print("3. Listener veto:")

    def refuse_drafts(mapper):
        return mapper.model_name() != "invoice" or not mapper["number"].startswith("DRAFT")

    session.events.listen(MapperEvent.SAVING, refuse_drafts)
    invoice = make_invoice()
    invoice["number"] = "DRAFT-1"
    try:
        invoice.save()
    except TransactionFailure as e:
        print(f"   Save refused: {e}\n")

    store.close()
    Path(db_path).unlink()


if __name__ == "__main__":
    main()
