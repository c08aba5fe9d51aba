# tests/test_verifier.py

import pytest

from renormalizer.database.migrator import RowMigrator
from renormalizer.database.verifier import IntegrityVerifier
from renormalizer.types import IntegrityMismatchError


@pytest.fixture
def migrated(managers):
    migrator = RowMigrator(*managers)
    for name in ("docs", "events", "plain"):
        migrator.migrate(name)
    return managers


def delete_rows(destination, sql):
    with destination.get_transaction() as conn:
        conn.exec_driver_sql(sql)


class TestIntegrityVerifier:

    def test_complete_copy_passes(self, migrated):
        verifier = IntegrityVerifier(*migrated)

        docs = verifier.verify("docs")
        assert docs.key_columns == ["ID"]
        assert docs.rows_checked == 8
        assert docs.rows_missing == 0
        assert not docs.skipped

    def test_falls_back_to_primary_key(self, migrated):
        events = IntegrityVerifier(*migrated).verify("events")
        assert events.key_columns == ["id"]
        assert events.rows_checked == 3

    def test_table_without_key_is_skipped(self, migrated):
        plain = IntegrityVerifier(*migrated).verify("plain")
        assert plain.skipped
        assert plain.rows_checked == 0

    def test_missing_row_fails_fast(self, migrated):
        source, destination = migrated
        delete_rows(destination, "DELETE FROM docs WHERE ID IN ('double', 'flag')")

        with pytest.raises(IntegrityMismatchError) as excinfo:
            IntegrityVerifier(source, destination).verify("docs")

        assert excinfo.value.table == "docs"
        assert excinfo.value.row_key == "double"

    def test_keep_going_reports_every_missing_row(self, migrated):
        source, destination = migrated
        delete_rows(destination, "DELETE FROM docs WHERE ID IN ('double', 'flag')")

        docs = IntegrityVerifier(source, destination, keep_going=True).verify("docs")

        assert docs.rows_checked == 8
        assert docs.rows_missing == 2
        assert [issue.row_key for issue in docs.issues] == ["double", "flag"]
        assert all(issue.stage == "integrity" for issue in docs.issues)

    def test_null_keys_match(self, make_database, open_pair):
        path = make_database("nullkey.sqlite", {
            "docs": ("CREATE TABLE docs (ID TEXT, json TEXT)", [
                {"ID": None, "json": '"1"'},
                {"ID": "a", "json": '"2"'},
            ]),
        })
        source, destination = open_pair(path)
        RowMigrator(source, destination).migrate("docs")

        result = IntegrityVerifier(source, destination).verify("docs")
        assert result.rows_checked == 2
        assert result.rows_missing == 0

    def test_composite_primary_key(self, make_database, open_pair):
        path = make_database("pairs.sqlite", {
            "pairs": ("CREATE TABLE pairs (a TEXT, b INTEGER, json TEXT, PRIMARY KEY (a, b))", [
                {"a": "x", "b": 1, "json": '"1"'},
                {"a": "x", "b": 2, "json": '"2"'},
            ]),
        })
        source, destination = open_pair(path)
        RowMigrator(source, destination).migrate("pairs")
        delete_rows(destination, "DELETE FROM pairs WHERE b = 2")

        with pytest.raises(IntegrityMismatchError) as excinfo:
            IntegrityVerifier(source, destination).verify("pairs")
        assert excinfo.value.row_key == ("x", 2)
