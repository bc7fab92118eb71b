#!/usr/bin/env python3
"""
End-to-end reload runs against temporary SQLite sources and in-memory
SQLite destinations.
"""

from unittest.mock import patch

import pytest

from conftest import make_source
from destination_fakes import SQLiteDestination
from core.database_manager import DatabaseManager
from core.errors import BulkLoadConfigurationError, SourceMissingError, UnhandledColumnTypeError
from core.models import ReconciliationStatus
from core.reconciler import SchemaReconciler
from core.reloader import TableReloader

TRANSLATION_DDL = 'CREATE TABLE text_data_english ("OriginalText" TEXT, "TranslatedText" TEXT);'


def build_manager(*destinations):
    manager = DatabaseManager({'backends': {d.name: {'type': 'mysql'} for d in destinations}})
    for d in destinations:
        manager.adapters[d.name] = d
    return manager


def reloader_for(config, *destinations, translations=None):
    translations = {'こんにちは': 'Hello'} if translations is None else translations
    return TableReloader(config, build_manager(*destinations), translation_source=lambda: dict(translations))


@pytest.mark.integration
def test_missing_column_is_added_and_table_reloaded(dev_config, game_dir, destination, capsys):
    make_source(game_dir / "master" / "master.mdb", """
        CREATE TABLE Users (id INTEGER NOT NULL, name TEXT);
        INSERT INTO Users VALUES (1, 'Special Week'), (2, 'Silence Suzuka');
    """)
    destination.create("CREATE TABLE Users (id BIGINT NOT NULL);" + TRANSLATION_DDL)

    summary = reloader_for(dev_config, destination).run()

    assert summary.status_line == "SUCCESS: Table reload successful!"
    assert destination.rows("Users") == [(1, 'Special Week'), (2, 'Silence Suzuka')]
    assert [c.name for c in destination.resolve_columns("Users")] == ["id", "name"]
    alters = [sql for sql in destination.executed if sql.startswith("ALTER TABLE")]
    assert alters == ['ALTER TABLE "Users" ADD "name" TEXT NULL']

    users = [r for r in summary.results if r.table == "Users"][0]
    assert users.loaded and users.attempts == 2
    assert users.reconciliation.status == ReconciliationStatus.COLUMNS_ADDED
    assert "SUCCESS: Table reload successful!" in capsys.readouterr().out


@pytest.mark.integration
def test_matching_columns_load_without_reconciliation(dev_config, game_dir, destination):
    make_source(game_dir / "master" / "master.mdb", """
        CREATE TABLE card_data (id INTEGER, chara_id INTEGER);
        INSERT INTO card_data VALUES (100101, 1001);
    """)
    destination.create("CREATE TABLE card_data (id BIGINT, chara_id BIGINT);" + TRANSLATION_DDL)

    with patch.object(SchemaReconciler, 'reconcile_columns') as reconcile:
        summary = reloader_for(dev_config, destination).run()

    reconcile.assert_not_called()
    assert destination.rows("card_data") == [(100101, 1001)]
    assert not summary.had_bulk_insert_error


@pytest.mark.integration
def test_destination_column_order_is_respected(dev_config, game_dir, destination):
    make_source(game_dir / "master" / "master.mdb", """
        CREATE TABLE race (id INTEGER, name TEXT, grade INTEGER);
        INSERT INTO race VALUES (1, 'Japan Cup', 100);
    """)
    destination.create("CREATE TABLE race (grade BIGINT, id BIGINT, name TEXT);" + TRANSLATION_DDL)

    reloader_for(dev_config, destination).run()

    assert destination.rows("race") == [(100, 1, 'Japan Cup')]


@pytest.mark.integration
def test_new_source_table_is_reported_and_not_loaded(dev_config, game_dir, destination, capsys):
    make_source(game_dir / "master" / "master.mdb", """
        CREATE TABLE known (id INTEGER);
        CREATE TABLE brand_new (id INTEGER, label TEXT);
        CREATE INDEX brand_new_label ON brand_new (label);
        INSERT INTO brand_new VALUES (1, 'x');
    """)
    destination.create("CREATE TABLE known (id BIGINT);" + TRANSLATION_DDL)

    summary = reloader_for(dev_config, destination).run()
    out = capsys.readouterr().out

    assert "CREATE TABLE brand_new (id INTEGER, label TEXT);" in out
    assert "CREATE INDEX brand_new_label ON brand_new (label);" in out
    assert "brand_new" not in destination.list_tables()
    assert summary.skipped_tables == ["mysql:brand_new"]
    assert all(r.table != "brand_new" for r in summary.results)
    assert summary.status_line == "SUCCESS: Table reload successful!"


@pytest.mark.integration
def test_unhandled_column_type_halts_the_run(dev_config, game_dir, destination):
    make_source(game_dir / "master" / "master.mdb", """
        CREATE TABLE sprite (id INTEGER, image BLOB, caption TEXT);
        INSERT INTO sprite VALUES (1, x'00ff', 'a');
    """)
    destination.create("CREATE TABLE sprite (id BIGINT);" + TRANSLATION_DDL)

    with pytest.raises(UnhandledColumnTypeError) as excinfo:
        reloader_for(dev_config, destination).run()

    assert excinfo.value.details['data_type'] == 'BLOB'
    assert [c.name for c in destination.resolve_columns("sprite")] == ["id"]


@pytest.mark.integration
def test_failed_column_add_ends_with_warning(dev_config, game_dir, destination, capsys):
    make_source(game_dir / "master" / "master.mdb", """
        CREATE TABLE skill (id INTEGER, rarity INTEGER NOT NULL);
        INSERT INTO skill VALUES (1, 3);
    """)
    destination.create("CREATE TABLE skill (id BIGINT);" + TRANSLATION_DDL)
    destination.fail_statements.add('ALTER TABLE "skill" ADD "rarity" BIGINT NOT NULL')

    summary = reloader_for(dev_config, destination).run()
    out = capsys.readouterr().out

    assert 'ALTER TABLE "skill" ADD "rarity" BIGINT NOT NULL;' in out
    assert "rarity (INTEGER, NOT NULL)" in out
    assert summary.failed_tables == ["mysql:skill"]
    assert summary.status_line == "WARNING: Table reload successful, but has bulk insert errors."


@pytest.mark.integration
def test_meta_tables_use_prefix(dev_config, game_dir, destination):
    make_source(game_dir / "meta", """
        CREATE TABLE a (n TEXT, h TEXT, e INTEGER);
        INSERT INTO a VALUES ('chara', 'abc', 7);
    """)
    destination.create("CREATE TABLE meta_a (n TEXT, h TEXT);" + TRANSLATION_DDL)

    summary = reloader_for(dev_config, destination).run()

    assert destination.rows("meta_a") == [('chara', 'abc', 7)]
    assert 'ALTER TABLE "meta_a" ADD "e" BIGINT NULL' in destination.executed
    assert not summary.had_bulk_insert_error


@pytest.mark.integration
def test_reload_is_idempotent(dev_config, game_dir, destination):
    make_source(game_dir / "master" / "master.mdb", """
        CREATE TABLE Users (id INTEGER, name TEXT);
        INSERT INTO Users VALUES (1, 'Oguri Cap'), (2, NULL);
    """)
    destination.create("CREATE TABLE Users (id BIGINT, name TEXT);" + TRANSLATION_DDL)

    reloader_for(dev_config, destination).run()
    first = (destination.rows("Users"), destination.rows("text_data_english"))
    reloader_for(dev_config, destination).run()
    second = (destination.rows("Users"), destination.rows("text_data_english"))

    assert first == second
    assert first[0] == [(1, 'Oguri Cap'), (2, None)]
    assert first[1] == [('こんにちは', 'Hello')]


@pytest.mark.integration
def test_misconfigured_bulk_load_is_fatal(dev_config, game_dir):
    make_source(game_dir / "master" / "master.mdb", """
        CREATE TABLE Users (id INTEGER);
        INSERT INTO Users VALUES (1);
    """)
    destination = SQLiteDestination("mysql", refuse_bulk_load=True)
    destination.create("CREATE TABLE Users (id BIGINT);" + TRANSLATION_DDL)

    try:
        with pytest.raises(BulkLoadConfigurationError):
            reloader_for(dev_config, destination).run()
        assert destination.rows("Users") == []
        assert destination.closed
    finally:
        destination.dispose()


@pytest.mark.integration
def test_failing_destination_does_not_stop_the_other(dev_config, game_dir, destination):
    make_source(game_dir / "master" / "master.mdb", """
        CREATE TABLE Users (id INTEGER);
        INSERT INTO Users VALUES (1);
    """)
    destination.create("CREATE TABLE Users (id BIGINT);" + TRANSLATION_DDL)
    broken = SQLiteDestination("mssql")

    try:
        with patch.object(broken, 'list_tables', side_effect=RuntimeError("connection reset")):
            summary = reloader_for(dev_config, broken, destination).run()
    finally:
        broken.dispose()

    assert destination.rows("Users") == [(1,)]
    assert any("connection reset" in f for f in summary.destination_failures)
    assert summary.status_line == "WARNING: Table reload successful, but has bulk insert errors."


def test_missing_sources_are_fatal(tmp_path, destination):
    from config.settings import ReloadConfig

    config = ReloadConfig(environment="Development", game_data_dir=tmp_path / "nowhere", work_dir=tmp_path)
    with pytest.raises(SourceMissingError):
        reloader_for(config, destination).run()


def test_sources_are_downloaded_outside_development(tmp_path, destination):
    from config.settings import ReloadConfig

    config = ReloadConfig(environment="Production", work_dir=tmp_path)

    def fake_download(repo, branch, source_path, destination_path, **kwargs):
        make_source(destination_path, "")
        return True

    with patch('core.reloader.download_remote_file', side_effect=fake_download) as download:
        reloader = TableReloader(config, build_manager(destination), repo="owner/data", branch="main",
                                 translation_source=lambda: {})
        sources = reloader.fetch_sources()

    assert [s.path for s in sources] == [tmp_path / "master.mdb", tmp_path / "meta"]
    called = [c.args[:3] for c in download.call_args_list]
    assert called == [("owner/data", "main", "master/master.mdb"), ("owner/data", "main", "meta")]


def test_failed_download_does_not_reuse_stale_files(tmp_path, destination):
    from config.settings import ReloadConfig

    config = ReloadConfig(environment="Production", work_dir=tmp_path)
    make_source(tmp_path / "master.mdb", """
        CREATE TABLE Users (id INTEGER);
        INSERT INTO Users VALUES (99);
    """)
    make_source(tmp_path / "meta", "")
    destination.create("CREATE TABLE Users (id BIGINT);" + TRANSLATION_DDL)

    with patch('core.reloader.download_remote_file', return_value=False):
        reloader = TableReloader(config, build_manager(destination), repo="owner/data", branch="main",
                                 translation_source=lambda: {})
        with pytest.raises(SourceMissingError) as excinfo:
            reloader.run()

    assert str(tmp_path / "master.mdb") in str(excinfo.value)
    assert destination.rows("Users") == []
