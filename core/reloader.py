#!/usr/bin/env python3
"""
Reload Orchestrator

Drives one full reload run:

    fetch sources -> master.mdb -> each destination
                  -> meta       -> each destination
                  -> translations -> each destination

Destinations are independent of each other. Anything short of a FatalError
in one destination is recorded in the RunSummary and the next destination
proceeds.

Usage:
    manager = DatabaseManager.from_urls([mysql_url, mssql_url])
    summary = TableReloader(config, manager, repo, branch).run()
    print(summary.status_line)
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from config.settings import (MASTER_SOURCE_PATH, META_SOURCE_PATH, META_TABLE_PREFIX,
                             TRANSLATION_TABLE, ReloadConfig)
from core.bulk_loader import BulkLoader
from core.database_manager import DatabaseManager, DestinationAdapter
from core.errors import FatalError, SourceMissingError
from core.models import (ColumnDescriptor, RunSummary, SourceCatalog, TableLoadResult,
                         TableSnapshot)
from core.reconciler import SchemaReconciler
from extensions.plugins.sqlite_adapter import SQLiteAdapter
from utils.github import download_remote_file
from utils.translations import collect_translations

logger = logging.getLogger(__name__)


@dataclass
class SourceDatabase:
    """One SQLite source and where its tables land"""
    label: str
    path: Path
    table_prefix: str = ''


class TableReloader:
    """Full reload of game tables and translations into every destination"""

    def __init__(self, config: ReloadConfig, manager: DatabaseManager,
                 repo: Optional[str] = None, branch: Optional[str] = None,
                 loader: Optional[BulkLoader] = None,
                 translation_source: Optional[Callable[[], Dict[str, str]]] = None):
        self.config = config
        self.manager = manager
        self.repo = repo
        self.branch = branch
        self.loader = loader or BulkLoader()
        self.translation_source = translation_source or self._download_translations

    def sources(self) -> List[SourceDatabase]:
        return [
            SourceDatabase(MASTER_SOURCE_PATH, self.config.master_db_path),
            SourceDatabase(META_SOURCE_PATH, self.config.meta_db_path, META_TABLE_PREFIX),
        ]

    def fetch_sources(self) -> List[SourceDatabase]:
        """Download the sources (or use the local game install) and verify both exist"""
        sources = self.sources()
        failed = []
        if not self.config.uses_local_game_data:
            # A file left over from an earlier run must not stand in for a failed download
            failed = [s for s in sources
                      if not download_remote_file(self.repo, self.branch, s.label, s.path,
                                                  timeout=self.config.http_timeout)]

        missing = [str(s.path) for s in sources if s in failed or not s.path.is_file()]
        if missing:
            raise SourceMissingError(f"Cannot find meta and master.mdb files: {', '.join(missing)}",
                                     path=missing[0])
        print("SUCCESS: Found meta and master.mdb files")
        return sources

    def run(self) -> RunSummary:
        """Run every phase and print the final status line"""
        summary = RunSummary()
        try:
            for source in self.fetch_sources():
                self.reload_source(source, summary)
            if self.manager.get_available_backends():
                self.reload_translations(summary)
        finally:
            self.manager.close_all()

        if summary.failed_tables:
            logger.warning(f"Tables with errors: {', '.join(summary.failed_tables)}")
        print(f"\n{summary.status_line}")
        return summary

    def reload_source(self, source: SourceDatabase, summary: RunSummary):
        """Load one source database into every destination"""
        with SQLiteAdapter(source.path) as sqlite:
            catalog = sqlite.read_catalog()
            reconciler = SchemaReconciler(sqlite, table_prefix=source.table_prefix)

            for backend_name in self.manager.get_available_backends():
                try:
                    destination = self.manager.get(backend_name)
                    print(f'\nAttempting to load "{source.label}" table data into {destination.label}...\n')
                    summary.extend(self.reload_destination(destination, catalog, reconciler, summary))
                except FatalError:
                    raise
                except Exception as e:
                    logger.error(f"Destination {backend_name} failed while loading {source.label}: {e}")
                    summary.destination_failures.append(f"{backend_name}: {e}")

    def reload_destination(self, destination: DestinationAdapter, catalog: SourceCatalog,
                           reconciler: SchemaReconciler, summary: RunSummary) -> List[TableLoadResult]:
        snapshots, new_tables = reconciler.partition(catalog, destination)
        summary.skipped_tables.extend(
            f"{destination.label}:{reconciler.destination_name(t.name)}" for t in new_tables
        )
        return [self.reload_table(destination, reconciler, snapshot) for snapshot in snapshots]

    def reload_table(self, destination: DestinationAdapter, reconciler: SchemaReconciler,
                     snapshot: TableSnapshot) -> TableLoadResult:
        """Load, and on failure reconcile columns and load once more"""
        table_name = reconciler.destination_name(snapshot.name)

        if self.loader.load(destination, table_name, snapshot):
            return TableLoadResult(destination.label, table_name, True, 1, len(snapshot))

        outcome = reconciler.reconcile_columns(destination, snapshot.name)
        loaded = self.loader.load(destination, table_name, snapshot, first_attempt=False)
        return TableLoadResult(destination.label, table_name, loaded, 2,
                               len(snapshot) if loaded else 0, outcome)

    def _download_translations(self) -> Dict[str, str]:
        return collect_translations(
            self.config.translation_repo,
            self.config.translation_branch,
            concurrency=self.config.download_concurrency,
            timeout=self.config.http_timeout
        )

    def reload_translations(self, summary: RunSummary):
        """Replace the translation table in every destination"""
        translations = self.translation_source()
        if not translations:
            logger.warning("No translations were downloaded; leaving the translation table untouched")
            summary.destination_failures.append("translations: nothing downloaded")
            return

        snapshot = TableSnapshot(
            TRANSLATION_TABLE,
            [ColumnDescriptor('OriginalText', 'TEXT', False), ColumnDescriptor('TranslatedText', 'TEXT')],
            list(translations.items())
        )

        for backend_name in self.manager.get_available_backends():
            try:
                destination = self.manager.get(backend_name)
                print(f'\nLoading {len(snapshot)} translations into {destination.label}...\n')
                loaded = self.loader.load(destination, TRANSLATION_TABLE, snapshot,
                                          schema=destination.translation_schema,
                                          first_attempt=False, positional=True)
                summary.extend([TableLoadResult(destination.label, TRANSLATION_TABLE, loaded, 1,
                                                len(snapshot) if loaded else 0)])
            except FatalError:
                raise
            except Exception as e:
                logger.error(f"Destination {backend_name} failed while loading translations: {e}")
                summary.destination_failures.append(f"{backend_name}: {e}")
