"""
Validation engine for extupgrade.

Installs the extension twice in the same database, once directly at the
target version and once at the source version followed by an upgrade,
snapshots the result of both and compares them. Everything happens in a
single transaction that is rolled back, so the database is left untouched.
"""

from typing import Callable, Dict, List, Optional

from . import extension
from .database import (
    DatabaseConnection,
    create_extension,
    drop_extension,
    extension_installed,
    update_extension,
)
from .diff import DiffNode
from .errors import CatalogError
from .extra_queries import compare_results, run_queries
from .guc import compare_gucs, snapshot_gucs
from .models import RunConfig
from .reporting import Reporter
from .schema import SnapshotContext


class ValidationRunner:
    """
    Runs one validation against an open database connection.

    Every difference found is collected, the run never stops at the first
    one.
    """

    def __init__(self, config: RunConfig, db: DatabaseConnection, reporter: Reporter):
        self.config = config
        self.db = db
        self.reporter = reporter
        self.diffs: List[DiffNode] = []

    def _run_script(self, version: str, script: Callable[[], None]) -> None:
        """Run an extension script, checking it leaks no setting change."""
        before = snapshot_gucs(self.db)
        script()
        leaked = compare_gucs(before, snapshot_gucs(self.db), version)
        if leaked is not None:
            self.diffs.append(leaked)

    def _snapshot(self, ctx: SnapshotContext) -> extension.Extension:
        return extension.snapshot(ctx, self.config.extname)

    def run(self) -> List[DiffNode]:
        """
        Execute the validation.

        Returns:
            The differences found, empty if the upgrade is consistent

        Raises:
            DatabaseError: if a statement fails
            CatalogError: if the catalogs can't be read as expected
        """
        cfg = self.config
        self.diffs = []

        ctx = SnapshotContext(
            db=self.db,
            server_version_num=self.db.server_version_num(),
            reporter=self.reporter,
        )

        with self.db.rollback_transaction():
            if extension_installed(self.db, cfg.extname):
                raise CatalogError(
                    f'Extension "{cfg.extname}" is already installed, '
                    f"use a database without it"
                )

            # Direct installation of the target version
            self._run_script(
                cfg.to_version,
                lambda: create_extension(self.db, cfg.extname, cfg.to_version),
            )
            installed = self._snapshot(ctx)
            installed_results = run_queries(self.db, cfg.extra_queries)

            drop_extension(self.db, cfg.extname)

            # Installation of the source version, then upgrade
            self._run_script(
                cfg.from_version,
                lambda: create_extension(self.db, cfg.extname, cfg.from_version),
            )
            self._run_script(
                cfg.to_version,
                lambda: update_extension(self.db, cfg.extname, cfg.to_version),
            )
            upgraded = self._snapshot(ctx)
            upgraded_results = run_queries(self.db, cfg.extra_queries)

        diff = installed.compare(upgraded)
        if diff is not None:
            self.diffs.append(diff)
        self.diffs.extend(
            compare_results(cfg.extra_queries, installed_results, upgraded_results)
        )
        return self.diffs


def run_validation(
    config: RunConfig,
    reporter: Reporter,
    connection_factory: Optional[Callable[..., DatabaseConnection]] = None,
) -> List[DiffNode]:
    """
    Connect to the server and validate the extension upgrade.

    Args:
        config: Run configuration
        reporter: Console output, also used for snapshot warnings
        connection_factory: Builds the DatabaseConnection (default:
            DatabaseConnection itself)

    Returns:
        The differences found, empty if the upgrade is consistent
    """
    factory = connection_factory or DatabaseConnection
    conn_params: Dict[str, object] = {
        "dbname": config.dbname,
        "host": config.host,
        "port": config.port,
        "user": config.user,
    }

    with factory(**conn_params) as db:
        reporter.print_header(
            config.extname,
            config.from_version,
            config.to_version,
            db.server_version(),
        )
        return ValidationRunner(config, db, reporter).run()
