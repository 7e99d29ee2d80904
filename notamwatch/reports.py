"""Reports over the change log and stored snapshots."""
import sys
from pathlib import Path

from notamwatch.change_log import ChangeLog
from notamwatch.config import Config
from notamwatch.database import NotamDatabase
from notamwatch.models.notam import utc_now
from notamwatch.settings_store import SettingsStore
from notamwatch.snapshot_store import SnapshotStore


class ReportRunner:
    """Handles report execution."""

    def __init__(self, db: NotamDatabase = None):
        self.db = db or NotamDatabase(Config.DATABASE_PATH)
        self.change_log = ChangeLog(self.db)
        self.snapshot_store = SnapshotStore(self.db)
        self.settings_store = SettingsStore(self.db)

    def run_query_file(self, query_file: str) -> None:
        """
        Execute a SQL query from a file and display results.

        Args:
            query_file: Path to SQL file
        """
        query_path = Path(query_file)

        if not query_path.exists():
            print(f"Error: Query file not found: {query_file}")
            sys.exit(1)

        query = query_path.read_text()

        print(f"\n=== Executing query from {query_file} ===\n")
        print(f"Query:\n{query}\n")

        try:
            results = self.db.execute_custom_query(query)
            self._display_results(results)
        except Exception as e:
            print(f"Error executing query: {e}")
            sys.exit(1)

    def _display_results(self, results: list) -> None:
        """Display rows in a formatted table."""
        if not results:
            print("No results found.")
            return

        columns = list(results[0].keys())

        widths = {col: len(col) for col in columns}
        for row in results:
            for col in columns:
                widths[col] = max(widths[col], min(len(str(row[col])), 100))

        print(" | ".join(col.ljust(widths[col]) for col in columns))
        print("-+-".join("-" * widths[col] for col in columns))
        for row in results:
            print(" | ".join(str(row[col])[:widths[col]].ljust(widths[col]) for col in columns))

        print(f"\n{len(results)} row(s) returned.\n")

    def run_predefined_report(self, report_name: str) -> None:
        """Run a predefined report."""
        reports = {
            'changes': self._report_changes,
            'unread': self._report_unread,
            'snapshots': self._report_snapshots,
            'stats': self._report_statistics,
        }

        if report_name not in reports:
            print(f"Unknown report: {report_name}")
            print(f"Available reports: {', '.join(reports.keys())}")
            sys.exit(1)

        reports[report_name]()

    def _change_rows(self, changes) -> list:
        return [{
            'Detected': c.detected_at.strftime('%Y-%m-%d %H:%M'),
            'Region': c.region,
            'Change': c.change_type.display_name,
            'NOTAM': c.notam.display_id,
            'Severity': c.notam.severity.value.upper(),
            'Read': 'yes' if c.is_read else '',
            'Text': c.notam.text.replace('\n', ' ')[:60],
        } for c in changes]

    def _report_changes(self) -> None:
        print("\n=== Detected Changes (newest first) ===\n")
        self._display_results(self._change_rows(self.change_log.list_changes()))

    def _report_unread(self) -> None:
        print("\n=== Unread Changes ===\n")
        unread = [c for c in self.change_log.list_changes() if not c.is_read]
        self._display_results(self._change_rows(unread))

    def _report_snapshots(self) -> None:
        print("\n=== Stored Snapshots ===\n")
        now = utc_now()
        rows = []
        for region, snapshot in self.snapshot_store.load_all().items():
            active = sum(1 for n in snapshot.notams if n.is_active(now))
            rows.append({
                'Region': region,
                'Captured': snapshot.captured_at.strftime('%Y-%m-%d %H:%M'),
                'Age (h)': f"{snapshot.age(now).total_seconds() / 3600:.1f}",
                'Stale': 'STALE' if snapshot.is_stale(now) else '',
                'NOTAMs': len(snapshot.notams),
                'Active': active,
            })
        self._display_results(rows)

    def _report_statistics(self) -> None:
        print("\n=== NOTAM Watcher Statistics ===\n")
        settings = self.settings_store.settings
        snapshots = self.snapshot_store.load_all()

        print(f"Regions configured: {len(settings.regions)} ({len(settings.enabled_regions)} enabled)")
        print(f"Refresh interval: {settings.refresh_interval.display_name}")
        last = settings.last_refresh_date
        print(f"Last refresh: {last.strftime('%Y-%m-%d %H:%M UTC') if last else 'never'}")
        nxt = settings.next_refresh_date
        print(f"Next refresh: {nxt.strftime('%Y-%m-%d %H:%M UTC') if nxt else 'n/a'}")
        print(f"Snapshots stored: {len(snapshots)} ({sum(1 for s in snapshots.values() if s.is_stale())} stale)")
        print(f"NOTAMs in snapshots: {sum(len(s.notams) for s in snapshots.values())}")
        print(f"Changes logged: {self.change_log.count()} ({self.change_log.unread_count()} unread)")
        print()


def main():
    """Main entry point for report runner."""
    if len(sys.argv) < 2:
        print("Usage:")
        print("  python -m notamwatch.reports <report_name>")
        print("  python -m notamwatch.reports query <query_file>")
        print("\nAvailable reports:")
        print("  changes      - Show the change log")
        print("  unread       - Show unread changes")
        print("  snapshots    - Show stored snapshots and staleness")
        print("  stats        - Show summary statistics")
        sys.exit(1)

    runner = ReportRunner()
    command = sys.argv[1]

    if command == 'query' and len(sys.argv) >= 3:
        runner.run_query_file(sys.argv[2])
    else:
        runner.run_predefined_report(command)


if __name__ == '__main__':
    main()
