import os
import tempfile

import pytest
from unittest.mock import MagicMock

from notamwatch import main as main_module
from notamwatch.config import Config
from notamwatch.errors import AllFetchesFailedError, NetworkUnavailableError
from notamwatch.main import NotamWatcher
from notamwatch.notam_client import FAANotamClient, FetchResult


class TestNotamWatcher:
    """Test cases for NotamWatcher"""

    @pytest.fixture
    def db_path(self):
        fd, path = tempfile.mkstemp(suffix='.db')
        os.close(fd)
        yield path
        for suffix in ('', '-wal', '-shm'):
            try:
                os.unlink(path + suffix)
            except OSError:
                pass

    @pytest.fixture
    def watcher(self, db_path, monkeypatch):
        monkeypatch.setattr(Config, 'REGIONS', ['LROP'])
        monkeypatch.setattr(Config, 'NTFY_URL', '')
        return NotamWatcher(db_path=db_path)

    def test_wiring(self, watcher, db_path):
        assert watcher.db.db_path == db_path
        assert isinstance(watcher.orchestrator.client, FAANotamClient)
        assert watcher.orchestrator.scheduler is watcher.scheduler
        assert watcher.settings_store.settings.enabled_regions == ['LROP']
        assert watcher.config.VERSION is not None

    def test_run_once(self, watcher, make_notam):
        client = MagicMock()
        client.fetch_all_results.return_value = {
            'LROP': FetchResult(region='LROP', notams=[make_notam("A0001/25")])
        }
        watcher.orchestrator.client = client

        result = watcher.run_once()

        assert result.fetched == {'LROP': 1}
        assert watcher.change_log.count() == 1
        assert watcher.snapshot_store.load('LROP') is not None

    def test_run_once_propagates_total_failure(self, watcher):
        client = MagicMock()
        client.fetch_all_results.return_value = {
            'LROP': FetchResult(region='LROP', error=NetworkUnavailableError())
        }
        watcher.orchestrator.client = client

        with pytest.raises(AllFetchesFailedError):
            watcher.run_once()


def test_main_once_exits_on_refresh_failure(monkeypatch):
    watcher = MagicMock()
    watcher.run_once.side_effect = AllFetchesFailedError({'LROP': NetworkUnavailableError()})
    monkeypatch.setattr(main_module, 'NotamWatcher', lambda: watcher)
    monkeypatch.setattr('sys.argv', ['notamwatch', '--once'])

    with pytest.raises(SystemExit) as exc_info:
        main_module.main()

    assert exc_info.value.code == 1
    watcher.run_continuous.assert_not_called()
