"""
Unit tests for persistence adapters.

Tests MockStore, CsvStore and HttpStore (with a mocked requests session)
and backend selection.
"""

from concurrent.futures import wait
from unittest.mock import MagicMock

import pandas as pd
import pytest
import requests

from config.session import SessionConfig, StoreSettings, UserInfo
from core.persistence import CsvStore, HttpStore, MockStore, create_store


# ==================== MOCK STORE ====================

@pytest.mark.unit
def test_mock_store_save_partial(mock_store):
    future = mock_store.save_partial({'trial_index': 0, 'response': 'a'})

    assert future.result(timeout=5) is None
    assert mock_store.partial_calls == 1
    assert mock_store.partial_records == [{'trial_index': 0, 'response': 'a'}]


@pytest.mark.unit
def test_mock_store_save_complete(mock_store):
    records = [{'trial_index': i} for i in range(3)]

    mock_store.save_complete(records).result(timeout=5)

    assert mock_store.complete_calls == 1
    assert mock_store.snapshot()['complete'] == records


@pytest.mark.unit
def test_mock_store_copies_records(mock_store):
    record = {'trial_index': 0}
    mock_store.save_partial(record).result(timeout=5)
    record['trial_index'] = 99

    assert mock_store.partial_records[0]['trial_index'] == 0


@pytest.mark.unit
def test_mock_store_concurrent_partials():
    store = MockStore(latency=0.02, max_workers=4)
    futures = [store.save_partial({'trial_index': i}) for i in range(12)]

    done, not_done = wait(futures, timeout=5)
    store.shutdown()

    assert not not_done
    assert sorted(r['trial_index'] for r in store.partial_records) == list(range(12))


@pytest.mark.unit
def test_mock_store_injected_failure():
    store = MockStore(fail_partial=True, fail_complete=TimeoutError("backend timeout"))

    with pytest.raises(ConnectionError):
        store.save_partial({'trial_index': 0}).result(timeout=5)
    with pytest.raises(TimeoutError):
        store.save_complete([]).result(timeout=5)

    store.shutdown()
    assert store.partial_calls == 1
    assert store.complete_calls == 1
    assert store.snapshot() == {'partial': [], 'complete': None}


@pytest.mark.unit
def test_mock_store_clear(mock_store):
    mock_store.save_partial({'trial_index': 0}).result(timeout=5)
    mock_store.clear()

    assert mock_store.partial_calls == 0
    assert mock_store.snapshot()['partial'] == []


@pytest.mark.unit
def test_save_after_shutdown_rejected():
    store = MockStore()
    store.shutdown()

    future = store.save_partial({'trial_index': 0})

    assert isinstance(future.exception(timeout=1), RuntimeError)
    assert store.partial_calls == 0


# ==================== CSV STORE ====================

@pytest.mark.unit
def test_csv_store_filenames(tmp_path):
    anonymous = CsvStore(str(tmp_path), "dot_motion")
    participant = CsvStore(str(tmp_path), "dot_motion", user=UserInfo(prolific_pid='p1', session_id='s9'))

    assert anonymous.get_output_filename("data").endswith("dot_motion_data.csv")
    name = participant.get_output_filename("data")
    assert "p1_s9_" in name
    assert name.endswith("_data.csv")

    anonymous.shutdown()
    participant.shutdown()


@pytest.mark.unit
def test_csv_store_intermediate_file(tmp_path):
    store = CsvStore(str(tmp_path), "dot_motion")

    store.save_partial({'trial_index': 0, 'response': 'a'}).result(timeout=5)
    store.save_partial({'trial_index': 1, 'response': 'f', 'item': 2}).result(timeout=5)
    store.shutdown()

    df = pd.read_csv(store.get_output_filename("intermediate"))
    assert list(df['trial_index']) == [0, 1]
    assert 'item' in df.columns


@pytest.mark.unit
def test_csv_store_complete_file(tmp_path):
    store = CsvStore(str(tmp_path), "dot_motion")
    records = [{'trial_index': i, 'task': 'response', 'rt': 400 + i} for i in range(3)]

    store.save_complete(records).result(timeout=5)
    store.shutdown()

    df = pd.read_csv(tmp_path / "dot_motion_data.csv")
    assert len(df) == 3
    assert list(df['rt']) == [400, 401, 402]


# ==================== HTTP STORE ====================

def make_http_store(response=None, **kwargs):
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.post.return_value = response or MagicMock(status_code=201)
    user = UserInfo(prolific_pid='p1', study_id='st1', session_id='s1')
    store = HttpStore("https://store.example.org/api/", user, session=session, **kwargs)
    return store, session


@pytest.mark.unit
def test_http_store_requires_endpoint():
    with pytest.raises(ValueError):
        HttpStore("", UserInfo(), session=MagicMock(spec=requests.Session))


@pytest.mark.unit
def test_http_store_session_url():
    store, _ = make_http_store()

    assert store.session_url == "https://store.example.org/api/participants/p1/sessions/s1"
    store.shutdown()


@pytest.mark.unit
def test_http_store_anonymous_url():
    store = HttpStore("https://store.example.org", UserInfo(), session=MagicMock(spec=requests.Session))

    assert store.session_url == "https://store.example.org/participants/anonymous/sessions/default"
    store.shutdown()


@pytest.mark.unit
def test_http_store_save_partial_posts_record():
    store, session = make_http_store(timeout=2.5)

    store.save_partial({'trial_index': 3}).result(timeout=5)
    store.shutdown()

    url = session.post.call_args.args[0]
    assert url.endswith("/participants/p1/sessions/s1/trials")
    assert session.post.call_args.kwargs['json']['record'] == {'trial_index': 3}
    assert session.post.call_args.kwargs['json']['user']['prolific_pid'] == 'p1'
    assert session.post.call_args.kwargs['timeout'] == 2.5


@pytest.mark.unit
def test_http_store_save_complete_posts_all_records():
    store, session = make_http_store()
    records = [{'trial_index': i} for i in range(3)]

    store.save_complete(records).result(timeout=5)
    store.shutdown()

    assert session.post.call_args.args[0].endswith("/complete")
    assert session.post.call_args.kwargs['json']['records'] == records
    session.close.assert_called_once()


@pytest.mark.unit
def test_http_store_error_status_rejects():
    response = MagicMock(status_code=503)
    response.raise_for_status.side_effect = requests.HTTPError("503 Service Unavailable")
    store, _ = make_http_store(response=response)

    with pytest.raises(requests.HTTPError):
        store.save_complete([{'trial_index': 0}]).result(timeout=5)
    store.shutdown()


@pytest.mark.unit
def test_http_store_api_key_header():
    store, session = make_http_store(api_key="secret")

    assert session.headers['Authorization'] == "Bearer secret"
    assert session.mount.call_count == 2
    store.shutdown()


# ==================== FACTORY ====================

@pytest.mark.unit
def test_create_store_mock_flag_wins():
    config = SessionConfig(mock_store=True, store=StoreSettings(backend='http'))

    store = create_store(config)

    assert isinstance(store, MockStore)
    store.shutdown()


@pytest.mark.unit
def test_create_store_csv(tmp_path):
    config = SessionConfig(mock_store=False, store=StoreSettings(backend='csv', output_dir=str(tmp_path)))

    store = create_store(config)

    assert isinstance(store, CsvStore)
    store.shutdown()


@pytest.mark.unit
def test_create_store_http():
    config = SessionConfig(mock_store=False,
                           store=StoreSettings(backend='http', endpoint='https://store.example.org'))

    store = create_store(config)

    assert isinstance(store, HttpStore)
    store.shutdown()


@pytest.mark.unit
def test_create_store_unknown_backend():
    config = SessionConfig(mock_store=False, store=StoreSettings(backend='ftp'))

    with pytest.raises(ValueError):
        create_store(config)
