import io
import json

import pytest

from jiraflow.logging import StructuredLogger, configure_logging


def test_structured_logger_json_format():
    """Structured logger emits one JSON object per record with extras."""
    stream = io.StringIO()
    logger = StructuredLogger(name='test', json_logging=True, level='INFO', stream=stream)
    logger.log_operation('test_operation', param1='value1', param2=42)

    log_lines = [line for line in stream.getvalue().strip().split('\n') if line]
    assert len(log_lines) == 1
    entry = json.loads(log_lines[0])
    assert entry['level'] == 'INFO'
    assert entry['operation'] == 'test_operation'
    assert entry['param1'] == 'value1'
    assert entry['param2'] == 42


def test_logs_go_to_stderr_by_default(capsys):
    logger = configure_logging(json_logging=True, level='INFO')
    logger.info('hello', component='test')

    captured = capsys.readouterr()
    assert captured.out == ''
    assert json.loads(captured.err.strip())['message'] == 'hello'


def test_level_filters_debug_records():
    stream = io.StringIO()
    logger = StructuredLogger(name='test.level', json_logging=True, level='WARNING', stream=stream)
    logger.debug('hidden')
    logger.warning('shown', error='AUTH_INVALID')

    entries = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert [e['message'] for e in entries] == ['shown']
    assert entries[0]['error'] == 'AUTH_INVALID'


def test_timed_operation_logs_performance():
    stream = io.StringIO()
    logger = StructuredLogger(name='test.timed', json_logging=True, level='INFO', stream=stream)
    with logger.timed_operation('search', limit=5):
        pass

    entries = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert entries[0]['operation'] == 'search_start'
    assert entries[1]['operation'] == 'search'
    assert 'duration_ms' in entries[1]


def test_timed_operation_logs_failures_at_debug_and_reraises():
    stream = io.StringIO()
    logger = StructuredLogger(name='test.failed', json_logging=True, level='DEBUG', stream=stream)
    with pytest.raises(RuntimeError):
        with logger.timed_operation('search'):
            raise RuntimeError('boom')

    last = json.loads(stream.getvalue().splitlines()[-1])
    assert last['level'] == 'DEBUG'
    assert last['operation'] == 'search'
    assert last['error'] == 'boom'


def test_timed_operation_failure_is_silent_above_debug():
    stream = io.StringIO()
    logger = StructuredLogger(name='test.quiet', json_logging=True, level='WARNING', stream=stream)
    with pytest.raises(RuntimeError):
        with logger.timed_operation('search'):
            raise RuntimeError('boom')

    assert stream.getvalue() == ''


def test_plain_text_format():
    stream = io.StringIO()
    logger = StructuredLogger(name='test.plain', json_logging=False, level='INFO', stream=stream)
    logger.info('plain message')
    assert 'INFO plain message' in stream.getvalue()
