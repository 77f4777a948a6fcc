import logging

import pytest
from sqlalchemy.exc import OperationalError

from barbercmz.database import DATABASE_UNAVAILABLE_DETAIL, database_unavailable


def test_database_unavailable_logs_cause_and_returns_503(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR, logger='barbercmz.database')
    exc = OperationalError('SELECT 1', {}, Exception('connection refused'))

    error = database_unavailable(exc)

    assert error.status_code == 503
    assert error.detail == DATABASE_UNAVAILABLE_DETAIL
    assert 'connection refused' in caplog.text
