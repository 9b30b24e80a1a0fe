import pytest

from opsmonitor.core import config
from opsmonitor.core.store import MonitoringStore
from opsmonitor.crud.query import _escape_like, page_count, page_window


def test_page_window_first_and_later_pages():
    assert page_window(1, 10) == (0, 9)
    assert page_window(3, 25) == (50, 74)
    assert page_window(1, 1) == (0, 0)


@pytest.mark.parametrize("page,limit", [(0, 10), (-1, 10), (1, 0), (1, -5)])
def test_page_window_rejects_bad_input(page, limit):
    with pytest.raises(ValueError):
        page_window(page, limit)


def test_page_window_has_no_upper_limit():
    assert page_window(1, config.MAX_PAGE_LIMIT + 1) == (0, config.MAX_PAGE_LIMIT)
    assert page_window(2, 5000) == (5000, 9999)


def test_page_count():
    assert page_count(0, 10) == 0
    assert page_count(10, 10) == 1
    assert page_count(11, 10) == 2


def test_escape_like():
    assert _escape_like("50%_off\\") == "50\\%\\_off\\\\"


def test_store_requires_user():
    with pytest.raises(ValueError):
        MonitoringStore(sessions=None, user_id="")
