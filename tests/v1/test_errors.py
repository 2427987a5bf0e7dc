# tests/v1/test_errors.py

import asyncio
from unittest.mock import MagicMock

import pytest

from app.bot.services.notification import TELEGRAM_MESSAGE_LIMIT
from app.main import unhandled_exception_handler

pytestmark = pytest.mark.asyncio


async def test_unhandled_error_reports_balanced_html(mock_notifier: MagicMock):
    # Экранированный текст исключения заметно длиннее лимита Telegram
    try:
        raise ValueError('"bad" <value> & ' * 400)
    except ValueError as e:
        exc = e
    request = MagicMock()
    request.method = "POST"
    request.url = "http://test/api/v1/matches/random"
    request.app.state.notifier = mock_notifier

    response = await unhandled_exception_handler(request, exc)
    await asyncio.sleep(0)

    assert response.status_code == 500
    report = mock_notifier.send_error_to_admins.call_args.args[0]
    assert len(report) <= TELEGRAM_MESSAGE_LIMIT
    assert report.count("<pre>") == report.count("</pre>") == 1
    assert "<code>POST http://test/api/v1/matches/random</code>" in report
    assert report.endswith("&quot;bad&quot; &lt;value&gt; &amp; \n</pre>")
