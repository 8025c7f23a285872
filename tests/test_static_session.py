"""Tests for projectflow.adapters.static_session and log_notifier."""

from unittest.mock import AsyncMock

import pytest

from projectflow.adapters.log_notifier import LogNotifier
from projectflow.adapters.static_session import StaticSessionProvider
from projectflow.ports.session_port import Session, SessionEvent


@pytest.mark.asyncio
async def test_sign_in_refresh_sign_out_events():
    provider = StaticSessionProvider()
    listener = AsyncMock()
    provider.subscribe(listener)

    await provider.sign_in(Session(user_id="u1", access_token="a"))
    await provider.refresh("b")
    await provider.sign_out()

    events = [c.args[0] for c in listener.await_args_list]
    assert events == [SessionEvent.SIGNED_IN, SessionEvent.TOKEN_REFRESHED, SessionEvent.SIGNED_OUT]
    assert listener.await_args_list[1].args[1].access_token == "b"
    assert await provider.get_session() is None


@pytest.mark.asyncio
async def test_sign_out_without_session_is_silent():
    provider = StaticSessionProvider()
    listener = AsyncMock()
    provider.subscribe(listener)
    await provider.sign_out()
    await provider.refresh("x")
    listener.assert_not_awaited()


@pytest.mark.asyncio
async def test_unsubscribe():
    provider = StaticSessionProvider()
    listener = AsyncMock()
    unsubscribe = provider.subscribe(listener)
    unsubscribe()
    unsubscribe()
    await provider.sign_in(Session(user_id="u1"))
    listener.assert_not_awaited()


@pytest.mark.asyncio
async def test_from_settings_without_user_id():
    provider = StaticSessionProvider.from_settings()
    assert await provider.get_session() is None


def test_notifier_keeps_messages():
    notifier = LogNotifier()
    notifier.show_error("Failed")
    notifier.show_success("Saved")
    assert notifier.errors == ["Failed"]
    assert notifier.successes == ["Saved"]
