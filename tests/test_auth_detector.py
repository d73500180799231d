"""Tests for authentication detection and the authentication waiter."""

from __future__ import annotations

import asyncio

import pytest
from fakes import FakeClock, FakePage

from docscout.core.auth import AuthenticationWaiter, KeywordAuthClassifier, PageSnapshot, read_snapshot


class TestKeywordAuthClassifier:
    def setup_method(self):
        self.classifier = KeywordAuthClassifier()

    def test_login_page_is_login_surface(self):
        snap = PageSnapshot(url="https://x.com/login", title="Sign In - X")

        assert self.classifier.is_login_surface(snap)

    def test_dashboard_is_authenticated_and_not_login(self):
        snap = PageSnapshot(url="https://x.com/dashboard", title="Dashboard", body_text="Welcome back, Ada")

        assert self.classifier.is_authenticated(snap)
        assert not self.classifier.is_login_surface(snap)

    def test_password_prompt_in_body_is_login_surface(self):
        snap = PageSnapshot(url="https://x.com/start", body_text="Please enter your password to continue")

        assert self.classifier.is_login_surface(snap)

    def test_logout_element_means_authenticated(self):
        snap = PageSnapshot(url="https://x.com/projects", has_logout_element=True)

        assert self.classifier.is_authenticated(snap)

    def test_marketing_page_is_neither(self):
        snap = PageSnapshot(url="https://x.com/pricing", title="Pricing", body_text="Plans for every team")

        assert not self.classifier.is_login_surface(snap)
        assert not self.classifier.is_authenticated(snap)


@pytest.mark.asyncio
async def test_read_snapshot_collects_page_state():
    page = FakePage(url="https://x.com/app", title="X", body="hello")
    page.logout = True

    snap = await read_snapshot(page)

    assert snap == PageSnapshot(url="https://x.com/app", title="X", body_text="hello", has_logout_element=True)


def _login_page() -> FakePage:
    return FakePage(url="https://x.com/login", title="Sign In - X", body="Enter your password")


class TestAuthenticationWaiter:
    @pytest.mark.asyncio
    async def test_times_out_after_exactly_the_configured_timeout(self):
        clock = FakeClock()
        waiter = AuthenticationWaiter(timeout=120, interval=5, clock=clock, sleep=clock.sleep)

        result = await waiter.wait(_login_page())

        assert not result.success
        assert result.error == "timeout"
        assert clock.now == 120
        assert result.elapsed == 120

    @pytest.mark.asyncio
    async def test_last_pause_is_trimmed_to_the_deadline(self):
        clock = FakeClock()
        waiter = AuthenticationWaiter(timeout=20, interval=7, clock=clock, sleep=clock.sleep)

        result = await waiter.wait(_login_page())

        assert not result.success
        assert clock.sleeps == [7, 7, 6]
        assert clock.now == 20

    @pytest.mark.asyncio
    async def test_succeeds_when_user_lands_on_dashboard(self):
        page = _login_page()
        clock = FakeClock()

        def log_in(c):
            if c.now >= 15:
                page.show("https://x.com/dashboard", "Dashboard", "Welcome back")

        clock.on_sleep = log_in
        waiter = AuthenticationWaiter(timeout=120, interval=5, clock=clock, sleep=clock.sleep)

        result = await waiter.wait(page)

        assert result.success
        assert result.final_url == "https://x.com/dashboard"
        assert clock.now == 15

    @pytest.mark.asyncio
    async def test_url_change_alone_counts_once_off_the_login_surface(self):
        page = _login_page()
        clock = FakeClock()
        clock.on_sleep = lambda c: page.show("https://x.com/projects", "Projects", "Your projects")
        waiter = AuthenticationWaiter(timeout=60, interval=5, clock=clock, sleep=clock.sleep)

        result = await waiter.wait(page)

        assert result.success
        assert result.final_url == "https://x.com/projects"

    @pytest.mark.asyncio
    async def test_url_change_while_still_on_login_keeps_waiting(self):
        page = _login_page()
        clock = FakeClock()
        clock.on_sleep = lambda c: page.show("https://x.com/login?step=2", "Sign In - X", "Enter your password")
        waiter = AuthenticationWaiter(timeout=30, interval=5, clock=clock, sleep=clock.sleep)

        result = await waiter.wait(page)

        assert not result.success
        assert result.error == "timeout"

    @pytest.mark.asyncio
    async def test_page_errors_do_not_end_the_wait_early(self):
        page = _login_page()
        clock = FakeClock()

        async def broken_title():
            raise RuntimeError("Target closed")

        page.title = broken_title
        waiter = AuthenticationWaiter(timeout=15, interval=5, clock=clock, sleep=clock.sleep)

        result = await waiter.wait(page)

        assert not result.success
        assert clock.now == 15

    @pytest.mark.asyncio
    async def test_cancel_before_start(self):
        cancel = asyncio.Event()
        cancel.set()
        clock = FakeClock()
        waiter = AuthenticationWaiter(timeout=120, interval=5, clock=clock, sleep=clock.sleep)

        result = await waiter.wait(_login_page(), cancel=cancel)

        assert not result.success
        assert result.error == "cancelled"
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_cancel_interrupts_a_real_sleep(self):
        cancel = asyncio.Event()
        waiter = AuthenticationWaiter(timeout=60, interval=30)

        async def cancel_soon():
            await asyncio.sleep(0.05)
            cancel.set()

        canceller = asyncio.create_task(cancel_soon())
        result = await asyncio.wait_for(waiter.wait(_login_page(), cancel=cancel), timeout=5)
        await canceller

        assert result.error == "cancelled"
