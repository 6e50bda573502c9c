"""
Tests for the shared browser provider with Playwright replaced by fakes.
"""

import asyncio

import pytest

from availability_agent import browser as browser_module
from availability_agent.browser import BrowserLaunchError, BrowserSessionProvider


class FakeBrowserContext:
    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self):
        self.contexts = []
        self.closed = False

    async def new_context(self):
        context = FakeBrowserContext()
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True


class FakeChromium:
    def __init__(self, error=None):
        self.error = error
        self.launches = []

    async def launch(self, headless=True, args=None):
        self.launches.append((headless, args))
        await asyncio.sleep(0)
        if self.error:
            raise self.error
        return FakeBrowser()


class FakePlaywright:
    def __init__(self, chromium):
        self.chromium = chromium
        self.stopped = False

    async def stop(self):
        self.stopped = True


class FakePlaywrightStarter:
    def __init__(self, chromium):
        self.chromium = chromium
        self.instances = []

    def __call__(self):
        return self

    async def start(self):
        instance = FakePlaywright(self.chromium)
        self.instances.append(instance)
        return instance


@pytest.fixture
def chromium(monkeypatch):
    fake = FakeChromium()
    starter = FakePlaywrightStarter(fake)
    monkeypatch.setattr(browser_module, "async_playwright", starter)
    fake.starter = starter
    return fake


class TestBrowserSessionProvider:
    def test_launches_once_for_concurrent_acquires(self, settings, chromium):
        provider = BrowserSessionProvider(settings)

        async def scenario():
            return await asyncio.gather(*(provider.acquire() for _ in range(3)))

        contexts = asyncio.run(scenario())

        assert len(chromium.launches) == 1
        assert chromium.launches[0] == (True, ["--no-sandbox", "--disable-setuid-sandbox"])
        assert len({id(context) for context in contexts}) == 3

    def test_release_closes_only_the_context(self, settings, chromium):
        provider = BrowserSessionProvider(settings)

        async def scenario():
            async with provider.session() as context:
                pass
            return context

        context = asyncio.run(scenario())

        assert context.closed
        assert provider.is_running

    def test_session_releases_on_error(self, settings, chromium):
        provider = BrowserSessionProvider(settings)
        seen = []

        async def scenario():
            async with provider.session() as context:
                seen.append(context)
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            asyncio.run(scenario())

        assert seen[0].closed

    def test_shutdown_is_idempotent(self, settings, chromium):
        provider = BrowserSessionProvider(settings)

        async def scenario():
            await provider.shutdown()
            await provider.acquire()
            await provider.shutdown()
            await provider.shutdown()

        asyncio.run(scenario())

        assert not provider.is_running
        assert chromium.starter.instances[0].stopped

    def test_launch_failure_propagates(self, settings, chromium):
        chromium.error = RuntimeError("Executable doesn't exist")
        provider = BrowserSessionProvider(settings)

        with pytest.raises(BrowserLaunchError, match="Executable doesn't exist"):
            asyncio.run(provider.acquire())

        assert not provider.is_running
        assert chromium.starter.instances[0].stopped
