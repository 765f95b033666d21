"""Shared fixtures for loadcase tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest

from loadcase import Loader, clear_settings_cache, configure_logging


@pytest.fixture(autouse=True)
def quiet_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Silence logs and isolate settings from the host environment."""
    for var in ("LOADCASE_LOADER_BATCH", "LOADCASE_LOADER_CACHE", "LOADCASE_LOADER_MAX_BATCH_SIZE"):
        monkeypatch.delenv(var, raising=False)
    clear_settings_cache()
    configure_logging(format="none")
    yield
    clear_settings_cache()


def make_identity_loader(**options: object) -> tuple[Loader, list[list]]:
    """Loader whose batch function echoes its keys and records each call."""
    calls: list[list] = []

    async def identity_batch(keys: list) -> list:
        calls.append(keys)
        return keys

    return Loader(identity_batch, **options), calls


@pytest.fixture
def identity_loader() -> tuple[Loader, list[list]]:
    return make_identity_loader()


@pytest.fixture
def loader_factory() -> Callable[..., tuple[Loader, list[list]]]:
    """Build identity loaders with custom options."""
    return make_identity_loader
