"""Tests for the auth state store and poster URL provider."""

from __future__ import annotations

import asyncio

import pytest

from showsync.config import ImageConfig
from showsync.presentation import AuthState, AuthStateStore, ImageUrlProvider


def test_poster_url_picks_smallest_sufficient_size() -> None:
    provider = ImageUrlProvider(
        base_url="https://image.tmdb.org/t/p/", poster_sizes=("w92", "w342", "w780", "original")
    )
    assert provider.poster_url("/abc.jpg", 300) == "https://image.tmdb.org/t/p/w342/abc.jpg"
    assert provider.poster_url("abc.jpg", 92) == "https://image.tmdb.org/t/p/w92/abc.jpg"
    assert provider.poster_url("/abc.jpg", 2000) == "https://image.tmdb.org/t/p/original/abc.jpg"
    assert provider.poster_url(None, 300) is None


def test_poster_url_without_original_uses_largest() -> None:
    provider = ImageUrlProvider(base_url="https://img.test", poster_sizes=("w92", "w185"))
    assert provider.poster_url("/p.png", 500) == "https://img.test/w185/p.png"


def test_provider_from_config() -> None:
    config = ImageConfig(TMDB_IMAGE_BASE_URL="https://cdn.test/t", TMDB_POSTER_SIZES="w45, w500")
    provider = ImageUrlProvider.from_config(config)
    assert provider.base_url == "https://cdn.test/t/"
    assert provider.poster_sizes == ("w45", "w500")


def test_auth_store_from_token() -> None:
    assert AuthStateStore.from_token("tok").current is AuthState.LOGGED_IN
    assert AuthStateStore.from_token(None).current is AuthState.LOGGED_OUT


@pytest.mark.asyncio
async def test_wait_logged_in() -> None:
    store = AuthStateStore()
    waiter = asyncio.create_task(store.wait_logged_in())
    await asyncio.sleep(0)
    assert not waiter.done()

    store.login()
    assert await asyncio.wait_for(waiter, 1.0) is AuthState.LOGGED_IN
    store.logout()
    assert store.current is AuthState.LOGGED_OUT
