"""Unit tests for the reference collection loader."""

from __future__ import annotations

import pytest

from claims_analytics.services.claims.loader import COLLECTIONS, ReferenceLoader


def _deliver_all(loader: ReferenceLoader, generation: int) -> None:
    for name in COLLECTIONS:
        assert loader.receive(name, [{"id": 1}], generation)


def test_loader_reports_ready_once_everything_arrives():
    loader = ReferenceLoader()
    token = loader.begin()

    assert not loader.is_ready
    assert loader.missing == COLLECTIONS

    loader.receive("claims", [], token)
    loader.receive("employees", None, token)
    assert loader.missing == ("hr", "agents", "policies")
    assert loader.get("employees") == []

    for name in ("hr", "agents", "policies"):
        loader.receive(name, [{"id": 1}], token)
    assert loader.is_ready


def test_cancel_drops_stale_deliveries():
    loader = ReferenceLoader()
    stale = loader.begin()
    loader.receive("claims", [{"id": 1}], stale)

    fresh = loader.cancel()

    assert not loader.receive("employees", [{"id": 1}], stale)
    assert loader.get("employees") is None
    assert loader.get("claims") == [{"id": 1}]
    assert loader.receive("employees", [{"id": 2}], fresh)


def test_reset_forgets_collections():
    loader = ReferenceLoader()
    _deliver_all(loader, loader.begin())
    assert loader.is_ready

    loader.reset()

    assert not loader.is_ready
    assert loader.snapshot() == {name: None for name in COLLECTIONS}


def test_unknown_collection_is_rejected():
    with pytest.raises(KeyError):
        ReferenceLoader().receive("invoices", [])
