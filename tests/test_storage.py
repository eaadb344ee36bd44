"""Tests for the JSON document and SQL repositories."""
from __future__ import annotations

import json
import os
from datetime import date, timedelta

import pytest

from trend_engine.db import make_engine
from trend_engine.ledger import TrendState
from trend_engine.models import RelatedQuery, SeedSummary
from trend_engine.repository import JsonDocumentRepository
from trend_engine.storage_sql import SqlRepository

DAY1 = date(2026, 3, 1)


def _state() -> TrendState:
    s = TrendState()
    s.terms.merge_observations({"photo booth rental", "selfie booth"}, DAY1, sources={"selfie booth": "photo booth"})
    s.terms.merge_observations({"photo booth rental"}, DAY1 + timedelta(days=1))
    s.breakouts.merge_breakouts([RelatedQuery("Glambot", 140150, True, "photo booth")], DAY1)
    s.seeds = [SeedSummary(term="photo booth", current_interest=71.0, change30=12, change60=-3, change90=None, related_count=9)]
    s.last_autocomplete_scan = "2026-03-02T06:00:00+00:00"
    s.last_breakout_scan = "2026-03-02T06:05:00+00:00"
    return s


class TestJsonDocumentRepository:
    def test_missing_file_is_empty_state(self, tmp_path):
        s = JsonDocumentRepository(str(tmp_path / "none.json")).load()
        assert len(s.terms) == 0
        assert s.last_autocomplete_scan is None

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "data" / "trends.json"
        repo = JsonDocumentRepository(str(path))
        state = _state()
        repo.save(state)

        doc = json.loads(path.read_text(encoding="utf-8"))
        assert set(doc) == {"autocomplete", "breakouts", "history", "seeds", "lastAutocompleteScan", "lastBreakoutScan"}
        assert doc["autocomplete"]["photo booth rental"]["appearances"] == 2
        assert "refreshing" not in doc

        assert repo.load().to_dict() == state.to_dict()

    def test_failed_write_keeps_previous_document(self, tmp_path, monkeypatch):
        path = tmp_path / "trends.json"
        repo = JsonDocumentRepository(str(path))
        repo.save(_state())
        before = path.read_text(encoding="utf-8")

        def boom(*a, **kw):
            raise OSError("disk full")

        monkeypatch.setattr("trend_engine.repository.json.dump", boom)
        with pytest.raises(OSError):
            repo.save(TrendState())

        assert path.read_text(encoding="utf-8") == before
        assert [p.name for p in tmp_path.iterdir()] == ["trends.json"]

    def test_corrupt_document_is_moved_aside(self, tmp_path):
        path = tmp_path / "trends.json"
        path.write_text("{not json", encoding="utf-8")

        s = JsonDocumentRepository(str(path)).load()

        assert len(s.terms) == 0
        assert not path.exists()
        assert any(p.name.endswith(".corrupt") for p in tmp_path.iterdir())

    @pytest.mark.parametrize("doc", [
        {"autocomplete": ["photo booth"]},
        {"breakouts": {"glambot": {}}},
        {"history": "yesterday"},
        {"seeds": [["photo booth"]]},
    ])
    def test_wrong_shape_is_moved_aside(self, tmp_path, doc):
        path = tmp_path / "trends.json"
        path.write_text(json.dumps(doc), encoding="utf-8")

        s = JsonDocumentRepository(str(path)).load()

        assert len(s.terms) == 0 and len(s.breakouts) == 0
        assert not path.exists()
        assert any(p.name.endswith(".corrupt") for p in tmp_path.iterdir())

    def test_history_trimmed_on_load(self, tmp_path):
        path = tmp_path / "trends.json"
        JsonDocumentRepository(str(path)).save(_state())
        assert len(JsonDocumentRepository(str(path), retention=1).load().history) == 1


class TestSqlRepository:
    @pytest.fixture
    def repo(self, tmp_path):
        return SqlRepository(make_engine(f"sqlite:///{tmp_path / 'trends.db'}"))

    def test_empty_database(self, repo):
        s = repo.load()
        assert len(s.terms) == 0 and len(s.breakouts) == 0
        assert s.last_breakout_scan is None

    def test_save_and_load(self, repo):
        state = _state()
        repo.save(state)
        assert repo.load().to_dict() == state.to_dict()

    def test_second_save_updates_rows(self, repo):
        state = _state()
        repo.save(state)

        state.terms.merge_observations({"photo booth rental", "glam booth"}, DAY1 + timedelta(days=2))
        state.breakouts.merge_breakouts([RelatedQuery("glambot", 9000, True, "wedding ideas")], DAY1 + timedelta(days=2))
        state.seeds = []
        repo.save(state)

        back = repo.load()
        assert back.terms.get("photo booth rental").appearances == 3
        assert back.breakouts.get("glambot").value == 9000
        assert back.breakouts.get("glambot").appearances == 2
        assert len(back.history) == 3
        assert back.seeds == []

    def test_empty_dsn(self):
        with pytest.raises(RuntimeError):
            make_engine("")
