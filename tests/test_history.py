"""
Test Suite for Assessment History

Tests the append-only history, snapshot export/import and file storage.
"""

import json
from datetime import timedelta

import pytest

from patterncert.persistence import AssessmentHistory, FileHistoryStore
from patterncert.quality import QualityCertificationAggregator


@pytest.fixture
def record_factory(make_scores, all_compliant, fixed_time):
    """Build records for a pattern, one day apart."""
    aggregator = QualityCertificationAggregator()

    def build(pattern_id: str, score: int, day: int = 0):
        return aggregator.evaluate(
            pattern_id,
            make_scores(score),
            all_compliant,
            timestamp=fixed_time + timedelta(days=day),
        )

    return build


class TestAssessmentHistory:
    """Test appending and reading records."""

    def test_append_and_get(self, record_factory):
        history = AssessmentHistory()
        first = record_factory("summarize", 80, day=0)
        second = record_factory("summarize", 84, day=1)

        history.append(first)
        history.append(second)

        assert history.get("summarize") == (first, second)
        assert history.latest("summarize") == second
        assert len(history) == 2
        assert "summarize" in history

    def test_unknown_pattern(self):
        history = AssessmentHistory()

        assert history.get("missing") == ()
        assert history.latest("missing") is None
        assert "missing" not in history

    def test_out_of_order_append_is_rejected(self, record_factory):
        history = AssessmentHistory()
        history.append(record_factory("summarize", 80, day=2))

        with pytest.raises(ValueError, match="older than the latest"):
            history.append(record_factory("summarize", 70, day=1))
        assert len(history.get("summarize")) == 1

    def test_patterns_are_independent(self, record_factory):
        history = AssessmentHistory()
        history.append(record_factory("b_pattern", 80, day=3))
        history.append(record_factory("a_pattern", 70, day=1))

        assert history.pattern_ids() == ["a_pattern", "b_pattern"]
        assert [r.pattern_id for r in history.latest_records()] == ["a_pattern", "b_pattern"]

    def test_returned_records_are_a_copy(self, record_factory):
        history = AssessmentHistory()
        history.append(record_factory("summarize", 80))

        records = history.get("summarize")
        assert isinstance(records, tuple)


class TestSnapshots:
    """Test export and import."""

    @pytest.fixture
    def history(self, record_factory):
        history = AssessmentHistory()
        history.append(record_factory("summarize", 80, day=0))
        history.append(record_factory("summarize", 86, day=1))
        history.append(record_factory("extract_wisdom", 91, day=0))
        return history

    def test_export_shape(self, history):
        snapshot = history.export_snapshot()

        assert snapshot["version"] == 1
        assert set(snapshot["patterns"]) == {"summarize", "extract_wisdom"}
        assert len(snapshot["patterns"]["summarize"]) == 2

    def test_export_import_preserves_records(self, history):
        restored = AssessmentHistory()
        added = restored.import_snapshot(history.export_json(), mode="replace")

        assert added == 3
        assert restored.get("summarize") == history.get("summarize")
        assert restored.get("extract_wisdom") == history.get("extract_wisdom")

    def test_export_is_json(self, history):
        data = json.loads(history.export_json())

        assert data["patterns"]["summarize"][0]["grade"] == "B"

    def test_merge_skips_known_timestamps(self, history, record_factory):
        other = AssessmentHistory()
        other.append(record_factory("summarize", 80, day=0))
        other.append(record_factory("summarize", 95, day=5))

        added = history.import_snapshot(other.export_snapshot(), mode="merge")

        assert added == 1
        scores = [r.overall_score for r in history.get("summarize")]
        assert scores == [80, 86, 95]

    def test_merge_keeps_time_order(self, history, record_factory):
        other = AssessmentHistory()
        other.append(record_factory("summarize", 60, day=-3))

        history.import_snapshot(other.export_snapshot(), mode="merge")

        timestamps = [r.timestamp for r in history.get("summarize")]
        assert timestamps == sorted(timestamps)

    def test_replace_only_touches_imported_patterns(self, history, record_factory):
        other = AssessmentHistory()
        other.append(record_factory("summarize", 50, day=9))

        history.import_snapshot(other.export_snapshot(), mode="replace")

        assert [r.overall_score for r in history.get("summarize")] == [50]
        assert len(history.get("extract_wisdom")) == 1

    def test_unknown_mode(self, history):
        with pytest.raises(ValueError, match="Unknown import mode"):
            history.import_snapshot({"patterns": {}}, mode="overwrite")

    def test_malformed_snapshot(self):
        history = AssessmentHistory()

        with pytest.raises(ValueError):
            history.import_snapshot({"records": []})
        with pytest.raises(ValueError, match="Malformed record"):
            history.import_snapshot({"patterns": {"summarize": [{"pattern_id": "summarize"}]}})
        with pytest.raises(ValueError):
            history.import_snapshot("not json")

    def test_malformed_pattern_leaves_history_untouched(self, history, record_factory):
        before = {pid: history.get(pid) for pid in history.pattern_ids()}
        snapshot = {
            "patterns": {
                "summarize": [record_factory("summarize", 99, day=7).to_dict()],
                "zeta": [{"pattern_id": "zeta"}],
            }
        }

        with pytest.raises(ValueError, match="Malformed record for zeta"):
            history.import_snapshot(snapshot, mode="replace")

        assert {pid: history.get(pid) for pid in history.pattern_ids()} == before

    def test_timestamp_without_timezone_is_rejected(self, history, record_factory):
        raw = record_factory("summarize", 70, day=4).to_dict()
        raw["timestamp"] = "2026-01-05T12:00:00"

        with pytest.raises(ValueError, match="no timezone"):
            history.import_snapshot({"patterns": {"summarize": [raw]}}, mode="merge")
        assert len(history.get("summarize")) == 2


class TestFileHistoryStore:
    """Test file system persistence."""

    @pytest.mark.asyncio
    async def test_save_and_load(self, tmp_path, record_factory):
        history = AssessmentHistory()
        history.append(record_factory("summarize", 80, day=0))
        history.append(record_factory("summarize", 88, day=1))
        store = FileHistoryStore(str(tmp_path))

        paths = await store.save(history)

        assert paths == ["summarize.json"]
        restored = AssessmentHistory()
        added = await store.load_into(restored)
        assert added == 2
        assert restored.get("summarize") == history.get("summarize")

    @pytest.mark.asyncio
    async def test_compressed(self, tmp_path, record_factory):
        store = FileHistoryStore(str(tmp_path), compress=True)
        record = record_factory("summarize", 80)

        path = await store.save_pattern("summarize", [record])

        assert path == "summarize.json.gz"
        assert (tmp_path / "summarize.json.gz").exists()
        records = await store.load_pattern("summarize")
        assert records[0]["overall_score"] == 80

    @pytest.mark.asyncio
    async def test_missing_pattern(self, tmp_path):
        store = FileHistoryStore(str(tmp_path))

        assert await store.load_pattern("nothing") is None
        assert await store.list_pattern_ids() == []

    @pytest.mark.asyncio
    async def test_unsafe_ids_stay_inside_base_path(self, tmp_path, record_factory):
        store = FileHistoryStore(str(tmp_path))

        path = await store.save_pattern("../outside/summary", [record_factory("x", 80)])

        assert "/" not in path
        assert (tmp_path / path).exists()

    @pytest.mark.asyncio
    async def test_similar_ids_do_not_share_a_file(self, tmp_path, record_factory):
        history = AssessmentHistory()
        history.append(record_factory("a/b", 70))
        history.append(record_factory("a_b", 90))
        store = FileHistoryStore(str(tmp_path))

        await store.save(history)

        assert await store.list_pattern_ids() == ["a/b", "a_b"]
        restored = AssessmentHistory()
        assert await store.load_into(restored) == 2
        assert restored.latest("a/b").overall_score == 70
        assert restored.latest("a_b").overall_score == 90
