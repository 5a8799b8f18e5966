"""Tests for the enrichment join."""

from trend_notifier.enrichment import build_rows, index_enrichment, started_timestamp
from trend_notifier.models import DiffResult, TrendItem
from trend_notifier.normalizer import normalize_title
from trend_notifier.volume import VolumePolicy


def test_started_timestamp_in_target_zone(now):
    # 90 minutes before 09:30 UTC is 08:00 UTC, 11:00 in Athens
    assert started_timestamp(90, now, "Europe/Athens") == "18/10/26 11:00"
    assert started_timestamp(90, now, "UTC") == "18/10/26 08:00"


def test_started_timestamp_unknown(now):
    assert started_timestamp(None, now, "Europe/Athens") == "—"


def test_index_first_occurrence_wins():
    index = index_enrichment([
        TrendItem(title="Καιρός", volume_raw=20),
        TrendItem(title="καιρος", volume_raw=999_999_999),
    ])
    key = normalize_title("Καιρός")
    assert list(index) == [key]
    assert index[key].volume == "20K+"
    assert index[key].volume_value == 20_000


def test_index_respects_policy():
    index = index_enrichment([TrendItem(title="x", volume_raw=20)], VolumePolicy(compact_thousands=False))
    assert index["x"].volume == "20"
    assert index["x"].volume_value == 20


def test_left_outer_join(items, now):
    enrichment = index_enrichment([
        TrendItem(title="ΟΛΥΜΠΙΑΚΟΣ", volume_raw=50, started_minutes_ago=90,
                  related_queries=["ολυμπιακος παοκ"]),
        TrendItem(title="Not in baseline", volume_raw=10),
    ])
    diff = DiffResult(new_keys=[normalize_title("καιρός")], should_notify=True)

    rows = build_rows(items, enrichment, diff, now, "Europe/Athens")

    assert [r.title for r in rows] == ["Ολυμπιακός", "Καιρός", "Champions League"]

    enriched, plain, numeric = rows
    assert enriched.volume == "50K+"
    assert enriched.volume_value == 50_000
    assert enriched.started == "18/10/26 11:00"
    assert enriched.related_queries == ["ολυμπιακος παοκ"]
    assert enriched.link == "https://news.example.gr/olympiakos"
    assert enriched.is_new is False

    # No enrichment: baseline count formatted literally, placeholders elsewhere
    assert plain.volume == "2K+"
    assert plain.volume_value == 2_000
    assert plain.started == "—"
    assert plain.related_queries == ["Καιρός"]
    assert plain.is_new is True

    assert numeric.volume == "500K+"


def test_join_without_diff(items, now):
    rows = build_rows(items, {}, None, now, "Europe/Athens")
    assert not any(r.is_new for r in rows)


def test_rss_counts_rank_literally(now):
    items = [TrendItem(title="small", volume_raw="500+"), TrendItem(title="large", volume_raw="50,000+")]

    small, large = build_rows(items, {}, None, now, "Europe/Athens")

    assert small.volume == "500+"
    assert small.volume_value == 500
    assert large.volume == "50K+"
    assert large.volume_value == 50_000
