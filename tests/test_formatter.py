"""Tests for Slack payload formatting."""

from trend_notifier.formatter import (
    build_failure_payload,
    build_payload,
    explore_link,
    fit,
    region_flag,
)
from trend_notifier.models import EnrichedRow, Layout, PayloadMeta, RowOrder


def rows():
    return [
        EnrichedRow(title="Small", volume="5K+", volume_value=5_000, started="18/10/26 11:00",
                    related_queries=["small query"]),
        EnrichedRow(title="A very long trend title that overflows the column", volume="2M+",
                    volume_value=2_000_000, related_queries=["big"], is_new=True,
                    link="https://news.example/big"),
        EnrichedRow(title="Medium", volume="50K+", volume_value=50_000, related_queries=["medium"]),
    ]


def meta(now, **kwargs):
    return PayloadMeta(region="GR", generated_at=now, time_zone="Europe/Athens", **kwargs)


def table_lines(payload):
    section = payload.blocks[3]["text"]["text"]
    return section.strip("`").split("\n")


class TestHelpers:

    def test_fit_pads(self):
        assert fit("ab", 5) == "ab   "

    def test_fit_truncates_with_ellipsis(self):
        assert fit("abcdefgh", 5) == "abcd…"

    def test_fit_exact_width_untouched(self):
        assert fit("abcde", 5) == "abcde"

    def test_region_flag(self):
        assert region_flag("gr") == "\U0001F1EC\U0001F1F7"
        assert region_flag("global") == "🌐"

    def test_explore_link_encodes_query(self):
        link = explore_link("a & b", "GR")
        assert link == "<https://trends.google.com/trends/explore?geo=GR&q=a%20%26%20b|a &amp; b>"


class TestBuildPayload:

    def test_header_and_timestamp_in_target_zone(self, now):
        payload = build_payload(rows(), meta(now))

        assert payload.blocks[0]["type"] == "header"
        assert payload.blocks[0]["text"]["text"].endswith("Trending Now (GR)")
        # 09:30 UTC is 12:30 in Athens (EEST)
        context = payload.blocks[1]["elements"][0]["text"]
        assert "18/10/26 12:30" in context
        assert "3 trends" in context
        assert "1 new" in context
        assert payload.blocks[2] == {"type": "divider"}

    def test_deterministic(self, now):
        first = build_payload(rows(), meta(now))
        second = build_payload(rows(), meta(now))
        assert first.model_dump_json() == second.model_dump_json()

    def test_table_layout(self, now):
        payload = build_payload(rows(), meta(now, layout=Layout.TABLE))
        lines = table_lines(payload)

        assert lines[0].startswith("#   | Trend")
        assert set(lines[1]) == {"-"}
        assert lines[2].startswith("1   | Small")
        assert lines[3].startswith("2*  | A very long trend title…")
        assert " | 2M+     | — " in lines[3]
        assert payload.text == "Trending Now (GR): 3 trends, 1 new"

    def test_table_link_context_blocks(self, now):
        payload = build_payload(rows(), meta(now, layout=Layout.TABLE))
        contexts = [b for b in payload.blocks[4:] if b["type"] == "context"]
        texts = [e["text"] for b in contexts for e in b["elements"]]

        assert texts[0] == "* new since the last run"
        assert texts[1] == "*1.* — · <https://trends.google.com/trends/explore?geo=GR&q=small%20query|small query>"
        assert texts[2] == (
            "*2.* <https://news.example/big|Sample URL> · "
            "<https://trends.google.com/trends/explore?geo=GR&q=big|big>"
        )

    def test_table_link_context_without_queries(self, now):
        payload = build_payload([EnrichedRow(title="Solo", link="https://news.example/solo")], meta(now))
        texts = [e["text"] for b in payload.blocks[4:] for e in b["elements"]]
        assert texts == ["*1.* <https://news.example/solo|Sample URL>"]

    def test_link_context_split_in_tens(self, now):
        many = [EnrichedRow(title=f"t{i}", related_queries=[f"t{i}"]) for i in range(12)]
        payload = build_payload(many, meta(now, layout=Layout.TABLE))
        contexts = [b for b in payload.blocks if b["type"] == "context"][1:]
        assert [len(b["elements"]) for b in contexts] == [10, 2]

    def test_blocks_layout_marks_new(self, now):
        payload = build_payload(rows(), meta(now, layout=Layout.BLOCKS))
        sections = [b["text"]["text"] for b in payload.blocks if b["type"] == "section"]

        assert len(sections) == 3
        assert "NEW" not in sections[0]
        assert sections[1].startswith("*2. <https://news.example/big|A very long")
        assert "🆕 *NEW*" in sections[1]
        assert "2M+" in sections[1]

    def test_volume_order(self, now):
        payload = build_payload(rows(), meta(now, order=RowOrder.VOLUME))
        lines = table_lines(payload)
        assert "A very long" in lines[2]
        assert "Medium" in lines[3]
        assert "Small" in lines[4]

    def test_source_order(self, now):
        payload = build_payload(rows(), meta(now, order=RowOrder.SOURCE))
        lines = table_lines(payload)
        assert [line.split("|")[1].strip()[:6] for line in lines[2:]] == ["Small", "A very", "Medium"]

    def test_limit_applies_after_ordering(self, now):
        payload = build_payload(rows(), meta(now, order=RowOrder.VOLUME, limit=1))
        lines = table_lines(payload)
        assert len(lines) == 3
        assert "A very long" in lines[2]

    def test_escapes_titles(self, now):
        payload = build_payload(
            [EnrichedRow(title="Tom & <Jerry>", related_queries=["x"])],
            meta(now, layout=Layout.BLOCKS),
        )
        section = payload.blocks[3]["text"]["text"]
        assert "Tom &amp; &lt;Jerry&gt;" in section

    def test_escapes_table_cells(self, now):
        payload = build_payload(
            [EnrichedRow(title="Tom & <Jerry>", related_queries=["a<b"])],
            meta(now, layout=Layout.TABLE),
        )
        row = table_lines(payload)[2]
        assert "| Tom &amp; &lt;Jerry&gt; " in row
        assert row.endswith("| a&lt;b")
        assert "<Jerry>" not in row


def test_failure_payload(now):
    payload = build_failure_payload("fetch", "All 2 feed sources exhausted", meta(now))
    assert payload.text == "Google Trends job failed (GR)"
    assert "`fetch: All 2 feed sources exhausted`" in payload.blocks[0]["text"]["text"]
    assert "18/10/26 12:30" in payload.blocks[1]["elements"][0]["text"]
