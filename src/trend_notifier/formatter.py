"""Slack Block Kit formatting for trend lists."""

from typing import Iterable, List, Sequence
from urllib.parse import quote
from zoneinfo import ZoneInfo

from .models import EnrichedRow, Layout, PayloadMeta, RowOrder, StructuredPayload
from .volume import UNKNOWN_VOLUME

TIMESTAMP_FORMAT = "%d/%m/%y %H:%M"
EXPLORE_URL = "https://trends.google.com/trends/explore?geo={geo}&q={query}"

# Monospace table columns: (heading, width)
TABLE_COLUMNS = (
    ("#", 3),
    ("Trend", 24),
    ("Volume", 7),
    ("Started", 14),
    ("Breakdown", 28),
)
ELLIPSIS = "…"
NEW_MARKER = "*"
NEWS_LABEL = "Sample URL"

# Slack rejects context blocks with more than 10 elements
MAX_CONTEXT_ELEMENTS = 10


def region_flag(region: str) -> str:
    """Turn a two-letter region code into its flag emoji."""
    code = region.strip().upper()
    if len(code) != 2 or not code.isascii() or not code.isalpha():
        return "🌐"
    return "".join(chr(0x1F1E6 + ord(c) - ord("A")) for c in code)


def escape_mrkdwn(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def explore_link(query: str, region: str) -> str:
    url = EXPLORE_URL.format(geo=quote(region), query=quote(query))
    return f"<{url}|{escape_mrkdwn(query)}>"


def _row_links(index: int, row: EnrichedRow, region: str) -> str:
    news = f"<{row.link}|{NEWS_LABEL}>" if row.link else UNKNOWN_VOLUME
    explore = ", ".join(explore_link(q, region) for q in row.related_queries)
    return f"*{index}.* " + " · ".join(part for part in (news, explore) if part)


def fit(value, width: int) -> str:
    """Pad or truncate a cell to exactly ``width`` characters."""
    text = str(value if value is not None else "")
    if len(text) > width:
        return text[: width - 1] + ELLIPSIS
    return text.ljust(width)


def order_rows(rows: Sequence[EnrichedRow], order: RowOrder) -> List[EnrichedRow]:
    if order == RowOrder.VOLUME:
        # sorted() is stable, so equal volumes keep feed order
        return sorted(rows, key=lambda r: r.volume_value, reverse=True)
    return list(rows)


def _timestamp(meta: PayloadMeta) -> str:
    return meta.generated_at.astimezone(ZoneInfo(meta.time_zone)).strftime(TIMESTAMP_FORMAT)


def _header_blocks(meta: PayloadMeta, rows: Sequence[EnrichedRow]) -> List[dict]:
    new_count = sum(1 for r in rows if r.is_new)
    context = f"⏱️ {_timestamp(meta)} • {len(rows)} trends"
    if new_count:
        context += f" • {new_count} new"

    return [
        {
            "type": "header",
            "text": {
                "type": "plain_text",
                "text": f"{region_flag(meta.region)} Trending Now ({meta.region})",
                "emoji": True,
            },
        },
        {
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": context}],
        },
        {"type": "divider"},
    ]


def _chunked_context(texts: Iterable[str]) -> List[dict]:
    texts = list(texts)
    return [
        {
            "type": "context",
            "elements": [
                {"type": "mrkdwn", "text": t}
                for t in texts[i : i + MAX_CONTEXT_ELEMENTS]
            ],
        }
        for i in range(0, len(texts), MAX_CONTEXT_ELEMENTS)
    ]


def _row_blocks(rows: Sequence[EnrichedRow], region: str) -> List[dict]:
    blocks = []
    for i, row in enumerate(rows, start=1):
        title = escape_mrkdwn(row.title)
        if row.link:
            title = f"<{row.link}|{title}>"

        heading = f"*{i}. {title}*"
        if row.is_new:
            heading += "  🆕 *NEW*"

        links = ", ".join(explore_link(q, region) for q in row.related_queries)
        lines = [
            heading,
            f"📊 {row.volume or UNKNOWN_VOLUME}  ·  ⏱️ {row.started or UNKNOWN_VOLUME}",
        ]
        if links:
            lines.append(f"🔎 {links}")

        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": "\n".join(lines)}})
    return blocks


def _table_blocks(rows: Sequence[EnrichedRow], region: str) -> List[dict]:
    def line(cells: Sequence) -> str:
        # Escape after fitting so widths count rendered characters
        return " | ".join(
            escape_mrkdwn(fit(cell, width)) for cell, (_, width) in zip(cells, TABLE_COLUMNS)
        ).rstrip()

    header = line([name for name, _ in TABLE_COLUMNS])
    lines = [header, "-" * len(header)]

    for i, row in enumerate(rows, start=1):
        rank = f"{i}{NEW_MARKER}" if row.is_new else str(i)
        lines.append(
            line([
                rank,
                row.title,
                row.volume or UNKNOWN_VOLUME,
                row.started or UNKNOWN_VOLUME,
                ", ".join(row.related_queries),
            ])
        )

    blocks = [
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": "```" + "\n".join(lines) + "```"},
        }
    ]

    if any(r.is_new for r in rows):
        blocks.append({
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": f"{NEW_MARKER} new since the last run"}],
        })

    blocks.extend(
        _chunked_context(_row_links(i, row, region) for i, row in enumerate(rows, start=1))
    )
    return blocks


def build_payload(rows: Sequence[EnrichedRow], meta: PayloadMeta) -> StructuredPayload:
    """
    Render rows into a Slack payload.

    Pure: the timestamp comes from ``meta.generated_at``, so a fixed clock
    and fixed rows always give the same payload.
    """
    rows = order_rows(rows, meta.order)
    if meta.limit is not None:
        rows = rows[: meta.limit]

    blocks = _header_blocks(meta, rows)
    if meta.layout == Layout.TABLE:
        blocks.extend(_table_blocks(rows, meta.region))
    else:
        blocks.extend(_row_blocks(rows, meta.region))

    new_count = sum(1 for r in rows if r.is_new)
    text = f"Trending Now ({meta.region}): {len(rows)} trends, {new_count} new"

    return StructuredPayload(text=text, blocks=blocks)


def build_failure_payload(kind: str, message: str, meta: PayloadMeta) -> StructuredPayload:
    """Payload announcing that a run aborted."""
    return StructuredPayload(
        text=f"Google Trends job failed ({meta.region})",
        blocks=[
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        f"⚠️ *Google Trends job failed* ({meta.region})\n"
                        f"`{kind}: {escape_mrkdwn(message)[:500]}`"
                    ),
                },
            },
            {
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": f"⏱️ {_timestamp(meta)}"}],
            },
        ],
    )
