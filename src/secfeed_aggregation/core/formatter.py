"""
Digest formatting and message chunking for the messaging channel.

The digest is Telegram-flavoured HTML: only <b>, <i>, <a> and friends are
understood by the receiving side, so nothing else is emitted here.
"""

import re
from html import escape
from typing import Optional

from secfeed_aggregation.models.item import Category, SecurityItem, Subcategory
from secfeed_aggregation.utils.date_utils import format_pub_date

MAX_ITEMS_PER_CATEGORY = 5
SEPARATOR = "─" * 20
UNKNOWN_TIME = "未知时间"

_ATOMIC_RE = re.compile(r"<[^<>]*>|&#?\w+;")


CATEGORY_LABELS = {
    Category.BLOCKCHAIN_ATTACK: "🔴 区块链攻击",
    Category.VULNERABILITY_DISCLOSURE: "⚠️ 漏洞披露",
    Category.EXPLOIT: "💥 漏洞利用",
    Category.SMART_CONTRACT_BUG: "🐛 智能合约漏洞",
}

SUBCATEGORY_LABELS = {
    Subcategory.BRIDGE_HACK: "🌉 跨链桥攻击",
    Subcategory.WALLET_HACK: "👛 钱包被黑",
    Subcategory.STOLEN_FUNDS: "💰 资金被盗",
    Subcategory.PUBLIC_CHAIN_ATTACK: "⛓️ 公链攻击",
    Subcategory.CODE_BUG: "🧩 代码漏洞",
}


def category_label(category: Category) -> str:
    return CATEGORY_LABELS.get(category, category.value)


def subcategory_label(subcategory: Optional[Subcategory]) -> str:
    if subcategory is None:
        return ""
    return SUBCATEGORY_LABELS.get(subcategory, subcategory.value)


def format_digest(
    items: list[SecurityItem],
    time_range: str,
    max_per_category: int = MAX_ITEMS_PER_CATEGORY,
    tz_name: Optional[str] = None,
) -> str:
    """Render items as an HTML digest grouped by category.

    Categories appear in fixed order; at most ``max_per_category`` items
    are listed per category, followed by a "+N more" note.

    Args:
        items: Items to render
        time_range: Human-readable window label
        max_per_category: Items listed per category
        tz_name: Timezone for displayed dates

    Returns:
        Digest text
    """
    lines = [
        "🔒 <b>Web3 安全动态更新</b>",
        f"📅 <b>时间范围</b>: {escape(time_range, quote=False)}",
        f"📊 <b>发现 {len(items)} 条新的安全相关资讯</b>",
        "",
    ]

    by_category: dict[Category, list[SecurityItem]] = {category: [] for category in Category}
    for item in items:
        by_category[item.category].append(item)

    for category, category_items in by_category.items():
        if not category_items:
            continue

        lines.append(f"\n<b>{category_label(category)} ({len(category_items)}条)</b>")
        lines.append("")

        for index, item in enumerate(category_items[:max_per_category], start=1):
            date = format_pub_date(item.pub_date, tz_name=tz_name) or UNKNOWN_TIME
            lines.append(f"{index}. <b>{escape(item.title, quote=False)}</b>")
            lines.append(f"   📅 {date}")
            if item.link:
                lines.append(f'   🔗 <a href="{escape(item.link)}">查看详情</a>')
            lines.append("")

        hidden = len(category_items) - max_per_category
        if hidden > 0:
            lines.append(f"<i>还有 {hidden} 条未显示...</i>")
            lines.append("")

    lines.append(SEPARATOR)
    lines.append("")
    lines.append("💡 查看完整列表和更多信息")

    return "\n".join(lines)


def _cut_line(line: str, limit: int) -> list[str]:
    """Cut an overlong line, preferring spaces and never splitting a tag or entity."""
    spans = [match.span() for match in _ATOMIC_RE.finditer(line)]

    def is_safe(pos: int) -> bool:
        return not any(start < pos < end for start, end in spans)

    pieces = []
    start = 0
    while len(line) - start > limit:
        end = start + limit
        cut = next(
            (pos for pos in range(end, start, -1) if line[pos] == " " and is_safe(pos)),
            None,
        )
        if cut is not None:
            pieces.append(line[start:cut])
            start = cut + 1
            continue

        cut = next((pos for pos in range(end, start, -1) if is_safe(pos)), end)
        pieces.append(line[start:cut])
        start = cut

    pieces.append(line[start:])
    return pieces


def split_message(text: str, limit: int = 4000) -> list[str]:
    """Split text into chunks of at most ``limit`` characters.

    Splits happen at line boundaries. A single line longer than ``limit``
    is cut at a space where possible, otherwise at the last position that
    is not inside an HTML tag or entity.

    Args:
        text: Message text
        limit: Maximum chunk length

    Returns:
        Non-empty chunks; blank lines at chunk boundaries are dropped
    """
    if limit <= 0:
        raise ValueError("limit must be positive")
    if len(text) <= limit:
        return [text] if text else []

    chunks = []
    current = ""

    for line in text.split("\n"):
        pieces = _cut_line(line, limit) if len(line) > limit else [line]
        for piece in pieces:
            candidate = f"{current}\n{piece}" if current else piece
            if current and len(candidate) > limit:
                chunks.append(current)
                current = piece
            else:
                current = candidate

    if current:
        chunks.append(current)

    return chunks
