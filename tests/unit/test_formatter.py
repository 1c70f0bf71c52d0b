"""Unit tests for digest formatting and message chunking."""

import pytest

from secfeed_aggregation.core.formatter import (
    SEPARATOR,
    UNKNOWN_TIME,
    category_label,
    format_digest,
    split_message,
    subcategory_label,
)
from secfeed_aggregation.models import Category, Subcategory


class TestLabels:
    """Tests for label helpers."""

    def test_category_label(self):
        assert category_label(Category.BLOCKCHAIN_ATTACK) == "🔴 区块链攻击"
        assert category_label(Category.SMART_CONTRACT_BUG) == "🐛 智能合约漏洞"

    def test_subcategory_label(self):
        assert subcategory_label(Subcategory.BRIDGE_HACK) == "🌉 跨链桥攻击"
        assert subcategory_label(None) == ""


class TestFormatDigest:
    """Tests for format_digest."""

    def test_header_and_footer(self, make_item):
        text = format_digest([make_item()], "过去 30 分钟")
        lines = text.split("\n")

        assert lines[0] == "🔒 <b>Web3 安全动态更新</b>"
        assert lines[1] == "📅 <b>时间范围</b>: 过去 30 分钟"
        assert lines[2] == "📊 <b>发现 1 条新的安全相关资讯</b>"
        assert SEPARATOR in lines
        assert lines[-1] == "💡 查看完整列表和更多信息"

    def test_grouped_in_category_order(self, make_item):
        items = [
            make_item(title="Advisory", category=Category.VULNERABILITY_DISCLOSURE),
            make_item(title="Attack one"),
            make_item(title="Reentrancy", category=Category.SMART_CONTRACT_BUG),
            make_item(title="Attack two"),
        ]
        text = format_digest(items, "最近 30 分钟")

        attack = text.index("🔴 区块链攻击 (2条)")
        advisory = text.index("⚠️ 漏洞披露 (1条)")
        contract = text.index("🐛 智能合约漏洞 (1条)")
        assert attack < advisory < contract
        assert "💥 漏洞利用" not in text
        assert text.index("1. <b>Attack one</b>") < text.index("2. <b>Attack two</b>")

    def test_more_note(self, make_item):
        items = [make_item(title=f"Hack {i}", link=f"https://x.com/{i}") for i in range(7)]
        text = format_digest(items, "最近 30 分钟")

        assert "5. <b>Hack 4</b>" in text
        assert "Hack 5" not in text
        assert "<i>还有 2 条未显示...</i>" in text

    def test_custom_max_per_category(self, make_item):
        items = [make_item(title=f"Hack {i}", link=f"https://x.com/{i}") for i in range(3)]
        text = format_digest(items, "最近 30 分钟", max_per_category=1)

        assert "Hack 1" not in text
        assert "<i>还有 2 条未显示...</i>" in text

    def test_escaping(self, make_item):
        item = make_item(title="<script> & co", link='https://x.com/a?b=1&c="2"')
        text = format_digest([item], "<now>")

        assert "<b>&lt;script&gt; &amp; co</b>" in text
        assert 'href="https://x.com/a?b=1&amp;c=&quot;2&quot;"' in text
        assert "&lt;now&gt;" in text

    def test_dates(self, make_item):
        dated = make_item(title="Dated", pub_date="2024-01-01T10:00:00Z")
        undated = make_item(title="Undated", link="https://x.com/2")

        text = format_digest([dated, undated], "最近 30 分钟", tz_name="Asia/Shanghai")

        assert "   📅 2024/01/01 18:00" in text
        assert f"   📅 {UNKNOWN_TIME}" in text

    def test_missing_link_has_no_anchor(self, make_item):
        text = format_digest([make_item(link="")], "最近 30 分钟")
        assert "<a href" not in text


class TestSplitMessage:
    """Tests for split_message."""

    def test_short_text(self):
        assert split_message("hello", 10) == ["hello"]

    def test_empty_text(self):
        assert split_message("", 10) == []

    def test_split_at_lines(self):
        assert split_message("aaaa\nbbbb\ncccc", 9) == ["aaaa\nbbbb", "cccc"]

    def test_long_line_is_cut(self):
        assert split_message("x" * 25, 10) == ["x" * 10, "x" * 10, "x" * 5]

    def test_long_line_prefers_spaces(self):
        assert split_message("alpha beta gamma", 11) == ["alpha beta", "gamma"]

    def test_long_line_keeps_tags_whole(self):
        chunks = split_message("x" * 8 + "<b>bold</b>", 10)
        assert chunks == ["x" * 8, "<b>bold", "</b>"]

    def test_long_line_keeps_entities_whole(self):
        assert split_message("a" * 8 + "&amp;b", 10) == ["a" * 8, "&amp;b"]

    def test_space_inside_tag_is_not_a_cut_point(self):
        line = 'see <a href="https://x.com/a">x</a>'
        chunks = split_message(line, 30)
        assert chunks == ["see", '<a href="https://x.com/a">x', "</a>"]

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            split_message("text", 0)

    def test_digest_chunks_respect_limit(self, make_item):
        items = [
            make_item(title=f"Protocol {i} hacked for ${i}M", link=f"https://x.com/{i}", category=category)
            for i, category in enumerate(list(Category) * 5)
        ]
        text = format_digest(items, "最近 30 分钟")

        chunks = split_message(text, 200)

        assert len(chunks) > 1
        assert all(0 < len(chunk) <= 200 for chunk in chunks)
        joined = "\n".join(chunks)
        for line in text.split("\n"):
            if line:
                assert line in joined
