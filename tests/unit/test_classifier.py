"""Unit tests for the keyword classifier and taxonomy."""

import pytest

from secfeed_aggregation.core.classifier import Classifier, combined_text, create_classifier
from secfeed_aggregation.core.taxonomy import (
    CATEGORY_RULES,
    CompositeRule,
    KeywordRule,
    first_match,
)
from secfeed_aggregation.models import Category, RawFeedEntry, Subcategory


@pytest.fixture
def classifier():
    return create_classifier()


class TestCombinedText:
    """Tests for combined_text helper."""

    def test_lowercases_and_joins(self):
        assert combined_text("Bridge HACKED", "Some Body") == "bridge hacked some body"

    def test_prefers_content_over_snippet(self):
        assert combined_text("t", "content", "snippet") == "t content"
        assert combined_text("t", None, "Snippet") == "t snippet"

    def test_missing_fields(self):
        assert combined_text(None) == " "


class TestKeywordRules:
    """Tests for taxonomy rule objects."""

    def test_keywords_are_lowercased(self):
        rule = KeywordRule("x", ("MetaMask", "Wormhole"))
        assert rule.keywords == ("metamask", "wormhole")
        assert rule.matches("the metamask extension")

    def test_composite_rule_requires_confirm_term(self):
        rule = CompositeRule("stolen", ("breached",), confirm=("Stolen",))

        assert not rule.matches("database breached")
        assert rule.matches("database breached, keys stolen")

    def test_first_match_respects_order(self):
        rules = (KeywordRule("first", ("hack",)), KeywordRule("second", ("hacked",)))
        assert first_match(rules, "protocol hacked") == "first"
        assert first_match(rules, "nothing here") is None

    def test_category_priority_order(self):
        labels = [rule.label for rule in CATEGORY_RULES]
        assert labels == [
            "blockchain_attack",
            "vulnerability_disclosure",
            "exploit",
            "smart_contract_bug",
        ]


class TestClassify:
    """Tests for category assignment."""

    def test_security_advisory_is_disclosure(self, classifier):
        entry = RawFeedEntry(title="Security advisory for geth client")
        assert classifier.classify(entry) == Category.VULNERABILITY_DISCLOSURE

    def test_blockchain_attack_wins_over_disclosure(self, classifier):
        entry = RawFeedEntry(
            title="Lending protocol hacked",
            content="A security advisory was published after the incident.",
        )
        assert classifier.classify(entry) == Category.BLOCKCHAIN_ATTACK

    def test_exploit(self, classifier):
        entry = RawFeedEntry(title="New ransomware strain targets exchanges")
        assert classifier.classify(entry) == Category.EXPLOIT

    def test_smart_contract_bug(self, classifier):
        entry = RawFeedEntry(title="Reentrancy issue found in lending protocol")
        assert classifier.classify(entry) == Category.SMART_CONTRACT_BUG

    def test_chinese_keywords(self, classifier):
        entry = RawFeedEntry(title="某交易所钱包被黑")
        assert classifier.classify(entry) == Category.BLOCKCHAIN_ATTACK

    def test_body_is_considered(self, classifier):
        entry = RawFeedEntry(title="Weekly update", content_snippet="A new CVE was assigned")
        assert classifier.classify(entry) == Category.VULNERABILITY_DISCLOSURE

    def test_unrelated_entry(self, classifier):
        entry = RawFeedEntry(title="Ethereum price rallies after ETF news")
        assert classifier.classify(entry) is None
        assert classifier.is_security_related(entry) is False

    def test_empty_entry(self, classifier):
        assert classifier.classify(RawFeedEntry()) is None
        assert classifier.subcategorize(RawFeedEntry()) is None

    def test_deterministic(self, classifier):
        entry = RawFeedEntry(title="Bridge exploit drains funds")
        results = {classifier.classify(entry) for _ in range(5)}
        assert len(results) == 1

    def test_classifies_security_items(self, classifier, make_item):
        item = make_item(title="Reentrancy in vault contract")
        assert classifier.classify(item) == Category.SMART_CONTRACT_BUG


class TestSubcategorize:
    """Tests for subcategory assignment."""

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Wormhole bridge drained", Subcategory.BRIDGE_HACK),
            ("MetaMask users targeted by phishing", Subcategory.WALLET_HACK),
            ("Protocol hacked, funds stolen", Subcategory.STOLEN_FUNDS),
            ("Solana validators halted", Subcategory.PUBLIC_CHAIN_ATTACK),
            ("Cryptographic flaw in prover", Subcategory.CODE_BUG),
        ],
    )
    def test_subcategories(self, classifier, title, expected):
        assert classifier.subcategorize(RawFeedEntry(title=title)) == expected

    def test_stolen_funds_needs_confirmation(self, classifier):
        # "漏洞" alone is a stolen-funds keyword but carries no loss signal
        assert classifier.subcategorize(RawFeedEntry(title="发现新的漏洞")) is None

    def test_subcategory_independent_of_category(self, classifier):
        entry = RawFeedEntry(title="Ledger firmware patch released")
        assert classifier.classify(entry) == Category.VULNERABILITY_DISCLOSURE
        assert classifier.subcategorize(entry) == Subcategory.WALLET_HACK

    def test_custom_rules(self):
        classifier = Classifier(
            category_rules=(KeywordRule("exploit", ("pwn",)),),
            subcategory_rules=(),
        )
        entry = RawFeedEntry(title="Pwn2Own results")
        assert classifier.classify(entry) == Category.EXPLOIT
        assert classifier.subcategorize(entry) is None
