"""
Keyword index for rule-based auto replies.

Maps normalized keywords to the rules that declare them. Lookup first
scans for plain substring containment and only falls back to fuzzy
(edit-distance) matching when nothing is contained.
"""

from dataclasses import dataclass
from typing import Iterable

from loguru import logger

from replybot.auto_reply.fuzzy import fuzzy_match
from replybot.config.schema import ReplyRule


def normalize(text: str) -> str:
    """Lower-case and trim text for keyword comparison."""
    return text.lower().strip()


@dataclass(frozen=True)
class KeywordMatch:
    """Result of a keyword lookup."""
    rule: ReplyRule
    keyword: str
    fuzzy: bool = False


class KeywordIndex:
    """
    Normalized keyword -> ordered list of rules.

    Buckets keep rule insertion order. When several rules share a keyword
    the first one loaded wins.
    """

    def __init__(self, rules: Iterable[ReplyRule] | None = None):
        self._index: dict[str, list[ReplyRule]] = {}
        self._rule_count = 0
        if rules is not None:
            self.build(rules)

    def build(self, rules: Iterable[ReplyRule]) -> None:
        """Rebuild the index from scratch using enabled rules only."""
        index: dict[str, list[ReplyRule]] = {}
        rule_count = 0

        for rule in rules:
            rule_count += 1
            if not rule.enabled:
                continue

            for keyword in rule.keywords:
                normalized = normalize(keyword)
                if not normalized:
                    continue
                index.setdefault(normalized, []).append(rule)

        self._index = index
        self._rule_count = rule_count

        logger.info(f"Keyword index built: {rule_count} rules, {len(index)} keywords")

    def lookup(self, normalized_text: str) -> KeywordMatch | None:
        """
        Find the rule for a message.

        Args:
            normalized_text: Message text, already lower-cased and trimmed.

        Returns:
            The first match, or None.
        """
        for keyword, rules in self._index.items():
            if keyword in normalized_text:
                return KeywordMatch(rule=rules[0], keyword=keyword, fuzzy=False)

        for keyword, rules in self._index.items():
            if fuzzy_match(normalized_text, keyword):
                return KeywordMatch(rule=rules[0], keyword=keyword, fuzzy=True)

        return None

    def rules_for(self, keyword: str) -> list[ReplyRule]:
        """Get the rules bucketed under a keyword."""
        return list(self._index.get(normalize(keyword), []))

    @property
    def keywords(self) -> list[str]:
        """Indexed keywords in insertion order."""
        return list(self._index)

    @property
    def size(self) -> int:
        """Number of distinct indexed keywords."""
        return len(self._index)

    @property
    def rule_count(self) -> int:
        """Number of rules seen by the last build (enabled or not)."""
        return self._rule_count

    def __len__(self) -> int:
        return self.size
