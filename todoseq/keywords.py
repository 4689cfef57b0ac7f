"""Task keyword resolution for todoseq.

Built-in keywords live in five fixed groups. User settings add custom
keywords, move built-ins between groups, or remove built-ins with a
leading ``-``. ``KeywordManager`` validates those settings once, resolves
the effective per-group order and then answers every query from the
precomputed result.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from .models import (
    KeywordAction,
    KeywordGroup,
    KeywordIssue,
    KeywordResolution,
    KeywordToken,
    KeywordValidationResult,
)
from .todoseq_logging import log_keyword_issues


BUILTIN_ACTIVE_KEYWORDS: Tuple[str, ...] = ("NOW", "DOING", "IN-PROGRESS")
BUILTIN_INACTIVE_KEYWORDS: Tuple[str, ...] = ("TODO", "LATER")
BUILTIN_WAITING_KEYWORDS: Tuple[str, ...] = ("WAIT", "WAITING")
BUILTIN_COMPLETED_KEYWORDS: Tuple[str, ...] = ("DONE", "CANCELED", "CANCELLED")
BUILTIN_ARCHIVED_KEYWORDS: Tuple[str, ...] = ("ARCHIVED",)

BUILTIN_KEYWORDS: Dict[KeywordGroup, Tuple[str, ...]] = {
    KeywordGroup.ACTIVE: BUILTIN_ACTIVE_KEYWORDS,
    KeywordGroup.INACTIVE: BUILTIN_INACTIVE_KEYWORDS,
    KeywordGroup.WAITING: BUILTIN_WAITING_KEYWORDS,
    KeywordGroup.COMPLETED: BUILTIN_COMPLETED_KEYWORDS,
    KeywordGroup.ARCHIVED: BUILTIN_ARCHIVED_KEYWORDS,
}

BUILTIN_GROUP_OF: Dict[str, KeywordGroup] = {
    keyword: group for group, keywords in BUILTIN_KEYWORDS.items() for keyword in keywords
}

ALL_BUILTIN_KEYWORDS: Tuple[str, ...] = tuple(
    keyword for group in KeywordGroup for keyword in BUILTIN_KEYWORDS[group]
)

KeywordSettings = Mapping[Union[KeywordGroup, str], Optional[Sequence[str]]]


def is_builtin_keyword(keyword: str) -> bool:
    return keyword in BUILTIN_GROUP_OF


def parse_keyword_tokens(raw_entries: Optional[Iterable[str]], group: KeywordGroup) -> List[KeywordToken]:
    """Turn raw settings strings into add/remove tokens for one group.

    Entries are stripped and upper-cased. A leading ``-`` marks a removal.
    Empty entries (including a bare ``-``) are dropped.
    """
    tokens: List[KeywordToken] = []
    for entry in raw_entries or ():
        if not isinstance(entry, str):
            continue
        value = entry.strip()
        action = KeywordAction.ADD
        if value.startswith("-"):
            action = KeywordAction.REMOVE
            value = value[1:].strip()
        value = value.upper()
        if not value:
            continue
        tokens.append(KeywordToken(keyword=value, action=action, group=group))
    return tokens


def _coerce_group(key: Union[KeywordGroup, str]) -> Optional[KeywordGroup]:
    if isinstance(key, KeywordGroup):
        return key
    for group in KeywordGroup:
        if key in (group.value, group.label, group.name):
            return group
    return None


class KeywordManager:
    """Resolves and classifies task keywords.

    Validation problems never raise. Keywords involved in an error are
    excluded from every group and the rest of the configuration still
    applies.
    """

    def __init__(self, settings: Optional[KeywordSettings] = None):
        self._tokens: Dict[KeywordGroup, List[KeywordToken]] = {group: [] for group in KeywordGroup}
        for key, entries in (settings or {}).items():
            group = _coerce_group(key)
            if group is None:
                continue
            self._tokens[group].extend(parse_keyword_tokens(entries, group))

        self._resolution = self._resolve()
        self._sets: Dict[KeywordGroup, FrozenSet[str]] = {
            group: frozenset(keywords) for group, keywords in self._resolution.order.items()
        }
        self._all_keywords = self._resolution.all_keywords

        validation = self._resolution.validation
        if validation.errors or validation.warnings:
            log_keyword_issues(validation.errors, validation.warnings)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _resolve(self) -> KeywordResolution:
        logger = logging.getLogger("todoseq.keywords")
        result = KeywordValidationResult()

        def error(keyword: str, group: KeywordGroup, message: str) -> None:
            result.errors.append(KeywordIssue(keyword, group, message))

        def warn(keyword: str, group: KeywordGroup, message: str) -> None:
            result.warnings.append(KeywordIssue(keyword, group, message))

        # Additions per group, first occurrence only, in declaration order
        additions: Dict[KeywordGroup, List[str]] = {group: [] for group in KeywordGroup}
        add_groups: Dict[str, List[KeywordGroup]] = defaultdict(list)
        for group in KeywordGroup:
            seen: Set[str] = set()
            for token in self._tokens[group]:
                if token.is_removal:
                    continue
                keyword = token.keyword
                if keyword in seen:
                    if not is_builtin_keyword(keyword):
                        error(keyword, group, f"Duplicate keyword '{keyword}' in {group.label} keywords")
                    continue
                seen.add(keyword)
                additions[group].append(keyword)
                add_groups[keyword].append(group)

        # Custom keywords declared in more than one group
        for keyword, groups in add_groups.items():
            if is_builtin_keyword(keyword) or len(groups) < 2:
                continue
            result.invalid_keywords.add(keyword)
            for group in groups:
                error(keyword, group, f"Keyword '{keyword}' is defined in multiple groups")

        # Removals must name a built-in of the same group
        removals: Dict[KeywordGroup, List[str]] = {group: [] for group in KeywordGroup}
        remove_groups: Dict[str, List[KeywordGroup]] = defaultdict(list)
        for group in KeywordGroup:
            for token in self._tokens[group]:
                if not token.is_removal:
                    continue
                keyword = token.keyword
                if is_builtin_keyword(keyword) and group not in remove_groups[keyword]:
                    remove_groups[keyword].append(group)
                if keyword not in BUILTIN_KEYWORDS[group]:
                    error(
                        keyword,
                        group,
                        f"Cannot remove '{keyword}': it is not a built-in {group.label} keyword",
                    )
                    continue
                if keyword not in removals[group]:
                    removals[group].append(keyword)

        # Built-ins that are both added and removed
        for keyword, groups_removed in remove_groups.items():
            groups_added = add_groups.get(keyword)
            if not groups_added:
                continue
            result.invalid_keywords.add(keyword)
            touched = [group for group in KeywordGroup if group in groups_added or group in groups_removed]
            for group in touched:
                error(keyword, group, f"Keyword '{keyword}' is both added and removed")

        # Built-ins re-added to more than one group
        for keyword, groups in add_groups.items():
            if not is_builtin_keyword(keyword) or len(groups) < 2:
                continue
            result.invalid_keywords.add(keyword)
            for group in groups:
                error(keyword, group, f"Built-in keyword '{keyword}' is added to multiple groups")

        # Warnings only for keywords that survived validation
        for group in KeywordGroup:
            for keyword in removals[group]:
                if keyword not in result.invalid_keywords:
                    warn(keyword, group, f"Built-in keyword '{keyword}' removed from {group.label} keywords")
            for keyword in additions[group]:
                if keyword in result.invalid_keywords or not is_builtin_keyword(keyword):
                    continue
                home = BUILTIN_GROUP_OF[keyword]
                if home is group:
                    warn(keyword, group, f"Built-in keyword '{keyword}' re-declared, sort order overridden")
                else:
                    warn(
                        keyword,
                        group,
                        f"Built-in keyword '{keyword}' moved from {home.label} to {group.label} keywords",
                    )

        order: Dict[KeywordGroup, List[str]] = {
            group: list(BUILTIN_KEYWORDS[group]) for group in KeywordGroup
        }
        for group in KeywordGroup:
            for keyword in removals[group]:
                if keyword in order[group]:
                    order[group].remove(keyword)
        for group in KeywordGroup:
            for keyword in additions[group]:
                if keyword in result.invalid_keywords:
                    continue
                for keywords in order.values():
                    if keyword in keywords:
                        keywords.remove(keyword)
                order[group].append(keyword)

        final_order = {
            group: tuple(k for k in keywords if k not in result.invalid_keywords)
            for group, keywords in order.items()
        }
        lookup = {keyword: group for group, keywords in final_order.items() for keyword in keywords}

        logger.debug(
            "Resolved keywords",
            extra={"extra_fields": {
                "keyword_count": len(lookup),
                "error_count": len(result.errors),
                "warning_count": len(result.warnings),
            }},
        )
        return KeywordResolution(order=final_order, lookup=lookup, validation=result)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def resolution(self) -> KeywordResolution:
        return self._resolution

    @property
    def validation(self) -> KeywordValidationResult:
        return self._resolution.validation

    def tokens(self, group: KeywordGroup) -> Tuple[KeywordToken, ...]:
        return tuple(self._tokens[group])

    def get_all_keywords(self) -> Tuple[str, ...]:
        """Every effective keyword, in group order then declaration order."""
        return self._all_keywords

    def get_group(self, keyword: str) -> Optional[KeywordGroup]:
        return self._resolution.lookup.get(keyword)

    def is_known_keyword(self, keyword: str) -> bool:
        return keyword in self._resolution.lookup

    def is_active(self, keyword: str) -> bool:
        return keyword in self._sets[KeywordGroup.ACTIVE]

    def is_inactive(self, keyword: str) -> bool:
        return keyword in self._sets[KeywordGroup.INACTIVE]

    def is_waiting(self, keyword: str) -> bool:
        return keyword in self._sets[KeywordGroup.WAITING]

    def is_completed(self, keyword: str) -> bool:
        return keyword in self._sets[KeywordGroup.COMPLETED]

    def is_archived(self, keyword: str) -> bool:
        return keyword in self._sets[KeywordGroup.ARCHIVED]

    def get_keywords_for_group(self, group: KeywordGroup) -> Tuple[str, ...]:
        """Effective keywords of one group in resolved order."""
        return self._resolution.order[group]

    def get_keyword_set(self, group: KeywordGroup) -> FrozenSet[str]:
        return self._sets[group]

    def get_builtin_keywords(self, group: KeywordGroup) -> Tuple[str, ...]:
        return BUILTIN_KEYWORDS[group]

    def get_custom_keywords(self, group: KeywordGroup) -> Tuple[str, ...]:
        """Effective keywords of one group that are not built-ins of any group."""
        return tuple(k for k in self._resolution.order[group] if not is_builtin_keyword(k))

    def get_active_keywords(self) -> Tuple[str, ...]:
        return self.get_keywords_for_group(KeywordGroup.ACTIVE)

    def get_inactive_keywords(self) -> Tuple[str, ...]:
        return self.get_keywords_for_group(KeywordGroup.INACTIVE)

    def get_waiting_keywords(self) -> Tuple[str, ...]:
        return self.get_keywords_for_group(KeywordGroup.WAITING)

    def get_completed_keywords(self) -> Tuple[str, ...]:
        return self.get_keywords_for_group(KeywordGroup.COMPLETED)

    def get_archived_keywords(self) -> Tuple[str, ...]:
        return self.get_keywords_for_group(KeywordGroup.ARCHIVED)

    def groups(self) -> Dict[str, List[str]]:
        """Effective keywords keyed by group name."""
        return {group.value: list(self._resolution.order[group]) for group in KeywordGroup}
