"""Applicability rule matching for promotions."""

from collections.abc import Callable, Iterable, Sequence
from typing import Any, Protocol
from uuid import UUID

from promo_engine.models.promotion_applicability_rule import ApplicabilityType, RuleType
from promo_engine.schemas.order import OrderLineItem

CategoryLookup = Callable[[UUID], Iterable[UUID]]


class ApplicabilityRule(Protocol):
    rule_type: Any
    entity_id: Any
    applicability_type: Any


def _enum_value(value: Any) -> str:
    return str(getattr(value, "value", value))


class RuleMatcher:
    """Evaluate applicability rules against a line item and the acting user.

    ``category_lookup`` returns the ancestor category ids of a category, so a rule
    on a parent category matches products filed under its children. Without one,
    only the product's own category is considered.
    """

    def __init__(self, category_lookup: CategoryLookup | None = None):
        self.category_lookup = category_lookup

    def category_ids(self, line_item: OrderLineItem) -> frozenset[UUID]:
        if line_item.category_id is None:
            return frozenset()
        ids = {line_item.category_id}
        if self.category_lookup is not None:
            ids.update(self.category_lookup(line_item.category_id))
        return frozenset(ids)

    def matches(
        self, rule: ApplicabilityRule, line_item: OrderLineItem, user_id: UUID | None
    ) -> bool:
        """Return True if the rule's reference matches this line item or user.

        Unknown rule types never match.
        """
        rule_type = _enum_value(rule.rule_type)
        entity_id = rule.entity_id

        if rule_type == RuleType.PRODUCT.value:
            return entity_id == line_item.product_id
        if rule_type == RuleType.PRODUCT_VARIANT.value:
            return entity_id == line_item.product_variant_id
        if rule_type == RuleType.CATEGORY.value:
            return entity_id in self.category_ids(line_item)
        if rule_type == RuleType.USER.value:
            return user_id is not None and entity_id == user_id
        return False

    def is_applicable(
        self,
        rules: Sequence[ApplicabilityRule],
        line_item: OrderLineItem,
        user_id: UUID | None,
    ) -> bool:
        """Decide whether a promotion with ``rules`` applies to ``line_item``.

        No rules means the promotion applies everywhere. Any matching exclude rule
        suppresses the item regardless of includes. When include rules exist, at
        least one must match; a promotion with only exclude rules applies to
        everything they do not exclude. Rules with an unknown applicability type
        are ignored.
        """
        if not rules:
            return True

        includes = [
            r for r in rules
            if _enum_value(r.applicability_type) == ApplicabilityType.INCLUDE.value
        ]
        excludes = [
            r for r in rules
            if _enum_value(r.applicability_type) == ApplicabilityType.EXCLUDE.value
        ]

        if any(self.matches(rule, line_item, user_id) for rule in excludes):
            return False
        if not includes:
            return True
        return any(self.matches(rule, line_item, user_id) for rule in includes)

    def applicable_lines(
        self,
        rules: Sequence[ApplicabilityRule],
        line_items: Iterable[OrderLineItem],
        user_id: UUID | None,
    ) -> list[OrderLineItem]:
        return [item for item in line_items if self.is_applicable(rules, item, user_id)]
