"""Tests for PromotionService and PromotionRepository."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from promo_engine.core.errors import DuplicatePromotionCode, PromotionNotFound
from promo_engine.models.promotion import DiscountType
from promo_engine.models.promotion_applicability_rule import ApplicabilityType, RuleType
from promo_engine.repositories.promotion_repository import PromotionRepository
from promo_engine.schemas.promotion import (
    ApplicabilityRuleCreate,
    ApplicabilityRuleUpdate,
    PromotionCreate,
    PromotionUpdate,
)
from promo_engine.services.promotion_service import PromotionService


@pytest.fixture
def service(db_session):
    return PromotionService(db_session)


@pytest.fixture
def create_data(now):
    def _data(code="SUMMER25", **overrides):
        values = {
            "code": code,
            "description": "Summer sale",
            "discount_type": DiscountType.PERCENTAGE,
            "discount_value": Decimal("25"),
            "starts_at": now - timedelta(days=1),
            "ends_at": now + timedelta(days=30),
        }
        values.update(overrides)
        return PromotionCreate(**values)

    return _data


def _rule(entity_id=None, rule_type=RuleType.PRODUCT, applicability=ApplicabilityType.INCLUDE):
    return ApplicabilityRuleCreate(
        rule_type=rule_type,
        entity_id=entity_id or uuid4(),
        applicability_type=applicability,
    )


class TestPromotionSchemas:
    """Tests for promotion input validation."""

    def test_code_is_normalized(self, create_data):
        assert create_data(" summer25 ").code == "SUMMER25"

    def test_window_must_not_be_empty(self, create_data, now):
        with pytest.raises(ValidationError, match="starts_at must be before ends_at"):
            create_data(starts_at=now, ends_at=now)

    def test_percentage_above_100_rejected(self, create_data):
        with pytest.raises(ValidationError, match="cannot exceed 100"):
            create_data(discount_value=Decimal("150"))

    def test_fixed_amount_above_100_allowed(self, create_data):
        data = create_data(
            discount_type=DiscountType.FIXED_AMOUNT_ORDER, discount_value=Decimal("150")
        )
        assert data.discount_value == Decimal("150")

    def test_non_positive_value_rejected(self, create_data):
        with pytest.raises(ValidationError):
            create_data(discount_value=Decimal("0"))

    def test_short_code_rejected(self, create_data):
        with pytest.raises(ValidationError):
            create_data(code="AB")

    def test_update_rule_union_parses_both_shapes(self):
        rule_id, entity_id = uuid4(), uuid4()

        update = PromotionUpdate(
            applicability_rules=[
                {"id": str(rule_id), "applicability_type": "exclude"},
                {
                    "rule_type": "category",
                    "entity_id": str(entity_id),
                    "applicability_type": "include",
                },
            ]
        )

        assert isinstance(update.applicability_rules[0], ApplicabilityRuleUpdate)
        assert isinstance(update.applicability_rules[1], ApplicabilityRuleCreate)


class TestCreatePromotion:
    """Tests for PromotionService.create_promotion."""

    def test_create_with_rules(self, service, create_data):
        data = create_data(applicability_rules=[_rule(), _rule(rule_type=RuleType.CATEGORY)])

        promotion = service.create_promotion(data)

        assert promotion.code == "SUMMER25"
        assert promotion.current_usage_count == 0
        assert promotion.is_active is True
        assert len(service.get_rules(promotion.id)) == 2

    def test_duplicate_code(self, service, create_data):
        service.create_promotion(create_data())

        with pytest.raises(DuplicatePromotionCode):
            service.create_promotion(create_data("summer25"))

    def test_get_missing(self, service):
        with pytest.raises(PromotionNotFound):
            service.get_promotion(uuid4())


class TestListPromotions:
    """Tests for PromotionService.list_promotions."""

    def test_filters(self, service, create_data):
        service.create_promotion(create_data("SUMMER25"))
        service.create_promotion(create_data("WINTER10", description="Winter", is_active=False))

        assert len(service.list_promotions()) == 2
        assert [p.code for p in service.list_promotions(is_active=True)] == ["SUMMER25"]
        assert [p.code for p in service.list_promotions(search="winter")] == ["WINTER10"]

    def test_pagination(self, service, create_data):
        for index in range(3):
            service.create_promotion(create_data(f"CODE{index}"))

        assert len(service.list_promotions(skip=1, limit=10)) == 2
        assert len(service.list_promotions(limit=1)) == 1


class TestUpdatePromotion:
    """Tests for PromotionService.update_promotion."""

    def test_update_fields(self, service, create_data):
        promotion = service.create_promotion(create_data())

        updated = service.update_promotion(
            promotion.id,
            PromotionUpdate(
                code="summer30",
                discount_value=Decimal("30"),
                maximum_usage_limit=50,
            ),
        )

        assert updated.code == "SUMMER30"
        assert updated.discount_value == Decimal("30.00")
        assert updated.maximum_usage_limit == 50

    def test_update_to_taken_code(self, service, create_data):
        service.create_promotion(create_data("TAKEN"))
        promotion = service.create_promotion(create_data())

        with pytest.raises(DuplicatePromotionCode):
            service.update_promotion(promotion.id, PromotionUpdate(code="TAKEN"))

    def test_update_window_checked_against_stored_value(self, service, create_data, now):
        promotion = service.create_promotion(create_data())

        with pytest.raises(ValueError, match="starts_at must be before ends_at"):
            service.update_promotion(
                promotion.id, PromotionUpdate(ends_at=now - timedelta(days=2))
            )

    def test_replace_rules(self, service, create_data):
        kept_entity = uuid4()
        promotion = service.create_promotion(
            create_data(applicability_rules=[_rule(kept_entity), _rule()])
        )
        kept = next(r for r in service.get_rules(promotion.id) if r.entity_id == kept_entity)

        service.update_promotion(
            promotion.id,
            PromotionUpdate(
                applicability_rules=[
                    ApplicabilityRuleUpdate(
                        id=kept.id, applicability_type=ApplicabilityType.EXCLUDE
                    ),
                    _rule(rule_type=RuleType.USER),
                ]
            ),
        )

        rules = service.get_rules(promotion.id)
        assert len(rules) == 2
        updated = next(r for r in rules if r.id == kept.id)
        assert updated.applicability_type == "exclude"
        assert updated.entity_id == kept_entity
        assert {r.rule_type for r in rules} == {"product", "user"}

    def test_re_adding_a_removed_rule(self, service, create_data):
        entity_id = uuid4()
        promotion = service.create_promotion(create_data(applicability_rules=[_rule(entity_id)]))

        service.update_promotion(
            promotion.id, PromotionUpdate(applicability_rules=[_rule(entity_id)])
        )

        rules = service.get_rules(promotion.id)
        assert len(rules) == 1
        assert rules[0].entity_id == entity_id

    def test_empty_rule_list_clears_rules(self, service, create_data):
        promotion = service.create_promotion(create_data(applicability_rules=[_rule()]))

        service.update_promotion(promotion.id, PromotionUpdate(applicability_rules=[]))

        assert service.get_rules(promotion.id) == []

    def test_omitted_rules_are_kept(self, service, create_data):
        promotion = service.create_promotion(create_data(applicability_rules=[_rule()]))

        service.update_promotion(promotion.id, PromotionUpdate(description="Updated"))

        assert len(service.get_rules(promotion.id)) == 1


class TestActivationAndDeletion:
    """Tests for set_active and delete_promotion."""

    def test_deactivate(self, service, create_data):
        promotion = service.create_promotion(create_data())

        assert service.set_active(promotion.id, False).is_active is False
        assert service.set_active(promotion.id, True).is_active is True

    def test_delete(self, service, create_data):
        promotion = service.create_promotion(create_data(applicability_rules=[_rule()]))

        service.delete_promotion(promotion.id)

        with pytest.raises(PromotionNotFound):
            service.get_promotion(promotion.id)

    def test_delete_redeemed_promotion_refused(self, db_session, service, create_data):
        promotion = service.create_promotion(create_data())
        assert PromotionRepository(db_session).increment_usage(promotion.id)
        db_session.commit()

        with pytest.raises(ValueError, match="redeemed"):
            service.delete_promotion(promotion.id)


class TestIncrementUsage:
    """Tests for the conditional usage counter."""

    def test_stops_at_limit(self, db_session, service, create_data):
        promotion = service.create_promotion(create_data(maximum_usage_limit=2))
        repo = PromotionRepository(db_session)

        results = [repo.increment_usage(promotion.id) for _ in range(3)]
        db_session.commit()
        db_session.refresh(promotion)

        assert results == [True, True, False]
        assert promotion.current_usage_count == 2

    def test_unlimited(self, db_session, service, create_data):
        promotion = service.create_promotion(create_data())
        repo = PromotionRepository(db_session)

        assert all(repo.increment_usage(promotion.id) for _ in range(5))

    def test_release_never_goes_negative(self, db_session, service, create_data):
        promotion = service.create_promotion(create_data())

        assert not PromotionRepository(db_session).increment_usage(promotion.id, amount=-1)
