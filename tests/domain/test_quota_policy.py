"""Tests for QuotaPolicy: caps, counting rules and quantity bounds."""

import pytest

from tire_kernel.domain.quota_policy import DEFAULT_CATEGORY_QUOTAS, QuotaPolicy
from tire_kernel.exceptions import InvalidQuantityError, QuotaNotConfiguredError
from tire_kernel.models.request import RequestStatus
from tire_kernel.models.tire import TireCategory


class TestDefaults:
    def test_default_caps(self):
        policy = QuotaPolicy()
        assert policy.max_quota("LEGER") == 4
        assert policy.max_quota("LOURD") == 8
        assert dict(DEFAULT_CATEGORY_QUOTAS) == {"LEGER": 4, "LOURD": 8}

    def test_categories_sorted(self):
        assert QuotaPolicy().categories == ("LEGER", "LOURD")

    def test_only_cancelled_is_excluded_by_default(self):
        counted = QuotaPolicy().counted_statuses()
        assert "cancelled" not in counted
        assert "delivered" in counted
        assert set(counted) == {"pending", "preparing", "ready", "delivered"}

    def test_enum_members_resolve_to_their_value(self):
        policy = QuotaPolicy(category_quotas={TireCategory.LEGER: 2, "LOURD": 6})
        assert dict(policy.category_quotas) == {"LEGER": 2, "LOURD": 6}
        assert policy.max_quota(TireCategory.LEGER) == 2
        assert policy.max_quota(TireCategory.LOURD) == 6

    def test_unknown_category_raises(self):
        with pytest.raises(QuotaNotConfiguredError) as exc_info:
            QuotaPolicy().max_quota("AGRICOLE")
        assert exc_info.value.category == "AGRICOLE"
        assert exc_info.value.code == "QUOTA_NOT_CONFIGURED"


class TestConfiguredPolicy:
    def test_custom_caps_are_copied_and_read_only(self):
        caps = {"LEGER": 2, "AGRICOLE": 6}
        policy = QuotaPolicy(category_quotas=caps)
        caps["LEGER"] = 100
        assert policy.max_quota("LEGER") == 2
        assert policy.max_quota("AGRICOLE") == 6
        with pytest.raises(TypeError):
            policy.category_quotas["LEGER"] = 9

    def test_excluding_delivered(self):
        policy = QuotaPolicy(
            excluded_statuses=frozenset({RequestStatus.CANCELLED, RequestStatus.DELIVERED})
        )
        assert set(policy.counted_statuses()) == {"pending", "preparing", "ready"}

    def test_excluded_statuses_accept_values(self):
        policy = QuotaPolicy(excluded_statuses=frozenset({"cancelled"}))
        assert policy.excluded_statuses == frozenset({RequestStatus.CANCELLED})

    def test_negative_cap_rejected(self):
        with pytest.raises(ValueError):
            QuotaPolicy(category_quotas={"LEGER": -1})

    def test_inverted_bounds_rejected(self):
        with pytest.raises(ValueError):
            QuotaPolicy(min_quantity=3, max_quantity=2)


class TestValidateQuantity:
    @pytest.mark.parametrize("quantity", [1, 2, 3, 4])
    def test_in_bounds(self, quantity):
        QuotaPolicy().validate_quantity(quantity)

    @pytest.mark.parametrize("quantity", [0, -1, 5, 100])
    def test_out_of_bounds(self, quantity):
        with pytest.raises(InvalidQuantityError) as exc_info:
            QuotaPolicy().validate_quantity(quantity)
        assert exc_info.value.quantity == quantity
        assert (exc_info.value.minimum, exc_info.value.maximum) == (1, 4)

    @pytest.mark.parametrize("quantity", [True, 2.0, "2", None])
    def test_non_integer_rejected(self, quantity):
        with pytest.raises(InvalidQuantityError):
            QuotaPolicy().validate_quantity(quantity)
