"""Tests for the owner / seller / admin access rule."""

from fulfillment.access.context import AuthContext
from fulfillment.access.policy import can_act_on_order, can_fulfill_order, is_order_seller
from fulfillment.profiles.directory import SellerProfile


def _seller():
    return SellerProfile(
        seller_id="seller-001",
        owner_user_id="seller-user-001",
        email="Clinic@Smile.ph",
        name="Jose Rizal",
    )


class TestCanActOnOrder:
    def test_owner(self, make_order, buyer):
        assert can_act_on_order(buyer, make_order(), [])

    def test_admin(self, make_order, admin):
        assert can_act_on_order(admin, make_order(), [])

    def test_seller_by_user_id(self, make_order):
        caller = AuthContext(subject_id="seller-user-001")
        assert can_act_on_order(caller, make_order(), [_seller()])

    def test_seller_by_email_is_case_insensitive(self, make_order):
        caller = AuthContext(subject_id="staff-77", email="clinic@SMILE.ph")
        assert can_act_on_order(caller, make_order(), [_seller()])

    def test_unrelated_caller(self, make_order, stranger):
        assert not can_act_on_order(stranger, make_order(), [_seller()])

    def test_order_without_owner(self, make_order):
        caller = AuthContext(subject_id="buyer-001")
        assert not can_act_on_order(caller, make_order(owner_id=None), [])


class TestCanFulfillOrder:
    def test_buyer_cannot_fulfill(self, buyer):
        assert not can_fulfill_order(buyer, [_seller()])

    def test_seller_can_fulfill(self, seller):
        assert can_fulfill_order(seller, [_seller()])

    def test_admin_can_fulfill_without_sellers(self, admin):
        assert can_fulfill_order(admin, [])


class TestAuthContext:
    def test_admin_role_claim(self):
        assert AuthContext(subject_id="u-1", role_claims=("admin",)).is_admin

    def test_other_roles_are_not_admin(self):
        assert not AuthContext(subject_id="u-1", role_claims=("seller",)).is_admin

    def test_for_actor(self):
        caller = AuthContext.for_actor("u-1", "u1@example.ph", actor_is_admin=True)
        assert caller.is_admin
        assert caller.email == "u1@example.ph"

    def test_seller_without_email_match(self):
        caller = AuthContext(subject_id="u-9")
        assert not is_order_seller(caller, [_seller()])
