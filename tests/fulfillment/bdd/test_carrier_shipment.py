"""BDD tests for carrier shipment creation."""

import pytest
from fulfillment.access.context import AuthContext
from fulfillment.errors import AuthorizationError, CarrierError, DuplicateRequestError
from fulfillment.order.repository import DomainOrderRepository
from fulfillment.profiles.directory import DomainProfileDirectory
from fulfillment.shipment.orchestrator import ShipmentOrchestrator
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/carrier_shipment.feature")


@pytest.fixture()
def outcome():
    """Result or error of the most recent shipment request."""
    return {"result": None, "exc": None}


@given(parsers.cfparse('seller "{seller_id}" run by user "{user_id}"'))
def seller_profile(seed_seller, seller_id, user_id):
    seed_seller(seller_id=seller_id, owner_user_id=user_id, email=f"{user_id}@stores.ph")


@given(
    parsers.cfparse('a stored confirmed order from buyer "{buyer_id}" sold by "{seller_id}"'),
    target_fixture="order_id",
)
def stored_order(make_order, save_order, buyer_id, seller_id):
    return save_order(make_order(owner_id=buyer_id, seller_ids=[seller_id]))


@given(parsers.cfparse('the carrier will assign tracking id "{tracking_id}"'))
def carrier_assigns(fake_carrier, tracking_id):
    fake_carrier.configure(tracking_id=tracking_id)


@given(parsers.cfparse('the carrier refuses with "{reason}"'))
def carrier_refuses(fake_carrier, reason):
    fake_carrier.configure(should_succeed=False, failure_reason=reason)


@when(parsers.cfparse('"{subject_id}" requests a carrier shipment'))
def request_shipment(fake_carrier, order_id, outcome, subject_id):
    orchestrator = ShipmentOrchestrator(DomainOrderRepository(), DomainProfileDirectory(), fake_carrier)
    try:
        outcome["result"] = orchestrator.create_shipment(AuthContext(subject_id=subject_id), order_id)
        outcome["exc"] = None
    except (AuthorizationError, CarrierError, DuplicateRequestError) as exc:
        outcome["exc"] = exc


@then(parsers.cfparse('the shipment succeeds with tracking id "{tracking_id}"'))
def shipment_succeeds(outcome, tracking_id):
    assert outcome["exc"] is None
    assert outcome["result"].tracking_id == tracking_id
    assert outcome["result"].persisted is True


@then(parsers.cfparse('the request is rejected as a duplicate of "{tracking_id}"'))
def rejected_as_duplicate(outcome, tracking_id):
    assert isinstance(outcome["exc"], DuplicateRequestError)
    assert outcome["exc"].existing_tracking_id == tracking_id


@then("the request fails with a carrier error")
def fails_with_carrier_error(outcome):
    assert isinstance(outcome["exc"], CarrierError)


@then("the request is refused as unauthorized")
def refused_as_unauthorized(outcome):
    assert isinstance(outcome["exc"], AuthorizationError)


@then(parsers.cfparse('the stored order status is "{status}"'))
def stored_order_status(order_id, status):
    assert DomainOrderRepository().get(order_id).status == status


@then("the stored order has no tracking id")
def stored_order_has_no_tracking(order_id):
    assert DomainOrderRepository().get(order_id).tracking_id is None


@then(parsers.cfparse("the carrier call count is {count:d}"))
def carrier_call_count(fake_carrier, count):
    assert fake_carrier.call_count == count
