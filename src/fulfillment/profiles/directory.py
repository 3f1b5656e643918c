"""Seller and buyer profiles — read-only views fed by upstream systems.

The fulfillment core only reads these: sellers to authorize callers and to
fill in shipper details, buyers to fill in recipient details.
"""

from abc import ABC, abstractmethod

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from fulfillment.domain import fulfillment

logger = structlog.get_logger(__name__)


@fulfillment.projection
class SellerProfile:
    seller_id = Identifier(identifier=True, required=True)
    owner_user_id = Identifier()
    email = String(max_length=255)
    name = String(max_length=255)
    store_name = String(max_length=255)
    address_line1 = String(max_length=500)
    address_line2 = String(max_length=255)  # barangay / district
    city = String(max_length=100)
    province = String(max_length=100)
    phone = String(max_length=50)


@fulfillment.projection
class BuyerProfile:
    user_id = Identifier(identifier=True, required=True)
    email = String(max_length=255)
    first_name = String(max_length=100)
    last_name = String(max_length=100)
    middle_name = String(max_length=100)
    contact_number = String(max_length=50)


class ProfileDirectory(ABC):
    """Abstract interface for profile lookups."""

    @abstractmethod
    def find_sellers(self, seller_ids: list[str]) -> list[SellerProfile]:
        """Return the profiles that exist among ``seller_ids``, in the given order."""
        ...

    @abstractmethod
    def find_buyer(self, user_id: str | None) -> BuyerProfile | None: ...


class DomainProfileDirectory(ProfileDirectory):
    def find_sellers(self, seller_ids: list[str]) -> list[SellerProfile]:
        if not seller_ids:
            return []
        results = current_domain.repository_for(SellerProfile)._dao.query.filter(seller_id__in=list(seller_ids)).all()
        by_id = {str(profile.seller_id): profile for profile in results.items}
        return [by_id[sid] for sid in seller_ids if sid in by_id]

    def find_buyer(self, user_id: str | None) -> BuyerProfile | None:
        if not user_id:
            return None
        try:
            return current_domain.repository_for(BuyerProfile).get(user_id)
        except ObjectNotFoundError:
            logger.debug("buyer_profile_missing", user_id=user_id)
            return None
