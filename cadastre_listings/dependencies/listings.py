from functools import lru_cache

from cadastre_listings.config import settings
from cadastre_listings.services.listings import ListingService, create_listing_service


@lru_cache
def get_listing_service() -> ListingService:
    # One service (and one engine / redis pool) per process
    return create_listing_service(settings)
