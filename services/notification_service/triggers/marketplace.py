"""
Marketplace triggers (marketplace-listings/{listingId}, cars/{carId}).
"""
import logging
from typing import Any, Dict, List

from ..localization import DEFAULT_USER_NAME, LISTING_TYPE_LABELS, format_number
from ..models import (
    Car,
    Channel,
    MarketplaceListing,
    NotificationCategory,
    NotificationType,
    Recipient,
)
from ..service import NotificationService

logger = logging.getLogger(__name__)


class MarketplaceTriggers:
    """Broadcasts to users following the marketplace."""

    def __init__(self, notification_service: NotificationService):
        self.notification_service = notification_service

    async def _marketplace_recipients(self, author_id: str) -> List[Recipient]:
        users = await self.notification_service.recipients.resolve_by_category(
            NotificationCategory.MARKETPLACE_NOTIFICATIONS
        )
        return [user for user in users if user.uid != author_id]

    async def _broadcast(self, recipients: List[Recipient], title: str, body: str, data: Dict[str, Any]) -> int:
        return await self.notification_service.gather_sends(
            self.notification_service.send(
                token=user.token,
                title=title,
                body=body,
                data=data,
                channel_id=Channel.MARKETPLACE,
                quiet_hours=user.settings.quiet_hours,
            )
            for user in recipients
        )

    async def on_listing_created(self, listing_data: Dict[str, Any], params: Dict[str, str]) -> int:
        """Announce a new active listing to everyone but its author."""
        listing_id = params.get("listingId", "")
        try:
            listing = MarketplaceListing.model_validate(listing_data or {})

            if not listing.is_active:
                logger.info("Listing is not active, skipping notification")
                return 0

            recipients = await self._marketplace_recipients(listing.user_id)
            if not recipients:
                logger.info("No users to notify for marketplace listing")
                return 0

            type_label = LISTING_TYPE_LABELS.get(listing.type, "Nový inzerát")
            price_text = f" - {format_number(listing.price)} Kč" if listing.price else ""

            success_count = await self._broadcast(
                recipients,
                title=f"{type_label}: {listing.title}",
                body=f"{listing.user_name}{price_text}",
                data={
                    "type": NotificationType.MARKETPLACE_LISTING,
                    "listingId": listing_id,
                    "listingType": listing.type,
                },
            )
            logger.info(
                f"Marketplace notifications sent: {success_count}/{len(recipients)} for listing {listing_id}"
            )
            return success_count

        except Exception as e:
            logger.error(f"❌ Error handling marketplace listing {listing_id}: {e}", exc_info=True)
            return 0

    async def on_car_for_sale(
        self, before_data: Dict[str, Any], after_data: Dict[str, Any], params: Dict[str, str]
    ) -> int:
        """Announce a car whose forSale flag just turned on."""
        car_id = params.get("carId", "")
        try:
            before = Car.model_validate(before_data or {})
            after = Car.model_validate(after_data or {})

            # Only the false/missing -> true transition counts
            if before.for_sale is True or after.for_sale is not True:
                return 0

            owner = await self.notification_service.db_service.get_user(after.owner_id)
            owner_name = (owner or {}).get("displayName") or DEFAULT_USER_NAME

            recipients = await self._marketplace_recipients(after.owner_id)
            if not recipients:
                logger.info("No users to notify for car for sale")
                return 0

            price_text = f" za {format_number(after.sale_price)} Kč" if after.sale_price else ""

            success_count = await self._broadcast(
                recipients,
                title=f"Auto na prodej: {after.name}",
                body=f"{owner_name} prodává {after.make} {after.model}{price_text}",
                data={"type": NotificationType.CAR_FOR_SALE, "carId": car_id},
            )
            logger.info(f"Car for sale notifications sent: {success_count}/{len(recipients)} for car {car_id}")
            return success_count

        except Exception as e:
            logger.error(f"❌ Error handling car for sale {car_id}: {e}", exc_info=True)
            return 0
