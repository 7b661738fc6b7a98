"""
SOS beacon triggers (helpBeacons/{beaconId}).
"""
import logging
from typing import Any, Dict

from ..localization import BEACON_TYPE_LABELS, DEFAULT_USER_NAME, SOMEONE
from ..models import BeaconStatus, Channel, HelpBeacon, NotificationCategory, NotificationType
from ..service import NotificationService

logger = logging.getLogger(__name__)


class BeaconTriggers:
    """Notifications for SOS beacons: broadcast on create, status changes to the two parties."""

    def __init__(self, notification_service: NotificationService):
        self.notification_service = notification_service

    async def on_sos_beacon_created(self, beacon_data: Dict[str, Any], params: Dict[str, str]) -> int:
        """Notify every user with SOS alerts enabled, except the beacon creator."""
        beacon_id = params.get("beaconId", "")
        try:
            beacon = HelpBeacon.model_validate(beacon_data or {})
            logger.info(f"SOS Beacon created: {beacon_id} by {beacon.display_name}")

            users = await self.notification_service.recipients.resolve_by_category(
                NotificationCategory.SOS_ALERTS
            )
            recipients = [user for user in users if user.uid != beacon.user_id]
            logger.info(f"Notifying {len(recipients)} users about SOS")

            if beacon.description:
                body = f"{beacon.display_name} potřebuje pomoc: {beacon.description}"
            else:
                type_label = BEACON_TYPE_LABELS.get(beacon.beacon_type, beacon.beacon_type)
                body = f"{beacon.display_name} hlásí: {type_label}"

            success_count = await self.notification_service.gather_sends(
                self.notification_service.send(
                    token=user.token,
                    title="🚨 SOS Volání",
                    body=body,
                    data={"type": NotificationType.SOS_BEACON, "beaconId": beacon_id},
                    channel_id=Channel.ALERTS,
                )
                for user in recipients
            )
            logger.info(f"SOS notifications sent: {success_count}/{len(recipients)}")
            return success_count

        except Exception as e:
            logger.error(f"❌ Error handling SOS beacon {beacon_id}: {e}", exc_info=True)
            return 0

    async def on_beacon_status_change(
        self, before_data: Dict[str, Any], after_data: Dict[str, Any], params: Dict[str, str]
    ) -> int:
        """
        Notify the beacon creator when someone is coming to help,
        and the helper when the beacon is resolved.
        """
        beacon_id = params.get("beaconId", "")
        try:
            before = HelpBeacon.model_validate(before_data or {})
            after = HelpBeacon.model_validate(after_data or {})

            if before.status == after.status:
                return 0

            logger.info(f"Beacon {beacon_id} status changed: {before.status} -> {after.status}")
            sent = 0

            # Case 1: someone is coming to help
            if before.status == BeaconStatus.ACTIVE and after.status == BeaconStatus.HELP_COMING:
                helper_name = after.helper_name or SOMEONE
                if await self.notification_service.notify_user(
                    after.user_id,
                    NotificationCategory.SOS_ALERTS,
                    title="🚗 Někdo jede pomoct!",
                    body=f"{helper_name} reaguje na tvůj SOS signál",
                    data={
                        "type": NotificationType.BEACON_HELP_COMING,
                        "beaconId": beacon_id,
                        "helperId": after.helper_id or "",
                    },
                    channel_id=Channel.ALERTS,
                ):
                    sent += 1
                    logger.info(f"Notified beacon creator {after.user_id} that {helper_name} is coming")

            # Case 2: resolved, tell the helper
            if (
                before.status == BeaconStatus.HELP_COMING
                and after.status == BeaconStatus.RESOLVED
                and after.helper_id
            ):
                creator_name = after.display_name or DEFAULT_USER_NAME
                if await self.notification_service.notify_user(
                    after.helper_id,
                    NotificationCategory.SOS_ALERTS,
                    title="✅ Problém vyřešen",
                    body=f"{creator_name} označil SOS signál jako vyřešený",
                    data={"type": NotificationType.BEACON_RESOLVED, "beaconId": beacon_id},
                    channel_id=Channel.ALERTS,
                ):
                    sent += 1
                    logger.info(f"Notified helper {after.helper_id} that beacon is resolved")

            return sent

        except Exception as e:
            logger.error(f"❌ Error handling beacon status change {beacon_id}: {e}", exc_info=True)
            return 0
