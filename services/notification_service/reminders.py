"""
Scheduled Reminder Sweep
Daily check of vehicle document expirations (STK, first aid kit, highway
vignette, liability insurance) and of upcoming or overdue service records.
"""
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from pydantic import ValidationError

from shared.config import settings
from .localization import format_date, format_number, parse_date, plural_days
from .models import (
    Car,
    Channel,
    NotificationCategory,
    NotificationType,
    QuietHours,
    ServiceRecord,
)
from .recipients import parse_settings
from .service import NotificationService

logger = logging.getLogger(__name__)

# Reminder type -> label and the days-before-expiration that trigger a warning
REMINDER_CONFIG: Dict[str, Dict] = {
    "stk": {"label": "Platnost STK", "warning_days": [90, 30]},
    "first_aid_kit": {"label": "Lékárnička", "warning_days": [30]},
    "highway_vignette": {"label": "Dálniční známka", "warning_days": [30]},
    "liability_insurance": {"label": "Povinné ručení", "warning_days": [60]},
}

SERVICE_WARNING_DAYS = [7, 3, 1]
# Descending km brackets; at most one mileage warning per record
SERVICE_WARNING_MILEAGE = [500, 200]

OVERDUE_TITLE = "🔧 Servis po termínu!"


def days_until(target: datetime, now: datetime) -> int:
    """Whole days until `target`, rounded up (negative when in the past)."""
    return math.ceil((target - now) / timedelta(days=1))


class ReminderSweep:
    """Serial sweep over all users with vehicle reminders enabled."""

    def __init__(self, notification_service: NotificationService):
        self.notification_service = notification_service

    @property
    def db_service(self):
        return self.notification_service.db_service

    async def run(self, now: Optional[datetime] = None) -> int:
        """
        Check all vehicle and service reminders.

        Args:
            now: Reference time, defaults to the current UTC time

        Returns:
            int: number of notifications counted as sent. Any error aborts
            the sweep; it is logged and the count so far is returned.
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        logger.info("Starting vehicle reminder check...")
        notifications_sent = 0

        try:
            for user_id, user_data in await self.db_service.get_all_users():
                user_settings = parse_settings(user_id, user_data)
                if user_settings is None or not user_settings.allows(NotificationCategory.VEHICLE_REMINDERS):
                    continue
                token = user_data.get("fcmToken")
                if not token:
                    continue

                for car_id, car_data in await self.db_service.get_user_cars(user_id):
                    try:
                        car = Car.model_validate({**car_data, "id": car_id})
                    except ValidationError as e:
                        logger.warning(f"⚠️ Skipping malformed car {car_id}: {e.error_count()} error(s)")
                        continue

                    notifications_sent += await self._check_vehicle_reminders(
                        car, token, user_settings.quiet_hours, now
                    )
                    if settings.SERVICE_REMINDERS_ENABLED:
                        notifications_sent += await self._check_service_records(
                            car, token, user_settings.quiet_hours, now
                        )

            logger.info(
                f"✅ Vehicle & service reminder check complete. Sent {notifications_sent} notifications."
            )
        except Exception as e:
            logger.error(f"❌ Error checking vehicle reminders: {e}", exc_info=True)

        return notifications_sent

    async def _check_vehicle_reminders(
        self, car: Car, token: str, quiet_hours: QuietHours, now: datetime
    ) -> int:
        sent = 0
        for reminder in car.reminders:
            if not reminder.notify_enabled or not reminder.expiration_date:
                continue
            config = REMINDER_CONFIG.get(reminder.type)
            if not config:
                continue

            expiration = parse_date(reminder.expiration_date)
            days_left = days_until(expiration, now)
            label = config["label"]
            data = {
                "type": NotificationType.VEHICLE_REMINDER,
                "carId": car.id,
                "reminderType": reminder.type,
            }

            if days_left in config["warning_days"]:
                success = await self.notification_service.send(
                    token=token,
                    title=f"{label} vyprší za {days_left} dní",
                    body=f"{car.name} ({car.make} {car.model}) - {label} vyprší {format_date(expiration)}",
                    data=data,
                    channel_id=Channel.REMINDERS,
                    quiet_hours=quiet_hours,
                )
                if success:
                    sent += 1
                    logger.info(f"Sent reminder for {car.name}: {label} ({days_left} days left)")

            # Expiry day is sent on top of any matching threshold and
            # counted whether or not delivery succeeded
            if days_left == 0:
                await self.notification_service.send(
                    token=token,
                    title=f"{label} vyprší dnes!",
                    body=f"{car.name} ({car.make} {car.model}) - {label} vyprší dnes!",
                    data=data,
                    channel_id=Channel.REMINDERS,
                    quiet_hours=quiet_hours,
                )
                sent += 1
        return sent

    async def _check_service_records(
        self, car: Car, token: str, quiet_hours: QuietHours, now: datetime
    ) -> int:
        sent = 0
        for service_id, service_data in await self.db_service.get_service_records(car.id):
            try:
                service = ServiceRecord.model_validate({**service_data, "id": service_id})
            except ValidationError as e:
                logger.warning(f"⚠️ Skipping malformed service record {service_id}: {e.error_count()} error(s)")
                continue

            data = {
                "type": NotificationType.SERVICE_REMINDER,
                "carId": car.id,
                "serviceId": service.id,
            }
            is_overdue = False

            if service.next_service_date:
                service_date = parse_date(service.next_service_date)
                days = days_until(service_date, now)

                if days <= 0:
                    is_overdue = True
                    if self._overdue_allowed(service, now):
                        success = await self.notification_service.send(
                            token=token,
                            title=OVERDUE_TITLE,
                            body=f"{car.name}: {service.title} — termín vypršel {format_date(service_date)}",
                            data=data,
                            channel_id=Channel.REMINDERS,
                            quiet_hours=quiet_hours,
                        )
                        if success:
                            sent += 1
                            await self.db_service.mark_service_notified(service.id, now)
                            logger.info(
                                f"Sent overdue service reminder for {car.name}: {service.title} ({abs(days)} days overdue)"
                            )
                elif days in SERVICE_WARNING_DAYS:
                    success = await self.notification_service.send(
                        token=token,
                        title=f"🔧 Servis za {days} {plural_days(days)}",
                        body=f"{car.name}: {service.title} - {format_date(service_date)}",
                        data=data,
                        channel_id=Channel.REMINDERS,
                        quiet_hours=quiet_hours,
                    )
                    if success:
                        sent += 1
                        logger.info(f"Sent service reminder for {car.name}: {service.title} ({days} days)")

            if is_overdue or not service.next_service_mileage or not car.current_mileage:
                continue

            km_left = service.next_service_mileage - car.current_mileage
            if km_left <= 0:
                if self._overdue_allowed(service, now):
                    success = await self.notification_service.send(
                        token=token,
                        title=OVERDUE_TITLE,
                        body=f"{car.name}: {service.title} — nájezd překročen o {abs(km_left)} km",
                        data=data,
                        channel_id=Channel.REMINDERS,
                        quiet_hours=quiet_hours,
                    )
                    if success:
                        sent += 1
                        await self.db_service.mark_service_notified(service.id, now)
                        logger.info(
                            f"Sent overdue mileage reminder for {car.name}: {service.title} ({abs(km_left)} km over)"
                        )
                continue

            for warning_km, next_km in _mileage_brackets(SERVICE_WARNING_MILEAGE):
                if next_km < km_left <= warning_km:
                    success = await self.notification_service.send(
                        token=token,
                        title=f"🔧 Servis za {km_left} km",
                        body=f"{car.name}: {service.title} - při {format_number(service.next_service_mileage)} km",
                        data=data,
                        channel_id=Channel.REMINDERS,
                        quiet_hours=quiet_hours,
                    )
                    if success:
                        sent += 1
                        logger.info(f"Sent service reminder for {car.name}: {service.title} ({km_left} km)")
                    break
        return sent

    @staticmethod
    def _overdue_allowed(service: ServiceRecord, now: datetime) -> bool:
        """Overdue notices repeat at most once per cool-off period."""
        if not service.last_service_notification_sent:
            return True
        last_sent = parse_date(service.last_service_notification_sent)
        days_since = math.ceil((now - last_sent) / timedelta(days=1))
        return days_since >= settings.SERVICE_OVERDUE_COOLOFF_DAYS


def _mileage_brackets(thresholds: List[int]):
    """Pairs (warning_km, next_km) with the last bracket closed at 0."""
    return zip(thresholds, thresholds[1:] + [0])
