"""Daily rent check: find the rent payment in the bank feed, record it, mail it.

Properties are processed one after another. A failing property never stops
the batch, its error ends up in that property's result instead.

The batch only checks a property on the day after its rent was due and only
once per cycle. A manual check always runs and records another check for
the current cycle.
"""
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, List, Optional

from flask import current_app

from rent_tracker.utils.bank_client import create_bank_client
from rent_tracker.utils.due_dates import (
    DEFAULT_CUTOFF_HOUR,
    calculate_rent_due_date,
    cycle_due_date,
    should_check_rent,
)
from rent_tracker.utils.errors import NotFound, RentTrackerError
from rent_tracker.utils.notifications import RentNotifier
from rent_tracker.utils.payment_matching import DEFAULT_SEARCH_WINDOW_DAYS, find_rent_payment
from rent_tracker.utils.repositories import PropertyRepository, RentCheckRepository


@dataclass
class RentCheckResult:
    property_id: str
    address: str
    tenant_name: str
    rent_received: bool
    amount: Optional[float] = None
    rent_due_date: Optional[date] = None
    error: Optional[str] = None

    def to_dict(self):
        data = asdict(self)
        data['rent_due_date'] = self.rent_due_date.isoformat() if self.rent_due_date else None
        return data


class RentChecker:
    def __init__(
        self,
        properties,
        rent_checks,
        bank_client_factory: Callable,
        notifier,
        search_window_days: int = DEFAULT_SEARCH_WINDOW_DAYS,
        cutoff_hour: int = DEFAULT_CUTOFF_HOUR,
    ):
        self.properties = properties
        self.rent_checks = rent_checks
        self.bank_client_factory = bank_client_factory
        self.notifier = notifier
        self.search_window_days = search_window_days
        self.cutoff_hour = cutoff_hour

    def check_rent_for_property(self, property_id, now: Optional[datetime] = None,
                                rent_due_date: Optional[date] = None) -> RentCheckResult:
        """Check one property now; the due date defaults to the next one from ``now``."""
        now = now or datetime.now()
        prop = None
        try:
            prop = self.properties.get(property_id)
            if prop is None:
                raise NotFound('Property not found')

            client = self.bank_client_factory(prop.user)
            if rent_due_date is None:
                rent_due_date = calculate_rent_due_date(
                    prop.rent_due_day, prop.rent_frequency, now=now, cutoff_hour=self.cutoff_hour
                )
            current_app.logger.info(
                "Checking rent for %s (due %s, keyword %r)", prop.address, rent_due_date, prop.keyword_match
            )

            match = find_rent_payment(client, prop.keyword_match, rent_due_date, self.search_window_days)
            rent_check = self.rent_checks.create(
                property_id=prop.id,
                check_date=now,
                rent_due_date=rent_due_date,
                rent_received=match.found,
                amount=match.amount,
                transaction_id=match.transaction.id if match.transaction else None,
            )
        except RentTrackerError as exc:
            current_app.logger.warning("Rent check for property %s failed: %s", property_id, exc)
            return self._error_result(property_id, prop, exc)
        except Exception as exc:
            current_app.logger.error(
                "Unexpected error checking rent for property %s: %s", property_id, exc, exc_info=True
            )
            return self._error_result(property_id, prop, exc)

        self._notify(prop, rent_check, match.found, rent_due_date)

        return RentCheckResult(
            property_id=prop.id,
            address=prop.address,
            tenant_name=prop.tenant_name,
            rent_received=match.found,
            amount=match.amount,
            rent_due_date=rent_due_date,
        )

    def _notify(self, prop, rent_check, received: bool, rent_due_date: date):
        notify_tenant = bool(prop.notify_tenant_on_missed) and not received
        outcome = self.notifier.send_rent_status(
            prop.user.email if prop.user else None,
            prop.tenant_email if prop.notify_tenant_on_missed else None,
            prop.address,
            prop.tenant_name,
            received,
            rent_due_date,
            notify_tenant,
        )
        try:
            self.rent_checks.update(
                rent_check.id,
                landlord_notified=outcome.landlord_sent,
                tenant_notified=outcome.tenant_sent,
            )
        except Exception as exc:
            current_app.logger.error(
                "Could not store notification flags for rent check %s: %s", rent_check.id, exc, exc_info=True
            )

    @staticmethod
    def _error_result(property_id, prop, exc) -> RentCheckResult:
        return RentCheckResult(
            property_id=property_id,
            address=prop.address if prop is not None else 'Unknown',
            tenant_name=prop.tenant_name if prop is not None else 'Unknown',
            rent_received=False,
            error=str(exc) or exc.__class__.__name__,
        )

    def _already_checked(self, prop, rent_due_date: date, since: datetime) -> bool:
        return bool(
            self.rent_checks.find_recent_for_property(prop.id, since)
            or self.rent_checks.find_for_cycle(prop.id, rent_due_date)
        )

    def check_all_rent_payments(self, now: Optional[datetime] = None) -> List[RentCheckResult]:
        """Run the daily batch over every property of every user."""
        now = now or datetime.now()
        today = now.date()
        yesterday = today - timedelta(days=1)
        since = datetime.combine(yesterday, time.min)

        results = []
        for prop in self.properties.list_all():
            try:
                rent_due_date = cycle_due_date(
                    prop.rent_due_day, prop.rent_frequency, today, cutoff_hour=self.cutoff_hour
                )
                if not should_check_rent(rent_due_date, today):
                    continue
                if self._already_checked(prop, rent_due_date, since):
                    current_app.logger.info(
                        "Rent for %s (due %s) already checked, skipping", prop.address, rent_due_date
                    )
                    continue
            except Exception as exc:
                current_app.logger.warning("Could not schedule rent check for %s: %s", prop.id, exc)
                results.append(self._error_result(prop.id, prop, exc))
                continue

            results.append(self.check_rent_for_property(prop.id, now=now, rent_due_date=rent_due_date))

        current_app.logger.info("Rent check batch finished, %d properties checked", len(results))
        return results


def build_rent_checker(config=None) -> RentChecker:
    """RentChecker wired to the database, Akahu and mail of the current app."""
    config = config if config is not None else current_app.config
    return RentChecker(
        properties=PropertyRepository(),
        rent_checks=RentCheckRepository(),
        bank_client_factory=create_bank_client,
        notifier=RentNotifier(),
        search_window_days=int(config.get('RENT_SEARCH_WINDOW_DAYS', DEFAULT_SEARCH_WINDOW_DAYS)),
        cutoff_hour=int(config.get('RENT_CUTOFF_HOUR', DEFAULT_CUTOFF_HOUR)),
    )
