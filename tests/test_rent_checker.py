from datetime import date, datetime

from rent_tracker.models import RentCheck
from rent_tracker.utils.errors import NotConfigured, UpstreamUnauthorized
from rent_tracker.utils.repositories import PropertyRepository, RentCheckRepository
from rent_tracker.utils.rent_checker import RentChecker, build_rent_checker

from conftest import FakeBankClient, FakeNotifier, make_property, txn

MONDAY = date(2024, 1, 8)
# batch runs the morning after a Monday due date
TUESDAY_MORNING = datetime(2024, 1, 9, 6, 0)


def _checker(bank_client, notifier):
    return RentChecker(
        properties=PropertyRepository(),
        rent_checks=RentCheckRepository(),
        bank_client_factory=lambda user: bank_client,
        notifier=notifier,
    )


def _paid_bank():
    return FakeBankClient({"acc_1": [txn("trans_1", date(2024, 1, 9), "smith rent payment", 500)]})


def test_received_rent_is_recorded_and_landlord_notified(app, user):
    prop = make_property(user, notify_tenant_on_missed=True)
    notifier = FakeNotifier()

    result = _checker(_paid_bank(), notifier).check_rent_for_property(prop.id, now=datetime(2024, 1, 8, 9))

    assert result.rent_received is True
    assert result.amount == 500
    assert result.rent_due_date == MONDAY
    assert result.error is None
    assert len(notifier.sent) == 1
    assert notifier.sent[0]["received"] is True
    assert notifier.sent[0]["notify_tenant"] is False

    check = RentCheck.query.filter_by(property_id=prop.id).one()
    assert check.rent_received is True
    assert check.amount == 500
    assert check.transaction_id == "trans_1"
    assert check.rent_due_date == MONDAY
    assert check.landlord_notified is True
    assert check.tenant_notified is False


def test_missed_rent_notifies_tenant_only_when_flag_set(app, user):
    quiet = make_property(user)
    loud = make_property(user, address="14 Main Street, Wellington", notify_tenant_on_missed=True)
    notifier = FakeNotifier()
    checker = _checker(FakeBankClient({"acc_1": []}), notifier)
    now = datetime(2024, 1, 8, 9)

    quiet_result = checker.check_rent_for_property(quiet.id, now=now)
    loud_result = checker.check_rent_for_property(loud.id, now=now)

    assert not quiet_result.rent_received
    assert not loud_result.rent_received
    assert notifier.sent[0]["tenant_email"] is None
    assert notifier.sent[0]["notify_tenant"] is False
    assert notifier.sent[1]["tenant_email"] == "sam@example.com"
    assert notifier.sent[1]["notify_tenant"] is True

    loud_check = RentCheck.query.filter_by(property_id=loud.id).one()
    assert loud_check.landlord_notified and loud_check.tenant_notified
    quiet_check = RentCheck.query.filter_by(property_id=quiet.id).one()
    assert quiet_check.landlord_notified and not quiet_check.tenant_notified


def test_failed_notification_still_records_outcome(app, user):
    prop = make_property(user)

    result = _checker(_paid_bank(), FakeNotifier(landlord_ok=False)).check_rent_for_property(
        prop.id, now=datetime(2024, 1, 8, 9)
    )

    assert result.rent_received
    check = RentCheck.query.filter_by(property_id=prop.id).one()
    assert check.rent_received is True
    assert check.landlord_notified is False


def test_unknown_property_is_an_error_result(app, user):
    result = _checker(_paid_bank(), FakeNotifier()).check_rent_for_property("missing-id")

    assert result.error == "Property not found"
    assert result.address == "Unknown"
    assert result.rent_received is False


def test_bank_not_configured_is_an_error_result(app, user):
    prop = make_property(user)

    def no_bank(user):
        raise NotConfigured("Akahu not configured for user")

    checker = RentChecker(PropertyRepository(), RentCheckRepository(), no_bank, FakeNotifier())
    result = checker.check_rent_for_property(prop.id)

    assert result.error == "Akahu not configured for user"
    assert result.address == prop.address
    assert RentCheck.query.count() == 0


def test_batch_checks_due_properties_the_day_after(app, user):
    weekly = make_property(user)
    monthly_elsewhere = make_property(user, address="1 Other Road, Auckland", rent_due_day=20, rent_frequency="MONTHLY")
    notifier = FakeNotifier()

    results = _checker(_paid_bank(), notifier).check_all_rent_payments(now=TUESDAY_MORNING)

    assert [r.property_id for r in results] == [weekly.id]
    assert results[0].rent_received
    assert results[0].rent_due_date == MONDAY
    assert RentCheck.query.filter_by(property_id=monthly_elsewhere.id).count() == 0


def test_batch_is_idempotent_but_manual_check_reruns(app, user):
    prop = make_property(user)
    checker = _checker(_paid_bank(), FakeNotifier())

    first = checker.check_all_rent_payments(now=TUESDAY_MORNING)
    second = checker.check_all_rent_payments(now=datetime(2024, 1, 9, 18, 0))

    assert len(first) == 1
    assert second == []
    assert RentCheck.query.filter_by(property_id=prop.id).count() == 1

    manual = checker.check_rent_for_property(prop.id, now=datetime(2024, 1, 9, 19, 0))
    assert manual.error is None
    assert RentCheck.query.filter_by(property_id=prop.id).count() == 2


def test_batch_skips_cycle_already_checked_manually(app, user):
    prop = make_property(user)
    RentCheckRepository().create(
        property_id=prop.id,
        check_date=datetime(2024, 1, 6, 10, 0),
        rent_due_date=MONDAY,
        rent_received=False,
    )

    results = _checker(_paid_bank(), FakeNotifier()).check_all_rent_payments(now=TUESDAY_MORNING)

    assert results == []


def test_one_failing_property_does_not_stop_the_batch(app, user):
    broken = make_property(user, address="13 Broken Lane, Wellington", rent_due_day=9)
    healthy = make_property(user, address="15 Healthy Lane, Wellington")

    results = _checker(_paid_bank(), FakeNotifier()).check_all_rent_payments(now=TUESDAY_MORNING)

    by_id = {r.property_id: r for r in results}
    assert by_id[broken.id].error == "Rent due day for weekly rent must be between 1 and 7"
    assert by_id[broken.id].address == "13 Broken Lane, Wellington"
    assert by_id[healthy.id].rent_received is True
    assert RentCheck.query.count() == 1


def test_bank_error_is_an_error_result(app, user):
    prop = make_property(user)

    class RejectingClient(FakeBankClient):
        def get_accounts(self):
            raise UpstreamUnauthorized("Invalid Akahu tokens.", status_code=401)

    result = _checker(RejectingClient(), FakeNotifier()).check_rent_for_property(prop.id)

    assert result.error == "Invalid Akahu tokens."
    assert result.rent_received is False
    assert RentCheck.query.count() == 0


def test_build_rent_checker_reads_config(app):
    app.config["RENT_SEARCH_WINDOW_DAYS"] = 3
    app.config["RENT_CUTOFF_HOUR"] = 18

    checker = build_rent_checker()

    assert checker.search_window_days == 3
    assert checker.cutoff_hour == 18


def test_batch_skips_archived_properties(app, user):
    prop = make_property(user)
    PropertyRepository().archive(prop)

    results = _checker(_paid_bank(), FakeNotifier()).check_all_rent_payments(now=TUESDAY_MORNING)

    assert results == []
    assert prop.archived_at is not None
