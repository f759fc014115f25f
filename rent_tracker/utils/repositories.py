from datetime import date, datetime
from typing import List, Optional

from rent_tracker.extensions import db
from rent_tracker.models import Property, RentCheck
from rent_tracker.utils.errors import NotFound


def _commit():
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


class PropertyRepository:
    def get(self, property_id) -> Optional[Property]:
        return db.session.get(Property, property_id)

    def _active(self):
        return Property.query.filter(Property.is_archived.is_(False))

    def list_all(self) -> List[Property]:
        return self._active().order_by(Property.created_at).all()

    def list_for_user(self, user_id) -> List[Property]:
        return (
            self._active().filter_by(user_id=user_id)
            .order_by(Property.created_at.desc())
            .all()
        )

    def get_for_user(self, property_id, user_id) -> Optional[Property]:
        return self._active().filter_by(id=property_id, user_id=user_id).first()

    def archive(self, prop) -> Property:
        prop.is_archived = True
        prop.archived_at = datetime.utcnow()
        _commit()
        return prop


class RentCheckRepository:
    def create(self, **fields) -> RentCheck:
        rent_check = RentCheck(**fields)
        db.session.add(rent_check)
        _commit()
        return rent_check

    def update(self, rent_check_id, **fields) -> RentCheck:
        rent_check = db.session.get(RentCheck, rent_check_id)
        if rent_check is None:
            raise NotFound(f"Rent check {rent_check_id} not found")
        for key, value in fields.items():
            setattr(rent_check, key, value)
        _commit()
        return rent_check

    def find_recent_for_property(self, property_id, since: datetime) -> Optional[RentCheck]:
        return (
            RentCheck.query.filter(
                RentCheck.property_id == property_id,
                RentCheck.check_date >= since,
            )
            .order_by(RentCheck.check_date.desc())
            .first()
        )

    def find_for_cycle(self, property_id, rent_due_date: date) -> Optional[RentCheck]:
        return RentCheck.query.filter_by(property_id=property_id, rent_due_date=rent_due_date).first()

    def list_for_property(self, property_id, limit: int = 50) -> List[RentCheck]:
        return (
            RentCheck.query.filter_by(property_id=property_id)
            .order_by(RentCheck.check_date.desc())
            .limit(limit)
            .all()
        )

    def latest_for_property(self, property_id) -> Optional[RentCheck]:
        return (
            RentCheck.query.filter_by(property_id=property_id)
            .order_by(RentCheck.check_date.desc())
            .first()
        )
