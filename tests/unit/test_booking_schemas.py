from datetime import date, time

import pytest
from pydantic import ValidationError

from app.models.booking import BookingStatus
from app.schemas.booking import BookingCreate, BookingFilters, BookingStats
from app.schemas.doctor import DoctorCreate, DoctorUpdate
from app.schemas.slot import BulkSlotCreate, SlotCreate


@pytest.mark.unit
class TestBookingCreateSchema:
    def test_valid_booking_request(self):
        data = BookingCreate(
            slot_id=1,
            patient_name="  Jane   Doe ",
            patient_email="jane@example.com",
            patient_phone="+1 555 010 0200",
        )

        assert data.patient_name == "Jane Doe"
        assert data.patient_email == "jane@example.com"

    def test_malformed_email_is_rejected(self):
        with pytest.raises(ValidationError):
            BookingCreate(slot_id=1, patient_name="Jane", patient_email="not-an-email")

    def test_blank_name_is_rejected(self):
        with pytest.raises(ValidationError):
            BookingCreate(slot_id=1, patient_name="   ", patient_email="jane@example.com")

    def test_malformed_phone_is_rejected(self):
        with pytest.raises(ValidationError):
            BookingCreate(
                slot_id=1,
                patient_name="Jane",
                patient_email="jane@example.com",
                patient_phone="call me",
            )

    def test_empty_phone_becomes_none(self):
        data = BookingCreate(
            slot_id=1,
            patient_name="Jane",
            patient_email="jane@example.com",
            patient_phone="",
        )

        assert data.patient_phone is None


@pytest.mark.unit
class TestSlotSchemas:
    def test_duration_defaults_to_thirty_minutes(self):
        data = SlotCreate(doctor_id=1, slot_date=date(2030, 3, 4), slot_time=time(9, 0))

        assert data.duration_minutes == 30

    @pytest.mark.parametrize("duration", [10, 121, 0, -30])
    def test_duration_outside_policy_bounds_is_rejected(self, duration):
        with pytest.raises(ValidationError):
            BulkSlotCreate(
                doctor_id=1,
                slot_date=date(2030, 3, 4),
                start_time=time(9, 0),
                end_time=time(17, 0),
                duration_minutes=duration,
            )

    @pytest.mark.parametrize("duration", [15, 120])
    def test_duration_policy_bounds_are_inclusive(self, duration):
        data = BulkSlotCreate(
            doctor_id=1,
            slot_date=date(2030, 3, 4),
            start_time=time(9, 0),
            end_time=time(17, 0),
            duration_minutes=duration,
        )

        assert data.duration_minutes == duration

    def test_end_time_must_follow_start_time(self):
        with pytest.raises(ValidationError, match="end_time must be after start_time"):
            BulkSlotCreate(
                doctor_id=1,
                slot_date=date(2030, 3, 4),
                start_time=time(17, 0),
                end_time=time(9, 0),
            )

    def test_times_parse_from_strings(self):
        data = BulkSlotCreate(
            doctor_id=1, slot_date="2030-03-04", start_time="09:00", end_time="17:00"
        )

        assert data.start_time == time(9, 0)
        assert data.end_time == time(17, 0)


@pytest.mark.unit
class TestDoctorSchemas:
    def test_specialization_whitespace_is_normalized(self):
        data = DoctorCreate(
            name="Dr. Alice Smith",
            specialization="  Family   Medicine ",
            email="alice@example.com",
        )

        assert data.specialization == "Family Medicine"

    def test_email_is_required(self):
        with pytest.raises(ValidationError):
            DoctorCreate(name="Dr. Alice Smith", specialization="Cardiology")

    def test_partial_update_only_sets_given_fields(self):
        data = DoctorUpdate(phone="+1-555-0101")

        assert data.model_dump(exclude_unset=True) == {"phone": "+1-555-0101"}


@pytest.mark.unit
class TestBookingStatsSchema:
    def test_counts_must_add_up_to_total(self):
        with pytest.raises(ValidationError):
            BookingStats(confirmed=1, pending=0, failed=1, cancelled=0, total=3)

    def test_empty_stats(self):
        stats = BookingStats()

        assert stats.total == 0

    def test_status_filter_accepts_enum_values(self):
        filters = BookingFilters(status="CONFIRMED")

        assert filters.status == BookingStatus.CONFIRMED
