"""Client-facing booking flows.

Both flows are small state machines driven one step at a time. Validation
and eligibility problems come back as unsuccessful ``StepResult`` values and
leave the state where it was; database errors propagate to the caller.
"""
from __future__ import annotations

import datetime as dt
import enum
import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studio.core.config import get_settings
from studio.models.booking import BookingStatus
from studio.models.passes import Pass, PassType
from studio.models.user import User
from studio.services import booking_service, pass_service
from studio.services.availability_service import get_slot_availability, studio_today
from studio.services.errors import NotFoundError, SlotUnavailableError
from studio.services.ledger_service import deduct_session_from_pass

logger = logging.getLogger(__name__)


class WorkflowState(str, enum.Enum):
    SELECTING_TYPE = "selecting_type"
    SELECTING_SLOT = "selecting_slot"
    ENTERING_DETAILS = "entering_details"
    SELECTING_PASS_AND_SLOT = "selecting_pass_and_slot"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"


class PassUsage(str, enum.Enum):
    NONE = "none"
    REGULAR = "regular"
    TRIAL = "trial"


class Remediation(str, enum.Enum):
    """What the client has to do before a pass-based booking can go ahead."""

    LOGIN = "login"
    BUY_PASS = "buy_pass"
    CLAIM_TRIAL = "claim_trial"


@dataclass(frozen=True, slots=True)
class AppointmentCategory:
    key: str
    label: str
    pass_usage: PassUsage = PassUsage.NONE
    requires_phone: bool = False
    redirect_url: str | None = None

    @property
    def consumes_pass(self) -> bool:
        return self.pass_usage is not PassUsage.NONE


def appointment_categories() -> dict[str, AppointmentCategory]:
    settings = get_settings()
    categories = (
        AppointmentCategory("session", "Class session", PassUsage.REGULAR),
        AppointmentCategory("trial", "Trial class", PassUsage.TRIAL),
        AppointmentCategory("coaching", "Private coaching", requires_phone=True),
        AppointmentCategory(
            "consultation",
            "Free consultation",
            redirect_url=settings.consultation_booking_url,
        ),
    )
    return {category.key: category for category in categories}


@dataclass(slots=True)
class StepResult:
    ok: bool
    state: WorkflowState
    errors: dict[str, str] = field(default_factory=dict)
    message: str | None = None
    redirect_url: str | None = None
    remediation: Remediation | None = None
    booking_id: uuid.UUID | None = None
    remaining_sessions: int | None = None


@dataclass(slots=True)
class ContactDetails:
    name: str
    email: str
    phone: str = ""


class _Workflow:
    initial_state: WorkflowState

    def __init__(
        self,
        session: AsyncSession,
        *,
        user: User | None = None,
        today: dt.date | None = None,
    ) -> None:
        self.session = session
        self.user = user
        self.today = today
        self._clear()

    def _clear(self) -> None:
        self.state = self.initial_state
        self.day: dt.date | None = None
        self.time_slot: str | None = None
        self.pass_id: uuid.UUID | None = None
        self.booking_id: uuid.UUID | None = None

    def _result(self, ok: bool, **kwargs) -> StepResult:
        return StepResult(ok=ok, state=self.state, **kwargs)

    def _expect(self, state: WorkflowState) -> StepResult | None:
        if self.state is not state:
            return self._result(
                False, errors={"state": f"Expected {state.value}, at {self.state.value}"}
            )
        return None

    def reset(self) -> StepResult:
        """Start over with a new booking."""
        self._clear()
        return self._result(True)

    async def _pass_candidates(self, usage: PassUsage) -> list[Pass]:
        assert self.user is not None
        passes = await pass_service.list_active(
            self.session, user_id=self.user.id, today=self.today
        )
        if usage is PassUsage.TRIAL:
            return [p for p in passes if p.pass_type is PassType.TRIAL]
        if usage is PassUsage.REGULAR:
            return [p for p in passes if p.pass_type is not PassType.TRIAL]
        return passes

    def _choose_pass(
        self, candidates: list[Pass], pass_id: uuid.UUID | None
    ) -> tuple[uuid.UUID | None, dict[str, str]]:
        if pass_id is not None:
            if any(p.id == pass_id for p in candidates):
                return pass_id, {}
            return None, {"pass_id": "This pass cannot be used for this booking"}
        if len(candidates) > 1:
            return None, {"pass_id": "Select the pass to use"}
        return candidates[0].id, {}

    async def _check_slot(self, day: dt.date | None, time_slot: str | None) -> dict[str, str]:
        if day is None:
            return {"date": "Select a date"}
        if not time_slot:
            return {"time_slot": "Select a time slot"}
        try:
            slot = await get_slot_availability(
                self.session,
                day=day,
                time_slot=time_slot,
                today=self.today or studio_today(),
            )
        except NotFoundError as exc:
            return {"time_slot": str(exc)}
        if not slot.bookable:
            return {"date": "This date is not open for booking"}
        if slot.is_full:
            return {"time_slot": "This time slot is full"}
        return {}

    async def _book(
        self,
        *,
        appointment_type: str,
        contact: ContactDetails,
        consumes_pass: bool,
    ) -> StepResult:
        """Create the booking, then charge the pass; undo the booking if the charge fails."""
        assert self.day is not None and self.time_slot is not None
        user_id = self.user.id if self.user is not None else None
        try:
            try:
                booking = await booking_service.create_booking(
                    self.session,
                    day=self.day,
                    time_slot=self.time_slot,
                    appointment_type=appointment_type,
                    client_name=contact.name,
                    client_email=contact.email,
                    client_phone=contact.phone,
                    user_id=user_id,
                    requires_pass=consumes_pass,
                    status=BookingStatus.CONFIRMED if consumes_pass else BookingStatus.PENDING,
                    today=self.today,
                )
            except SlotUnavailableError as exc:
                return self._result(False, message=str(exc))
            booking_id = booking.id

            remaining: int | None = None
            if consumes_pass:
                assert user_id is not None
                deduction = await deduct_session_from_pass(
                    self.session,
                    user_id=user_id,
                    booking_id=booking_id,
                    pass_id=self.pass_id,
                    today=self.today,
                )
                if not deduction.success:
                    await booking_service.delete_booking(self.session, booking_id=booking_id)
                    return self._result(False, message=deduction.message)
                remaining = deduction.remaining_sessions
        except SQLAlchemyError:
            logger.exception("Booking confirmation failed at %s", self.state.value)
            raise

        self.booking_id = booking_id
        self.state = WorkflowState.CONFIRMED
        return self._result(
            True,
            message="Booking confirmed",
            booking_id=booking_id,
            remaining_sessions=remaining,
        )


class BookingWorkflow(_Workflow):
    """Public flow: type, then slot, then contact details, then confirm."""

    initial_state = WorkflowState.SELECTING_TYPE

    def _clear(self) -> None:
        super()._clear()
        self.category: AppointmentCategory | None = None
        self.contact: ContactDetails | None = None

    async def select_type(
        self, category_key: str, *, pass_id: uuid.UUID | None = None
    ) -> StepResult:
        if (wrong := self._expect(WorkflowState.SELECTING_TYPE)) is not None:
            return wrong
        category = appointment_categories().get(category_key)
        if category is None:
            return self._result(False, errors={"category": "Unknown appointment type"})

        if category.redirect_url is not None:
            # Handled by the external scheduler; no booking is created here.
            return self._result(
                True,
                message=f"{category.label} is scheduled externally",
                redirect_url=category.redirect_url,
            )

        if category.consumes_pass:
            if self.user is None:
                return self._result(
                    False,
                    message="Log in to book this class with your pass",
                    remediation=Remediation.LOGIN,
                )
            candidates = await self._pass_candidates(category.pass_usage)
            if not candidates:
                if category.pass_usage is PassUsage.TRIAL:
                    return self._result(
                        False,
                        message="Claim your trial pass to book a trial class",
                        remediation=Remediation.CLAIM_TRIAL,
                    )
                return self._result(
                    False,
                    message="You need an active pass to book this class",
                    remediation=Remediation.BUY_PASS,
                )
            chosen, errors = self._choose_pass(candidates, pass_id)
            if errors:
                return self._result(False, errors=errors)
            self.pass_id = chosen

        self.category = category
        self.state = WorkflowState.SELECTING_SLOT
        return self._result(True)

    async def select_slot(self, day: dt.date | None, time_slot: str | None) -> StepResult:
        if (wrong := self._expect(WorkflowState.SELECTING_SLOT)) is not None:
            return wrong
        errors = await self._check_slot(day, time_slot)
        if errors:
            return self._result(False, errors=errors)
        self.day = day
        self.time_slot = time_slot
        self.state = WorkflowState.ENTERING_DETAILS
        return self._result(True)

    def enter_details(self, name: str = "", email: str = "", phone: str = "") -> StepResult:
        if (wrong := self._expect(WorkflowState.ENTERING_DETAILS)) is not None:
            return wrong
        assert self.category is not None
        if self.user is not None:
            name = name or self.user.full_name
            email = email or self.user.email
            phone = phone or self.user.phone or ""

        errors: dict[str, str] = {}
        if not name.strip():
            errors["name"] = "Enter your name"
        if "@" not in email:
            errors["email"] = "Enter a valid email address"
        if self.category.requires_phone and not phone.strip():
            errors["phone"] = "A phone number is required for this appointment"
        if errors:
            return self._result(False, errors=errors)

        self.contact = ContactDetails(name.strip(), email.strip(), phone.strip())
        return self._result(True)

    async def confirm(self) -> StepResult:
        if (wrong := self._expect(WorkflowState.ENTERING_DETAILS)) is not None:
            return wrong
        if self.contact is None:
            return self._result(False, errors={"details": "Enter your contact details"})
        assert self.category is not None
        return await self._book(
            appointment_type=self.category.label,
            contact=self.contact,
            consumes_pass=self.category.consumes_pass,
        )


class PortalBookingWorkflow(_Workflow):
    """Logged-in flow: pick a pass and slot together, then confirm."""

    initial_state = WorkflowState.SELECTING_PASS_AND_SLOT

    def __init__(
        self,
        session: AsyncSession,
        *,
        user: User,
        today: dt.date | None = None,
    ) -> None:
        super().__init__(session, user=user, today=today)

    async def start(self) -> StepResult:
        if (wrong := self._expect(WorkflowState.SELECTING_PASS_AND_SLOT)) is not None:
            return wrong
        if not await self._pass_candidates(PassUsage.NONE):
            return self._result(
                False,
                message="Buy a pass or claim your trial to book a class",
                remediation=Remediation.BUY_PASS,
            )
        return self._result(True)

    async def choose(
        self,
        *,
        day: dt.date | None,
        time_slot: str | None,
        pass_id: uuid.UUID | None = None,
    ) -> StepResult:
        if (wrong := self._expect(WorkflowState.SELECTING_PASS_AND_SLOT)) is not None:
            return wrong
        candidates = await self._pass_candidates(PassUsage.NONE)
        if not candidates:
            return self._result(
                False,
                message="Buy a pass or claim your trial to book a class",
                remediation=Remediation.BUY_PASS,
            )
        chosen, errors = self._choose_pass(candidates, pass_id)
        errors.update(await self._check_slot(day, time_slot))
        if errors:
            return self._result(False, errors=errors)

        self.pass_id = chosen
        self.day = day
        self.time_slot = time_slot
        self.state = WorkflowState.CONFIRMING
        return self._result(True)

    async def confirm(self) -> StepResult:
        if (wrong := self._expect(WorkflowState.CONFIRMING)) is not None:
            return wrong
        assert self.user is not None and self.pass_id is not None
        chosen = await pass_service.get_pass(self.session, self.pass_id)
        is_trial = chosen is not None and chosen.pass_type is PassType.TRIAL
        return await self._book(
            appointment_type="Trial class" if is_trial else "Class session",
            contact=ContactDetails(
                self.user.full_name, self.user.email, self.user.phone or ""
            ),
            consumes_pass=True,
        )
