"""Machine lifecycle: start, stop, force-stop, and timed completion.

States are available -> in-use -> done -> available. Starting requires the
persisted status to be exactly "available" at write time; the store does the
check and the write as one conditional update, together with the ledger
insert. Completion is driven by CompletionScheduler.
"""
import logging
from datetime import timedelta

from sudsify.config import STOP_POLICY, STOP_POLICY_ANYONE, STOP_POLICY_OWNER
from sudsify.core.clock import Clock, utcnow
from sudsify.core.completion_scheduler import CompletionScheduler
from sudsify.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from sudsify.core.machine_store import MachineStore
from sudsify.core.programs import get_program
from sudsify.core.validation import validate_room_number, validate_user_name
from sudsify.models.machine import AVAILABLE, Machine
from sudsify.models.program import ProgramSnapshot
from sudsify.models.session import ANONYMOUS, Session

logger = logging.getLogger(__name__)


class LifecycleController:
    """Owns status transitions for all machines."""

    def __init__(
        self,
        store: MachineStore,
        scheduler: CompletionScheduler,
        clock: Clock = utcnow,
        stop_policy: str = STOP_POLICY,
    ) -> None:
        if stop_policy not in (STOP_POLICY_ANYONE, STOP_POLICY_OWNER):
            raise ValueError(f"Unknown stop policy: {stop_policy!r}")
        self._store = store
        self._scheduler = scheduler
        self._clock = clock
        self._stop_policy = stop_policy

    @property
    def stop_policy(self) -> str:
        return self._stop_policy

    def _require_machine(self, machine_id: str) -> Machine:
        machine = self._store.get_machine(machine_id)
        if machine is None:
            raise NotFoundError(f"Machine {machine_id!r} not found")
        return machine

    def start_program(
        self,
        machine_id: str,
        program_id: str,
        user_name: str,
        room_number: str,
        session: Session = ANONYMOUS,
    ) -> Machine:
        """available -> in-use. Raises ValidationError, NotFoundError, ConflictError, PersistenceError."""
        name = validate_user_name(user_name)
        room = validate_room_number(room_number)
        program = get_program(program_id)
        if program is None:
            raise NotFoundError(f"Program {program_id!r} not found")

        machine = self._require_machine(machine_id)
        if program.type != machine.type:
            raise ValidationError(
                "program_id", f"{program.name} cannot run on a {machine.type}"
            )

        now = self._clock()
        end_time = now + timedelta(minutes=program.duration)
        updated = self._store.start_cycle(
            machine_id,
            ProgramSnapshot(name=program.name, duration=program.duration),
            started_at=now,
            end_time=end_time,
            user_id=session.user_id,
            user_name=name,
            room_number=room,
        )
        if updated is None:
            logger.info("Start on %s rejected: machine unavailable", machine_id)
            raise ConflictError()

        self._scheduler.arm(machine_id, end_time, updated.cycle)
        logger.info(
            "%s started %s for %s (room %s), ends %s",
            machine_id,
            program.name,
            name,
            room,
            end_time.isoformat(),
        )
        return updated

    def stop_program(self, machine_id: str, session: Session = ANONYMOUS) -> Machine:
        """in-use/done -> available (self-service). Stopping an available machine is a no-op."""
        machine = self._require_machine(machine_id)
        if machine.status == AVAILABLE:
            return machine
        if (
            self._stop_policy == STOP_POLICY_OWNER
            and not session.is_admin
            and machine.started_by is not None
            and machine.started_by != session.user_id
        ):
            raise ForbiddenError("Only the user who started this cycle can stop it")
        return self._clear(machine, session)

    def force_stop(self, machine_id: str, session: Session) -> Machine:
        """Admin stop: same effect as stop_program, ignoring the stop policy."""
        if not session.is_admin:
            raise ForbiddenError("Admin privileges required")
        machine = self._require_machine(machine_id)
        if machine.status == AVAILABLE:
            return machine
        return self._clear(machine, session)

    def _clear(self, machine: Machine, session: Session) -> Machine:
        # Under the owner policy the permission check was made against this
        # cycle; don't clear a cycle that someone else started in between.
        cycle = machine.cycle if self._stop_policy == STOP_POLICY_OWNER else None
        cleared = self._store.clear_machine(machine.id, self._clock(), cycle=cycle)
        if not cleared and cycle is not None:
            current = self._require_machine(machine.id)
            if current.status != AVAILABLE:
                raise ConflictError("machine changed while stopping")
        self._scheduler.cancel(machine.id, cycle=machine.cycle)
        logger.info("%s stopped by %s", machine.id, session.user_id or "anonymous")
        return self._require_machine(machine.id)

    def complete_cycle(self, machine_id: str, cycle: int) -> bool:
        """in-use -> done for this cycle only; False when the cycle was superseded."""
        return self._scheduler.complete(machine_id, cycle)
