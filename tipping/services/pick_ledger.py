"""
Pick ledger

Holds the current pick per (participant, fixture) and the append-only
PickEvent log. ``PickLedger._apply`` is the only code path that writes
picks: it appends the event and upserts the current row in the same
transaction, so the two can never diverge.

Locking: the fixture row is read with a shared lock and the pick row with
an exclusive lock. Result recording takes the fixture row exclusively, so a
submission either commits before the result is visible or observes it.
Submissions for different keys only share read locks and proceed in
parallel. Row locks compile to nothing on SQLite.
"""

import logging
from collections import namedtuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tipping import db
from tipping.errors import (
    FORBIDDEN,
    INVALID_MARGIN,
    INVALID_TEAM,
    KICKOFF_LOCKED,
    NOT_FOUND,
    RESULT_LOCKED,
    SCOPE_MISMATCH,
    PickRejected,
    StorageFailure,
)
from tipping.models import Fixture, PaperBet, Participant, Pick, PickEvent, Result
from tipping.services.paper_bets import synthesize_paper_bet
from tipping.utils.lockout import LOCK_KICKOFF, LOCK_RESULT, lock_state
from tipping.utils.scoring import DRAW, NO_MARGIN, PICK_MARGINS
from tipping.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)
paper_bet_logger = logging.getLogger("tipping.services.paper_bets")


class PickAck(namedtuple("PickAck", ["pick", "event", "paper_bet", "withdrawn"])):
    """Acknowledgement of an accepted submission or withdrawal"""

    def to_dict(self):
        data = {"ok": True, "withdrawn": self.withdrawn}
        if self.pick is not None and not self.withdrawn:
            data["pick"] = self.pick.to_dict()
        if self.event is not None:
            data["event_id"] = self.event.id
        data["paper_bet"] = self.paper_bet.to_dict() if self.paper_bet else None
        return data


def normalize_margin(picked_team, margin):
    """
    Resolve the margin indicator stored for a pick.

    DRAW always stores 0 whatever was sent. Team picks must send exactly 1
    (band 1-12) or 13 (band 13+); integral strings and floats are accepted.

    Raises:
        PickRejected: INVALID_MARGIN
    """
    if picked_team == DRAW:
        return NO_MARGIN

    if margin is None or isinstance(margin, bool):
        raise PickRejected(INVALID_MARGIN)

    try:
        number = float(margin)
    except (TypeError, ValueError):
        raise PickRejected(INVALID_MARGIN)

    if not number.is_integer() or int(number) not in PICK_MARGINS:
        raise PickRejected(INVALID_MARGIN)

    return int(number)


def _coerce_id(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise PickRejected(NOT_FOUND, "Unknown identifier")


class PickLedger:
    """Submission and withdrawal of picks"""

    def __init__(self, settings, clock=None):
        self.settings = settings
        self.clock = clock or get_utc_time

    def submit(self, actor, fixture_id, picked_team, margin, participant_id=None):
        """
        Create or replace a participant's pick for a fixture.

        Args:
            actor: Authenticated Participant making the call
            fixture_id: Fixture being picked
            picked_team: Home code, away code, or "DRAW"
            margin: 1 or 13 for team picks; ignored for DRAW
            participant_id: Optional target; must be the actor unless the
                actor is privileged

        Returns:
            PickAck

        Raises:
            PickRejected: validation failure (first failing check wins)
            StorageFailure: the write failed and was rolled back
        """
        try:
            participant = self._resolve_participant(actor, participant_id)
            fixture = self._load_fixture(fixture_id)

            if not fixture.is_valid_pick_code(picked_team):
                raise PickRejected(INVALID_TEAM)

            margin = normalize_margin(picked_team, margin)

            now = self.clock()
            self._check_open(fixture, now)

            if fixture.competition_id != participant.competition_id:
                raise PickRejected(SCOPE_MISMATCH)

            pick, event = self._apply(participant, fixture, picked_team, margin, actor, now)
            paper_bet = self._synthesize(pick, fixture)

            db.session.commit()
        except PickRejected as rejection:
            db.session.rollback()
            logger.info(
                f"Pick rejected ({rejection.code}) for fixture {fixture_id} by actor "
                f"{getattr(actor, 'id', None)}"
            )
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Pick write failed for fixture {fixture_id}: {e}")
            raise StorageFailure() from e

        logger.info(
            f"Pick accepted: participant {participant.id} fixture {fixture.id} "
            f"{picked_team}/{margin} (actor {actor.id})"
        )
        return PickAck(pick, event, paper_bet, False)

    def withdraw(self, actor, fixture_id, participant_id=None):
        """
        Remove a participant's current pick and its paper bet.

        The PickEvent log is never touched. Subject to the result and
        kickoff locks.
        """
        try:
            participant = self._resolve_participant(actor, participant_id)
            fixture = self._load_fixture(fixture_id)
            self._check_open(fixture, self.clock())

            pick = self._locked_pick(participant.id, fixture.id)
            if pick is None:
                raise PickRejected(NOT_FOUND, "No pick to withdraw")

            PaperBet.query.filter_by(
                participant_id=participant.id, fixture_id=fixture.id
            ).delete(synchronize_session="fetch")
            db.session.delete(pick)

            db.session.commit()
        except PickRejected as rejection:
            db.session.rollback()
            logger.info(f"Withdrawal rejected ({rejection.code}) for fixture {fixture_id}")
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Pick withdrawal failed for fixture {fixture_id}: {e}")
            raise StorageFailure() from e

        logger.info(
            f"Pick withdrawn: participant {participant.id} fixture {fixture.id} (actor {actor.id})"
        )
        return PickAck(None, None, None, True)

    def _resolve_participant(self, actor, participant_id):
        """The credential decides who is acting; request parameters never override it"""
        if actor is None or getattr(actor, "id", None) is None:
            raise PickRejected(FORBIDDEN, "Authentication required")

        if participant_id is None or participant_id == "":
            return actor

        target_id = _coerce_id(participant_id)
        if target_id == actor.id:
            return actor

        if not self.settings.is_admin(actor):
            logger.warning(
                f"Participant {actor.id} attempted to act for participant {target_id}"
            )
            raise PickRejected(FORBIDDEN)

        participant = db.session.get(Participant, target_id)
        if participant is None:
            raise PickRejected(NOT_FOUND, "Participant not found")
        return participant

    def _load_fixture(self, fixture_id):
        fixture = (
            Fixture.query.filter(Fixture.id == _coerce_id(fixture_id))
            .with_for_update(read=True)
            .first()
        )
        if fixture is None:
            raise PickRejected(NOT_FOUND, "Fixture not found")
        return fixture

    def _check_open(self, fixture, now):
        result_exists = (
            db.session.query(Result.fixture_id)
            .filter(Result.fixture_id == fixture.id)
            .first()
            is not None
        )
        state = lock_state(fixture.kickoff_at, result_exists, now)
        if state == LOCK_RESULT:
            raise PickRejected(RESULT_LOCKED)
        if state == LOCK_KICKOFF:
            raise PickRejected(KICKOFF_LOCKED)

    def _locked_pick(self, participant_id, fixture_id):
        return (
            Pick.query.filter_by(participant_id=participant_id, fixture_id=fixture_id)
            .with_for_update()
            .first()
        )

    def _apply(self, participant, fixture, picked_team, margin, actor, now):
        """Append the event and upsert the current pick in one unit"""
        event = PickEvent(
            participant_id=participant.id,
            fixture_id=fixture.id,
            actor_id=actor.id,
            picked_team=picked_team,
            margin=margin,
            created_at=now,
        )
        db.session.add(event)

        pick = self._locked_pick(participant.id, fixture.id)
        if pick is not None:
            pick.apply(picked_team, margin, now)
            return pick, event

        pick = Pick(
            participant_id=participant.id,
            fixture_id=fixture.id,
            league_id=participant.league_id,
            picked_team=picked_team,
            margin=margin,
            created_at=now,
            updated_at=now,
        )
        try:
            with db.session.begin_nested():
                db.session.add(pick)
        except IntegrityError:
            # A concurrent first submission for the same key won the insert
            logger.debug(
                f"Pick insert raced for participant {participant.id} fixture {fixture.id}, updating"
            )
            pick = self._locked_pick(participant.id, fixture.id)
            pick.apply(picked_team, margin, now)

        return pick, event

    def _synthesize(self, pick, fixture):
        """Paper bet side effect; never fails the submission"""
        try:
            with db.session.begin_nested():
                return synthesize_paper_bet(pick, fixture, fixture.odds, self.settings)
        except (SQLAlchemyError, ValueError) as e:
            paper_bet_logger.error(
                f"Paper bet synthesis failed (STORAGE_FAILURE) for participant "
                f"{pick.participant_id} fixture {fixture.id}: {e}"
            )
            return None
