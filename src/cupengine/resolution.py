"""
Match resolution and the advancement cascade.

A pass takes the tournament's current matches and a score feed, and
returns a new snapshot plus the matches that changed. The input matches
are never mutated and nothing is re-read mid-pass, so the caller persists
the diff under its own per-tournament lock (see locking.py).

Per match: pending-unfilled -> pending-filled -> completed. A match
completes only when every assigned period has a score fact for both
participants. Knockout rounds are processed in increasing order and, inside
a round, by match order; a round's winners move on before the next round
is looked at, so a single pass cascades as far as the facts allow.
"""
import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from cupengine.bracket import advancement_target, is_bye, knockout_rounds
from cupengine.errors import InsufficientScoreData, ResolutionCancelled
from cupengine.feeds import ScoreFeed
from cupengine.models import Match, PeriodScore, COMPLETED, GROUP_STAGE, PENDING

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4
DEFAULT_TIMEOUT_SECONDS = 10


class ResolutionResult:
    def __init__(self, matches: List[Match], updated: List[Match],
                 completed: List[str], advanced: List[Tuple[str, str, str]]):
        self.matches = matches
        self.updated = updated
        self.completed = completed
        self.advanced = advanced

    def match(self, match_id):
        for match in self.matches:
            if match.id == match_id:
                return match
        raise KeyError(match_id)

    def __repr__(self):
        return (f"ResolutionResult(updated={len(self.updated)}, completed={self.completed}, "
                f"advanced={self.advanced})")


def _lookup(feed: ScoreFeed, participant, period) -> Optional[PeriodScore]:
    try:
        return feed.get_period_score(participant, period)
    except Exception as e:
        logger.warning(f"Score lookup failed for {participant} period {period}: {e}")
        return None


def fetch_facts(feed: ScoreFeed, lookups: Iterable[Tuple], max_workers: int = DEFAULT_MAX_WORKERS,
                timeout: float = DEFAULT_TIMEOUT_SECONDS,
                cancel_event: Optional[threading.Event] = None) -> Dict[Tuple, PeriodScore]:
    """
    Fetch score facts with at most max_workers lookups in flight.

    Returns {(participant, period): PeriodScore} for the lookups that came
    back with a fact. Lookups still running when the time budget (timeout
    per wave of max_workers lookups) runs out count as missing.

    The call returns once the budget is spent without waiting for those
    stragglers: queued lookups are cancelled, but one already inside
    feed.get_period_score keeps its worker thread until the feed itself
    gives up, and its answer is discarded. Give the feed its own timeout
    (HistoryScoreFeed passes one to every request) so such threads end.
    """
    lookups = list(dict.fromkeys(lookups))
    if not lookups:
        return {}

    executor = ThreadPoolExecutor(max_workers=max_workers)
    futures = {}
    try:
        for participant, period in lookups:
            if cancel_event is not None and cancel_event.is_set():
                raise ResolutionCancelled("Cancelled while issuing score lookups")
            futures[executor.submit(_lookup, feed, participant, period)] = (participant, period)

        waves = math.ceil(len(futures) / max_workers)
        done, not_done = wait(futures, timeout=timeout * waves)
        for future in not_done:
            participant, period = futures[future]
            logger.warning(f"Score lookup timed out for {participant} period {period}")
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    if cancel_event is not None and cancel_event.is_set():
        raise ResolutionCancelled("Cancelled while waiting for score lookups")

    facts = {}
    for future in done:
        score = future.result()
        if score is not None:
            facts[futures[future]] = score
    return facts


def _lookups_for(match: Match):
    for period in match.periods:
        for participant in (match.team1, match.team2):
            yield participant, period


def aggregate_scores(match: Match, facts: Dict[Tuple, PeriodScore]) -> Tuple:
    """Sum of net period scores for both sides; raises if any fact is missing."""
    if not match.is_filled:
        raise InsufficientScoreData(match.id, [slot for slot in ('team1', 'team2')
                                               if getattr(match, slot) is None])
    if not match.periods:
        raise InsufficientScoreData(match.id, ['periods'])
    missing = [key for key in _lookups_for(match) if key not in facts]
    if missing:
        raise InsufficientScoreData(match.id, missing)

    team1_score = sum(facts[(match.team1, period)].net for period in match.periods)
    team2_score = sum(facts[(match.team2, period)].net for period in match.periods)
    return team1_score, team2_score


def resolve_match(match: Match, facts: Dict[Tuple, PeriodScore], strict: bool = False) -> bool:
    """
    Complete a filled match from its score facts.

    Returns True when the match moved to completed. With missing facts the
    match is left untouched and False is returned, or InsufficientScoreData
    is raised when strict is set. Completed matches are never re-scored.
    """
    if match.is_completed:
        return False
    try:
        team1_score, team2_score = aggregate_scores(match, facts)
    except InsufficientScoreData:
        if strict:
            raise
        return False

    match.team1_score = team1_score
    match.team2_score = team2_score
    if team1_score > team2_score:
        match.winner = match.team1
    elif team2_score > team1_score:
        match.winner = match.team2
    else:
        match.winner = None
    match.status = COMPLETED
    logger.debug(f"{match.id} completed {team1_score}-{team2_score}, winner {match.winner}")
    return True


def complete_bye(match: Match):
    """Send a lone participant through a match whose other slot never fills."""
    match.winner = match.participants()[0]
    match.is_bye = True
    match.status = COMPLETED
    logger.debug(f"{match.id} is a bye for {match.winner}")


def advance_winner(match: Match, rounds: Dict[int, List[Match]]) -> Optional[Tuple[Match, str]]:
    """
    Put a completed match's winner into its slot in the next round.

    Draws and the Final do not advance. A slot that already holds a
    participant is never overwritten. Returns (target, slot) when a slot
    was filled.
    """
    if not match.is_completed or match.winner is None:
        return None
    target = advancement_target(match, rounds)
    if target is None:
        return None
    next_match, slot = target
    current = getattr(next_match, slot)
    if current is not None:
        if current != match.winner:
            logger.warning(f"{next_match.id} {slot} already holds {current}, "
                           f"not replacing with {match.winner} from {match.id}")
        return None
    setattr(next_match, slot, match.winner)
    logger.debug(f"{match.winner} advances from {match.id} to {next_match.id} {slot}")
    return next_match, slot


def _resolve_batch(pending: Sequence[Match], feed: ScoreFeed, completed: List[str],
                   max_workers: int, timeout: float, cancel_event):
    candidates = [m for m in pending if not m.is_completed and m.is_filled and m.periods]
    lookups = [key for match in candidates for key in _lookups_for(match)]
    facts = fetch_facts(feed, lookups, max_workers, timeout, cancel_event)
    for match in candidates:
        if resolve_match(match, facts):
            completed.append(match.id)


def _run_pass(snapshot: List[Match], originals: Dict[str, Match], feed: ScoreFeed,
              max_workers: int, timeout: float, cancel_event, seeding) -> ResolutionResult:
    completed = []
    advanced = []

    group_matches = sorted((m for m in snapshot if m.stage == GROUP_STAGE),
                           key=lambda m: (str(m.group), m.position))
    _resolve_batch(group_matches, feed, completed, max_workers, timeout, cancel_event)
    if seeding is not None:
        seeding(snapshot)

    rounds = knockout_rounds(snapshot)
    for round_order, round_matches in rounds.items():
        if cancel_event is not None and cancel_event.is_set():
            raise ResolutionCancelled(f"Cancelled before round {round_order}")
        for match in round_matches:
            if is_bye(match, rounds):
                complete_bye(match)
                completed.append(match.id)
        _resolve_batch(round_matches, feed, completed, max_workers, timeout, cancel_event)
        for match in round_matches:
            moved = advance_winner(match, rounds)
            if moved is not None:
                next_match, slot = moved
                advanced.append((match.id, next_match.id, slot))

    updated = [m for m in snapshot if m != originals[m.id]]
    logger.info(f"Resolution pass: {len(completed)} completed, {len(advanced)} advanced, "
                f"{len(updated)} matches changed")
    return ResolutionResult(snapshot, updated, completed, advanced)


def _snapshot(matches: Sequence[Match]):
    originals = {}
    for match in matches:
        if match.id in originals:
            raise ValueError(f"Duplicate match id {match.id!r}")
        originals[match.id] = match
    return [match.copy() for match in matches], originals


def resolve_and_advance(matches: Sequence[Match], feed: ScoreFeed,
                        max_workers: int = DEFAULT_MAX_WORKERS,
                        timeout: float = DEFAULT_TIMEOUT_SECONDS,
                        cancel_event: Optional[threading.Event] = None,
                        seeding: Optional[Callable] = None) -> ResolutionResult:
    """
    Run one resolution pass over a tournament's matches.

    Already completed matches and already filled slots are left as they
    are, so running the pass again over its own output changes nothing
    unless new score facts have arrived.

    seeding, when given, is called with the snapshot once group matches are
    resolved and before any knockout round is looked at (see
    seeding.seed_from_groups).
    """
    snapshot, originals = _snapshot(matches)
    return _run_pass(snapshot, originals, feed, max_workers, timeout, cancel_event, seeding)


def reset_match(match: Match, clear_slots: bool = False):
    match.team1_score = None
    match.team2_score = None
    match.winner = None
    match.status = PENDING
    match.is_bye = False
    if clear_slots:
        match.team1 = None
        match.team2 = None


def rebuild(matches: Sequence[Match], feed: ScoreFeed,
            max_workers: int = DEFAULT_MAX_WORKERS,
            timeout: float = DEFAULT_TIMEOUT_SECONDS,
            cancel_event: Optional[threading.Event] = None,
            seeding: Optional[Callable] = None) -> ResolutionResult:
    """
    Reset every result and every slot after the first knockout round, then
    resolve the whole tournament again from the score facts.
    """
    snapshot, originals = _snapshot(matches)
    rounds = knockout_rounds(snapshot)
    first_round = min(rounds) if rounds else None
    logger.info(f"Rebuilding {len(snapshot)} matches")
    for match in snapshot:
        later_round = match.stage != GROUP_STAGE and match.round_order != first_round
        reset_match(match, clear_slots=later_round)
    return _run_pass(snapshot, originals, feed, max_workers, timeout, cancel_event, seeding)
