import copy
from enum import Enum

PENDING = 'pending'
COMPLETED = 'completed'

GROUP_STAGE = 'group'
KNOCKOUT_STAGE = 'knockout'

# Read-model states of a match
PENDING_UNFILLED = 'pending-unfilled'
PENDING_FILLED = 'pending-filled'

SLOTS = ('team1', 'team2')


class HeadToHead(Enum):
    A_WINS = 'a_wins'
    B_WINS = 'b_wins'
    TIED = 'tied'
    NO_RESULT = 'no_result'


class Group:
    def __init__(self, name, participants):
        self.name = name
        self.participants = list(participants)

    def __repr__(self):
        return f"Group(name={self.name}, participants={self.participants})"


class Fixture:
    def __init__(self, team1, team2, matchday):
        if team1 == team2:
            raise ValueError(f"A fixture cannot pair {team1!r} with itself")
        self.team1 = team1
        self.team2 = team2
        self.matchday = matchday

    @property
    def pair(self):
        return frozenset((self.team1, self.team2))

    def __eq__(self, other):
        if not isinstance(other, Fixture):
            return NotImplemented
        return self.pair == other.pair and self.matchday == other.matchday

    def __hash__(self):
        return hash((self.pair, self.matchday))

    def __repr__(self):
        return f"Fixture(team1={self.team1}, team2={self.team2}, matchday={self.matchday})"


class MatchSkeleton:
    def __init__(self, round_name, round_order, match_order):
        self.round_name = round_name
        self.round_order = round_order
        self.match_order = match_order

    def __eq__(self, other):
        if not isinstance(other, MatchSkeleton):
            return NotImplemented
        return (self.round_name, self.round_order, self.match_order) == \
            (other.round_name, other.round_order, other.match_order)

    def __repr__(self):
        return (f"MatchSkeleton(round_name={self.round_name}, round_order={self.round_order}, "
                f"match_order={self.match_order})")


class Match:
    """
    A bracket or group position tracked to completion.

    Slots hold participant ids (None while unfilled). `winner` stays None
    both while pending and after a draw; `status` tells the two apart.
    """

    FIELDS = ('id', 'stage', 'group', 'round_name', 'round_order', 'match_order',
              'matchday', 'team1', 'team2', 'periods', 'team1_score', 'team2_score',
              'status', 'winner', 'is_bye', 'team1_from_match', 'team2_from_match')

    def __init__(self, id, round_order=1, match_order=1, team1=None, team2=None,
                 periods=None, stage=KNOCKOUT_STAGE, group=None, round_name=None,
                 matchday=None, team1_score=None, team2_score=None, status=PENDING,
                 winner=None, is_bye=False, team1_from_match=None, team2_from_match=None):
        if team1 is not None and team1 == team2:
            raise ValueError(f"Match {id} cannot pair {team1!r} with itself")
        self.id = id
        self.stage = stage
        self.group = group
        self.round_name = round_name
        self.round_order = round_order
        self.match_order = match_order
        self.matchday = matchday
        self.team1 = team1
        self.team2 = team2
        self.periods = list(periods) if periods else []
        self.team1_score = team1_score
        self.team2_score = team2_score
        self.status = status
        self.winner = winner
        self.is_bye = is_bye
        self.team1_from_match = team1_from_match
        self.team2_from_match = team2_from_match

    @property
    def is_completed(self):
        return self.status == COMPLETED

    @property
    def is_draw(self):
        return self.is_completed and self.winner is None and not self.is_bye

    @property
    def is_filled(self):
        return self.team1 is not None and self.team2 is not None

    @property
    def state(self):
        if self.is_completed:
            return COMPLETED
        return PENDING_FILLED if self.is_filled else PENDING_UNFILLED

    @property
    def position(self):
        return (self.round_order, self.match_order)

    def participants(self):
        return [team for team in (self.team1, self.team2) if team is not None]

    def score_for(self, participant):
        if participant == self.team1:
            return self.team1_score
        if participant == self.team2:
            return self.team2_score
        raise KeyError(participant)

    def copy(self):
        return copy.deepcopy(self)

    def to_dict(self):
        return {name: copy.deepcopy(getattr(self, name)) for name in self.FIELDS}

    @classmethod
    def from_dict(cls, data):
        return cls(**{name: data[name] for name in cls.FIELDS if name in data})

    def __eq__(self, other):
        if not isinstance(other, Match):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"Match(id={self.id}, round={self.round_order}, match={self.match_order}, "
                f"teams=({self.team1}, {self.team2}), status={self.status}, winner={self.winner})")


class Standing:
    def __init__(self, participant, group):
        self.participant = participant
        self.group = group
        self.matches_played = 0
        self.wins = 0
        self.draws = 0
        self.losses = 0
        self.points_for = 0
        self.points_against = 0
        self.tournament_points = 0
        self.position = 0
        self.qualified = False

    @property
    def points_difference(self):
        return self.points_for - self.points_against

    def sort_values(self):
        """Values compared by the default ranking, highest first."""
        return (self.tournament_points, self.points_difference, self.points_for)

    def to_dict(self):
        return {
            'participant': self.participant,
            'group': self.group,
            'matches_played': self.matches_played,
            'wins': self.wins,
            'draws': self.draws,
            'losses': self.losses,
            'points_for': self.points_for,
            'points_against': self.points_against,
            'points_difference': self.points_difference,
            'tournament_points': self.tournament_points,
            'position': self.position,
            'qualified': self.qualified,
        }

    def __repr__(self):
        return (f"Standing(participant={self.participant}, position={self.position}, "
                f"points={self.tournament_points}, diff={self.points_difference})")


class PeriodScore:
    """One participant's score fact for one scoring period."""

    def __init__(self, raw_score, penalty=0):
        self.raw_score = raw_score
        self.penalty = penalty or 0

    @property
    def net(self):
        return self.raw_score - self.penalty

    def __eq__(self, other):
        if not isinstance(other, PeriodScore):
            return NotImplemented
        return (self.raw_score, self.penalty) == (other.raw_score, other.penalty)

    def __repr__(self):
        return f"PeriodScore(raw_score={self.raw_score}, penalty={self.penalty})"
