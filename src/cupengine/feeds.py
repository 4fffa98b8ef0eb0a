"""
Score feeds: where per-period score facts come from.

A feed answers get_period_score(participant, period) with a PeriodScore,
or None when it has no fact yet. Feeds may also raise; the resolution
pass treats a raised lookup exactly like a missing fact.
"""
import logging
import threading
from typing import Dict, Mapping, Optional

import requests
import yaml

from cupengine.models import PeriodScore

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://fantasy.premierleague.com/api'


class ScoreNotFound(LookupError):
    """The feed has no score fact for this participant and period."""


class ScoreFeed:
    def get_period_score(self, participant, period) -> Optional[PeriodScore]:
        raise NotImplementedError


class StaticScoreFeed(ScoreFeed):
    """
    Score facts held in memory.

    Built from per-period team summaries shaped like
    {participant: {period: {'points': 62, 'transfers_cost': 4}}}.
    """

    def __init__(self, summaries: Optional[Mapping] = None):
        self._scores: Dict = {}
        for participant, periods in (summaries or {}).items():
            for period, summary in (periods or {}).items():
                self.add(participant, period, summary.get('points'), summary.get('transfers_cost', 0))

    def add(self, participant, period, raw_score, penalty=0):
        if raw_score is None:
            return
        self._scores[(participant, period)] = PeriodScore(raw_score, penalty)

    def get_period_score(self, participant, period):
        return self._scores.get((participant, period))

    def __len__(self):
        return len(self._scores)

    @classmethod
    def from_yaml(cls, file_path):
        with open(file_path, mode='r', encoding='utf-8') as file:
            data = yaml.safe_load(file) or {}
        return cls(data.get('summaries', data))


class HistoryScoreFeed(ScoreFeed):
    """
    Score facts read from the public fantasy API's per-entry history.

    GET <base_url>/entry/<participant>/history/ returns the entry's
    finished periods under 'current', each with 'event', 'points' and
    'event_transfers_cost'. Histories are cached per participant for the
    lifetime of the feed, so build a new feed for each resolution pass.
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 10,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self._history: Dict = {}
        self._entry_locks: Dict = {}
        self._lock = threading.Lock()

    def _fetch_history(self, participant):
        url = f"{self.base_url}/entry/{participant}/history/"
        response = self.session.get(url, timeout=self.timeout)
        if response.status_code == 404:
            raise ScoreNotFound(f"No history for entry {participant}")
        response.raise_for_status()
        data = response.json()
        history = {}
        for gameweek in data.get('current', []):
            history[gameweek['event']] = PeriodScore(
                gameweek.get('points', 0), gameweek.get('event_transfers_cost', 0))
        return history

    def _history_for(self, participant):
        # One request per entry: lookups for other periods of the same entry
        # wait on its lock and then read the cache.
        with self._lock:
            entry_lock = self._entry_locks.setdefault(participant, threading.Lock())
        with entry_lock:
            if participant not in self._history:
                self._history[participant] = self._fetch_history(participant)
            return self._history[participant]

    def get_period_score(self, participant, period):
        return self._history_for(participant).get(period)
