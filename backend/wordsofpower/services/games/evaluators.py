"""Round outcome evaluators.

An evaluator maps a pair of moves to an ``Outcome``. It never touches
session state; the round tracker decides what the outcome means for the
session.
"""

import hashlib
from typing import NamedTuple

from flask import current_app

from .errors import InvalidMove, JudgeUnavailable
from .judge import WordJudge

WIN_A = 'win_a'
WIN_B = 'win_b'
TIE = 'tie'

RPS_MOVES = ('rock', 'paper', 'scissors')
# key beats value
RPS_BEATS = {
    'rock': 'scissors',
    'paper': 'rock',
    'scissors': 'paper',
}

MAX_WORD_LENGTH = 64


class Outcome(NamedTuple):
    result: str
    explanation: str | None = None


class OutcomeEvaluator:
    """Capability shared by every game mode."""

    def normalize_move(self, move) -> str:
        raise NotImplementedError

    def evaluate(self, move_a: str, move_b: str) -> Outcome:
        raise NotImplementedError


class RpsEvaluator(OutcomeEvaluator):
    def normalize_move(self, move) -> str:
        if not isinstance(move, str):
            raise InvalidMove(move, 'Invalid move. Choose rock, paper, or scissors')
        normalized = move.strip().lower()
        if normalized not in RPS_MOVES:
            raise InvalidMove(move, 'Invalid move. Choose rock, paper, or scissors')
        return normalized

    def evaluate(self, move_a: str, move_b: str) -> Outcome:
        a = self.normalize_move(move_a)
        b = self.normalize_move(move_b)
        if a == b:
            return Outcome(TIE, f'Both chose {a}')
        if RPS_BEATS[a] == b:
            return Outcome(WIN_A, f'{a} beats {b}')
        return Outcome(WIN_B, f'{b} beats {a}')


def fallback_outcome(system_word: str, player_word: str) -> Outcome:
    """Reproducible stand-in verdict used when the judge cannot answer."""
    key = f'{system_word.strip().lower()}\x1f{player_word.strip().lower()}'
    digest = hashlib.sha256(key.encode('utf-8')).digest()
    result = (WIN_A, WIN_B, TIE)[digest[0] % 3]
    if result == TIE:
        text = f'"{player_word}" and "{system_word}" are evenly matched'
    elif result == WIN_B:
        text = f'"{player_word}" overpowers "{system_word}"'
    else:
        text = f'"{system_word}" withstands "{player_word}"'
    return Outcome(result, f'{text} (the judge was unavailable, decided by fallback)')


class WordEvaluator(OutcomeEvaluator):
    """Asks the external judge whether ``move_b`` beats ``move_a``."""

    def __init__(self, judge: WordJudge, timeout: float):
        self.judge = judge
        self.timeout = timeout

    def normalize_move(self, move) -> str:
        if not isinstance(move, str) or not move.strip():
            raise InvalidMove(move, 'A word is required')
        word = move.strip()
        if len(word) > MAX_WORD_LENGTH:
            raise InvalidMove(move, f'Words are limited to {MAX_WORD_LENGTH} characters')
        return word

    def evaluate(self, move_a: str, move_b: str) -> Outcome:
        system_word = self.normalize_move(move_a)
        player_word = self.normalize_move(move_b)
        try:
            verdict = self.judge.judge(system_word, player_word, self.timeout)
        except Exception as exc:
            # Any judge failure is settled by the fallback, never by the caller
            reason = exc.message if isinstance(exc, JudgeUnavailable) else repr(exc)
            current_app.logger.warning(
                f"[judge-fallback] system_word={system_word!r} player_word={player_word!r} reason={reason}"
            )
            return fallback_outcome(system_word, player_word)
        result = {'win': WIN_B, 'lose': WIN_A, 'tie': TIE}[verdict.result]
        return Outcome(result, verdict.explanation)


def get_evaluator(game_mode: str) -> OutcomeEvaluator:
    if game_mode == 'words':
        return WordEvaluator(
            judge=current_app.extensions['word_judge'],
            timeout=float(current_app.config.get('JUDGE_TIMEOUT_SEC', 5.0)),
        )
    if game_mode == 'rps':
        return RpsEvaluator()
    raise ValueError(f'Unknown game mode: {game_mode}')
