import itertools
import time

import httpx
import pytest

from wordsofpower.services.games.errors import InvalidMove, JudgeUnavailable
from wordsofpower.services.games.evaluators import (
    RPS_MOVES,
    TIE,
    WIN_A,
    WIN_B,
    RpsEvaluator,
    WordEvaluator,
    fallback_outcome,
    get_evaluator,
)
from wordsofpower.services.games.judge import MAX_RESPONSE_BYTES, HttpWordJudge, Verdict


EXPECTED_RPS = {
    ('rock', 'rock'): TIE,
    ('rock', 'paper'): WIN_B,
    ('rock', 'scissors'): WIN_A,
    ('paper', 'rock'): WIN_A,
    ('paper', 'paper'): TIE,
    ('paper', 'scissors'): WIN_B,
    ('scissors', 'rock'): WIN_B,
    ('scissors', 'paper'): WIN_A,
    ('scissors', 'scissors'): TIE,
}
COMPLEMENT = {WIN_A: WIN_B, WIN_B: WIN_A, TIE: TIE}


@pytest.mark.parametrize('pair', list(itertools.product(RPS_MOVES, repeat=2)))
def test_rps_table_matches_beats_relation(pair):
    a, b = pair
    outcome = RpsEvaluator().evaluate(a, b)
    assert outcome.result == EXPECTED_RPS[pair]
    assert outcome.explanation


@pytest.mark.parametrize('pair', list(itertools.product(RPS_MOVES, repeat=2)))
def test_rps_is_antisymmetric(pair):
    a, b = pair
    evaluator = RpsEvaluator()
    assert evaluator.evaluate(b, a).result == COMPLEMENT[evaluator.evaluate(a, b).result]


def test_rps_normalizes_case_and_whitespace():
    assert RpsEvaluator().evaluate('  ROCK', 'Scissors ').result == WIN_A


@pytest.mark.parametrize('bad', ['lizard', '', None, 3, 'rockk'])
def test_rps_rejects_unknown_moves(bad):
    with pytest.raises(InvalidMove):
        RpsEvaluator().evaluate(bad, 'rock')
    with pytest.raises(InvalidMove):
        RpsEvaluator().evaluate('rock', bad)


def test_word_evaluator_maps_judge_verdict(flask_app, fake_judge):
    evaluator = WordEvaluator(fake_judge, timeout=0.5)

    fake_judge.verdict = Verdict(result='win', explanation='Water quenches fire')
    outcome = evaluator.evaluate('fire', 'water')
    assert outcome.result == WIN_B
    assert outcome.explanation == 'Water quenches fire'

    fake_judge.verdict = Verdict(result='lose', explanation='Fire burns paper')
    assert evaluator.evaluate('fire', 'paper').result == WIN_A

    fake_judge.verdict = Verdict(result='tie', explanation='Same strength')
    assert evaluator.evaluate('fire', 'flame').result == TIE

    assert fake_judge.calls[0] == ('fire', 'water', 0.5)


def test_word_evaluator_falls_back_deterministically(flask_app, fake_judge):
    fake_judge.error = JudgeUnavailable('Word judge timed out')
    evaluator = WordEvaluator(fake_judge, timeout=0.5)

    first = evaluator.evaluate('fire', 'water')
    second = evaluator.evaluate('fire', 'water')
    assert first == second
    assert first == fallback_outcome('fire', 'water')
    assert first.result in (WIN_A, WIN_B, TIE)
    assert first.explanation


def test_fallback_ignores_case_and_surrounding_whitespace():
    assert fallback_outcome('Fire', ' water ').result == fallback_outcome('fire', 'water').result


def test_word_evaluator_falls_back_on_any_judge_exception(flask_app, fake_judge):
    fake_judge.error = RuntimeError('connection pool exploded')
    outcome = WordEvaluator(fake_judge, timeout=0.5).evaluate('fire', 'water')
    assert outcome == fallback_outcome('fire', 'water')


def test_word_evaluator_rejects_blank_words(flask_app, fake_judge):
    evaluator = WordEvaluator(fake_judge, timeout=0.5)
    with pytest.raises(InvalidMove):
        evaluator.evaluate('fire', '   ')
    with pytest.raises(InvalidMove):
        evaluator.evaluate('fire', 'x' * 65)
    assert fake_judge.calls == []


def test_get_evaluator_selects_by_mode(flask_app, fake_judge):
    assert isinstance(get_evaluator('rps'), RpsEvaluator)
    words = get_evaluator('words')
    assert isinstance(words, WordEvaluator)
    assert words.judge is fake_judge
    with pytest.raises(ValueError):
        get_evaluator('chess')


def _judge_with(handler, url='http://judge.test/compare', **kwargs):
    return HttpWordJudge(url, transport=httpx.MockTransport(handler), **kwargs)


def test_http_judge_parses_verdict():
    seen = {}

    def handler(request):
        seen['body'] = request.read()
        seen['auth'] = request.headers.get('Authorization')
        return httpx.Response(200, json={'result': 'WIN', 'explanation': ' Ice cools fire '})

    verdict = _judge_with(handler, api_key='secret').judge('fire', 'ice', timeout=1.0)
    assert verdict.result == 'win'
    assert verdict.explanation == 'Ice cools fire'
    assert b'"system_word"' in seen['body']
    assert seen['auth'] == 'Bearer secret'


def test_http_judge_without_url_is_unavailable():
    with pytest.raises(JudgeUnavailable):
        HttpWordJudge(None).judge('fire', 'ice', timeout=1.0)


def _timeout(request):
    raise httpx.ReadTimeout('timed out', request=request)


def _refused(request):
    raise httpx.ConnectError('refused', request=request)


@pytest.mark.parametrize('handler', [
    _timeout,
    _refused,
    lambda request: httpx.Response(500, json={'error': 'boom'}),
    lambda request: httpx.Response(200, text='not json'),
    lambda request: httpx.Response(200, json={'result': 'maybe', 'explanation': 'unsure'}),
    lambda request: httpx.Response(200, json={'result': 'win', 'explanation': ''}),
])
def test_http_judge_failures_surface_as_unavailable(handler):
    with pytest.raises(JudgeUnavailable):
        _judge_with(handler).judge('fire', 'ice', timeout=1.0)


def test_http_judge_with_malformed_url_is_unavailable():
    with pytest.raises(JudgeUnavailable):
        HttpWordJudge('http://[::1').judge('fire', 'ice', timeout=1.0)


def test_http_judge_enforces_an_overall_deadline():
    def trickle():
        yield b'{"result": '
        time.sleep(0.2)
        yield b'"win", '
        time.sleep(0.2)
        yield b'"explanation": "too late"}'

    judge = _judge_with(lambda request: httpx.Response(200, content=trickle()))
    with pytest.raises(JudgeUnavailable, match='timed out'):
        judge.judge('fire', 'ice', timeout=0.3)


def test_http_judge_rejects_oversized_replies():
    judge = _judge_with(lambda request: httpx.Response(200, content=b' ' * (MAX_RESPONSE_BYTES + 1)))
    with pytest.raises(JudgeUnavailable, match='too large'):
        judge.judge('fire', 'ice', timeout=1.0)
