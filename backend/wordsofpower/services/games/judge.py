"""HTTP client for the external word judge.

The judge compares a system word with a player word and answers from the
player word's point of view: ``win``, ``lose`` or ``tie`` plus a short
explanation. Any failure surfaces as ``JudgeUnavailable``.
"""

import time
from typing import Literal, Protocol

import httpx
from pydantic import BaseModel, ValidationError, field_validator

from .errors import JudgeUnavailable

# A verdict is one word and a sentence
MAX_RESPONSE_BYTES = 16 * 1024


class Verdict(BaseModel):
    """Parsed judge answer."""

    result: Literal['win', 'lose', 'tie']
    explanation: str

    @field_validator('result', mode='before')
    @classmethod
    def _normalize_result(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator('explanation')
    @classmethod
    def _require_explanation(cls, value: str) -> str:
        if not value.strip():
            raise ValueError('explanation must not be empty')
        return value.strip()


class WordJudge(Protocol):
    def judge(self, system_word: str, player_word: str, timeout: float) -> Verdict: ...


class HttpWordJudge:
    """Posts word pairs to ``JUDGE_URL`` and validates the JSON reply."""

    def __init__(
        self,
        url: str | None,
        api_key: str | None = None,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_config(cls, config) -> 'HttpWordJudge':
        return cls(
            url=config.get('JUDGE_URL'),
            api_key=config.get('JUDGE_API_KEY'),
            timeout=float(config.get('JUDGE_TIMEOUT_SEC', 5.0)),
        )

    def judge(self, system_word: str, player_word: str, timeout: float | None = None) -> Verdict:
        if not self.url:
            raise JudgeUnavailable('No word judge configured')

        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        payload = {'system_word': system_word, 'player_word': player_word}

        limit = timeout if timeout is not None else self.timeout
        deadline = time.monotonic() + limit

        try:
            with httpx.Client(transport=self.transport, timeout=limit) as client:
                with client.stream('POST', self.url, json=payload, headers=headers) as response:
                    response.raise_for_status()
                    body = bytearray()
                    # The client timeout bounds each read; the deadline bounds the whole reply
                    for chunk in response.iter_bytes():
                        body.extend(chunk)
                        if len(body) > MAX_RESPONSE_BYTES:
                            raise JudgeUnavailable('Word judge response is too large')
                        if time.monotonic() > deadline:
                            raise JudgeUnavailable(f'Word judge timed out after {limit}s')
            return Verdict.model_validate_json(bytes(body))
        except httpx.TimeoutException as e:
            raise JudgeUnavailable(f'Word judge timed out: {e}') from e
        except httpx.HTTPStatusError as e:
            raise JudgeUnavailable(f'Word judge returned {e.response.status_code}') from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise JudgeUnavailable(f'Word judge request failed: {e}') from e
        except ValidationError as e:
            # Undecodable JSON fails validation too
            raise JudgeUnavailable(f'Malformed word judge response: {e}') from e
