"""Reasoning evaluation client.

Asks an external judge (any OpenAI-compatible ``/chat/completions``
endpoint, e.g. Ollama or OpenAI) for a qualitative verdict on a student's
reasoning. The judge is advisory: every failure (disabled client, network
error, timeout, HTTP error, unparseable reply) ends in ``None`` and a log
line, never in an exception for the caller.
"""
import json
import logging
import math
import re
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, assert_never

import httpx

from radquest.errors import EvaluationUnavailable
from radquest.models import Level, Option, Task, TaskKind
from radquest.services.catalog import best_option

logger = logging.getLogger(__name__)

_THINK_RE = re.compile(r'<think>.*?</think>', re.DOTALL | re.IGNORECASE)
_FENCE_RE = re.compile(r'```(?:json)?', re.IGNORECASE)

REPLY_SCHEMA = (
    '{\n'
    '  "score": <number from 0 to 10>,\n'
    '  "summary": "<two or three sentences of feedback>",\n'
    '  "strengths": ["<what was good>", ...],\n'
    '  "weaknesses": ["<what could be improved>", ...]\n'
    '}'
)


@dataclass(frozen=True)
class Verdict:
    score: float
    summary: str
    strengths: Tuple[str, ...] = field(default_factory=tuple)
    weaknesses: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'score': self.score,
            'summary': self.summary,
            'strengths': list(self.strengths),
            'weaknesses': list(self.weaknesses),
        }


class _Retryable(Exception):
    """Transient failure worth one more try."""


def build_prompt(
    level: Optional[Level],
    task: Task,
    options: Sequence[Option],
    chosen_option: Optional[Option],
    answer: str,
    reasoning: Optional[str],
    language: str = 'German',
) -> Tuple[str, str]:
    """Return the (system, user) messages for one judgment.

    Pure function of its inputs; the same submission always yields the same
    text.
    """
    system = (
        'You are an experienced physics teacher assessing a student in an '
        'educational game about radioactivity and radiation protection. '
        'Judge the technical correctness, use of terminology, logical '
        'structure and depth of understanding of the student\'s answer. '
        'Be encouraging but honest: a wrong answer must be called wrong. '
        f'Write all feedback in {language}. '
        'Reply with exactly one JSON object of this form and nothing else:\n'
        + REPLY_SCHEMA
    )

    parts = []
    if level is not None and level.intro_text:
        parts.append(f'SCENARIO:\n{level.intro_text.strip()}')
    parts.append(f'TASK:\n{task.prompt_text.strip()}')
    if task.evaluation_criteria:
        parts.append(f'EVALUATION CRITERIA:\n{task.evaluation_criteria.strip()}')
    if task.example_answer:
        parts.append(f'EXAMPLE ANSWER:\n{task.example_answer.strip()}')

    match task.task_kind:
        case TaskKind.MULTIPLE_CHOICE:
            best = best_option(options)
            lines = []
            for opt in options:
                marks = []
                if best is not None and opt.id == best.id:
                    marks.append('[BEST]')
                if chosen_option is not None and opt.id == chosen_option.id:
                    marks.append('[CHOSEN]')
                prefix = ' '.join(marks)
                lines.append(f'- {prefix + " " if prefix else ""}{opt.option_text.strip()}')
            parts.append('OPTIONS:\n' + '\n'.join(lines))
            chosen_text = chosen_option.option_text.strip() if chosen_option is not None else answer.strip()
            parts.append(f'STUDENT\'S CHOICE:\n{chosen_text}')
            parts.append(f'STUDENT\'S REASONING:\n"{(reasoning or "").strip()}"')
            parts.append(
                'Rate the quality of the reasoning from 0 to 10 and check whether '
                'it actually supports the chosen option.'
            )
        case TaskKind.FREE_TEXT:
            parts.append(f'STUDENT\'S ANSWER:\n"{answer.strip()}"')
            parts.append('Rate the answer from 0 to 10, where 10 is a complete and correct answer.')
        case _:
            assert_never(task.task_kind)

    return system, '\n\n'.join(parts)


def _as_score(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        score = float(value)
    elif isinstance(value, str):
        try:
            score = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(score) or score < 0 or score > 10:
        return None
    return score


def _as_str_list(value: Any) -> Optional[Tuple[str, ...]]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        return None
    return tuple(v.strip() for v in value if v.strip())


def _json_objects(text: str):
    decoder = json.JSONDecoder()
    idx = text.find('{')
    while idx != -1:
        try:
            obj, _ = decoder.raw_decode(text, idx)
        except json.JSONDecodeError:
            obj = None
        if isinstance(obj, dict):
            yield obj
        idx = text.find('{', idx + 1)


def parse_verdict(text: Any) -> Optional[Verdict]:
    """Extract a verdict from the judge's reply, or None.

    Tolerates prose around the payload, ``<think>`` blocks and Markdown
    fences. The first JSON object with a ``score`` key decides; if that
    object is malformed the reply counts as unparseable.
    """
    if not isinstance(text, str):
        return None
    cleaned = _FENCE_RE.sub('', _THINK_RE.sub('', text)).strip()
    if not cleaned:
        return None

    for obj in _json_objects(cleaned):
        if 'score' not in obj:
            continue
        score = _as_score(obj['score'])
        summary = obj.get('summary', obj.get('feedback'))
        strengths = _as_str_list(obj.get('strengths'))
        weaknesses = _as_str_list(obj.get('weaknesses'))
        if score is None or not isinstance(summary, str) or strengths is None or weaknesses is None:
            return None
        return Verdict(score=score, summary=summary.strip(), strengths=strengths, weaknesses=weaknesses)
    return None


class ReasoningEvaluator:
    """Client for the judgment service.

    ``timeout`` is the total wall-clock budget for one judgment, retries
    included. Each request runs on a worker thread and the caller stops
    waiting when the budget is spent, however slowly the judge trickles its
    reply. At most ``retries`` extra requests are made, and only for
    transport errors, timeouts, HTTP 429 and 5xx.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str = '',
        timeout: float = 20.0,
        retries: int = 1,
        backoff: float = 0.5,
        language: str = 'German',
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        max_workers: int = 8,
    ):
        self.base_url = (base_url or '').rstrip('/')
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self.retries = max(0, retries)
        self.backoff = backoff
        self.language = language
        self.transport = transport
        self._sleep = sleep
        self._clock = clock
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='radquest-judge')

    @classmethod
    def from_config(cls, config) -> 'ReasoningEvaluator':
        return cls(
            base_url=config.get('EVALUATION_BASE_URL', ''),
            model=config.get('EVALUATION_MODEL', ''),
            api_key=config.get('EVALUATION_API_KEY', ''),
            timeout=float(config.get('EVALUATION_TIMEOUT_SEC', 20)),
            retries=int(config.get('EVALUATION_RETRIES', 1)),
            backoff=float(config.get('EVALUATION_RETRY_BACKOFF_SEC', 0.5)),
            language=config.get('EVALUATION_LANGUAGE', 'German'),
        )

    @property
    def enabled(self) -> bool:
        return bool(self.base_url and self.model)

    def evaluate(
        self,
        level: Optional[Level],
        task: Task,
        options: Sequence[Option],
        chosen_option: Optional[Option],
        answer: str,
        reasoning: Optional[str],
    ) -> Optional[Verdict]:
        if not self.enabled:
            logger.info(f"[evaluate-skip] task={task.id} judgment service not configured")
            return None
        try:
            system, user = build_prompt(level, task, options, chosen_option, answer, reasoning, self.language)
            text = self._complete(system, user)
        except EvaluationUnavailable as exc:
            logger.warning(f"[evaluate-fail] task={task.id} {exc}")
            return None
        except Exception as exc:
            # Bad settings (URL, key encoding) or client bugs; the submission goes on without a verdict
            logger.warning(f"[evaluate-fail] task={task.id} {type(exc).__name__}: {exc}", exc_info=True)
            return None
        verdict = parse_verdict(text)
        if verdict is None:
            logger.warning(f"[evaluate-fail] task={task.id} unparseable reply: {text[:200]!r}")
        else:
            logger.info(f"[evaluate] task={task.id} score={verdict.score}")
        return verdict

    def _complete(self, system: str, user: str) -> str:
        deadline = self._clock() + self.timeout
        tries = 0
        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                raise EvaluationUnavailable('deadline exceeded')
            try:
                return self._post_within(system, user, deadline, remaining)
            except _Retryable as exc:
                tries += 1
                if tries > self.retries or deadline - self._clock() <= self.backoff:
                    raise EvaluationUnavailable(str(exc)) from exc
                logger.info(f"[evaluate-retry] {exc}; retrying in {self.backoff}s")
                self._sleep(self.backoff)

    def _post_within(self, system: str, user: str, deadline: float, remaining: float) -> str:
        future = self._pool.submit(self._post, system, user, deadline, remaining)
        try:
            return future.result(timeout=remaining)
        except FutureTimeout as exc:
            # The worker gives up on its own at the next chunk or read timeout
            future.cancel()
            raise EvaluationUnavailable(f'no complete reply within {self.timeout:.1f}s') from exc

    def _post(self, system: str, user: str, deadline: float, timeout: float) -> str:
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        payload = {
            'model': self.model,
            'messages': [
                {'role': 'system', 'content': system},
                {'role': 'user', 'content': user},
            ],
            'temperature': 0.2,
            'max_tokens': 600,
            'stream': False,
        }
        try:
            with httpx.Client(transport=self.transport, timeout=timeout) as client:
                with client.stream('POST', f'{self.base_url}/chat/completions', json=payload, headers=headers) as response:
                    if response.status_code == 429 or response.status_code >= 500:
                        raise _Retryable(f'HTTP {response.status_code}')
                    if response.status_code >= 400:
                        raise EvaluationUnavailable(f'HTTP {response.status_code}')
                    body = bytearray()
                    for chunk in response.iter_bytes():
                        body.extend(chunk)
                        if self._clock() > deadline:
                            raise EvaluationUnavailable('reply still arriving at the deadline')
        except httpx.TimeoutException as exc:
            raise _Retryable(f'timeout after {timeout:.1f}s') from exc
        except httpx.TransportError as exc:
            raise _Retryable(f'transport error: {exc}') from exc

        try:
            data = json.loads(bytes(body))
            content = data['choices'][0]['message']['content']
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise EvaluationUnavailable(f'unexpected response body: {exc}') from exc
        if not isinstance(content, str):
            raise EvaluationUnavailable('response content is not text')
        return content
