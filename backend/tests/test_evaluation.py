import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import httpx
import pytest

from radquest.models import Level, Option, Task, TaskKind
from radquest.services.evaluation import ReasoningEvaluator, Verdict, build_prompt, parse_verdict


GOOD_PAYLOAD = {
    'score': 8,
    'summary': 'Gute Begründung mit passenden Fachbegriffen.',
    'strengths': ['Kontamination erkannt'],
    'weaknesses': ['Abschirmung nicht erwähnt'],
}


def _level():
    return Level(id=1, title='Ruinen', intro_text='Du erwachst in den Trümmern einer Stadt.')


def _mc_task():
    return Task(
        id=1,
        kind=TaskKind.MULTIPLE_CHOICE.value,
        prompt_text='Was kaufst du?',
        evaluation_criteria='Schutz vor Kontamination erklären.',
        example_answer='Der Anzug hält Staub fern.',
    )


def _options():
    return [
        Option(id=10, task_id=1, option_text='T-Shirt', points_awarded=2, dose_delta=3.0, correctness=-1),
        Option(id=11, task_id=1, option_text='Strahlenschutzanzug', points_awarded=8, dose_delta=0.0, correctness=1),
    ]


def _chat_response(content, status=200):
    return httpx.Response(status, json={'choices': [{'message': {'role': 'assistant', 'content': content}}]})


def _evaluator(handler, **kwargs):
    sleeps = []
    kwargs.setdefault('retries', 1)
    kwargs.setdefault('backoff', 0.25)
    evaluator = ReasoningEvaluator(
        base_url='http://judge.test/v1',
        model='test-model',
        api_key='secret',
        timeout=5,
        transport=httpx.MockTransport(handler),
        sleep=sleeps.append,
        **kwargs,
    )
    return evaluator, sleeps


def _evaluate(evaluator):
    options = _options()
    return evaluator.evaluate(_level(), _mc_task(), options, options[0], 'T-Shirt', 'Weil es billig ist und ich Geld sparen will.')


# ---- parse_verdict ----

def test_parse_plain_json():
    verdict = parse_verdict(json.dumps(GOOD_PAYLOAD))
    assert verdict == Verdict(
        score=8.0,
        summary='Gute Begründung mit passenden Fachbegriffen.',
        strengths=('Kontamination erkannt',),
        weaknesses=('Abschirmung nicht erwähnt',),
    )


def test_parse_tolerates_prose_fences_and_think_blocks():
    text = (
        '<think>Der Schüler hat {irgendwas} gewählt...</think>\n'
        'Hier ist meine Bewertung:\n```json\n' + json.dumps(GOOD_PAYLOAD) + '\n```\nViel Erfolg!'
    )
    verdict = parse_verdict(text)
    assert verdict is not None
    assert verdict.score == 8.0
    assert verdict.weaknesses == ('Abschirmung nicht erwähnt',)


def test_parse_accepts_numeric_string_score_and_missing_lists():
    verdict = parse_verdict('{"score": "6.5", "summary": "Okay."}')
    assert verdict.score == 6.5
    assert verdict.strengths == ()
    assert verdict.weaknesses == ()


@pytest.mark.parametrize('text', [
    None,
    '',
    'Leider kann ich das nicht bewerten.',
    '{"score": 11, "summary": "zu hoch"}',
    '{"score": -1, "summary": "zu niedrig"}',
    '{"score": "sehr gut", "summary": "x"}',
    '{"score": true, "summary": "x"}',
    '{"score": 5}',
    '{"score": 5, "summary": "x", "strengths": "nur ein String"}',
    '{"score": 5, "summary": "x", "weaknesses": [1, 2]}',
    '{"score": 5, "summary": "abgeschnitten',
])
def test_parse_fails_closed(text):
    assert parse_verdict(text) is None


# ---- build_prompt ----

def test_prompt_is_deterministic_and_complete():
    options = _options()
    first = build_prompt(_level(), _mc_task(), options, options[0], 'T-Shirt', 'Weil es billig ist.')
    second = build_prompt(_level(), _mc_task(), options, options[0], 'T-Shirt', 'Weil es billig ist.')
    assert first == second

    system, user = first
    assert 'German' in system
    assert '"score"' in system
    assert 'Du erwachst in den Trümmern' in user
    assert 'Was kaufst du?' in user
    assert 'Schutz vor Kontamination erklären.' in user
    assert 'Der Anzug hält Staub fern.' in user
    assert '- [BEST] Strahlenschutzanzug' in user
    assert '- [CHOSEN] T-Shirt' in user
    assert 'Weil es billig ist.' in user


def test_prompt_for_free_text_has_no_options():
    task = Task(id=2, kind=TaskKind.FREE_TEXT.value, prompt_text='Warum zerfallen Kerne?')
    _, user = build_prompt(None, task, [], None, 'Zu viele Neutronen.', None)
    assert 'OPTIONS' not in user
    assert 'Zu viele Neutronen.' in user


# ---- ReasoningEvaluator ----

def test_evaluate_success_sends_one_request():
    seen = []

    def handler(request):
        seen.append(request)
        return _chat_response('Bewertung: ' + json.dumps(GOOD_PAYLOAD))

    evaluator, sleeps = _evaluator(handler)
    verdict = _evaluate(evaluator)
    assert verdict is not None and verdict.score == 8.0
    assert len(seen) == 1
    assert str(seen[0].url) == 'http://judge.test/v1/chat/completions'
    assert seen[0].headers['Authorization'] == 'Bearer secret'
    body = json.loads(seen[0].content)
    assert body['model'] == 'test-model'
    assert body['messages'][0]['role'] == 'system'
    assert sleeps == []


def test_evaluate_retries_once_after_transport_error():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError('connection refused', request=request)
        return _chat_response(json.dumps(GOOD_PAYLOAD))

    evaluator, sleeps = _evaluator(handler)
    verdict = _evaluate(evaluator)
    assert verdict is not None
    assert len(calls) == 2
    assert sleeps == [0.25]


def test_evaluate_gives_up_after_one_retry():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, text='overloaded')

    evaluator, sleeps = _evaluator(handler)
    assert _evaluate(evaluator) is None
    assert len(calls) == 2
    assert sleeps == [0.25]


def test_evaluate_timeout_yields_none():
    def handler(request):
        raise httpx.ReadTimeout('too slow', request=request)

    evaluator, _ = _evaluator(handler, retries=0)
    assert _evaluate(evaluator) is None


def test_evaluate_client_error_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401, json={'error': 'bad key'})

    evaluator, sleeps = _evaluator(handler)
    assert _evaluate(evaluator) is None
    assert len(calls) == 1
    assert sleeps == []


def test_evaluate_unparseable_reply_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return _chat_response('Ich finde die Antwort ganz gut, etwa sieben Punkte.')

    evaluator, sleeps = _evaluator(handler)
    assert _evaluate(evaluator) is None
    assert len(calls) == 1


def test_evaluate_malformed_body_yields_none():
    def handler(request):
        return httpx.Response(200, json={'unexpected': True})

    evaluator, _ = _evaluator(handler)
    assert _evaluate(evaluator) is None


def test_retry_skipped_when_deadline_is_spent():
    now = [0.0]
    calls = []

    def handler(request):
        calls.append(request)
        now[0] += 4.9
        raise httpx.ConnectError('down', request=request)

    evaluator, sleeps = _evaluator(handler)
    evaluator._clock = lambda: now[0]
    assert _evaluate(evaluator) is None
    assert len(calls) == 1
    assert sleeps == []


def test_disabled_evaluator_makes_no_call():
    def handler(request):
        raise AssertionError('no request expected')

    evaluator = ReasoningEvaluator(base_url='', model='m', transport=httpx.MockTransport(handler))
    assert not evaluator.enabled
    assert _evaluate(evaluator) is None


def test_evaluate_unexpected_client_error_yields_none():
    def handler(request):
        raise RuntimeError('transport blew up')

    evaluator, sleeps = _evaluator(handler)
    assert _evaluate(evaluator) is None
    assert sleeps == []


def test_evaluate_non_ascii_api_key_yields_none():
    def handler(request):
        raise AssertionError('header encoding fails before sending')

    evaluator = ReasoningEvaluator(
        base_url='http://judge.test/v1',
        model='test-model',
        api_key='schlüssel',
        transport=httpx.MockTransport(handler),
    )
    assert _evaluate(evaluator) is None


class _TricklingHandler(BaseHTTPRequestHandler):
    """Answers 200 and then sends its body one byte at a time."""

    body = json.dumps({'choices': [{'message': {'content': json.dumps(GOOD_PAYLOAD)}}]}).encode()

    def do_POST(self):
        self.rfile.read(int(self.headers.get('Content-Length', 0)))
        self.send_response(200)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Content-Length', str(len(self.body)))
        self.end_headers()
        try:
            for i in range(len(self.body)):
                self.wfile.write(self.body[i:i + 1])
                self.wfile.flush()
                time.sleep(0.25)
        except OSError:
            pass

    def log_message(self, format, *args):
        pass


@pytest.fixture()
def trickling_judge():
    server = ThreadingHTTPServer(('127.0.0.1', 0), _TricklingHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f'http://127.0.0.1:{server.server_address[1]}/v1'
    server.shutdown()
    server.server_close()


def test_slow_reply_is_cut_off_at_the_total_deadline(trickling_judge):
    evaluator = ReasoningEvaluator(base_url=trickling_judge, model='test-model', timeout=1, retries=0)
    started = time.monotonic()
    assert _evaluate(evaluator) is None
    assert time.monotonic() - started < 2
