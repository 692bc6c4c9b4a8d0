import os
import sys
import pytest

# Ensure the backend root (containing the `radquest` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from radquest import create_app, db, socketio
from radquest.models import Level, Option, Player, Task, TaskKind
from radquest.services.evaluation import Verdict


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # No judge unless a test installs one
    EVALUATION_BASE_URL = ''
    EVALUATION_MODEL = 'test-model'
    EVALUATION_TIMEOUT_SEC = 2
    EVALUATION_RETRIES = 1
    EVALUATION_RETRY_BACKOFF_SEC = 0
    EVALUATION_LANGUAGE = 'German'
    MIN_REASONING_LENGTH = 10


class FakeJudge:
    """Stands in for ReasoningEvaluator; returns a fixed verdict (or None)."""

    def __init__(self, verdict=None):
        self.verdict = verdict
        self.calls = []

    def evaluate(self, level, task, options, chosen_option, answer, reasoning):
        self.calls.append({'task_id': task.id, 'answer': answer, 'reasoning': reasoning})
        return self.verdict


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import radquest.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def file_app(tmp_path):
    """App on a SQLite file so worker threads get their own connections."""
    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'radquest.db'}"
        SQLALCHEMY_ENGINE_OPTIONS = {'connect_args': {'timeout': 30}}

    application = create_app(FileConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def judge(flask_app):
    """Install a FakeJudge as the app's evaluator."""
    fake = FakeJudge()
    flask_app.extensions['radquest.evaluator'] = fake
    return fake


def make_verdict(score=7, summary='Solide Begründung.'):
    return Verdict(score=score, summary=summary, strengths=('Fachbegriffe',), weaknesses=('Zu kurz',))


def build_content():
    """Two levels; level 1 has the shop task (A/B options) and a free-text task."""
    player = Player(username='alice')
    other = Player(username='bob')
    level = Level(title='Die verstrahlten Ruinen', intro_text='Du erwachst in den Trümmern.', ordering=1)
    level2 = Level(title='Das Labor', intro_text='Ein Hologramm flackert auf.', ordering=2)
    db.session.add_all([player, other, level, level2])
    db.session.flush()

    mc = Task(
        level_id=level.id,
        kind=TaskKind.MULTIPLE_CHOICE.value,
        prompt_text='Was kaufst du im Klamottenladen?',
        evaluation_criteria='Schutz vor Kontamination erklären.',
        example_answer='Der Anzug hält radioaktiven Staub fern.',
        ordering=1,
    )
    free = Task(
        level_id=level.id,
        kind=TaskKind.FREE_TEXT.value,
        prompt_text='Warum zerfallen manche Atomkerne?',
        evaluation_criteria='Kernkraft und Abstoßung nennen.',
        example_answer='Ungünstiges Verhältnis von Protonen zu Neutronen.',
        max_points=10,
        ordering=2,
    )
    lab = Task(level_id=level2.id, kind=TaskKind.MULTIPLE_CHOICE.value, prompt_text='Welcher Grenzwert gilt?', ordering=1)
    db.session.add_all([mc, free, lab])
    db.session.flush()

    option_a = Option(task_id=mc.id, option_text='Strahlenschutzanzug', points_awarded=8, dose_delta=0.0, correctness=1, ordering=1)
    option_b = Option(task_id=mc.id, option_text='T-Shirt', points_awarded=2, dose_delta=3.0, correctness=-1, ordering=2)
    lab_option = Option(task_id=lab.id, option_text='1 mSv pro Jahr', points_awarded=5, dose_delta=0.0, correctness=1, ordering=1)
    db.session.add_all([option_a, option_b, lab_option])
    db.session.commit()

    return {
        'player': player.id,
        'other_player': other.id,
        'level': level.id,
        'level2': level2.id,
        'mc_task': mc.id,
        'free_task': free.id,
        'lab_task': lab.id,
        'option_a': option_a.id,
        'option_b': option_b.id,
        'lab_option': lab_option.id,
    }


@pytest.fixture()
def content(flask_app):
    return build_content()
