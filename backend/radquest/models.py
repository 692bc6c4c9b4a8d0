from radquest import db
from datetime import datetime, timezone
import enum
import json


def utcnow():
    return datetime.now(timezone.utc)


class TaskKind(str, enum.Enum):
    MULTIPLE_CHOICE = 'mc'
    FREE_TEXT = 'free'


class LevelState(str, enum.Enum):
    NOT_STARTED = 'not_started'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'


class Player(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    stats = db.relationship('PlayerStats', back_populates='player', uselist=False)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class PlayerStats(db.Model):
    """Cumulative counters; written only by services.stats.apply_delta."""
    __tablename__ = 'player_stats'
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), primary_key=True)
    knowledge_points = db.Column(db.Integer, nullable=False, default=0)
    dose = db.Column(db.Float, nullable=False, default=0.0)
    player = db.relationship('Player', back_populates='stats')

    def to_dict(self):
        return {
            'player_id': self.player_id,
            'knowledge_points': self.knowledge_points or 0,
            'dose': self.dose or 0.0,
        }


class Level(db.Model):
    __tablename__ = 'level'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    intro_text = db.Column(db.Text, nullable=True)
    topic_tag = db.Column(db.String(64), nullable=False, default='radioactivity')
    ordering = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    tasks = db.relationship('Task', back_populates='level', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'intro_text': self.intro_text,
            'topic_tag': self.topic_tag,
            'ordering': self.ordering,
        }


class Task(db.Model):
    __tablename__ = 'task'
    id = db.Column(db.Integer, primary_key=True)
    level_id = db.Column(db.Integer, db.ForeignKey('level.id'), nullable=False, index=True)
    kind = db.Column(db.String(8), nullable=False, default=TaskKind.MULTIPLE_CHOICE.value)
    prompt_text = db.Column(db.Text, nullable=False)
    evaluation_criteria = db.Column(db.Text, nullable=False, default='')
    example_answer = db.Column(db.Text, nullable=False, default='')
    # Upper bound for free-text scoring; unused by multiple-choice tasks
    max_points = db.Column(db.Integer, nullable=False, default=10)
    ordering = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    level = db.relationship('Level', back_populates='tasks')
    options = db.relationship('Option', back_populates='task', lazy='dynamic')

    @property
    def task_kind(self) -> TaskKind:
        return TaskKind(self.kind)

    def to_dict(self):
        return {
            'id': self.id,
            'level_id': self.level_id,
            'kind': self.kind,
            'prompt_text': self.prompt_text,
            'ordering': self.ordering,
        }


class Option(db.Model):
    __tablename__ = 'option'
    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, db.ForeignKey('task.id'), nullable=False, index=True)
    option_text = db.Column(db.Text, nullable=False)
    points_awarded = db.Column(db.Integer, nullable=False, default=0)
    dose_delta = db.Column(db.Float, nullable=False, default=0.0)
    correctness = db.Column(db.Float, nullable=False, default=0.0)
    ordering = db.Column(db.Integer, nullable=False, default=0)
    task = db.relationship('Task', back_populates='options')

    def to_dict(self, include_scoring=False):
        data = {
            'id': self.id,
            'task_id': self.task_id,
            'option_text': self.option_text,
        }
        if include_scoring:
            data.update({
                'points_awarded': self.points_awarded,
                'dose_delta': self.dose_delta,
                'correctness': self.correctness,
            })
        return data


class Attempt(db.Model):
    """One scored submission. Rows are inserted once and never updated."""
    __tablename__ = 'attempt'
    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False, index=True)
    level_id = db.Column(db.Integer, db.ForeignKey('level.id'), nullable=False)
    task_id = db.Column(db.Integer, db.ForeignKey('task.id'), nullable=False)
    option_id = db.Column(db.Integer, db.ForeignKey('option.id'), nullable=True)
    answer = db.Column(db.Text, nullable=False, default='')
    reasoning = db.Column(db.Text, nullable=True)
    correctness = db.Column(db.Float, nullable=False)
    points_got = db.Column(db.Integer, nullable=False)
    dose_got = db.Column(db.Float, nullable=False)
    ai_score = db.Column(db.Float, nullable=True)
    ai_summary = db.Column(db.Text, nullable=True)
    ai_strengths = db.Column(db.Text, nullable=True)  # JSON-encoded list of strings
    ai_weaknesses = db.Column(db.Text, nullable=True)  # JSON-encoded list of strings
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def verdict(self):
        if self.ai_score is None:
            return None
        return {
            'score': self.ai_score,
            'summary': self.ai_summary or '',
            'strengths': json.loads(self.ai_strengths) if self.ai_strengths else [],
            'weaknesses': json.loads(self.ai_weaknesses) if self.ai_weaknesses else [],
        }

    def to_dict(self):
        return {
            'id': self.id,
            'player_id': self.player_id,
            'level_id': self.level_id,
            'task_id': self.task_id,
            'option_id': self.option_id,
            'answer': self.answer,
            'reasoning': self.reasoning,
            'correctness': self.correctness,
            'points_got': self.points_got,
            'dose_got': self.dose_got,
            'verdict': self.verdict,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class LevelProgress(db.Model):
    __tablename__ = 'level_progress'
    __table_args__ = (
        db.UniqueConstraint('player_id', 'level_id', name='uq_level_progress_player_level'),
    )
    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False, index=True)
    level_id = db.Column(db.Integer, db.ForeignKey('level.id'), nullable=False)
    state = db.Column(db.String(16), nullable=False, default=LevelState.IN_PROGRESS.value)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            'player_id': self.player_id,
            'level_id': self.level_id,
            'state': self.state,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }
