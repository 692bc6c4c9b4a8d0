"""Demo content and players for ``flask db-reset``."""
from radquest import db
from radquest.models import Level, Option, Player, Task, TaskKind

DEMO_PLAYERS = ['testuser1', 'testuser2', 'testuser3']

DEMO_LEVELS = [
    {
        'title': 'Die verstrahlten Ruinen - Der Klamottenladen',
        'intro_text': (
            'Du erwachst in den Trümmern einer einst blühenden Stadt. Überall siehst du seltsame '
            'Warnschilder mit dem Strahlensymbol. Die Luft flimmert merkwürdig, und dein Geigerzähler '
            'klickt bedrohlich.\n\nDeine Wissensleiste ist zu Beginn leer (0 WP) und dein Dosimeter '
            'hat keine Strahlung gemessen (0 mSv).'
        ),
        'tasks': [
            {
                'kind': TaskKind.MULTIPLE_CHOICE,
                'prompt_text': (
                    'Du findest einen halb-zerstörten Klamottenladen. Ein alter Mann verkauft dort übrig '
                    'gebliebene Kleidung und andere nützliche Dinge. Was kaufst du?'
                ),
                'evaluation_criteria': (
                    'Die Begründung sollte erklären, wovor die gewählte Kleidung schützt '
                    '(Kontamination durch radioaktive Partikel, Abschirmung) und wovor nicht.'
                ),
                'example_answer': (
                    'Der Strahlenschutzanzug verhindert, dass radioaktiver Staub auf Haut und Kleidung '
                    'gelangt. Gegen Gammastrahlung schützt er kaum, aber Kontamination ist hier die '
                    'größte Gefahr.'
                ),
                'options': [
                    ('A) T-Shirt - Bietet keinen Schutz vor Strahlung', 2, 3.0, -1.0),
                    ('B) Gelber Strahlenschutzanzug - Professioneller Schutz vor radioaktiver Kontamination', 8, 0.0, 1.0),
                    ('C) Dicke Winterjacke - Normale Kleidung, etwas Schutz vor Kälte', 4, 1.5, -1.0),
                    ('D) Normale Schutzmaske - Schutz vor Staub, aber nicht vor Strahlung', 3, 2.0, -1.0),
                    ('E) Mundschutz - Minimaler Schutz vor Partikeln', 2, 2.5, -1.0),
                    ('F) Mütze - Schutz vor Sonne, nicht vor Strahlung', 1, 2.8, -1.0),
                    ('G) Filtermaske fürs komplette Gesicht - Guter Schutz vor radioaktiven Partikeln', 7, 0.5, 0.5),
                ],
            },
            {
                'kind': TaskKind.FREE_TEXT,
                'prompt_text': (
                    'Ein alter Wissenschaftler fragt dich: "Warum sind manche Atomkerne instabil und '
                    'zerfallen radioaktiv?" Erkläre ihm deine Überlegungen zum Verhältnis von Protonen '
                    'zu Neutronen.'
                ),
                'evaluation_criteria': (
                    'Nennt das Zusammenspiel von starker Kernkraft und elektrischer Abstoßung, das '
                    'ungünstige Neutronen-Protonen-Verhältnis und den Zerfall als Weg zu einem '
                    'stabileren Kern.'
                ),
                'example_answer': (
                    'Protonen stoßen sich elektrisch ab, die starke Kernkraft hält den Kern zusammen. '
                    'Neutronen tragen zur Kernkraft bei, ohne abzustoßen. Passt das Verhältnis nicht, '
                    'ist der Kern instabil und wandelt sich durch Alpha- oder Betazerfall um.'
                ),
                'max_points': 10,
                'options': [],
            },
        ],
    },
    {
        'title': 'Das Strahlenschutz-Labor',
        'intro_text': (
            'Du findest ein verlassenes Labor mit funktionierenden Geräten. Ein Hologramm erklärt: '
            '"Du musst lernen, wie Strahlendosen gemessen werden und welche Schutzmaßnahmen existieren."'
        ),
        'tasks': [
            {
                'kind': TaskKind.MULTIPLE_CHOICE,
                'prompt_text': 'Dein Dosimeter piept! Welche Aussage über Strahlendosen ist korrekt?',
                'evaluation_criteria': 'Kennt den Grenzwert für die Allgemeinbevölkerung und die Einheit mSv.',
                'example_answer': 'Für die Allgemeinbevölkerung gilt in Deutschland ein Grenzwert von 1 mSv pro Jahr.',
                'options': [
                    ('1 mSv pro Jahr ist der Grenzwert für die Allgemeinbevölkerung in Deutschland', 5, 0.0, 1.0),
                    ('Je höher die Dosis, desto besser für die Gesundheit', 0, 3.0, -1.0),
                    ('Strahlendosen sind nur bei direktem Kontakt gefährlich', 1, 1.5, -1.0),
                    ('Radioaktive Strahlung ist grundsätzlich ungefährlich', 0, 5.0, -1.0),
                ],
            },
        ],
    },
    {
        'title': 'Die Hoffnungszone',
        'intro_text': (
            'Du erreichst einen Bereich mit schwächerer Strahlung. Ein Arzt erklärt dir: '
            '"Radioaktivität kann Leben retten! In der Medizin nutzen wir sie für Diagnose und Therapie."'
        ),
        'tasks': [
            {
                'kind': TaskKind.MULTIPLE_CHOICE,
                'prompt_text': 'Im Krankenhaus siehst du Geräte mit Strahlensymbolen. Wo wird Radioaktivität in der Medizin eingesetzt?',
                'evaluation_criteria': 'Nennt Therapie und Diagnostik (z.B. PET) als Einsatzgebiete.',
                'example_answer': 'In der Krebstherapie und bei bildgebenden Verfahren wie der PET.',
                'options': [
                    ('In der Krebstherapie und bei bildgebenden Verfahren wie PET', 5, 0.0, 1.0),
                    ('Nur zur Desinfektion von Operationssälen', 2, 0.2, -1.0),
                    ('Ausschließlich zur Behandlung von Knochenbrüchen', 0, 1.0, -1.0),
                    ('Radioaktivität wird nicht in der Medizin verwendet', 0, 2.0, -1.0),
                ],
            },
        ],
    },
]


def seed_demo_content():
    for name in DEMO_PLAYERS:
        db.session.add(Player(username=name))

    for level_idx, level_data in enumerate(DEMO_LEVELS, start=1):
        level = Level(title=level_data['title'], intro_text=level_data['intro_text'], ordering=level_idx)
        db.session.add(level)
        db.session.flush()
        for task_idx, task_data in enumerate(level_data['tasks'], start=1):
            task = Task(
                level_id=level.id,
                kind=task_data['kind'].value,
                prompt_text=task_data['prompt_text'],
                evaluation_criteria=task_data['evaluation_criteria'],
                example_answer=task_data['example_answer'],
                max_points=task_data.get('max_points', 10),
                ordering=task_idx,
            )
            db.session.add(task)
            db.session.flush()
            for opt_idx, (text, points, dose, correctness) in enumerate(task_data['options'], start=1):
                db.session.add(Option(
                    task_id=task.id,
                    option_text=text,
                    points_awarded=points,
                    dose_delta=dose,
                    correctness=correctness,
                    ordering=opt_idx,
                ))

    db.session.commit()
