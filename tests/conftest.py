from types import SimpleNamespace

import pytest

from app import create_app
from config import TestConfig
from models import SchoolClass, SchoolYear, Student, StudentClass
from utils.extensions import db


@pytest.fixture
def app(tmp_path):
    class _Config(TestConfig):
        EXPORT_FOLDER = str(tmp_path / 'exports')

    app = create_app(_Config)
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


def add_students(school_class, count, prefix):
    """Create `count` active students enrolled in school_class; returns their ids."""
    students = []
    for i in range(count):
        student = Student(
            student_code=f"{prefix}{i:03d}",
            lrn=f"LRN-{prefix}{i:03d}",
            first_name=f"First{i:03d}",
            last_name=f"{prefix}Last{i:03d}",
        )
        db.session.add(student)
        students.append(student)
    db.session.flush()
    for student in students:
        db.session.add(StudentClass(student_id=student.id, class_id=school_class.id, enrolled_by='seed'))
    db.session.commit()
    return [s.id for s in students]


@pytest.fixture
def school(app):
    """
    2024-2025 (source): Grade 6 - A (5 students), Grade 6 - B (2), Kindergarten - Rose (1)
    2025-2026 (target): Grade 7 - A (cap 3), Grade 7 - B (cap 10), Grade 1 - Rose (cap 30)
    """
    with app.app_context():
        source = SchoolYear(name='2024-2025', is_active=True)
        target = SchoolYear(name='2025-2026')
        db.session.add_all([source, target])
        db.session.flush()

        g6a = SchoolClass(school_year_id=source.id, grade_level='Grade 6', section='A', max_capacity=40)
        g6b = SchoolClass(school_year_id=source.id, grade_level='Grade 6', section='B', max_capacity=40)
        kinder = SchoolClass(school_year_id=source.id, grade_level='Kindergarten', section='Rose', max_capacity=25)
        g7a = SchoolClass(school_year_id=target.id, grade_level='Grade 7', section='A', max_capacity=3)
        g7b = SchoolClass(school_year_id=target.id, grade_level='Grade 7', section='B', max_capacity=10)
        g1 = SchoolClass(school_year_id=target.id, grade_level='Grade 1', section='Rose', max_capacity=30)
        db.session.add_all([g6a, g6b, kinder, g7a, g7b, g1])
        db.session.commit()

        ns = SimpleNamespace(
            source_year_id=source.id,
            target_year_id=target.id,
            g6a=g6a.id, g6b=g6b.id, kinder=kinder.id,
            g7a=g7a.id, g7b=g7b.id, g1=g1.id,
        )
        ns.g6a_students = add_students(g6a, 5, 'A')
        ns.g6b_students = add_students(g6b, 2, 'B')
        ns.kinder_students = add_students(kinder, 1, 'K')
        ns.all_students = ns.g6a_students + ns.g6b_students + ns.kinder_students
        return ns


@pytest.fixture
def engine(ctx, school):
    from utils.placement import PlacementEngine
    return PlacementEngine()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app, client):
    response = client.post('/login', json={
        'username': app.config['SUPER_ADMIN_USERNAME'],
        'user_id': app.config['SUPER_ADMIN_ID'],
        'password': app.config['SUPER_ADMIN_PASSWORD'],
    })
    assert response.status_code == 200, response.get_json()
    assert response.get_json()['admin']['admin_id'] == app.config['SUPER_ADMIN_ID']
    return client
