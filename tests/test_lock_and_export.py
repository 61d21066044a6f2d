import csv
import os

from models import PlacementLog, SchoolYear
from utils.errors import PersistenceFailure
from utils.export import EXPORT_COLUMNS, PreviewExporter, resolve_export_path
from utils.extensions import db
from utils.lock_gate import LockGate
from utils.stores import SqlEnrollmentStore

ADMIN = 'ADM001'


def read_export(path):
    with open(path, newline='', encoding='utf-8-sig') as f:
        return list(csv.reader(f))


# -------------------------------------------------------------- lock

def test_lock_refused_while_placements_are_staged(engine, school):
    engine.bulk_assign(school.source_year_id, school.target_year_id, [school.g6a_students[0]], school.g7b, ADMIN)

    result = LockGate().lock(school.target_year_id, ADMIN)

    assert not result['success']
    assert '1 staged placement(s)' in result['message']
    assert not db.session.get(SchoolYear, school.target_year_id).is_locked


def test_lock_records_who_and_when(engine, school):
    result = LockGate().lock(school.target_year_id, ADMIN)

    assert result == {
        'success': True,
        'message': 'School year enrollment locked successfully',
        'school_year_id': school.target_year_id,
        'already_locked': False,
    }
    year = db.session.get(SchoolYear, school.target_year_id)
    assert year.is_locked
    assert year.locked_by == ADMIN
    assert year.locked_at is not None
    assert PlacementLog.query.filter_by(action='lock').count() == 1


def test_locking_twice_reports_already_locked(engine, school):
    gate = LockGate()
    gate.lock(school.target_year_id, ADMIN)
    again = gate.lock(school.target_year_id, ADMIN)

    assert again['success']
    assert again['already_locked']
    assert gate.is_locked(school.target_year_id)


class BrokenLockStore(SqlEnrollmentStore):
    def set_locked(self, year_id, locked, locked_by=None):
        raise PersistenceFailure('Database error: database is locked', school_year_id=year_id)


def test_lock_storage_failure_is_reported(engine, school):
    result = LockGate(enrollment_store=BrokenLockStore()).lock(school.target_year_id, ADMIN)

    assert not result['success']
    assert 'database is locked' in result['message']
    assert not db.session.get(SchoolYear, school.target_year_id).is_locked


# -------------------------------------------------------------- export

def test_export_writes_staged_then_committed_rows(engine, school):
    src, tgt = school.source_year_id, school.target_year_id
    committed_id = school.g6a_students[0]
    staged_id = school.kinder_students[0]
    engine.bulk_assign(src, tgt, [committed_id], school.g7b, ADMIN)
    engine.commit(src, tgt, ADMIN)
    engine.bulk_assign(src, tgt, [staged_id], school.g1, ADMIN)

    result = PreviewExporter().export(src, tgt, ADMIN)

    assert result['filename'].startswith('placement_preview_SY2024_2025_to_SY2025_2026_')
    assert result['filename'].endswith('.csv')
    assert result['record_count'] == 2

    rows = read_export(result['filepath'])
    assert rows[0] == EXPORT_COLUMNS
    assert rows[1] == [str(staged_id), 'KLast000, First000', 'Kindergarten - Rose', 'Grade 1 - Rose', 'staged']
    assert rows[2] == [str(committed_id), 'ALast000, First000', 'Grade 6 - A', 'Grade 7 - B', 'committed']


def test_export_does_not_touch_staging(engine, school):
    src, tgt = school.source_year_id, school.target_year_id
    engine.bulk_assign(src, tgt, school.g6b_students, school.g7b, ADMIN)
    before = engine.staged_placements(src, tgt)
    depth = engine.undo_depth(src, tgt)

    PreviewExporter().export(src, tgt, ADMIN)

    assert engine.staged_placements(src, tgt) == before
    assert engine.undo_depth(src, tgt) == depth


def test_export_allowed_after_lock_and_never_overwrites(engine, school):
    src, tgt = school.source_year_id, school.target_year_id
    LockGate().lock(tgt, ADMIN)
    exporter = PreviewExporter()

    first = exporter.export(src, tgt, ADMIN)
    second = exporter.export(src, tgt, ADMIN)

    assert first['filename'] != second['filename']
    assert os.path.isfile(first['filepath'])
    assert os.path.isfile(second['filepath'])
    assert read_export(first['filepath']) == [EXPORT_COLUMNS]


def test_resolve_export_path_only_serves_exports(engine, school):
    result = PreviewExporter().export(school.source_year_id, school.target_year_id, ADMIN)

    assert resolve_export_path(result['filename']) == result['filepath']
    assert resolve_export_path('../' + result['filename']) == result['filepath']
    assert resolve_export_path('report.csv') is None
    assert resolve_export_path('placement_preview_missing.csv') is None
    assert resolve_export_path(None) is None
