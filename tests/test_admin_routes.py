from models import PlacementLog, SchoolYear, StudentClass
from utils.extensions import db


def pair(school, **extra):
    payload = {'source_year_id': school.source_year_id, 'target_year_id': school.target_year_id}
    payload.update(extra)
    return payload


def test_placement_requires_login(client, school):
    response = client.get('/admin/placement/candidates', query_string=pair(school))
    assert response.status_code == 401
    assert response.get_json()['success'] is False


def test_login_rejects_bad_password(app, client):
    response = client.post('/login', json={
        'username': app.config['SUPER_ADMIN_USERNAME'],
        'user_id': app.config['SUPER_ADMIN_ID'],
        'password': 'wrong-password',
    })
    assert response.status_code == 401


def test_school_years(admin_client, school):
    response = admin_client.get('/admin/placement/school-years')
    names = [y['name'] for y in response.get_json()['school_years']]
    assert names == ['2025-2026', '2024-2025']


def test_candidates_with_filters_and_staging(admin_client, school):
    admin_client.post('/admin/placement/bulk-assign', json=pair(
        school, student_ids=school.g6b_students[:1], target_class_id=school.g7b))

    response = admin_client.get('/admin/placement/candidates', query_string=pair(school, grade='Grade 6'))
    data = response.get_json()

    assert response.status_code == 200
    assert len(data['candidates']) == 7
    assert data['filter_options'] == {'grade_levels': ['Grade 6', 'Kindergarten'], 'sections': ['A', 'B', 'Rose']}
    assert data['locked'] is False
    assert data['undo_depth'] == 1

    staged = {c['student_id']: c['staged_class_id'] for c in data['candidates']}
    assert staged[school.g6b_students[0]] == school.g7b
    assert staged[school.g6a_students[0]] is None
    assert data['candidates'][0]['suggestion'] == 'Grade 6 → Grade 7'


def test_same_year_pair_is_a_form_error(admin_client, school):
    response = admin_client.get('/admin/placement/stats', query_string={
        'source_year_id': school.source_year_id, 'target_year_id': school.source_year_id})
    assert response.status_code == 400
    assert 'target_year_id' in response.get_json()['errors']


def test_bulk_assign_reports_skips(admin_client, school):
    response = admin_client.post('/admin/placement/bulk-assign', json=pair(
        school, student_ids=school.g6a_students, target_class_id=school.g7a))
    data = response.get_json()

    assert response.status_code == 200
    assert data['assigned_count'] == 3
    assert data['skipped_count'] == 2
    assert {s['reason'] for s in data['skipped']} == {'ClassFull'}


def test_bulk_assign_requires_students(admin_client, school):
    response = admin_client.post('/admin/placement/bulk-assign', json=pair(
        school, student_ids=[], target_class_id=school.g7a))
    assert response.status_code == 400
    assert 'student_ids' in response.get_json()['errors']


def test_unknown_target_class_is_a_validation_error(admin_client, school):
    response = admin_client.post('/admin/placement/bulk-assign', json=pair(
        school, student_ids=school.g6b_students, target_class_id=9999))
    data = response.get_json()
    assert response.status_code == 400
    assert data['code'] == 'ValidationError'


def test_assign_move_undo_and_remove(admin_client, school):
    student_id = school.g6a_students[0]
    admin_client.post('/admin/placement/assign', json=pair(school, student_id=student_id, target_class_id=school.g7a))
    moved = admin_client.post('/admin/placement/assign', json=pair(
        school, student_id=student_id, target_class_id=school.g7b)).get_json()
    assert moved['previous_class_id'] == school.g7a

    undone = admin_client.post('/admin/placement/undo', json=pair(school)).get_json()
    assert undone['success']

    classes = admin_client.get('/admin/placement/classes', query_string=pair(school)).get_json()['classes']
    staged = {c['class_id']: c['staged_count'] for c in classes}
    assert staged[school.g7a] == 1
    assert staged[school.g7b] == 0

    removed = admin_client.post('/admin/placement/remove', json=pair(school, student_id=student_id)).get_json()
    assert removed == {'success': True, 'removed': True}


def test_assign_into_full_class_is_a_conflict(admin_client, school):
    admin_client.post('/admin/placement/bulk-assign', json=pair(
        school, student_ids=school.g6a_students[:3], target_class_id=school.g7a))
    response = admin_client.post('/admin/placement/assign', json=pair(
        school, student_id=school.g6a_students[3], target_class_id=school.g7a))
    assert response.status_code == 409
    assert response.get_json()['reason'] == 'ClassFull'


def test_undo_with_nothing_staged(admin_client, school):
    data = admin_client.post('/admin/placement/undo', json=pair(school)).get_json()
    assert data == {'success': False, 'message': 'nothing to undo'}


def test_commit_stats_and_lock(app, admin_client, school):
    admin_client.post('/admin/placement/bulk-assign', json=pair(
        school, student_ids=school.g6a_students, target_class_id=school.g7b))

    refused = admin_client.post('/admin/placement/lock', json={'target_year_id': school.target_year_id})
    assert refused.status_code == 409

    committed = admin_client.post('/admin/placement/commit', json=pair(school)).get_json()
    assert committed == {'success': True, 'created_count': 5, 'failures': []}

    stats = admin_client.get('/admin/placement/stats', query_string=pair(school)).get_json()
    assert stats == {'total_eligible': 8, 'committed': 5, 'staged': 0, 'unassigned': 3, 'progress_percentage': 63}

    locked = admin_client.post('/admin/placement/lock', json={'target_year_id': school.target_year_id})
    assert locked.status_code == 200
    assert locked.get_json()['already_locked'] is False

    with app.app_context():
        year = db.session.get(SchoolYear, school.target_year_id)
        assert year.is_locked
        assert year.locked_by == app.config['SUPER_ADMIN_ID']
        assert StudentClass.query.filter_by(class_id=school.g7b, enrolled_by='ADM001').count() == 5
        assert PlacementLog.query.filter_by(action='commit').count() == 1


def test_locked_year_responses(admin_client, school):
    admin_client.post('/admin/placement/lock', json={'target_year_id': school.target_year_id})

    bulk = admin_client.post('/admin/placement/bulk-assign', json=pair(
        school, student_ids=school.g6b_students, target_class_id=school.g7b)).get_json()
    assert bulk['assigned_count'] == 0
    assert {s['reason'] for s in bulk['skipped']} == {'Locked'}

    removed = admin_client.post('/admin/placement/remove', json=pair(school, student_id=school.g6b_students[0]))
    assert removed.status_code == 423
    assert removed.get_json()['code'] == 'EnrollmentLocked'

    commit = admin_client.post('/admin/placement/commit', json=pair(school))
    assert commit.status_code == 423


def test_history_lists_newest_first(admin_client, school):
    admin_client.post('/admin/placement/bulk-assign', json=pair(
        school, student_ids=school.g6b_students[:1], target_class_id=school.g7b))
    admin_client.post('/admin/placement/undo', json=pair(school))

    entries = admin_client.get(f"/admin/placement/history/{school.target_year_id}").get_json()['entries']

    assert [e['action'] for e in entries] == ['undo', 'stage']
    assert {e['acting_user_id'] for e in entries} == {'ADM001'}


def test_distribution(admin_client, school):
    data = admin_client.get('/admin/placement/distribution', query_string=pair(school)).get_json()
    assert data['summary']['total_classes'] == 3
    assert {c['capacity_status'] for c in data['classes']} == {'normal'}


def test_export_and_download(admin_client, school):
    admin_client.post('/admin/placement/bulk-assign', json=pair(
        school, student_ids=school.g6b_students, target_class_id=school.g7b))

    exported = admin_client.post('/admin/placement/export', json=pair(school)).get_json()
    assert exported['success']
    assert exported['record_count'] == 2

    download = admin_client.get(f"/admin/placement/download/{exported['filename']}")
    assert download.status_code == 200
    assert download.mimetype == 'text/csv'
    body = download.data.decode('utf-8-sig')
    assert body.splitlines()[0] == 'student_id,student_name,source_classification,target_classification,status'
    download.close()

    missing = admin_client.get('/admin/placement/download/secrets.csv')
    assert missing.status_code == 404


def test_logout(admin_client, school):
    assert admin_client.post('/logout').get_json() == {'success': True}
    response = admin_client.get('/admin/placement/school-years')
    assert response.status_code == 401
